"""
Mapeadores (Mappers) para converter entre:
1. Modelos do Django ORM
2. Entidades de Domínio (applehub.core.entities)
"""
from typing import Any, Optional, Type

from django.apps import apps
from django.db import models

from applehub.core.entities import (
    AnaliseCredito as AnaliseCreditoEntity,
    ConfiguracaoPagamento as ConfiguracaoPagamentoEntity,
    ItemCarrinho as ItemCarrinhoEntity,
    ItemPedido as ItemPedidoEntity,
    Pedido as PedidoEntity,
    Produto as ProdutoEntity,
    Transacao as TransacaoEntity,
    Usuario as UsuarioEntity,
)


def get_model(app_label: str, model_name: str):
    """Retorna um modelo do Django de forma segura (lazy loading)."""
    return apps.get_model(app_label, model_name)


def _str_ou_none(valor) -> Optional[str]:
    return str(valor) if valor is not None else None


# ====================================================================
# CATÁLOGO E CARRINHO
# ====================================================================

class ProdutoMapper:

    @staticmethod
    def to_entity(model: Any) -> Optional[ProdutoEntity]:
        if not model: return None
        return ProdutoEntity(
            id=str(model.id),
            nome=model.nome,
            preco_vista=model.preco_vista,
            estoque=model.estoque,
            ativo=model.ativo,
            imagem_url=model.imagem_url,
        )


class ItemCarrinhoMapper:

    @staticmethod
    def to_entity(model: Any) -> Optional[ItemCarrinhoEntity]:
        """Converte ItemCarrinho Model (com produto pré-carregado) para Entity."""
        if not model: return None
        return ItemCarrinhoEntity(
            id=str(model.id),
            usuario_id=str(model.usuario_id),
            produto_id=str(model.produto_id),
            quantidade=model.quantidade,
            produto=ProdutoMapper.to_entity(model.produto),
            data_criacao=model.data_criacao,
            data_atualizacao=model.data_atualizacao,
        )

# ====================================================================
# PEDIDOS
# ====================================================================

class ItemPedidoMapper:

    @staticmethod
    def to_entity(model: Any) -> ItemPedidoEntity:
        return ItemPedidoEntity(
            produto_id=_str_ou_none(model.produto_id),
            nome_produto=model.nome_produto,
            preco_unitario=model.preco_unitario,
            quantidade=model.quantidade,
            pedido_id=str(model.pedido_id),
        )

    @staticmethod
    def to_model(entity: ItemPedidoEntity, pedido_id) -> Any:
        return get_model('pedidos', 'ItemPedido')(
            pedido_id=pedido_id,
            produto_id=entity.produto_id,
            nome_produto=entity.nome_produto,
            preco_unitario=entity.preco_unitario,
            quantidade=entity.quantidade,
            subtotal=entity.subtotal,
        )


class PedidoMapper:

    @classmethod
    def model_class(cls) -> Type[models.Model]:
        return get_model('pedidos', 'Pedido')

    @staticmethod
    def to_entity(model: Any, com_itens: bool = True) -> Optional[PedidoEntity]:
        if not model: return None
        itens = [ItemPedidoMapper.to_entity(item) for item in model.itens.all()] if com_itens else []
        return PedidoEntity(
            id=str(model.id),
            usuario_id=str(model.usuario_id),
            numero_pedido=model.numero_pedido,
            status=model.status,
            subtotal=model.subtotal,
            frete=model.frete,
            total=model.total,
            tipo_pagamento=model.tipo_pagamento,
            endereco_entrega=model.endereco_entrega or {},
            itens=itens,
            parcelas=model.parcelas,
            valor_parcela=model.valor_parcela,
            codigo_rastreio=model.codigo_rastreio,
            observacoes=model.observacoes,
            data_criacao=model.data_criacao,
        )

    @classmethod
    def to_model(cls, entity: PedidoEntity) -> Any:
        return cls.model_class()(
            usuario_id=entity.usuario_id,
            numero_pedido=entity.numero_pedido,
            status=entity.status,
            subtotal=entity.subtotal,
            frete=entity.frete,
            total=entity.total,
            tipo_pagamento=entity.tipo_pagamento,
            endereco_entrega=entity.endereco_entrega,
            parcelas=entity.parcelas,
            valor_parcela=entity.valor_parcela,
            codigo_rastreio=entity.codigo_rastreio,
            observacoes=entity.observacoes,
        )


class TransacaoMapper:

    @classmethod
    def model_class(cls) -> Type[models.Model]:
        return get_model('pedidos', 'Transacao')

    @staticmethod
    def to_entity(model: Any) -> Optional[TransacaoEntity]:
        if not model: return None
        return TransacaoEntity(
            id=str(model.id),
            usuario_id=str(model.usuario_id),
            pedido_id=_str_ou_none(model.pedido_id),
            tipo=model.tipo,
            valor=model.valor,
            status=model.status,
            metodo_pagamento=model.metodo_pagamento,
            pix_qr_code=model.pix_qr_code,
            pix_copia_cola=model.pix_copia_cola,
            parcela_numero=model.parcela_numero,
            total_parcelas=model.total_parcelas,
            data_vencimento=model.data_vencimento,
            data_pagamento=model.data_pagamento,
            data_criacao=model.data_criacao,
        )

    @classmethod
    def to_model(cls, entity: TransacaoEntity) -> Any:
        return cls.model_class()(
            usuario_id=entity.usuario_id,
            pedido_id=entity.pedido_id,
            tipo=entity.tipo,
            valor=entity.valor,
            status=entity.status,
            metodo_pagamento=entity.metodo_pagamento,
            pix_qr_code=entity.pix_qr_code,
            pix_copia_cola=entity.pix_copia_cola,
            parcela_numero=entity.parcela_numero,
            total_parcelas=entity.total_parcelas,
            data_vencimento=entity.data_vencimento,
            data_pagamento=entity.data_pagamento,
        )


class AnaliseCreditoMapper:

    @staticmethod
    def to_entity(model: Any) -> Optional[AnaliseCreditoEntity]:
        if not model: return None
        return AnaliseCreditoEntity(
            id=str(model.id),
            usuario_id=str(model.usuario_id),
            pedido_id=_str_ou_none(model.pedido_id),
            valor_solicitado=model.valor_solicitado,
            valor_aprovado=model.valor_aprovado,
            percentual_aprovado=model.percentual_aprovado,
            status=model.status,
            data_criacao=model.data_criacao,
        )

# ====================================================================
# USUÁRIO E CONFIGURAÇÃO
# ====================================================================

class UsuarioMapper:
    """Junta o User do Django com o Perfil e o Papel."""

    @staticmethod
    def to_entity(model: Any) -> Optional[UsuarioEntity]:
        if not model: return None
        perfil = getattr(model, 'perfil', None)
        papeis = {p.papel for p in model.papeis.all()}
        return UsuarioEntity(
            id=str(model.pk),
            email=model.email,
            nome_completo=perfil.nome_completo if perfil else model.get_full_name(),
            cpf=perfil.cpf if perfil else None,
            telefone=perfil.telefone if perfil else None,
            papel='admin' if 'admin' in papeis or model.is_superuser else 'cliente',
            data_criacao=perfil.data_criacao if perfil else model.date_joined,
        )


class ConfiguracaoPagamentoMapper:

    @staticmethod
    def to_entity(model: Any) -> Optional[ConfiguracaoPagamentoEntity]:
        if not model: return None
        return ConfiguracaoPagamentoEntity(
            recipient_id=model.recipient_id,
            secret_key=model.secret_key,
            auto_saque_habilitado=model.auto_saque_habilitado,
            senha_saque=model.senha_saque,
        )
