"""
Camada de Infraestrutura: Implementação dos Repositórios com o Django ORM.

Esta camada traduz as operações abstratas definidas nas Portas da Core
em chamadas concretas ao framework.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.apps import apps
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Prefetch

from applehub.core.entities import (
    AnaliseCredito, ConfiguracaoPagamento, ItemCarrinho, Pedido, Produto, RegistroVisita,
    Transacao, Usuario
)
from applehub.core.exceptions import (
    DadosInvalidosError,
    ItemNaoEncontradoError,
    PedidoNaoEncontradoError,
    PersistenciaError,
    TransacaoNaoEncontradaError,
)
from applehub.core.ports import (
    IAnaliseCreditoRepository,
    ICarrinhoRepository,
    IConfiguracaoRepository,
    ILimpezaRepository,
    ILogApiRepository,
    IPedidoRepository,
    IProdutoRepository,
    IRegistroVisitaRepository,
    ITentativaCartaoRepository,
    ITransacaoRepository,
    IUsuarioRepository,
)

from .mappers import (
    AnaliseCreditoMapper, ConfiguracaoPagamentoMapper, ItemCarrinhoMapper, ItemPedidoMapper,
    PedidoMapper, ProdutoMapper, TransacaoMapper, UsuarioMapper
)

logger = logging.getLogger(__name__)

# Chaves inválidas (UUID malformado, id não numérico) equivalem a "não encontrado".
CHAVE_INVALIDA = (ValidationError, ValueError)


# ====================================================================
# 1. REPOSITÓRIOS DO CATÁLOGO E CARRINHO
# ====================================================================

# Helper para Lazy Loading
def get_model(app_label, model_name):
    """Busca o modelo Django de forma segura (Lazy Loading)."""
    return apps.get_model(app_label, model_name)


class ProdutoRepositoryDjango(IProdutoRepository):

    @property
    def ProdutoModel(self):
        return get_model('catalog', 'Produto')

    def buscar_por_id(self, produto_id: str) -> Optional[Produto]:
        try:
            return ProdutoMapper.to_entity(self.ProdutoModel.objects.get(pk=produto_id))
        except (self.ProdutoModel.DoesNotExist, *CHAVE_INVALIDA):
            return None


class CarrinhoRepositoryDjango(ICarrinhoRepository):
    """Carrinho remoto: uma linha por (usuário, produto)."""

    @property
    def ItemCarrinhoModel(self):
        return get_model('carrinho', 'ItemCarrinho')

    def _itens(self, usuario_id: str):
        return self.ItemCarrinhoModel.objects.filter(usuario_id=usuario_id)

    def buscar_itens(self, usuario_id: str) -> List[ItemCarrinho]:
        qs = self._itens(usuario_id).select_related('produto').order_by('data_criacao')
        return [ItemCarrinhoMapper.to_entity(model) for model in qs]

    def adicionar_item(self, usuario_id: str, produto_id: str, quantidade: int) -> ItemCarrinho:
        """Soma a quantidade na linha existente; cria a linha se ainda não houver."""
        try:
            with transaction.atomic():
                model = self._itens(usuario_id).select_for_update().filter(produto_id=produto_id).first()
                if model is None:
                    try:
                        with transaction.atomic():
                            model = self.ItemCarrinhoModel.objects.create(
                                usuario_id=usuario_id, produto_id=produto_id, quantidade=quantidade
                            )
                        return ItemCarrinhoMapper.to_entity(model)
                    except IntegrityError:
                        # Outra requisição criou a linha entre a leitura e a escrita.
                        model = self._itens(usuario_id).select_for_update().get(produto_id=produto_id)

                self.ItemCarrinhoModel.objects.filter(pk=model.pk).update(quantidade=F('quantidade') + quantidade)
                model.refresh_from_db()
                return ItemCarrinhoMapper.to_entity(model)
        except DatabaseError as e:
            raise PersistenciaError(f"Erro ao adicionar item ao carrinho: {e}")

    @transaction.atomic
    def atualizar_quantidade(self, usuario_id: str, produto_id: str, quantidade: int) -> Optional[ItemCarrinho]:
        if quantidade <= 0:
            self.remover_item(usuario_id, produto_id)
            return None

        try:
            model = self._itens(usuario_id).select_for_update().filter(produto_id=produto_id).first()
        except CHAVE_INVALIDA:
            model = None
        if model is None:
            raise ItemNaoEncontradoError("Item não encontrado no carrinho.")

        model.quantidade = quantidade
        model.save(update_fields=['quantidade', 'data_atualizacao'])
        return ItemCarrinhoMapper.to_entity(model)

    def remover_item(self, usuario_id: str, produto_id: str):
        try:
            self._itens(usuario_id).filter(produto_id=produto_id).delete()
        except CHAVE_INVALIDA:
            logger.warning("Remoção ignorada: produto_id inválido %s", produto_id)

    def limpar(self, usuario_id: str):
        self._itens(usuario_id).delete()


# ====================================================================
# 2. REPOSITÓRIOS DE PEDIDO, TRANSAÇÃO E CRÉDITO
# ====================================================================

class PedidoRepositoryDjango(IPedidoRepository):

    @property
    def PedidoModel(self):
        return get_model('pedidos', 'Pedido')

    @property
    def ItemPedidoModel(self):
        return get_model('pedidos', 'ItemPedido')

    @property
    def HistoricoModel(self):
        return get_model('pedidos', 'HistoricoStatusPedido')

    @property
    def ItemCarrinhoModel(self):
        return get_model('carrinho', 'ItemCarrinho')

    def _queryset(self):
        return self.PedidoModel.objects.prefetch_related(
            Prefetch('itens', queryset=self.ItemPedidoModel.objects.order_by('id'))
        )

    @transaction.atomic
    def criar_pedido(self, pedido: Pedido, observacao: str) -> Pedido:
        """
        Cria o pedido, os itens (snapshot), o primeiro histórico e limpa o
        carrinho do usuário. Qualquer falha desfaz tudo.
        """
        model = PedidoMapper.to_model(pedido)
        model.save()

        self.ItemPedidoModel.objects.bulk_create([
            ItemPedidoMapper.to_model(item, pedido_id=model.id) for item in pedido.itens
        ])
        self.HistoricoModel.objects.create(pedido=model, status=model.status, observacao=observacao)
        self.ItemCarrinhoModel.objects.filter(usuario_id=pedido.usuario_id).delete()

        return PedidoMapper.to_entity(self._queryset().get(pk=model.pk))

    def buscar_por_id(self, pedido_id: str) -> Optional[Pedido]:
        try:
            return PedidoMapper.to_entity(self._queryset().get(pk=pedido_id))
        except (self.PedidoModel.DoesNotExist, *CHAVE_INVALIDA):
            return None

    def listar_por_usuario(self, usuario_id: str) -> List[Pedido]:
        qs = self._queryset().filter(usuario_id=usuario_id).order_by('-data_criacao')
        return [PedidoMapper.to_entity(model) for model in qs]

    @transaction.atomic
    def atualizar_status(
        self,
        pedido_id: str,
        novo_status: str,
        observacao: Optional[str] = None,
        codigo_rastreio: Optional[str] = None,
    ) -> Pedido:
        try:
            model = self.PedidoModel.objects.select_for_update().get(pk=pedido_id)
        except (self.PedidoModel.DoesNotExist, *CHAVE_INVALIDA):
            raise PedidoNaoEncontradoError(f"Pedido ID {pedido_id} não existe para atualização.")

        model.status = novo_status
        campos = ['status', 'data_atualizacao']
        if codigo_rastreio:
            model.codigo_rastreio = codigo_rastreio
            campos.append('codigo_rastreio')
        model.save(update_fields=campos)

        self.HistoricoModel.objects.create(pedido=model, status=novo_status, observacao=observacao)
        return PedidoMapper.to_entity(self._queryset().get(pk=model.pk))


class TransacaoRepositoryDjango(ITransacaoRepository):

    @property
    def TransacaoModel(self):
        return get_model('pedidos', 'Transacao')

    def salvar(self, transacao: Transacao) -> Transacao:
        model = TransacaoMapper.to_model(transacao)
        try:
            model.save()
        except DatabaseError as e:
            raise PersistenciaError(f"Erro ao salvar transação: {e}")
        return TransacaoMapper.to_entity(model)

    def criar_em_lote(self, transacoes: List[Transacao]) -> List[Transacao]:
        if not transacoes:
            return []
        try:
            models = self.TransacaoModel.objects.bulk_create(
                [TransacaoMapper.to_model(transacao) for transacao in transacoes]
            )
        except DatabaseError as e:
            raise PersistenciaError(f"Erro ao criar transações: {e}")
        return [TransacaoMapper.to_entity(model) for model in models]

    def buscar_por_pix(self, pix_copia_cola: str) -> Optional[Transacao]:
        model = self.TransacaoModel.objects.filter(pix_copia_cola=pix_copia_cola).order_by('-data_criacao').first()
        return TransacaoMapper.to_entity(model)

    @transaction.atomic
    def marcar_como_paga(self, transacao_id: str, data_pagamento: datetime) -> Transacao:
        try:
            model = self.TransacaoModel.objects.select_for_update().get(pk=transacao_id)
        except (self.TransacaoModel.DoesNotExist, *CHAVE_INVALIDA):
            raise TransacaoNaoEncontradaError(f"Transação {transacao_id} não encontrada.")

        model.status = 'pago'
        model.data_pagamento = data_pagamento
        model.save(update_fields=['status', 'data_pagamento'])
        return TransacaoMapper.to_entity(model)

    def atualizar_status(self, transacao_id: str, status: str) -> None:
        atualizadas = self.TransacaoModel.objects.filter(pk=transacao_id).update(status=status)
        if not atualizadas:
            raise TransacaoNaoEncontradaError(f"Transação {transacao_id} não encontrada.")

    def listar_pix_pendentes_criados_antes(self, limite: datetime) -> List[Transacao]:
        qs = self.TransacaoModel.objects.filter(
            status='pendente',
            metodo_pagamento='pix',
            data_criacao__lt=limite,
            pix_copia_cola__isnull=False,
        ).exclude(pix_copia_cola='').order_by('data_criacao')
        return [TransacaoMapper.to_entity(model) for model in qs]


class AnaliseCreditoRepositoryDjango(IAnaliseCreditoRepository):

    def buscar_mais_recente(self, usuario_id: str) -> Optional[AnaliseCredito]:
        model = get_model('pedidos', 'AnaliseCredito').objects.filter(
            usuario_id=usuario_id
        ).order_by('-data_criacao').first()
        return AnaliseCreditoMapper.to_entity(model)


# ====================================================================
# 3. CONFIGURAÇÕES E USUÁRIOS
# ====================================================================

class ConfiguracaoRepositoryDjango(IConfiguracaoRepository):

    @property
    def ConfiguracaoPagamentoModel(self):
        return get_model('infrastructure', 'ConfiguracaoPagamento')

    def obter_pagamento(self) -> Optional[ConfiguracaoPagamento]:
        model = self.ConfiguracaoPagamentoModel.objects.order_by('-data_atualizacao').first()
        return ConfiguracaoPagamentoMapper.to_entity(model)

    @transaction.atomic
    def salvar_pagamento(self, configuracao: ConfiguracaoPagamento) -> ConfiguracaoPagamento:
        """Mantém uma única linha: atualiza a existente ou cria a primeira."""
        model = self.ConfiguracaoPagamentoModel.objects.order_by('-data_atualizacao').first()
        if model is None:
            model = self.ConfiguracaoPagamentoModel()

        model.recipient_id = configuracao.recipient_id
        model.secret_key = configuracao.secret_key
        model.auto_saque_habilitado = configuracao.auto_saque_habilitado
        model.senha_saque = configuracao.senha_saque
        model.save()
        return ConfiguracaoPagamentoMapper.to_entity(model)

    def obter_senha_admin(self) -> Optional[str]:
        model = get_model('infrastructure', 'ConfiguracaoAdmin').objects.order_by('-data_atualizacao').first()
        return model.senha if model and model.senha else None


class UsuarioRepositoryDjango(IUsuarioRepository):

    @property
    def UserModel(self):
        return get_user_model()

    def _queryset(self):
        return self.UserModel.objects.select_related('perfil').prefetch_related('papeis')

    def buscar_por_id(self, usuario_id: str) -> Optional[Usuario]:
        try:
            return UsuarioMapper.to_entity(self._queryset().filter(pk=usuario_id).first())
        except CHAVE_INVALIDA:
            return None

    def listar_todos(self) -> List[Usuario]:
        qs = self._queryset().filter(perfil__isnull=False).order_by('-perfil__data_criacao')
        return [UsuarioMapper.to_entity(model) for model in qs]

    def listar_por_papel(self, papel: str) -> List[Usuario]:
        qs = self._queryset().filter(papeis__papel=papel, is_superuser=False).distinct()
        return [UsuarioMapper.to_entity(model) for model in qs]

    def listar_verificacoes(self) -> List[Dict[str, Any]]:
        qs = get_model('infrastructure', 'VerificacaoConta').objects.order_by('-data_criacao')
        return [
            {
                'user_id': str(v.usuario_id),
                'status': v.status,
                'verificado_em': v.verificado_em.isoformat() if v.verificado_em else None,
            }
            for v in qs
        ]

    def deletar(self, usuario_id: str) -> None:
        try:
            self.UserModel.objects.filter(pk=usuario_id).delete()
        except DatabaseError as e:
            raise PersistenciaError(str(e))

    def buscar_perfil_cobranca(self, usuario_id: str) -> Optional[Dict[str, Any]]:
        perfil = get_model('infrastructure', 'Perfil').objects.select_related('usuario').filter(
            usuario_id=usuario_id
        ).first()
        if not perfil:
            return None
        return {
            'nome_completo': perfil.nome_completo,
            'email': perfil.usuario.email,
            'cpf': perfil.cpf,
            'telefone': perfil.telefone,
            'cep': perfil.cep,
            'endereco': perfil.endereco,
            'numero': perfil.numero,
            'complemento': perfil.complemento,
            'bairro': perfil.bairro,
            'cidade': perfil.cidade,
            'estado': perfil.estado,
        }


class LimpezaRepositoryDjango(ILimpezaRepository):
    """Apagamento em massa por nome lógico de tabela."""

    TABELAS = {
        'historico_status': ('pedidos', 'HistoricoStatusPedido'),
        'itens_pedido': ('pedidos', 'ItemPedido'),
        'transacoes': ('pedidos', 'Transacao'),
        'analises_credito': ('pedidos', 'AnaliseCredito'),
        'pedidos': ('pedidos', 'Pedido'),
        'itens_carrinho': ('carrinho', 'ItemCarrinho'),
        'favoritos': ('infrastructure', 'Favorito'),
        'verificacoes_conta': ('infrastructure', 'VerificacaoConta'),
        'tentativas_cartao': ('infrastructure', 'TentativaPagamentoCartao'),
        'perfis': ('infrastructure', 'Perfil'),
        'papeis': ('infrastructure', 'PapelUsuario'),
    }

    def apagar_tabela(self, nome: str) -> int:
        if nome not in self.TABELAS:
            raise DadosInvalidosError(f"Tabela desconhecida: {nome}")
        model = get_model(*self.TABELAS[nome])
        try:
            apagados, _ = model.objects.all().delete()
        except DatabaseError as e:
            raise PersistenciaError(f"Erro ao limpar {nome}: {e}")
        return apagados

    def listar_ids_usuarios(self) -> List[str]:
        """Superusuários são preservados."""
        ids = get_user_model().objects.filter(is_superuser=False).values_list('pk', flat=True)
        return [str(pk) for pk in ids]


# ====================================================================
# 4. AUDITORIA E ANALYTICS
# ====================================================================

class RegistroVisitaRepositoryDjango(IRegistroVisitaRepository):

    def salvar(self, registro: RegistroVisita) -> RegistroVisita:
        get_model('infrastructure', 'RegistroVisita').objects.create(
            ip=registro.ip,
            user_agent=registro.user_agent,
            tipo_dispositivo=registro.tipo_dispositivo,
            navegador=registro.navegador,
            sistema_operacional=registro.sistema_operacional,
            pagina_visitada=registro.pagina_visitada,
            referrer=registro.referrer,
            sessao_id=registro.sessao_id,
            usuario_id=registro.usuario_id,
            usuario_registrado=registro.registrado,
            pais=registro.pais,
            cidade=registro.cidade,
        )
        return registro


class LogApiRepositoryDjango(ILogApiRepository):

    def registrar(
        self,
        endpoint: str,
        metodo: str,
        corpo_requisicao: Optional[Dict[str, Any]] = None,
        status_resposta: Optional[int] = None,
        corpo_resposta: Optional[Dict[str, Any]] = None,
        mensagem_erro: Optional[str] = None,
        usuario_id: Optional[str] = None,
        pedido_id: Optional[str] = None,
        transacao_id: Optional[str] = None,
        duracao_ms: Optional[int] = None,
        metadados: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            get_model('infrastructure', 'LogApiPagarme').objects.create(
                endpoint=endpoint,
                metodo=metodo,
                corpo_requisicao=corpo_requisicao,
                status_resposta=status_resposta,
                corpo_resposta=corpo_resposta,
                mensagem_erro=mensagem_erro,
                usuario_id=usuario_id,
                pedido_id=pedido_id,
                transacao_id=transacao_id,
                duracao_ms=duracao_ms,
                metadados=metadados,
            )
        except DatabaseError:
            # Falha na auditoria é registrada e ignorada.
            logger.error("Erro ao gravar log da API %s %s", metodo, endpoint, exc_info=True)


class TentativaCartaoRepositoryDjango(ITentativaCartaoRepository):

    def registrar(self, usuario_id: str, nome_titular: str, numero_mascarado: str,
                  validade: str, valor: Decimal) -> None:
        get_model('infrastructure', 'TentativaPagamentoCartao').objects.create(
            usuario_id=usuario_id,
            nome_titular=nome_titular,
            numero_mascarado=numero_mascarado,
            validade=validade,
            valor=valor,
        )
