# applehub/core/use_cases.py
"""
Implementação dos Casos de Uso (Lógica de Negócio) da aplicação.
Esta camada depende apenas das Entidades e Portas (Interfaces) do Core,
garantindo o isolamento da lógica de negócio.
"""
import hashlib
import hmac
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Tuple

# Entidades e Exceções
from applehub.core.entities import (
    AnaliseCredito, ConfiguracaoPagamento, ItemCarrinho, ItemPedido, OperacaoOffline,
    Pedido, RegistroVisita, Transacao, Usuario, TIPOS_PAGAMENTO
)
from applehub.core.exceptions import (
    AcessoNegadoError,
    AssinaturaInvalidaError,
    BaseErroCore,
    CarrinhoVazioError,
    CartaoNaoAutorizadoError,
    ConfiguracaoNaoEncontradaError,
    DadosInvalidosError,
    EstornoFalhouError,
    PagamentoFalhouError,
    PedidoNaoEncontradoError,
    PersistenciaError,
    ProdutoNaoEncontradoError,
    SenhaAdminInvalidaError,
    TransacaoNaoEncontradaError,
    TransicaoInvalidaError,
    UsuarioNaoEncontradoError,
)

# Portas (Interfaces)
from applehub.core.ports import (
    IAnaliseCreditoRepository,
    ICarrinhoRepository,
    IConfiguracaoRepository,
    IEmailService,
    IGatewayPagamento,
    IGeolocalizador,
    ILimpezaRepository,
    ILogApiRepository,
    IPedidoRepository,
    IProdutoRepository,
    IRegistroVisitaRepository,
    ITentativaCartaoRepository,
    ITransacaoRepository,
    IUsuarioRepository,
)
from applehub.core.status_pedido import MaquinaEstadosPedido, rotulo_status
from applehub.core.utils import interpretar_user_agent, ip_privado, mascarar_numero_cartao

logger = logging.getLogger(__name__)


def agora_utc() -> datetime:
    return datetime.now(timezone.utc)


# ====================================================================
# 1. CASOS DE USO DO CARRINHO (lado servidor)
# ====================================================================

class GerenciarCarrinhoUseCase:
    """
    Caso de Uso que centraliza a gestão do carrinho remoto do usuário
    (adicionar, atualizar, remover, mesclar o carrinho de convidado e
    reproduzir a fila offline).
    """
    def __init__(self, carrinho_repo: ICarrinhoRepository, produto_repo: IProdutoRepository):
        self.carrinho_repo = carrinho_repo
        self.produto_repo = produto_repo

    def listar(self, usuario_id: str) -> List[ItemCarrinho]:
        return self.carrinho_repo.buscar_itens(usuario_id)

    def adicionar_item(self, usuario_id: str, produto_id: str, quantidade: int = 1) -> ItemCarrinho:
        """Soma a quantidade ao item existente do mesmo produto ou cria um novo item."""
        if quantidade <= 0:
            raise DadosInvalidosError("A quantidade a adicionar deve ser positiva.")

        produto = self.produto_repo.buscar_por_id(produto_id)
        if not produto or not produto.ativo:
            raise ProdutoNaoEncontradoError(f"Produto {produto_id} não encontrado.")

        return self.carrinho_repo.adicionar_item(usuario_id, produto_id, quantidade)

    def atualizar_quantidade(self, usuario_id: str, produto_id: str, quantidade: int) -> Optional[ItemCarrinho]:
        """Quantidade menor ou igual a zero remove o item."""
        return self.carrinho_repo.atualizar_quantidade(usuario_id, produto_id, quantidade)

    def remover_item(self, usuario_id: str, produto_id: str) -> None:
        self.carrinho_repo.remover_item(usuario_id, produto_id)

    def limpar(self, usuario_id: str) -> None:
        self.carrinho_repo.limpar(usuario_id)

    def mesclar(self, usuario_id: str, itens: List[Tuple[str, int]]) -> int:
        """
        Mescla itens do carrinho de convidado no carrinho do usuário.
        Quantidades do mesmo produto são somadas, nunca sobrescritas.
        """
        mesclados = 0
        for produto_id, quantidade in itens:
            try:
                self.adicionar_item(usuario_id, produto_id, quantidade)
                mesclados += 1
            except BaseErroCore as e:
                logger.warning("Item %s ignorado na mesclagem: %s", produto_id, e.message)
        return mesclados

    def reproduzir_fila(self, usuario_id: str, operacoes: List[OperacaoOffline]) -> Dict[str, int]:
        """Aplica operações offline em ordem FIFO; falhas individuais são registradas e ignoradas."""
        aplicadas = 0
        falhas = 0
        for operacao in operacoes:
            dados = operacao.dados
            try:
                if operacao.tipo == 'add':
                    self.adicionar_item(usuario_id, dados['produto_id'], int(dados.get('quantidade', 1)))
                elif operacao.tipo == 'update':
                    self.atualizar_quantidade(usuario_id, dados['produto_id'], int(dados['quantidade']))
                elif operacao.tipo == 'remove':
                    self.remover_item(usuario_id, dados['produto_id'])
                elif operacao.tipo == 'clear':
                    self.limpar(usuario_id)
                aplicadas += 1
            except (BaseErroCore, KeyError, ValueError, TypeError):
                falhas += 1
                logger.error("Erro ao processar operação offline %s", operacao.id, exc_info=True)
        return {'aplicadas': aplicadas, 'falhas': falhas}


# ====================================================================
# 2. CASOS DE USO DE PEDIDO E CHECKOUT
# ====================================================================

class CriarPedidoUseCase:
    """
    Caso de Uso que finaliza o checkout: snapshot dos itens do carrinho,
    criação do pedido com histórico inicial e limpeza do carrinho.
    """
    def __init__(self, carrinho_repo: ICarrinhoRepository, pedido_repo: IPedidoRepository,
                 relogio: Callable[[], datetime] = agora_utc):
        self.carrinho_repo = carrinho_repo
        self.pedido_repo = pedido_repo
        self.relogio = relogio

    def executar(
        self,
        usuario_id: str,
        tipo_pagamento: str,
        endereco_entrega: Dict[str, Any],
        frete: Decimal = Decimal('0'),
        parcelas: Optional[int] = None,
    ) -> Pedido:
        if tipo_pagamento not in TIPOS_PAGAMENTO:
            raise DadosInvalidosError(f"Tipo de pagamento '{tipo_pagamento}' inválido.")

        itens_carrinho = self.carrinho_repo.buscar_itens(usuario_id)
        if not itens_carrinho:
            raise CarrinhoVazioError("Não é possível finalizar o checkout com o carrinho vazio.")

        # 1. Snapshot dos itens
        itens_pedido = []
        for item in itens_carrinho:
            if not item.produto:
                raise ProdutoNaoEncontradoError(f"Produto {item.produto_id} não encontrado.")
            itens_pedido.append(ItemPedido(
                produto_id=item.produto_id,
                nome_produto=item.produto.nome,
                preco_unitario=item.produto.preco_vista,
                quantidade=item.quantidade,
            ))

        subtotal = sum((item.subtotal for item in itens_pedido), Decimal('0'))
        total = subtotal + frete
        parcelado = tipo_pagamento == 'parcelamento_applehub'

        if parcelado and (not parcelas or parcelas < 1):
            raise DadosInvalidosError("Informe o número de parcelas.")

        # 2. Entidade Pedido
        pedido = Pedido(
            usuario_id=usuario_id,
            numero_pedido=f"APH{int(self.relogio().timestamp() * 1000)}",
            status='em_analise' if parcelado else 'pagamento_confirmado',
            subtotal=subtotal,
            frete=frete,
            total=total,
            tipo_pagamento=tipo_pagamento,
            endereco_entrega=endereco_entrega,
            itens=itens_pedido,
            parcelas=parcelas if parcelado else None,
            valor_parcela=(total / parcelas).quantize(Decimal('0.01'), ROUND_HALF_UP) if parcelado else None,
        )
        observacao = "Pedido em análise de crédito" if parcelado else "Pagamento confirmado"

        # 3. Persistência atômica (pedido + itens + histórico + limpeza do carrinho)
        pedido_final = self.pedido_repo.criar_pedido(pedido, observacao)
        logger.info("Pedido %s criado para o usuário %s", pedido_final.numero_pedido, usuario_id)
        return pedido_final


class NotificarStatusPedidoUseCase:
    """Envia ao cliente o e-mail de atualização de status do pedido."""
    def __init__(self, pedido_repo: IPedidoRepository, usuario_repo: IUsuarioRepository,
                 email_service: IEmailService):
        self.pedido_repo = pedido_repo
        self.usuario_repo = usuario_repo
        self.email_service = email_service

    def executar(self, pedido_id: str, status: str, observacao: Optional[str] = None) -> Dict[str, Any]:
        pedido = self.pedido_repo.buscar_por_id(pedido_id)
        if not pedido:
            raise PedidoNaoEncontradoError('Pedido não encontrado')

        usuario = self.usuario_repo.buscar_por_id(pedido.usuario_id)
        if not usuario or not usuario.email:
            raise UsuarioNaoEncontradoError('Email do usuário não encontrado')

        self.email_service.enviar_status_pedido(usuario, pedido, rotulo_status(status), observacao)
        return {'success': True}


class AtualizarStatusPedidoUseCase:
    """
    Atualização manual de status (administrador). Passa pela máquina de
    estados e notifica o cliente por e-mail.
    """
    def __init__(self, pedido_repo: IPedidoRepository, maquina: MaquinaEstadosPedido,
                 notificador: NotificarStatusPedidoUseCase):
        self.pedido_repo = pedido_repo
        self.maquina = maquina
        self.notificador = notificador

    def executar(self, pedido_id: str, novo_status: str, observacao: Optional[str] = None) -> Pedido:
        pedido = self.pedido_repo.buscar_por_id(pedido_id)
        if not pedido:
            raise PedidoNaoEncontradoError(f"Pedido ID {pedido_id} não encontrado.")

        pedido_final = self.maquina.transicionar(pedido, novo_status, observacao)

        try:
            self.notificador.executar(pedido_final.id, novo_status, observacao)
        except BaseErroCore as e:
            logger.warning("Falha ao notificar o pedido %s: %s", pedido_final.numero_pedido, e.message)

        return pedido_final


# ====================================================================
# 3. CASOS DE USO DE PAGAMENTO (PIX / WEBHOOK / CARTÃO)
# ====================================================================

class GerarPixUseCase:
    """Gera uma cobrança PIX na Pagar.me e registra a transação pendente."""

    def __init__(self, config_repo: IConfiguracaoRepository, transacao_repo: ITransacaoRepository,
                 gateway: IGatewayPagamento, expiracao_segundos: int = 3600,
                 relogio: Callable[[], datetime] = agora_utc):
        self.config_repo = config_repo
        self.transacao_repo = transacao_repo
        self.gateway = gateway
        self.expiracao_segundos = expiracao_segundos
        self.relogio = relogio

    def executar(
        self,
        valor: Decimal,
        descricao: str,
        usuario_id: str,
        pedido_id: Optional[str] = None,
        tipo: str = 'entrada',
    ) -> Dict[str, Any]:
        if valor is None or valor <= 0:
            raise DadosInvalidosError("O valor do PIX deve ser positivo.")

        configuracao = self.config_repo.obter_pagamento()
        if not configuracao:
            raise ConfiguracaoNaoEncontradaError("Configurações de pagamento não encontradas")

        cobranca = self.gateway.criar_cobranca_pix(configuracao, valor, descricao, self.expiracao_segundos)
        expira_em = self.relogio() + timedelta(seconds=self.expiracao_segundos)

        transacao = Transacao(
            usuario_id=usuario_id,
            pedido_id=pedido_id,
            tipo=tipo,
            valor=valor,
            status='pendente',
            metodo_pagamento='pix',
            pix_qr_code=cobranca.qr_code_url,
            pix_copia_cola=cobranca.qr_code,
            data_vencimento=expira_em,
        )
        try:
            self.transacao_repo.salvar(transacao)
        except PersistenciaError as e:
            logger.error("Erro ao salvar transação PIX: %s", e.message)

        return {
            'qr_code': cobranca.qr_code,
            'qr_code_url': cobranca.qr_code_url,
            'amount': valor,
            'expires_at': expira_em.isoformat(),
        }


class ProcessarWebhookPagarmeUseCase:
    """
    Processa as notificações da Pagar.me:
    valida a assinatura HMAC, localiza a transação pelo código PIX, marca-a
    como paga e atualiza o pedido (gerando as parcelas quando é uma entrada).
    """

    EVENTOS_PAGAMENTO = ('order.paid', 'charge.paid')

    def __init__(
        self,
        config_repo: IConfiguracaoRepository,
        transacao_repo: ITransacaoRepository,
        analise_repo: IAnaliseCreditoRepository,
        pedido_repo: IPedidoRepository,
        log_repo: ILogApiRepository,
        gateway: IGatewayPagamento,
        maquina: MaquinaEstadosPedido,
        num_parcelas: int = 24,
        juros_percentual: Decimal = Decimal('2.0'),
        relogio: Callable[[], datetime] = agora_utc,
    ):
        self.config_repo = config_repo
        self.transacao_repo = transacao_repo
        self.analise_repo = analise_repo
        self.pedido_repo = pedido_repo
        self.log_repo = log_repo
        self.gateway = gateway
        self.maquina = maquina
        self.num_parcelas = num_parcelas
        self.juros_percentual = juros_percentual
        self.relogio = relogio

    @staticmethod
    def assinatura_esperada(secret_key: str, corpo_bruto: bytes) -> str:
        digest = hmac.new(secret_key.encode('utf-8'), corpo_bruto, hashlib.sha256).hexdigest()
        return f"sha256={digest}"

    def executar(self, corpo_bruto: bytes, assinatura: Optional[str] = None) -> Dict[str, Any]:
        inicio = time.monotonic()

        configuracao = self.config_repo.obter_pagamento()
        if not configuracao:
            raise ConfiguracaoNaoEncontradaError("Configurações não encontradas")

        if assinatura:
            esperada = self.assinatura_esperada(configuracao.secret_key, corpo_bruto)
            if not hmac.compare_digest(assinatura.encode('utf-8'), esperada.encode('utf-8')):
                logger.error("Webhook com assinatura inválida")
                raise AssinaturaInvalidaError("Assinatura inválida")

        try:
            evento = json.loads(corpo_bruto or b'{}')
        except ValueError:
            raise DadosInvalidosError("Corpo do webhook inválido")
        if not isinstance(evento, dict):
            raise DadosInvalidosError("Corpo do webhook inválido")

        try:
            self._processar_evento(evento, configuracao)
        except BaseErroCore:
            raise
        except Exception as e:
            self.log_repo.registrar(
                endpoint='/webhook',
                metodo='POST',
                status_resposta=500,
                mensagem_erro=str(e),
                duracao_ms=self._duracao_ms(inicio),
                metadados={'type': 'webhook_error'},
            )
            raise

        dados = evento.get('data') or {}
        duracao = self._duracao_ms(inicio)
        self.log_repo.registrar(
            endpoint='/webhook',
            metodo='POST',
            corpo_requisicao=evento,
            status_resposta=200,
            corpo_resposta={'success': True},
            usuario_id=(dados.get('customer') or {}).get('id'),
            pedido_id=dados.get('id'),
            duracao_ms=duracao,
            metadados={
                'type': 'webhook_received',
                'event': evento.get('type') or 'unknown',
                'signature_valid': bool(assinatura),
            },
        )
        logger.info("Webhook processado com sucesso em %dms", duracao)
        return {'success': True, 'message': 'Webhook processado'}

    def _processar_evento(self, evento: Dict[str, Any], configuracao: ConfiguracaoPagamento) -> None:
        tipo_evento = evento.get('type')
        if tipo_evento not in self.EVENTOS_PAGAMENTO:
            logger.info("Evento de webhook ignorado: %s", tipo_evento)
            return

        dados = evento.get('data') or {}
        cobrancas = dados.get('charges') or []
        primeira_cobranca = cobrancas[0] if cobrancas else {}
        codigo_pix = (primeira_cobranca.get('last_transaction') or {}).get('qr_code')
        if not codigo_pix:
            raise DadosInvalidosError("QR Code não encontrado")

        valor_pago_centavos = primeira_cobranca.get('paid_amount') or dados.get('amount')

        transacao = self.transacao_repo.buscar_por_pix(codigo_pix)
        if not transacao:
            raise TransacaoNaoEncontradaError("Transação não encontrada")

        if transacao.status == 'pago':
            logger.info("Transação %s já estava paga; evento repetido ignorado", transacao.id)
            return

        agora = self.relogio()
        transacao = self.transacao_repo.marcar_como_paga(transacao.id, agora)
        logger.info("Transação %s marcada como paga", transacao.id)

        valor_pago = (
            Decimal(str(valor_pago_centavos)) / Decimal('100')
            if valor_pago_centavos else transacao.valor
        )
        self._saque_automatico(configuracao, valor_pago, transacao)

        if transacao.pedido_id:
            self._atualizar_pedido(transacao, agora)

    def _saque_automatico(self, configuracao: ConfiguracaoPagamento, valor: Decimal, transacao: Transacao) -> None:
        if not configuracao.auto_saque_habilitado or not configuracao.recipient_id:
            return

        endpoint = f"/recipients/{configuracao.recipient_id}/transfers"
        inicio = time.monotonic()
        try:
            resposta = self.gateway.criar_transferencia(configuracao, valor)
        except PagamentoFalhouError as e:
            logger.error("Falha no saque automático da transação %s: %s", transacao.id, e.message)
            self.log_repo.registrar(
                endpoint=endpoint,
                metodo='POST',
                corpo_requisicao={'amount': int(valor * 100)},
                status_resposta=getattr(e, 'status_http', None),
                mensagem_erro=e.message,
                transacao_id=transacao.id,
                duracao_ms=self._duracao_ms(inicio),
                metadados={'type': 'auto_withdraw_error'},
            )
            return

        logger.info("Saque automático de R$ %s criado para a transação %s", valor, transacao.id)
        self.log_repo.registrar(
            endpoint=endpoint,
            metodo='POST',
            corpo_requisicao={'amount': int(valor * 100)},
            status_resposta=200,
            corpo_resposta=resposta,
            transacao_id=transacao.id,
            duracao_ms=self._duracao_ms(inicio),
            metadados={'type': 'auto_withdraw'},
        )

    def _atualizar_pedido(self, transacao: Transacao, agora: datetime) -> None:
        pedido = self.pedido_repo.buscar_por_id(transacao.pedido_id)
        if not pedido:
            logger.warning("Pedido %s da transação %s não encontrado", transacao.pedido_id, transacao.id)
            return

        if transacao.tipo == 'entrada':
            analise = self.analise_repo.buscar_mais_recente(transacao.usuario_id)
            if not analise:
                logger.warning("Entrada paga sem análise de crédito para o usuário %s", transacao.usuario_id)
                return

            parcelas = self.gerar_parcelas(transacao, analise, agora)
            try:
                self.transacao_repo.criar_em_lote(parcelas)
            except PersistenciaError as e:
                logger.error("Erro ao criar parcelas do pedido %s: %s", pedido.id, e.message)
            self._confirmar_pagamento(pedido, "Entrada paga via PIX")
        else:
            self._confirmar_pagamento(pedido, "Pagamento PIX confirmado. Pedido faturado.")

    def _confirmar_pagamento(self, pedido: Pedido, observacao: str) -> None:
        if pedido.status == 'pagamento_confirmado':
            return
        try:
            self.maquina.transicionar(pedido, 'pagamento_confirmado', observacao)
        except TransicaoInvalidaError as e:
            logger.warning("Pedido %s não atualizado pelo webhook: %s", pedido.numero_pedido, e.message)

    def gerar_parcelas(self, transacao: Transacao, analise: AnaliseCredito, agora: datetime) -> List[Transacao]:
        """
        valor_parcela = financiado * (1 + juros)^N / N, vencimentos a cada 30 dias.
        """
        valor_financiado = analise.valor_aprovado - transacao.valor
        if valor_financiado <= 0:
            logger.info("Nada a financiar para a transação %s", transacao.id)
            return []

        fator = (Decimal('1') + self.juros_percentual / Decimal('100')) ** self.num_parcelas
        valor_parcela = (valor_financiado * fator / self.num_parcelas).quantize(
            Decimal('0.01'), rounding=ROUND_HALF_UP
        )

        return [
            Transacao(
                usuario_id=transacao.usuario_id,
                pedido_id=transacao.pedido_id,
                tipo='parcela',
                valor=valor_parcela,
                status='pendente',
                metodo_pagamento='parcelamento_applehub',
                parcela_numero=numero,
                total_parcelas=self.num_parcelas,
                data_vencimento=agora + timedelta(days=30 * numero),
            )
            for numero in range(1, self.num_parcelas + 1)
        ]

    @staticmethod
    def _duracao_ms(inicio: float) -> int:
        return int((time.monotonic() - inicio) * 1000)


class CancelarPixExpiradosUseCase:
    """Cancela transações PIX pendentes há mais de N minutos e os pedidos ainda em análise."""

    OBSERVACAO = "Pedido cancelado automaticamente - PIX não pago em 30 minutos"

    def __init__(self, transacao_repo: ITransacaoRepository, pedido_repo: IPedidoRepository,
                 maquina: MaquinaEstadosPedido, minutos: int = 30,
                 relogio: Callable[[], datetime] = agora_utc):
        self.transacao_repo = transacao_repo
        self.pedido_repo = pedido_repo
        self.maquina = maquina
        self.minutos = minutos
        self.relogio = relogio

    def executar(self) -> Dict[str, Any]:
        limite = self.relogio() - timedelta(minutes=self.minutos)
        expiradas = self.transacao_repo.listar_pix_pendentes_criados_antes(limite)
        logger.info("Encontradas %d transações PIX expiradas", len(expiradas))

        if not expiradas:
            return {'message': 'Nenhuma transação expirada encontrada', 'cancelled': 0}

        cancelados = 0
        for transacao in expiradas:
            try:
                self.transacao_repo.atualizar_status(transacao.id, 'cancelado')
                if not transacao.pedido_id:
                    continue
                pedido = self.pedido_repo.buscar_por_id(transacao.pedido_id)
                if pedido and pedido.status == 'em_analise':
                    self.maquina.transicionar(pedido, 'cancelado', self.OBSERVACAO)
                    cancelados += 1
            except BaseErroCore as e:
                logger.error("Erro ao processar transação %s: %s", transacao.id, e.message)

        logger.info("Total de pedidos cancelados: %d", cancelados)
        return {'message': 'Processamento concluído', 'cancelled': cancelados, 'processed': len(expiradas)}


class VerificarCartaoUseCase:
    """Cobra um valor no cartão e estorna imediatamente para validar o cartão."""

    def __init__(self, config_repo: IConfiguracaoRepository, usuario_repo: IUsuarioRepository,
                 tentativa_repo: ITentativaCartaoRepository, gateway: IGatewayPagamento):
        self.config_repo = config_repo
        self.usuario_repo = usuario_repo
        self.tentativa_repo = tentativa_repo
        self.gateway = gateway

    def executar(self, usuario_id: str, dados_cartao: Dict[str, Any], valor: Decimal) -> Dict[str, Any]:
        configuracao = self.config_repo.obter_pagamento()
        if not configuracao:
            raise ConfiguracaoNaoEncontradaError("Configurações de pagamento não encontradas")

        perfil = self.usuario_repo.buscar_perfil_cobranca(usuario_id)
        if not perfil:
            raise DadosInvalidosError("Perfil do usuário não encontrado")

        self.tentativa_repo.registrar(
            usuario_id=usuario_id,
            nome_titular=dados_cartao.get('card_holder_name', ''),
            numero_mascarado=mascarar_numero_cartao(dados_cartao.get('card_number', '')),
            validade=dados_cartao.get('card_expiration_date', ''),
            valor=valor,
        )

        cobranca = self.gateway.cobrar_cartao(configuracao, dados_cartao, valor, perfil)
        logger.info("Status da cobrança de verificação: %s", cobranca.status)

        if cobranca.status != 'paid' or not cobranca.charge_id:
            raise CartaoNaoAutorizadoError(
                cobranca.mensagem_erro or "Cartão não foi autorizado. Verifique os dados e tente novamente.",
                status=cobranca.status,
            )

        try:
            estorno = self.gateway.estornar_cobranca(configuracao, cobranca.charge_id, valor)
        except PagamentoFalhouError:
            logger.error("Erro no reembolso da cobrança %s", cobranca.charge_id)
            raise EstornoFalhouError(cobranca.charge_id)

        return {
            'success': True,
            'message': 'Cartão verificado com sucesso. O valor foi estornado imediatamente.',
            'charge_id': cobranca.charge_id,
            'refund_id': estorno.get('id'),
        }


# ====================================================================
# 4. CASOS DE USO ADMINISTRATIVOS
# ====================================================================

class VerificadorSenhaAdmin:
    """Compara a senha administrativa (tabela de configuração ou valor padrão das settings)."""

    def __init__(self, config_repo: IConfiguracaoRepository, senha_padrao: Optional[str] = None):
        self.config_repo = config_repo
        self.senha_padrao = senha_padrao

    def verificar(self, senha: Optional[str], message: str = "Senha de administrador incorreta") -> None:
        esperada = self.config_repo.obter_senha_admin() or self.senha_padrao
        if not senha or not esperada or not hmac.compare_digest(str(senha).encode(), esperada.encode()):
            raise SenhaAdminInvalidaError(message)


class LimparDadosUseCase:
    """Apaga todos os dados transacionais e os usuários, respeitando a ordem das chaves estrangeiras."""

    ORDEM_LIMPEZA = (
        'historico_status',
        'itens_pedido',
        'transacoes',
        'analises_credito',
        'pedidos',
        'itens_carrinho',
        'favoritos',
        'verificacoes_conta',
        'tentativas_cartao',
        'perfis',
        'papeis',
    )

    def __init__(self, verificador: VerificadorSenhaAdmin, limpeza_repo: ILimpezaRepository,
                 usuario_repo: IUsuarioRepository):
        self.verificador = verificador
        self.limpeza_repo = limpeza_repo
        self.usuario_repo = usuario_repo

    def executar(self, senha_admin: Optional[str]) -> Dict[str, Any]:
        self.verificador.verificar(senha_admin, "Senha de administrador inválida")

        logger.info("Iniciando limpeza de dados...")
        for tabela in self.ORDEM_LIMPEZA:
            apagados = self.limpeza_repo.apagar_tabela(tabela)
            logger.info("Tabela %s: %d registros apagados", tabela, apagados)

        ids = self.limpeza_repo.listar_ids_usuarios()
        logger.info("Deletando %d usuários...", len(ids))
        for usuario_id in ids:
            try:
                self.usuario_repo.deletar(usuario_id)
            except BaseErroCore as e:
                logger.error("Erro ao deletar usuário %s: %s", usuario_id, e.message)

        logger.info("Limpeza concluída com sucesso!")
        return {'success': True, 'message': 'Todos os dados foram apagados com sucesso'}


class DeletarUsuarioUseCase:

    def __init__(self, verificador: VerificadorSenhaAdmin, usuario_repo: IUsuarioRepository):
        self.verificador = verificador
        self.usuario_repo = usuario_repo

    def executar(self, usuario_id: Optional[str], senha_admin: Optional[str]) -> Dict[str, Any]:
        if not usuario_id:
            raise DadosInvalidosError("userId é obrigatório")

        self.verificador.verificar(senha_admin)

        if not self.usuario_repo.buscar_por_id(usuario_id):
            raise UsuarioNaoEncontradoError('Usuário não encontrado')

        try:
            self.usuario_repo.deletar(usuario_id)
        except PersistenciaError as e:
            raise PersistenciaError(f"Erro ao deletar usuário: {e.message}")

        logger.info("Usuário %s deletado", usuario_id)
        return {'success': True, 'message': 'Usuário deletado com sucesso'}


class DeletarTodosUsuariosUseCase:
    """Remove todos os usuários com papel 'cliente'."""

    TEXTO_CONFIRMACAO = "DELETAR TODOS"

    def __init__(self, verificador: VerificadorSenhaAdmin, usuario_repo: IUsuarioRepository):
        self.verificador = verificador
        self.usuario_repo = usuario_repo

    def executar(self, texto_confirmacao: Optional[str], senha_admin: Optional[str]) -> Dict[str, Any]:
        if texto_confirmacao != self.TEXTO_CONFIRMACAO:
            raise DadosInvalidosError('Texto de confirmação incorreto')

        self.verificador.verificar(senha_admin)

        clientes = self.usuario_repo.listar_por_papel('cliente')
        if not clientes:
            return {'success': True, 'message': 'Nenhum usuário para deletar', 'deletedCount': 0}

        deletados = 0
        erros = []
        for usuario in clientes:
            try:
                self.usuario_repo.deletar(usuario.id)
                deletados += 1
            except BaseErroCore as e:
                logger.error("Erro ao deletar usuário %s: %s", usuario.id, e.message)
                erros.append(f"{usuario.email}: {e.message}")

        resultado = {
            'success': True,
            'message': f"{deletados} usuários deletados com sucesso",
            'deletedCount': deletados,
            'totalUsers': len(clientes),
        }
        if erros:
            resultado['errors'] = erros
        return resultado


class ListarUsuariosUseCase:
    """Lista perfis com e-mail e as verificações de conta (apenas administradores)."""

    def __init__(self, usuario_repo: IUsuarioRepository):
        self.usuario_repo = usuario_repo

    def executar(self, solicitante: Usuario) -> Dict[str, Any]:
        if not solicitante.is_admin:
            raise AcessoNegadoError('Forbidden')

        usuarios = [
            {
                'id': usuario.id,
                'nome_completo': usuario.nome_completo,
                'cpf': usuario.cpf,
                'telefone': usuario.telefone,
                'created_at': usuario.data_criacao.isoformat() if usuario.data_criacao else None,
                'email': usuario.email or None,
            }
            for usuario in self.usuario_repo.listar_todos()
        ]
        return {'users': usuarios, 'verifications': self.usuario_repo.listar_verificacoes()}


class GerenciarConfiguracaoPagamentoUseCase:

    MENSAGEM_SENHA = 'Senha administrativa inválida'

    def __init__(self, verificador: VerificadorSenhaAdmin, config_repo: IConfiguracaoRepository):
        self.verificador = verificador
        self.config_repo = config_repo

    def obter(self, senha_admin: Optional[str]) -> Optional[ConfiguracaoPagamento]:
        self.verificador.verificar(senha_admin, self.MENSAGEM_SENHA)
        return self.config_repo.obter_pagamento()

    def salvar(self, senha_admin: Optional[str], dados: Dict[str, Any]) -> ConfiguracaoPagamento:
        self.verificador.verificar(senha_admin, self.MENSAGEM_SENHA)

        if not dados.get('recipient_id') or not dados.get('secret_key'):
            raise DadosInvalidosError('recipient_id e secret_key são obrigatórios')

        configuracao = ConfiguracaoPagamento(
            recipient_id=dados['recipient_id'],
            secret_key=dados['secret_key'],
            auto_saque_habilitado=bool(dados.get('auto_withdraw_enabled', False)),
            senha_saque=dados.get('withdraw_password') or None,
        )
        return self.config_repo.salvar_pagamento(configuracao)


# ====================================================================
# 5. VISITAS E E-MAILS
# ====================================================================

class RegistrarVisitaUseCase:
    """Registra a visita com dados do user agent e geolocalização por IP."""

    def __init__(self, visita_repo: IRegistroVisitaRepository, geolocalizador: IGeolocalizador):
        self.visita_repo = visita_repo
        self.geolocalizador = geolocalizador

    @staticmethod
    def extrair_ip(forwarded_for: Optional[str], real_ip: Optional[str]) -> str:
        if forwarded_for:
            primeiro = forwarded_for.split(',')[0].strip()
            if primeiro:
                return primeiro
        return real_ip or 'Desconhecido'

    def executar(
        self,
        ip: str,
        user_agent: str,
        pagina_visitada: Optional[str] = None,
        referrer: Optional[str] = None,
        sessao_id: Optional[str] = None,
        usuario_id: Optional[str] = None,
    ) -> RegistroVisita:
        agente = interpretar_user_agent(user_agent)

        pais, cidade = None, None
        if ip and ip != 'Desconhecido' and not ip_privado(ip):
            pais, cidade = self.geolocalizador.localizar(ip)

        registro = RegistroVisita(
            ip=ip,
            user_agent=user_agent or '',
            tipo_dispositivo=agente['tipo_dispositivo'],
            navegador=agente['navegador'],
            sistema_operacional=agente['sistema_operacional'],
            pagina_visitada=pagina_visitada,
            referrer=referrer,
            sessao_id=sessao_id,
            usuario_id=usuario_id or None,
            pais=pais,
            cidade=cidade,
        )
        return self.visita_repo.salvar(registro)


class EnviarEmailVerificacaoUseCase:

    STATUS_VALIDOS = ('verificado', 'rejeitado')

    def __init__(self, email_service: IEmailService):
        self.email_service = email_service

    def executar(self, email: str, nome: str, status: str) -> Dict[str, Any]:
        if not email:
            raise DadosInvalidosError("Email é obrigatório")
        if status not in self.STATUS_VALIDOS:
            raise DadosInvalidosError(f"Status de verificação inválido: {status}")
        self.email_service.enviar_verificacao_conta(email, nome, status)
        return {'success': True}


class RecuperarSenhaUseCase:

    def __init__(self, email_service: IEmailService):
        self.email_service = email_service

    def executar(self, email: Optional[str], redirect_to: Optional[str] = None) -> Dict[str, Any]:
        if not email:
            raise DadosInvalidosError("Email é obrigatório")
        self.email_service.enviar_recuperacao_senha(email, redirect_to)
        logger.info("Email de recuperação enviado para %s", email)
        return {'success': True, 'message': 'Email de recuperação enviado com sucesso'}
