"""
Módulo de Injeção de Dependência (DI).
Instancia os Use Cases com os Repositórios/Gateways concretos.
Deve ser importado somente depois que o Django estiver configurado.
"""
from decimal import Decimal
from typing import Optional

from django.conf import settings

from applehub.core.cart_sync import Debouncer, SincronizadorCarrinho
from applehub.core.ports import IArmazenamentoLocal, ICarrinhoRepository
from applehub.core.status_pedido import MaquinaEstadosPedido
from applehub.core.use_cases import (
    AtualizarStatusPedidoUseCase,
    CancelarPixExpiradosUseCase,
    CriarPedidoUseCase,
    DeletarTodosUsuariosUseCase,
    DeletarUsuarioUseCase,
    EnviarEmailVerificacaoUseCase,
    GerarPixUseCase,
    GerenciarCarrinhoUseCase,
    GerenciarConfiguracaoPagamentoUseCase,
    LimparDadosUseCase,
    ListarUsuariosUseCase,
    NotificarStatusPedidoUseCase,
    ProcessarWebhookPagarmeUseCase,
    RecuperarSenhaUseCase,
    RegistrarVisitaUseCase,
    VerificadorSenhaAdmin,
    VerificarCartaoUseCase,
)
from applehub.core.utils import gerar_codigo_rastreio
from applehub.infrastructure.gateways import EmailServiceDjango, IpApiGeolocalizador, PagarmeGateway
from applehub.infrastructure.repositories import (
    AnaliseCreditoRepositoryDjango,
    CarrinhoRepositoryDjango,
    ConfiguracaoRepositoryDjango,
    LimpezaRepositoryDjango,
    LogApiRepositoryDjango,
    PedidoRepositoryDjango,
    ProdutoRepositoryDjango,
    RegistroVisitaRepositoryDjango,
    TentativaCartaoRepositoryDjango,
    TransacaoRepositoryDjango,
    UsuarioRepositoryDjango,
)

# Repositórios concretos (sem estado, compartilhados entre requisições)
produto_repo = ProdutoRepositoryDjango()
carrinho_repo = CarrinhoRepositoryDjango()
pedido_repo = PedidoRepositoryDjango()
transacao_repo = TransacaoRepositoryDjango()
analise_repo = AnaliseCreditoRepositoryDjango()
config_repo = ConfiguracaoRepositoryDjango()
usuario_repo = UsuarioRepositoryDjango()
limpeza_repo = LimpezaRepositoryDjango()
visita_repo = RegistroVisitaRepositoryDjango()
log_repo = LogApiRepositoryDjango()
tentativa_repo = TentativaCartaoRepositoryDjango()


# Gateways leem a URL das settings na construção (permite override_settings nos testes)
def get_pagarme_gateway() -> PagarmeGateway:
    return PagarmeGateway(base_url=settings.PAGARME_API_URL)


def get_maquina_estados() -> MaquinaEstadosPedido:
    return MaquinaEstadosPedido(pedido_repo, gerar_codigo_rastreio)


def get_verificador_senha_admin() -> VerificadorSenhaAdmin:
    return VerificadorSenhaAdmin(config_repo, settings.ADMIN_PASSWORD)

# ====================================================================
# Carrinho e Pedidos
# ====================================================================

def get_gerenciar_carrinho_use_case() -> GerenciarCarrinhoUseCase:
    return GerenciarCarrinhoUseCase(carrinho_repo, produto_repo)


def get_criar_pedido_use_case() -> CriarPedidoUseCase:
    return CriarPedidoUseCase(carrinho_repo=carrinho_repo, pedido_repo=pedido_repo)


def get_notificar_status_pedido_use_case() -> NotificarStatusPedidoUseCase:
    return NotificarStatusPedidoUseCase(pedido_repo, usuario_repo, EmailServiceDjango())


def get_atualizar_status_pedido_use_case() -> AtualizarStatusPedidoUseCase:
    return AtualizarStatusPedidoUseCase(
        pedido_repo=pedido_repo,
        maquina=get_maquina_estados(),
        notificador=get_notificar_status_pedido_use_case(),
    )


def get_sincronizador_carrinho(armazenamento: IArmazenamentoLocal,
                               remoto: ICarrinhoRepository) -> SincronizadorCarrinho:
    return SincronizadorCarrinho(
        armazenamento=armazenamento,
        remoto=remoto,
        debouncer=Debouncer(settings.CARRINHO_DEBOUNCE_SEGUNDOS),
        idade_maxima_cache=settings.CARRINHO_CACHE_HORAS * 60 * 60,
    )

# ====================================================================
# Pagamentos
# ====================================================================

def get_gerar_pix_use_case() -> GerarPixUseCase:
    return GerarPixUseCase(config_repo, transacao_repo, get_pagarme_gateway())


def get_processar_webhook_use_case() -> ProcessarWebhookPagarmeUseCase:
    return ProcessarWebhookPagarmeUseCase(
        config_repo=config_repo,
        transacao_repo=transacao_repo,
        analise_repo=analise_repo,
        pedido_repo=pedido_repo,
        log_repo=log_repo,
        gateway=get_pagarme_gateway(),
        maquina=get_maquina_estados(),
        num_parcelas=settings.PARCELAMENTO_NUM_PARCELAS,
        juros_percentual=Decimal(str(settings.PARCELAMENTO_JUROS_PERCENTUAL)),
    )


def get_cancelar_pix_expirados_use_case(minutos: Optional[int] = None) -> CancelarPixExpiradosUseCase:
    return CancelarPixExpiradosUseCase(
        transacao_repo=transacao_repo,
        pedido_repo=pedido_repo,
        maquina=get_maquina_estados(),
        minutos=minutos if minutos is not None else settings.PIX_EXPIRACAO_MINUTOS,
    )


def get_verificar_cartao_use_case() -> VerificarCartaoUseCase:
    return VerificarCartaoUseCase(config_repo, usuario_repo, tentativa_repo, get_pagarme_gateway())

# ====================================================================
# Administração
# ====================================================================

def get_limpar_dados_use_case() -> LimparDadosUseCase:
    return LimparDadosUseCase(get_verificador_senha_admin(), limpeza_repo, usuario_repo)


def get_deletar_usuario_use_case() -> DeletarUsuarioUseCase:
    return DeletarUsuarioUseCase(get_verificador_senha_admin(), usuario_repo)


def get_deletar_todos_usuarios_use_case() -> DeletarTodosUsuariosUseCase:
    return DeletarTodosUsuariosUseCase(get_verificador_senha_admin(), usuario_repo)


def get_listar_usuarios_use_case() -> ListarUsuariosUseCase:
    return ListarUsuariosUseCase(usuario_repo)


def get_configuracao_pagamento_use_case() -> GerenciarConfiguracaoPagamentoUseCase:
    return GerenciarConfiguracaoPagamentoUseCase(get_verificador_senha_admin(), config_repo)

# ====================================================================
# Visitas e E-mails
# ====================================================================

def get_registrar_visita_use_case() -> RegistrarVisitaUseCase:
    return RegistrarVisitaUseCase(visita_repo, IpApiGeolocalizador(base_url=settings.IP_API_URL))


def get_enviar_email_verificacao_use_case() -> EnviarEmailVerificacaoUseCase:
    return EnviarEmailVerificacaoUseCase(EmailServiceDjango())


def get_recuperar_senha_use_case() -> RecuperarSenhaUseCase:
    return RecuperarSenhaUseCase(EmailServiceDjango())
