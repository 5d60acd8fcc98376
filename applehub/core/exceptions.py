class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    def __init__(self, message="Erro interno."):
        self.message = message
        super().__init__(self.message)


class DadosInvalidosError(BaseErroCore):
    """Erro levantado quando dados inválidos são fornecidos."""
    def __init__(self, message="Os dados fornecidos são inválidos."):
        super().__init__(message)

# ===============================================
# ERROS DE AUTENTICAÇÃO E CONFIGURAÇÃO
# ===============================================

class ConfiguracaoNaoEncontradaError(BaseErroCore):
    """Erro levantado quando as configurações de pagamento não existem."""
    def __init__(self, message="Configurações não encontradas"):
        super().__init__(message)


class AssinaturaInvalidaError(BaseErroCore):
    """Assinatura HMAC do webhook não confere."""
    def __init__(self, message="Assinatura inválida"):
        super().__init__(message)


class SenhaAdminInvalidaError(BaseErroCore):
    def __init__(self, message="Senha de administrador incorreta"):
        super().__init__(message)


class AcessoNegadoError(BaseErroCore):
    def __init__(self, message="Acesso negado"):
        super().__init__(message)

# ===============================================
# ERROS DE PERSISTÊNCIA E ENTIDADE
# ===============================================

class ItemNaoEncontradoError(BaseErroCore):
    """Erro levantado quando um item (genérico) não é encontrado."""
    def __init__(self, message="O item solicitado não foi encontrado."):
        super().__init__(message)


class ProdutoNaoEncontradoError(ItemNaoEncontradoError):
    def __init__(self, message="Produto não encontrado"):
        super().__init__(message)


class PedidoNaoEncontradoError(ItemNaoEncontradoError):
    def __init__(self, message="Pedido não encontrado"):
        super().__init__(message)


class UsuarioNaoEncontradoError(ItemNaoEncontradoError):
    def __init__(self, message="Usuário não encontrado"):
        super().__init__(message)


class TransacaoNaoEncontradaError(ItemNaoEncontradoError):
    def __init__(self, message="Transação não encontrada"):
        super().__init__(message)


class PersistenciaError(BaseErroCore):
    """Falha ao gravar no banco de dados."""
    def __init__(self, message="Erro ao gravar os dados."):
        super().__init__(message)

# ===============================================
# ERROS DE FLUXO DE COMPRA E PAGAMENTO
# ===============================================

class CarrinhoVazioError(BaseErroCore):
    """Erro levantado ao tentar fazer checkout com carrinho vazio."""
    def __init__(self, message="O carrinho de compras está vazio."):
        super().__init__(message)


class CarrinhoRemotoError(BaseErroCore):
    """Falha de comunicação com o carrinho remoto."""
    def __init__(self, message="Não foi possível sincronizar o carrinho."):
        super().__init__(message)


class PagamentoFalhouError(BaseErroCore):
    """Erro levantado quando o Gateway de Pagamento rejeita a transação."""
    def __init__(self, message="A transação de pagamento foi rejeitada ou falhou.", detalhes=None, status_http=None):
        self.detalhes = detalhes
        self.status_http = status_http
        super().__init__(message)


class CartaoNaoAutorizadoError(PagamentoFalhouError):
    """A cobrança de verificação não foi autorizada pela operadora."""
    def __init__(self, message="Cartão não foi autorizado. Verifique os dados e tente novamente.", status=None):
        self.status = status
        super().__init__(message)


class EstornoFalhouError(PagamentoFalhouError):
    """Cartão cobrado, mas o estorno imediato falhou."""
    def __init__(self, charge_id, message="Cartão foi cobrado mas o reembolso falhou. Entre em contato com o suporte."):
        self.charge_id = charge_id
        super().__init__(message)


class StatusInvalidoError(BaseErroCore):
    """Erro levantado ao tentar definir um status de pedido inválido."""
    def __init__(self, message="O status fornecido não é válido para um pedido."):
        super().__init__(message)


class TransicaoInvalidaError(BaseErroCore):
    """Transição de status não permitida pela máquina de estados."""
    def __init__(self, status_atual: str, novo_status: str, message=None):
        self.status_atual = status_atual
        self.novo_status = novo_status
        if message is None:
            message = f"Transição de '{status_atual}' para '{novo_status}' não é permitida."
        super().__init__(message)
