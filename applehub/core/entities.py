from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, List, Optional
import time
import uuid

# ====================================================================
# ENTIDADES CORE
# Representam os objetos de negócio puros.
# ====================================================================

STATUS_PEDIDO = (
    'em_analise',
    'aprovado',
    'reprovado',
    'pagamento_confirmado',
    'em_separacao',
    'em_transporte',
    'entregue',
    'cancelado',
)

TIPOS_PAGAMENTO = ('pix', 'cartao', 'parcelamento_applehub')

TIPOS_OPERACAO_OFFLINE = ('add', 'update', 'remove', 'clear')


@dataclass
class Usuario:
    """Entidade do Usuário (conta + perfil + papel)."""
    email: str
    id: Optional[str] = None
    nome_completo: str = ''
    cpf: Optional[str] = None
    telefone: Optional[str] = None
    papel: str = 'cliente'
    data_criacao: Optional[datetime] = None

    @property
    def primeiro_nome(self) -> str:
        partes = (self.nome_completo or '').split()
        return partes[0] if partes else 'Cliente'

    @property
    def is_admin(self) -> bool:
        return self.papel == 'admin'


@dataclass
class Produto:
    """Snapshot do produto usado pelo carrinho."""
    nome: str
    preco_vista: Decimal
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    estoque: int = 0
    ativo: bool = True
    imagem_url: Optional[str] = None


@dataclass
class ItemCarrinho:
    """Entidade que representa um item no carrinho (local ou remoto)."""
    produto_id: str
    quantidade: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    usuario_id: Optional[str] = None
    produto: Optional[Produto] = None
    data_criacao: datetime = field(default_factory=datetime.now)
    data_atualizacao: Optional[datetime] = None

    @property
    def subtotal(self) -> Decimal:
        """Calcula o subtotal do item."""
        if not self.produto:
            return Decimal('0')
        return self.produto.preco_vista * self.quantidade


@dataclass
class OperacaoOffline:
    """Operação de carrinho enfileirada enquanto não há conexão."""
    tipo: str
    dados: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    id: str = ''

    def __post_init__(self):
        if self.tipo not in TIPOS_OPERACAO_OFFLINE:
            raise ValueError(f"Tipo de operação offline inválido: {self.tipo}")
        if not self.id:
            self.id = f"{self.timestamp}-{self.tipo}"

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'tipo': self.tipo, 'dados': self.dados, 'timestamp': self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OperacaoOffline':
        return cls(
            tipo=data['tipo'],
            dados=data.get('dados') or {},
            timestamp=data.get('timestamp') or int(time.time() * 1000),
            id=data.get('id') or '',
        )


@dataclass
class ItemPedido:
    """Snapshot de um item no momento da compra (imutável)."""
    produto_id: str
    nome_produto: str
    preco_unitario: Decimal
    quantidade: int
    pedido_id: Optional[str] = None
    subtotal: Decimal = field(init=False)

    def __post_init__(self):
        """Calcula o subtotal após a inicialização."""
        self.subtotal = self.preco_unitario * self.quantidade


@dataclass
class HistoricoStatus:
    pedido_id: str
    status: str
    observacao: Optional[str] = None
    data_criacao: datetime = field(default_factory=datetime.now)


@dataclass
class Pedido:
    """Entidade do Pedido de Venda."""
    # Campos obrigatórios
    usuario_id: str
    numero_pedido: str
    status: str
    subtotal: Decimal
    frete: Decimal
    total: Decimal
    tipo_pagamento: str
    endereco_entrega: Dict[str, Any]
    # Campos opcionais/calculados
    itens: List[ItemPedido] = field(default_factory=list)
    parcelas: Optional[int] = None
    valor_parcela: Optional[Decimal] = None
    codigo_rastreio: Optional[str] = None
    observacoes: Optional[str] = None
    id: Optional[str] = None
    data_criacao: Optional[datetime] = None


@dataclass
class Transacao:
    """
    Registro financeiro ligado ao usuário/pedido: pagamento PIX, entrada
    de parcelamento ou parcela futura.
    """
    usuario_id: str
    tipo: str               # 'entrada', 'parcela', 'pagamento'
    valor: Decimal
    status: str = 'pendente'  # 'pendente', 'pago', 'cancelado', 'atrasado'
    metodo_pagamento: Optional[str] = None
    pedido_id: Optional[str] = None
    pix_qr_code: Optional[str] = None
    pix_copia_cola: Optional[str] = None
    parcela_numero: Optional[int] = None
    total_parcelas: Optional[int] = None
    data_vencimento: Optional[datetime] = None
    data_pagamento: Optional[datetime] = None
    id: Optional[str] = None
    data_criacao: Optional[datetime] = None


@dataclass
class AnaliseCredito:
    usuario_id: str
    valor_solicitado: Decimal
    valor_aprovado: Decimal
    percentual_aprovado: Decimal
    status: str = 'pendente'
    pedido_id: Optional[str] = None
    id: Optional[str] = None
    data_criacao: Optional[datetime] = None


@dataclass
class ConfiguracaoPagamento:
    """Credenciais da Pagar.me (linha única)."""
    recipient_id: str
    secret_key: str
    auto_saque_habilitado: bool = False
    senha_saque: Optional[str] = None


@dataclass
class RegistroVisita:
    ip: str
    user_agent: str
    tipo_dispositivo: str
    navegador: str
    sistema_operacional: str
    pagina_visitada: Optional[str] = None
    referrer: Optional[str] = None
    sessao_id: Optional[str] = None
    usuario_id: Optional[str] = None
    pais: Optional[str] = None
    cidade: Optional[str] = None

    @property
    def registrado(self) -> bool:
        return bool(self.usuario_id)


@dataclass
class CobrancaPix:
    """Resposta do gateway ao gerar uma cobrança PIX."""
    referencia_externa: str
    qr_code: str
    qr_code_url: str


@dataclass
class CobrancaCartao:
    """Resultado de uma cobrança no cartão."""
    referencia_externa: Optional[str]
    charge_id: Optional[str]
    status: Optional[str]
    mensagem_erro: Optional[str] = None
