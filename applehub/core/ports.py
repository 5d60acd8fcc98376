# applehub/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

Estes protocolos definem o contrato que a camada de Infraestrutura (Repositorios, Gateways)
DEVE seguir para se conectar à camada Core (Casos de Uso).
"""

from typing import Protocol, List, Optional, Dict, Any, Tuple
from abc import abstractmethod
from datetime import datetime
from decimal import Decimal

from applehub.core.entities import (
    Usuario, Produto, ItemCarrinho, OperacaoOffline, Pedido, Transacao,
    AnaliseCredito, ConfiguracaoPagamento, RegistroVisita, CobrancaPix, CobrancaCartao
)


# ====================================================================
# 1. REPOSITÓRIOS (Portas de Persistência)
# ====================================================================

class IProdutoRepository(Protocol):

    @abstractmethod
    def buscar_por_id(self, produto_id: str) -> Optional[Produto]: ...


class ICarrinhoRepository(Protocol):
    """
    Carrinho remoto (autoritativo) de um usuário autenticado.
    Garante no máximo uma linha por (usuario_id, produto_id).
    """

    @abstractmethod
    def buscar_itens(self, usuario_id: str) -> List[ItemCarrinho]: ...

    @abstractmethod
    def adicionar_item(self, usuario_id: str, produto_id: str, quantidade: int) -> ItemCarrinho:
        """Soma a quantidade ao item existente ou cria um novo."""
        ...

    @abstractmethod
    def atualizar_quantidade(self, usuario_id: str, produto_id: str, quantidade: int) -> Optional[ItemCarrinho]:
        """Define a quantidade absoluta. Quantidade <= 0 remove o item."""
        ...

    @abstractmethod
    def remover_item(self, usuario_id: str, produto_id: str): ...

    @abstractmethod
    def limpar(self, usuario_id: str): ...


class IPedidoRepository(Protocol):
    """Protocolo para a persistência e gestão de Pedidos."""

    @abstractmethod
    def criar_pedido(self, pedido: Pedido, observacao: str) -> Pedido:
        """
        Cria o pedido com seus itens e o primeiro registro de histórico,
        e limpa o carrinho do usuário em uma única transação atômica.
        """
        ...

    @abstractmethod
    def buscar_por_id(self, pedido_id: str) -> Optional[Pedido]: ...

    @abstractmethod
    def listar_por_usuario(self, usuario_id: str) -> List[Pedido]: ...

    @abstractmethod
    def atualizar_status(
        self,
        pedido_id: str,
        novo_status: str,
        observacao: Optional[str] = None,
        codigo_rastreio: Optional[str] = None,
    ) -> Pedido:
        """Atualiza o status e grava o histórico."""
        ...


class ITransacaoRepository(Protocol):

    @abstractmethod
    def salvar(self, transacao: Transacao) -> Transacao: ...

    @abstractmethod
    def criar_em_lote(self, transacoes: List[Transacao]) -> List[Transacao]: ...

    @abstractmethod
    def buscar_por_pix(self, pix_copia_cola: str) -> Optional[Transacao]: ...

    @abstractmethod
    def marcar_como_paga(self, transacao_id: str, data_pagamento: datetime) -> Transacao: ...

    @abstractmethod
    def atualizar_status(self, transacao_id: str, status: str) -> None: ...

    @abstractmethod
    def listar_pix_pendentes_criados_antes(self, limite: datetime) -> List[Transacao]: ...


class IAnaliseCreditoRepository(Protocol):

    @abstractmethod
    def buscar_mais_recente(self, usuario_id: str) -> Optional[AnaliseCredito]: ...


class IConfiguracaoRepository(Protocol):

    @abstractmethod
    def obter_pagamento(self) -> Optional[ConfiguracaoPagamento]: ...

    @abstractmethod
    def salvar_pagamento(self, configuracao: ConfiguracaoPagamento) -> ConfiguracaoPagamento: ...

    @abstractmethod
    def obter_senha_admin(self) -> Optional[str]: ...


class IUsuarioRepository(Protocol):

    @abstractmethod
    def buscar_por_id(self, usuario_id: str) -> Optional[Usuario]: ...

    @abstractmethod
    def listar_todos(self) -> List[Usuario]: ...

    @abstractmethod
    def listar_por_papel(self, papel: str) -> List[Usuario]: ...

    @abstractmethod
    def listar_verificacoes(self) -> List[Dict[str, Any]]: ...

    @abstractmethod
    def deletar(self, usuario_id: str) -> None: ...

    @abstractmethod
    def buscar_perfil_cobranca(self, usuario_id: str) -> Optional[Dict[str, Any]]:
        """Telefone, CPF e endereço usados nas cobranças de cartão."""
        ...


class ILimpezaRepository(Protocol):
    """Apagamento em massa usado pelas rotinas administrativas."""

    @abstractmethod
    def apagar_tabela(self, nome: str) -> int: ...

    @abstractmethod
    def listar_ids_usuarios(self) -> List[str]: ...


class IRegistroVisitaRepository(Protocol):

    @abstractmethod
    def salvar(self, registro: RegistroVisita) -> RegistroVisita: ...


class ILogApiRepository(Protocol):

    @abstractmethod
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
    ) -> None: ...


class ITentativaCartaoRepository(Protocol):

    @abstractmethod
    def registrar(self, usuario_id: str, nome_titular: str, numero_mascarado: str,
                  validade: str, valor: Decimal) -> None: ...


# ====================================================================
# 2. ARMAZENAMENTO LOCAL (lado cliente do carrinho)
# ====================================================================

class IArmazenamentoLocal(Protocol):
    """
    Armazenamento local do carrinho: itens de convidado, fila offline e
    cache do carrinho remoto por usuário.
    """

    @abstractmethod
    def carregar_itens(self) -> List[ItemCarrinho]: ...

    @abstractmethod
    def salvar_itens(self, itens: List[ItemCarrinho]) -> None: ...

    @abstractmethod
    def limpar_itens(self) -> None: ...

    @abstractmethod
    def carregar_fila(self) -> List[OperacaoOffline]: ...

    @abstractmethod
    def salvar_fila(self, fila: List[OperacaoOffline]) -> None: ...

    @abstractmethod
    def limpar_fila(self) -> None: ...

    @abstractmethod
    def carregar_cache(self, usuario_id: str, idade_maxima_segundos: float) -> Optional[List[ItemCarrinho]]: ...

    @abstractmethod
    def salvar_cache(self, usuario_id: str, itens: List[ItemCarrinho]) -> None: ...

    @abstractmethod
    def limpar_cache(self) -> None: ...


# ====================================================================
# 3. GATEWAYS (Portas de Serviços Externos)
# ====================================================================

class IGatewayPagamento(Protocol):
    """Protocolo para a API da Pagar.me."""

    @abstractmethod
    def criar_cobranca_pix(self, configuracao: ConfiguracaoPagamento, valor: Decimal,
                           descricao: str, expira_em_segundos: int) -> CobrancaPix: ...

    @abstractmethod
    def criar_transferencia(self, configuracao: ConfiguracaoPagamento, valor: Decimal) -> Dict[str, Any]: ...

    @abstractmethod
    def cobrar_cartao(self, configuracao: ConfiguracaoPagamento, dados_cartao: Dict[str, Any],
                      valor: Decimal, perfil: Dict[str, Any]) -> CobrancaCartao: ...

    @abstractmethod
    def estornar_cobranca(self, configuracao: ConfiguracaoPagamento, charge_id: str,
                          valor: Decimal) -> Dict[str, Any]: ...


class IGeolocalizador(Protocol):

    @abstractmethod
    def localizar(self, ip: str) -> Tuple[Optional[str], Optional[str]]:
        """Retorna (pais, cidade)."""
        ...


class IEmailService(Protocol):
    """Protocolo para o serviço de envio de e-mails."""

    @abstractmethod
    def enviar_status_pedido(self, usuario: Usuario, pedido: Pedido, rotulo_status: str,
                             observacao: Optional[str] = None): ...

    @abstractmethod
    def enviar_verificacao_conta(self, email: str, nome: str, status: str): ...

    @abstractmethod
    def enviar_recuperacao_senha(self, email: str, redirect_to: Optional[str] = None): ...
