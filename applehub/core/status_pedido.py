# applehub/core/status_pedido.py

import logging
from typing import Callable, Dict, Optional, Set

from applehub.core.entities import Pedido, STATUS_PEDIDO
from applehub.core.exceptions import StatusInvalidoError, TransicaoInvalidaError
from applehub.core.ports import IPedidoRepository
from applehub.core.utils import gerar_codigo_rastreio

logger = logging.getLogger(__name__)


ROTULOS_STATUS: Dict[str, str] = {
    'em_analise': 'Em Análise',
    'aprovado': 'Aprovado',
    'reprovado': 'Reprovado',
    'pagamento_confirmado': 'Pagamento Confirmado',
    'em_separacao': 'Em Separação',
    'em_transporte': 'Em Transporte',
    'entregue': 'Entregue',
    'cancelado': 'Cancelado',
}

STATUS_TERMINAIS = frozenset({'entregue', 'cancelado'})

# Matriz de transições permitidas. Estados terminais não saem para lugar nenhum.
TRANSICOES_VALIDAS: Dict[str, Set[str]] = {
    'em_analise': {'aprovado', 'reprovado', 'pagamento_confirmado', 'cancelado'},
    'aprovado': {'pagamento_confirmado', 'em_separacao', 'cancelado'},
    'reprovado': {'cancelado'},
    'pagamento_confirmado': {'em_separacao', 'cancelado'},
    'em_separacao': {'em_transporte', 'cancelado'},
    'em_transporte': {'entregue', 'cancelado'},
    'entregue': set(),
    'cancelado': set(),
}


def rotulo_status(status: str) -> str:
    return ROTULOS_STATUS.get(status, status)


def transicao_permitida(status_atual: str, novo_status: str) -> bool:
    return novo_status in TRANSICOES_VALIDAS.get(status_atual, set())


class MaquinaEstadosPedido:
    """
    Único ponto autorizado a trocar o status de um Pedido.
    Toda mudança gera um registro no histórico de status.
    """

    def __init__(self, pedido_repo: IPedidoRepository,
                 gerador_rastreio: Callable[[], str] = gerar_codigo_rastreio):
        self.pedido_repo = pedido_repo
        self.gerador_rastreio = gerador_rastreio

    def transicionar(self, pedido: Pedido, novo_status: str, observacao: Optional[str] = None) -> Pedido:
        if novo_status not in STATUS_PEDIDO:
            raise StatusInvalidoError(f"O status '{novo_status}' não é um status de pedido válido.")

        if not transicao_permitida(pedido.status, novo_status):
            raise TransicaoInvalidaError(pedido.status, novo_status)

        codigo_rastreio = None
        if novo_status == 'em_transporte' and not pedido.codigo_rastreio:
            codigo_rastreio = self.gerador_rastreio()

        pedido_final = self.pedido_repo.atualizar_status(
            pedido.id,
            novo_status,
            observacao=observacao,
            codigo_rastreio=codigo_rastreio,
        )
        logger.info(
            "Pedido %s: %s -> %s", pedido.numero_pedido, pedido.status, novo_status,
            extra={'pedido_id': pedido.id, 'evento': 'pedido_status_alterado'},
        )
        return pedido_final
