# applehub/core/cart_sync.py
"""
Reconciliação do carrinho entre o armazenamento local (convidado / cache /
fila offline) e o carrinho remoto autoritativo do usuário autenticado.

Estados:
    CONVIDADO   -> apenas local
    AUTENTICADO -> remoto, sincronizado uma vez no login (quantidades somadas)
    OFFLINE     -> operações aplicadas localmente e enfileiradas
    ONLINE      -> reprodução da fila (FIFO), depois recarga do remoto

Qualquer falha de escrita remota provoca uma recarga completa do carrinho
remoto em vez de nova tentativa da mutação específica.
"""
import logging
import threading
import time
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from applehub.core.entities import ItemCarrinho, OperacaoOffline, Produto
from applehub.core.exceptions import DadosInvalidosError, ItemNaoEncontradoError
from applehub.core.ports import IArmazenamentoLocal, ICarrinhoRepository

logger = logging.getLogger(__name__)

ATRASO_DEBOUNCE_PADRAO = 0.5
IDADE_MAXIMA_CACHE_PADRAO = 24 * 60 * 60


class EstadoCarrinho(str, Enum):
    CONVIDADO = 'convidado'
    AUTENTICADO = 'autenticado'
    OFFLINE = 'offline'
    ONLINE = 'online'


# ====================================================================
# 1. DEBOUNCE DE ESCRITAS
# ====================================================================

class Debouncer:
    """
    Adia a execução de uma função por chave; um novo agendamento para a
    mesma chave cancela o anterior (vale o último).
    """

    def __init__(self, atraso: float = ATRASO_DEBOUNCE_PADRAO, fabrica_timer: Callable = threading.Timer):
        self.atraso = atraso
        self._fabrica_timer = fabrica_timer
        self._pendentes: Dict[str, Tuple[Any, Callable, tuple]] = {}
        self._lock = threading.Lock()

    @property
    def pendentes(self) -> List[str]:
        with self._lock:
            return list(self._pendentes)

    def agendar(self, chave: str, funcao: Callable, *args) -> None:
        with self._lock:
            anterior = self._pendentes.pop(chave, None)
            if anterior:
                anterior[0].cancel()
            timer = self._fabrica_timer(self.atraso, self._disparar, args=(chave,))
            timer.daemon = True
            self._pendentes[chave] = (timer, funcao, args)
        timer.start()

    def _disparar(self, chave: str) -> None:
        with self._lock:
            pendente = self._pendentes.pop(chave, None)
        if pendente:
            _, funcao, args = pendente
            funcao(*args)

    def cancelar(self, chave: str) -> bool:
        with self._lock:
            pendente = self._pendentes.pop(chave, None)
        if pendente:
            pendente[0].cancel()
            return True
        return False

    def cancelar_todos(self) -> List[str]:
        with self._lock:
            pendentes = self._pendentes
            self._pendentes = {}
        for timer, _, _ in pendentes.values():
            timer.cancel()
        return list(pendentes)

    def descarregar(self) -> int:
        """Executa imediatamente todas as chamadas pendentes."""
        with self._lock:
            pendentes = list(self._pendentes.values())
            self._pendentes = {}
        for timer, funcao, args in pendentes:
            timer.cancel()
            funcao(*args)
        return len(pendentes)


# ====================================================================
# 2. SINCRONIZADOR
# ====================================================================

class SincronizadorCarrinho:

    def __init__(
        self,
        armazenamento: IArmazenamentoLocal,
        remoto: ICarrinhoRepository,
        debouncer: Optional[Debouncer] = None,
        idade_maxima_cache: float = IDADE_MAXIMA_CACHE_PADRAO,
    ):
        self.armazenamento = armazenamento
        self.remoto = remoto
        self.debouncer = debouncer or Debouncer()
        self.idade_maxima_cache = idade_maxima_cache

        self.estado = EstadoCarrinho.CONVIDADO
        self.usuario_id: Optional[str] = None
        self.itens: List[ItemCarrinho] = armazenamento.carregar_itens()
        self._lock = threading.RLock()

    # --- Consultas ---

    @property
    def autenticado(self) -> bool:
        return self.usuario_id is not None

    def buscar_item(self, produto_id: str) -> Optional[ItemCarrinho]:
        return next((item for item in self.itens if item.produto_id == produto_id), None)

    def total(self) -> Decimal:
        return sum((item.subtotal for item in self.itens), Decimal('0'))

    def quantidade_itens(self) -> int:
        return sum(item.quantidade for item in self.itens)

    # --- Transições de estado ---

    def entrar(self, usuario_id: str) -> None:
        """Login: mescla os itens de convidado no carrinho remoto (somando) uma única vez."""
        with self._lock:
            if self.autenticado:
                if self.usuario_id == usuario_id:
                    return
                self.sair()

            itens_convidado = list(self.itens) if self.estado == EstadoCarrinho.CONVIDADO else []
            self.usuario_id = usuario_id

            cache = self.armazenamento.carregar_cache(usuario_id, self.idade_maxima_cache)
            if cache is not None:
                self.itens = cache

            self.armazenamento.limpar_itens()

            for item in itens_convidado:
                try:
                    self.remoto.adicionar_item(usuario_id, item.produto_id, item.quantidade)
                except Exception:
                    logger.warning(
                        "Falha ao mesclar item %s do carrinho de convidado", item.produto_id, exc_info=True
                    )

            self.estado = EstadoCarrinho.AUTENTICADO
            self.recarregar()

    def sair(self) -> None:
        with self._lock:
            self.debouncer.descarregar()
            self.usuario_id = None
            self.itens = []
            self.armazenamento.limpar_cache()
            self.armazenamento.limpar_fila()
            self.armazenamento.limpar_itens()
            self.estado = EstadoCarrinho.CONVIDADO

    def ficar_offline(self) -> None:
        with self._lock:
            if self.estado != EstadoCarrinho.AUTENTICADO:
                return
            self.estado = EstadoCarrinho.OFFLINE
            # Escritas com debounce ainda não enviadas passam para a fila.
            for produto_id in self.debouncer.cancelar_todos():
                item = self.buscar_item(produto_id)
                if item:
                    self._enfileirar('update', {'produto_id': produto_id, 'quantidade': item.quantidade})
            logger.info("Carrinho em modo offline; alterações serão sincronizadas ao reconectar")

    def reconectar(self) -> int:
        """Reproduz a fila offline em ordem FIFO, descarta-a e recarrega o remoto."""
        with self._lock:
            if self.estado != EstadoCarrinho.OFFLINE:
                return 0
            self.estado = EstadoCarrinho.ONLINE

            fila = self.armazenamento.carregar_fila()
            logger.info("Sincronizando %d operações offline", len(fila))
            aplicadas = 0
            for operacao in fila:
                try:
                    self._aplicar_remoto(operacao)
                    aplicadas += 1
                except Exception:
                    logger.error("Erro ao processar operação offline %s", operacao.id, exc_info=True)

            self.armazenamento.limpar_fila()
            self.estado = EstadoCarrinho.AUTENTICADO
            self.recarregar()
            return aplicadas

    def notificar_mudanca_remota(self) -> None:
        """Evento de tempo real do carrinho remoto: recarrega o estado autoritativo."""
        if self.estado == EstadoCarrinho.AUTENTICADO:
            self.recarregar()

    def recarregar(self) -> bool:
        with self._lock:
            if not self.autenticado:
                self.itens = self.armazenamento.carregar_itens()
                return True
            try:
                itens = self.remoto.buscar_itens(self.usuario_id)
            except Exception:
                logger.error("Erro ao buscar carrinho remoto do usuário %s", self.usuario_id, exc_info=True)
                return False
            self.itens = itens
            self.armazenamento.salvar_cache(self.usuario_id, itens)
            return True

    def descarregar(self) -> int:
        return self.debouncer.descarregar()

    # --- Operações ---

    def adicionar(self, produto: Produto, quantidade: int = 1) -> ItemCarrinho:
        if quantidade <= 0:
            raise DadosInvalidosError("A quantidade a adicionar deve ser positiva.")

        with self._lock:
            item = self.buscar_item(produto.id)
            if item:
                item.quantidade += quantidade
                item.produto = produto
                item.data_atualizacao = datetime.now()
            else:
                item = ItemCarrinho(
                    id=f"temp-{int(time.time() * 1000)}",
                    produto_id=produto.id,
                    quantidade=quantidade,
                    usuario_id=self.usuario_id,
                    produto=produto,
                )
                self.itens.append(item)
            self._persistir_local()

            if self.estado == EstadoCarrinho.CONVIDADO:
                return item
            if self.estado == EstadoCarrinho.OFFLINE:
                self._enfileirar('add', {'produto_id': produto.id, 'quantidade': quantidade})
                return item

            try:
                remoto = self.remoto.adicionar_item(self.usuario_id, produto.id, quantidade)
                item.id = remoto.id
            except Exception:
                logger.warning("Falha ao adicionar %s ao carrinho remoto", produto.id, exc_info=True)
                self.recarregar()
            return item

    def atualizar_quantidade(self, produto_id: str, quantidade: int) -> None:
        if quantidade <= 0:
            self.remover(produto_id)
            return

        with self._lock:
            item = self.buscar_item(produto_id)
            if not item:
                raise ItemNaoEncontradoError("Item não encontrado no carrinho.")
            item.quantidade = quantidade
            item.data_atualizacao = datetime.now()
            self._persistir_local()

            if self.estado == EstadoCarrinho.OFFLINE:
                self._enfileirar('update', {'produto_id': produto_id, 'quantidade': quantidade})
            elif self.autenticado:
                self.debouncer.agendar(produto_id, self._enviar_quantidade, produto_id)

    def remover(self, produto_id: str) -> None:
        with self._lock:
            self.debouncer.cancelar(produto_id)
            self.itens = [item for item in self.itens if item.produto_id != produto_id]
            self._persistir_local()

            if self.estado == EstadoCarrinho.CONVIDADO:
                return
            if self.estado == EstadoCarrinho.OFFLINE:
                self._enfileirar('remove', {'produto_id': produto_id})
                return
            try:
                self.remoto.remover_item(self.usuario_id, produto_id)
            except Exception:
                logger.warning("Falha ao remover %s do carrinho remoto", produto_id, exc_info=True)
                self.recarregar()

    def limpar(self) -> None:
        with self._lock:
            self.debouncer.cancelar_todos()
            self.itens = []
            self._persistir_local()

            if self.estado == EstadoCarrinho.CONVIDADO:
                return
            if self.estado == EstadoCarrinho.OFFLINE:
                self._enfileirar('clear', {})
                return
            try:
                self.remoto.limpar(self.usuario_id)
            except Exception:
                logger.warning("Falha ao limpar o carrinho remoto", exc_info=True)
                self.recarregar()

    # --- Internos ---

    def _enviar_quantidade(self, produto_id: str) -> None:
        with self._lock:
            if self.estado != EstadoCarrinho.AUTENTICADO:
                return
            item = self.buscar_item(produto_id)
            quantidade = item.quantidade if item else 0
            try:
                self.remoto.atualizar_quantidade(self.usuario_id, produto_id, quantidade)
            except Exception:
                logger.warning("Falha ao atualizar quantidade de %s", produto_id, exc_info=True)
                self.recarregar()

    def _persistir_local(self) -> None:
        if self.autenticado:
            self.armazenamento.salvar_cache(self.usuario_id, self.itens)
        else:
            self.armazenamento.salvar_itens(self.itens)

    def _enfileirar(self, tipo: str, dados: Dict[str, Any]) -> None:
        fila = self.armazenamento.carregar_fila()
        fila.append(OperacaoOffline(tipo=tipo, dados=dados))
        self.armazenamento.salvar_fila(fila)

    def _aplicar_remoto(self, operacao: OperacaoOffline) -> None:
        dados = operacao.dados
        if operacao.tipo == 'add':
            self.remoto.adicionar_item(self.usuario_id, dados['produto_id'], int(dados['quantidade']))
        elif operacao.tipo == 'update':
            self.remoto.atualizar_quantidade(self.usuario_id, dados['produto_id'], int(dados['quantidade']))
        elif operacao.tipo == 'remove':
            self.remoto.remover_item(self.usuario_id, dados['produto_id'])
        elif operacao.tipo == 'clear':
            self.remoto.limpar(self.usuario_id)
