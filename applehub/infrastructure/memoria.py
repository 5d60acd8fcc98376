# applehub/infrastructure/memoria.py
"""
Implementações em memória das portas do carrinho, usadas pelo
sincronizador nos testes do motor de sincronização.
"""
import copy
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from applehub.core.entities import ItemCarrinho, OperacaoOffline, Produto
from applehub.core.exceptions import ItemNaoEncontradoError
from applehub.core.ports import IArmazenamentoLocal, ICarrinhoRepository


class CarrinhoRepositoryMemoria(ICarrinhoRepository):
    """Carrinho remoto em memória com uma linha por (usuario, produto)."""

    def __init__(self, produtos: Optional[Dict[str, Produto]] = None):
        self.produtos = produtos or {}
        self._itens: Dict[Tuple[str, str], ItemCarrinho] = {}
        self._lock = threading.Lock()

    def buscar_itens(self, usuario_id: str) -> List[ItemCarrinho]:
        with self._lock:
            return [
                copy.copy(item) for (dono, _), item in self._itens.items() if dono == usuario_id
            ]

    def adicionar_item(self, usuario_id: str, produto_id: str, quantidade: int) -> ItemCarrinho:
        with self._lock:
            chave = (usuario_id, produto_id)
            item = self._itens.get(chave)
            if item:
                item.quantidade += quantidade
            else:
                item = ItemCarrinho(
                    id=str(uuid.uuid4()),
                    usuario_id=usuario_id,
                    produto_id=produto_id,
                    quantidade=quantidade,
                    produto=self.produtos.get(produto_id),
                )
                self._itens[chave] = item
            return copy.copy(item)

    def atualizar_quantidade(self, usuario_id: str, produto_id: str, quantidade: int) -> Optional[ItemCarrinho]:
        if quantidade <= 0:
            self.remover_item(usuario_id, produto_id)
            return None
        with self._lock:
            item = self._itens.get((usuario_id, produto_id))
            if not item:
                raise ItemNaoEncontradoError("Item não encontrado no carrinho.")
            item.quantidade = quantidade
            return copy.copy(item)

    def remover_item(self, usuario_id: str, produto_id: str):
        with self._lock:
            self._itens.pop((usuario_id, produto_id), None)

    def limpar(self, usuario_id: str):
        with self._lock:
            for chave in [c for c in self._itens if c[0] == usuario_id]:
                del self._itens[chave]


class ArmazenamentoLocalMemoria(IArmazenamentoLocal):
    """Equivalente em memória do armazenamento local (itens, fila offline e cache)."""

    def __init__(self, relogio: Callable[[], float] = time.time):
        self.relogio = relogio
        self.itens: List[ItemCarrinho] = []
        self.fila: List[OperacaoOffline] = []
        self.cache: Optional[Tuple[str, float, List[ItemCarrinho]]] = None

    def carregar_itens(self) -> List[ItemCarrinho]:
        return [copy.copy(item) for item in self.itens]

    def salvar_itens(self, itens: List[ItemCarrinho]) -> None:
        self.itens = [copy.copy(item) for item in itens]

    def limpar_itens(self) -> None:
        self.itens = []

    def carregar_fila(self) -> List[OperacaoOffline]:
        return list(self.fila)

    def salvar_fila(self, fila: List[OperacaoOffline]) -> None:
        self.fila = list(fila)

    def limpar_fila(self) -> None:
        self.fila = []

    def carregar_cache(self, usuario_id: str, idade_maxima_segundos: float) -> Optional[List[ItemCarrinho]]:
        if not self.cache:
            return None
        dono, salvo_em, itens = self.cache
        if dono != usuario_id or self.relogio() - salvo_em > idade_maxima_segundos:
            return None
        return [copy.copy(item) for item in itens]

    def salvar_cache(self, usuario_id: str, itens: List[ItemCarrinho]) -> None:
        self.cache = (usuario_id, self.relogio(), [copy.copy(item) for item in itens])

    def limpar_cache(self) -> None:
        self.cache = None
