# applehub/presentation/cart_manager.py
# Gerencia o carrinho de convidado, a fila offline e o cache do carrinho na sessão do Django.

import time
from typing import Callable, List, Optional, Tuple

from django.http import HttpRequest

from applehub.core.entities import ItemCarrinho, OperacaoOffline
from applehub.core.ports import IArmazenamentoLocal, IProdutoRepository
from applehub.infrastructure.repositories import ProdutoRepositoryDjango


class CartManager(IArmazenamentoLocal):
    """
    Armazenamento local do carrinho sobre a sessão do Django.

    Só o ID do produto e a quantidade vão para a sessão; os dados do produto
    (nome, preço, estoque) são buscados no banco a cada carga para evitar
    valores desatualizados.
    """

    SESSION_KEY = 'carrinho_applehub'
    SESSION_KEY_FILA = 'carrinho_applehub_fila'
    SESSION_KEY_CACHE = 'carrinho_applehub_cache'

    def __init__(self, request: HttpRequest, produto_repo: Optional[IProdutoRepository] = None,
                 relogio: Callable[[], float] = time.time):
        self.request = request
        self.produto_repo = produto_repo or ProdutoRepositoryDjango()
        self.relogio = relogio

    # --- Persistência na sessão ---

    def _salvar(self, chave, valor):
        self.request.session[chave] = valor
        self.request.session.modified = True

    def _remover(self, chave):
        if chave in self.request.session:
            del self.request.session[chave]
            self.request.session.modified = True

    def _hidratar(self, dados: dict) -> List[ItemCarrinho]:
        """Converte {produto_id: quantidade} em itens, descartando produtos inativos ou removidos."""
        itens = []
        for produto_id, quantidade in dados.items():
            produto = self.produto_repo.buscar_por_id(produto_id)
            if produto and produto.ativo:
                itens.append(ItemCarrinho(produto_id=produto.id, quantidade=quantidade, produto=produto))
        return itens

    @staticmethod
    def _serializar(itens: List[ItemCarrinho]) -> dict:
        return {str(item.produto_id): item.quantidade for item in itens}

    # --- Itens de convidado ---

    def carregar_itens(self) -> List[ItemCarrinho]:
        return self._hidratar(self.request.session.get(self.SESSION_KEY) or {})

    def salvar_itens(self, itens: List[ItemCarrinho]) -> None:
        self._salvar(self.SESSION_KEY, self._serializar(itens))

    def limpar_itens(self) -> None:
        self._remover(self.SESSION_KEY)

    # --- Fila offline ---

    def carregar_fila(self) -> List[OperacaoOffline]:
        return [OperacaoOffline.from_dict(op) for op in self.request.session.get(self.SESSION_KEY_FILA) or []]

    def salvar_fila(self, fila: List[OperacaoOffline]) -> None:
        self._salvar(self.SESSION_KEY_FILA, [op.to_dict() for op in fila])

    def limpar_fila(self) -> None:
        self._remover(self.SESSION_KEY_FILA)

    # --- Cache por usuário ---

    def carregar_cache(self, usuario_id: str, idade_maxima_segundos: float) -> Optional[List[ItemCarrinho]]:
        cache = self.request.session.get(self.SESSION_KEY_CACHE)
        if not cache or cache.get('usuario_id') != usuario_id:
            return None
        if self.relogio() - cache.get('salvo_em', 0) > idade_maxima_segundos:
            return None
        return self._hidratar(cache.get('itens') or {})

    def salvar_cache(self, usuario_id: str, itens: List[ItemCarrinho]) -> None:
        self._salvar(self.SESSION_KEY_CACHE, {
            'usuario_id': usuario_id,
            'salvo_em': self.relogio(),
            'itens': self._serializar(itens),
        })

    def limpar_cache(self) -> None:
        self._remover(self.SESSION_KEY_CACHE)

    # --- Manipulação direta (API de convidado) ---

    def add_item(self, produto_id: str, quantidade: int = 1) -> Optional[ItemCarrinho]:
        """Soma a quantidade ao item do mesmo produto; produtos inexistentes são ignorados."""
        produto = self.produto_repo.buscar_por_id(produto_id)
        if not produto or not produto.ativo:
            return None

        dados = dict(self.request.session.get(self.SESSION_KEY) or {})
        dados[produto.id] = dados.get(produto.id, 0) + quantidade
        self._salvar(self.SESSION_KEY, dados)
        return ItemCarrinho(produto_id=produto.id, quantidade=dados[produto.id], produto=produto)

    def update_quantity(self, produto_id: str, quantidade: int) -> Optional[ItemCarrinho]:
        """Quantidade menor ou igual a zero remove o item."""
        dados = dict(self.request.session.get(self.SESSION_KEY) or {})
        if produto_id not in dados:
            return None
        if quantidade <= 0:
            self.remove_item(produto_id)
            return None

        dados[produto_id] = quantidade
        self._salvar(self.SESSION_KEY, dados)
        return ItemCarrinho(
            produto_id=produto_id, quantidade=quantidade, produto=self.produto_repo.buscar_por_id(produto_id)
        )

    def contem(self, produto_id: str) -> bool:
        return produto_id in (self.request.session.get(self.SESSION_KEY) or {})

    def remove_item(self, produto_id: str):
        dados = dict(self.request.session.get(self.SESSION_KEY) or {})
        dados.pop(produto_id, None)
        self._salvar(self.SESSION_KEY, dados)

    def itens_para_mesclar(self) -> List[Tuple[str, int]]:
        """Pares (produto_id, quantidade) do carrinho de convidado, para a mesclagem no login."""
        return [(produto_id, quantidade) for produto_id, quantidade in (self.request.session.get(self.SESSION_KEY) or {}).items()]
