# Define os modelos para o domínio de Carrinho (carrinho remoto do usuário autenticado).
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from applehub.catalog.models import Produto


class ItemCarrinho(models.Model):
    """Uma linha por (usuário, produto); quantidades do mesmo produto são somadas."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='itens_carrinho')
    produto = models.ForeignKey(Produto, on_delete=models.CASCADE, related_name='itens_carrinho')
    quantidade = models.PositiveIntegerField(default=1)
    data_criacao = models.DateTimeField(auto_now_add=True)
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Item do Carrinho"
        verbose_name_plural = "Itens do Carrinho"
        unique_together = ('usuario', 'produto')
        ordering = ['data_criacao']
        db_table = 'itens_carrinho'

    def __str__(self):
        return f"{self.quantidade}x {self.produto.nome}"

    @property
    def subtotal(self):
        return self.produto.preco_vista * self.quantidade

    def clean(self):
        if self.quantidade < 1:
            raise ValidationError("A quantidade deve ser maior que zero.")
