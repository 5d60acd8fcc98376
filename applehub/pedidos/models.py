import uuid

from django.conf import settings
from django.db import models

from applehub.catalog.models import Produto
from applehub.core.status_pedido import ROTULOS_STATUS

STATUS_CHOICES = list(ROTULOS_STATUS.items())

PAGAMENTO_CHOICES = [
    ('pix', 'Pix'),
    ('cartao', 'Cartão de Crédito'),
    ('parcelamento_applehub', 'Parcelamento AppleHub'),
]

# ====================================================================
# 1. Pedido
# ====================================================================

class Pedido(models.Model):
    """
    Modelo para pedidos de compra.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    usuario = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='pedidos',
        verbose_name="Cliente"
    )
    numero_pedido = models.CharField(max_length=30, unique=True, verbose_name="Número do Pedido")
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default='em_analise', verbose_name="Status")

    # Valores
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    frete = models.DecimalField(max_digits=10, decimal_places=2, default=0, verbose_name="Valor do Frete")
    total = models.DecimalField(max_digits=10, decimal_places=2, default=0, verbose_name="Total do Pedido")

    # Pagamento
    tipo_pagamento = models.CharField(max_length=30, choices=PAGAMENTO_CHOICES, default='pix', verbose_name="Método de Pagamento")
    parcelas = models.PositiveIntegerField(null=True, blank=True)
    valor_parcela = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    # Endereço (snapshot no momento da compra)
    endereco_entrega = models.JSONField(default=dict, verbose_name="Endereço de Entrega")

    codigo_rastreio = models.CharField(max_length=50, blank=True, null=True, verbose_name="Código de Rastreio")
    observacoes = models.TextField(blank=True, null=True)

    data_criacao = models.DateTimeField(auto_now_add=True, verbose_name="Data do Pedido")
    data_atualizacao = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Pedido'
        verbose_name_plural = 'Pedidos'
        ordering = ['-data_criacao']
        db_table = 'pedidos'

    def __str__(self):
        return f"Pedido {self.numero_pedido} - {self.status}"

    @property
    def total_formatado(self):
        return f"R$ {self.total:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


class ItemPedido(models.Model):
    """
    Snapshot de um item do carrinho no momento da compra.
    """
    pedido = models.ForeignKey(Pedido, on_delete=models.CASCADE, related_name='itens')

    # Referência fraca ao produto original
    produto = models.ForeignKey(
        Produto,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='itens_pedido',
        verbose_name="Produto Original"
    )

    nome_produto = models.CharField(max_length=255, verbose_name="Nome do Produto")
    preco_unitario = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Preço Unitário na Compra")
    quantidade = models.PositiveIntegerField(verbose_name="Quantidade")
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Subtotal")

    class Meta:
        verbose_name = 'Item do Pedido'
        verbose_name_plural = 'Itens do Pedido'
        db_table = 'itens_pedido'

    def __str__(self):
        return f"{self.quantidade}x {self.nome_produto}"

    def save(self, *args, **kwargs):
        self.subtotal = self.quantidade * self.preco_unitario
        super().save(*args, **kwargs)


class HistoricoStatusPedido(models.Model):
    """Uma linha por mudança de status (inclusive a criação do pedido)."""
    pedido = models.ForeignKey(Pedido, on_delete=models.CASCADE, related_name='historico')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES)
    observacao = models.TextField(blank=True, null=True)
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Histórico de Status'
        verbose_name_plural = 'Históricos de Status'
        ordering = ['data_criacao', 'id']
        db_table = 'historico_status_pedido'

    def __str__(self):
        return f"{self.pedido_id}: {self.status}"

# ====================================================================
# 2. Transações e Crédito
# ====================================================================

class Transacao(models.Model):
    TIPO_CHOICES = [
        ('entrada', 'Entrada'),
        ('parcela', 'Parcela'),
        ('pagamento', 'Pagamento à Vista'),
    ]
    STATUS_CHOICES = [
        ('pendente', 'Pendente'),
        ('pago', 'Pago'),
        ('cancelado', 'Cancelado'),
        ('atrasado', 'Atrasado'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='transacoes')
    pedido = models.ForeignKey(Pedido, on_delete=models.CASCADE, null=True, blank=True, related_name='transacoes')

    tipo = models.CharField(max_length=20, choices=TIPO_CHOICES)
    valor = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pendente', db_index=True)
    metodo_pagamento = models.CharField(max_length=30, blank=True, null=True)

    # PIX
    pix_qr_code = models.TextField(blank=True, null=True)
    pix_copia_cola = models.TextField(blank=True, null=True, db_index=True)

    # Parcelas
    parcela_numero = models.PositiveIntegerField(null=True, blank=True)
    total_parcelas = models.PositiveIntegerField(null=True, blank=True)

    data_vencimento = models.DateTimeField(null=True, blank=True)
    data_pagamento = models.DateTimeField(null=True, blank=True)
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Transação'
        verbose_name_plural = 'Transações'
        ordering = ['-data_criacao']
        db_table = 'transacoes'

    def __str__(self):
        return f"{self.get_tipo_display()} R$ {self.valor} ({self.status})"


class AnaliseCredito(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    usuario = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='analises_credito')
    pedido = models.ForeignKey(Pedido, on_delete=models.SET_NULL, null=True, blank=True, related_name='analises_credito')

    valor_solicitado = models.DecimalField(max_digits=10, decimal_places=2)
    valor_aprovado = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    percentual_aprovado = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    status = models.CharField(max_length=20, default='pendente')
    observacoes = models.TextField(blank=True, null=True)
    data_criacao = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Análise de Crédito'
        verbose_name_plural = 'Análises de Crédito'
        ordering = ['-data_criacao']
        db_table = 'analises_credito'

    def __str__(self):
        return f"Análise {self.usuario_id} - {self.status}"
