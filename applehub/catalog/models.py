import uuid

from django.db import models
from django.utils.text import slugify

# ====================================================================
# 1. Categoria
# ====================================================================

class Categoria(models.Model):
    """Agrupa os produtos da loja (Ex: iPhone, Mac, Acessórios)."""
    nome = models.CharField(max_length=100, unique=True, verbose_name="Nome da Categoria")
    slug = models.SlugField(max_length=100, unique=True, editable=False)
    descricao = models.TextField(blank=True, verbose_name="Descrição")

    class Meta:
        verbose_name = "Categoria"
        verbose_name_plural = "Categorias"
        db_table = 'categorias'
        ordering = ['nome']

    def __str__(self):
        return self.nome

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.nome)
        super().save(*args, **kwargs)

# ====================================================================
# 2. Produto
# ====================================================================

class Produto(models.Model):
    """Produto do catálogo."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    categoria = models.ForeignKey(Categoria, on_delete=models.SET_NULL, null=True, blank=True, related_name='produtos')

    nome = models.CharField(max_length=255, verbose_name="Nome do Produto")
    slug = models.SlugField(max_length=255, unique=True, editable=False)
    descricao = models.TextField(blank=True, verbose_name="Descrição")

    preco_vista = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Preço à Vista")
    estoque = models.PositiveIntegerField(default=0, verbose_name="Estoque Atual")
    ativo = models.BooleanField(default=True)
    imagem_url = models.URLField(max_length=500, blank=True, null=True, verbose_name="URL da Imagem")

    data_criacao = models.DateTimeField(auto_now_add=True)
    data_atualizacao = models.DateTimeField(auto_now=True, null=True)

    class Meta:
        verbose_name = "Produto"
        verbose_name_plural = "Produtos"
        ordering = ['nome']
        db_table = 'produtos'

    def __str__(self):
        return self.nome

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(f"{self.nome}-{str(self.id)[:8]}")
        super().save(*args, **kwargs)

    @property
    def preco_formatado(self):
        """Retorna o preço formatado em Real Brasileiro."""
        return f"R$ {self.preco_vista:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
