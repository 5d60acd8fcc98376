# Configuração da interface administrativa do Django para os modelos da AppleHub.

from django.contrib import admin

from applehub.catalog.models import Categoria, Produto
from applehub.infrastructure.models import (
    ConfiguracaoPagamento, LogApiPagarme, PapelUsuario, Perfil, RegistroVisita, VerificacaoConta
)
from applehub.pedidos.models import AnaliseCredito, HistoricoStatusPedido, ItemPedido, Pedido, Transacao

# ====================================================================
# 1. CATÁLOGO
# ====================================================================

@admin.register(Categoria)
class CategoriaAdmin(admin.ModelAdmin):
    list_display = ('nome', 'slug')
    search_fields = ('nome',)


@admin.register(Produto)
class ProdutoAdmin(admin.ModelAdmin):
    list_display = ('nome', 'categoria', 'preco_vista', 'estoque', 'ativo')
    list_filter = ('ativo', 'categoria')
    search_fields = ('nome',)

# ====================================================================
# 2. PEDIDOS E PAGAMENTOS
# ====================================================================

class ItemPedidoInline(admin.TabularInline):
    model = ItemPedido
    extra = 0
    readonly_fields = ('produto', 'nome_produto', 'preco_unitario', 'quantidade', 'subtotal')


class HistoricoStatusInline(admin.TabularInline):
    model = HistoricoStatusPedido
    extra = 0
    readonly_fields = ('status', 'observacao', 'data_criacao')


@admin.register(Pedido)
class PedidoAdmin(admin.ModelAdmin):
    list_display = ('numero_pedido', 'usuario', 'status', 'tipo_pagamento', 'total', 'data_criacao')
    list_filter = ('status', 'tipo_pagamento')
    search_fields = ('numero_pedido', 'usuario__email')
    inlines = [ItemPedidoInline, HistoricoStatusInline]


@admin.register(Transacao)
class TransacaoAdmin(admin.ModelAdmin):
    list_display = ('tipo', 'usuario', 'valor', 'status', 'metodo_pagamento', 'parcela_numero', 'data_vencimento')
    list_filter = ('tipo', 'status', 'metodo_pagamento')


@admin.register(AnaliseCredito)
class AnaliseCreditoAdmin(admin.ModelAdmin):
    list_display = ('usuario', 'valor_solicitado', 'valor_aprovado', 'status', 'data_criacao')
    list_filter = ('status',)

# ====================================================================
# 3. USUÁRIOS, CONFIGURAÇÃO E AUDITORIA
# ====================================================================

@admin.register(Perfil)
class PerfilAdmin(admin.ModelAdmin):
    list_display = ('nome_completo', 'usuario', 'cpf', 'telefone')
    search_fields = ('nome_completo', 'cpf', 'usuario__email')


admin.site.register(PapelUsuario)
admin.site.register(VerificacaoConta)
admin.site.register(ConfiguracaoPagamento)


@admin.register(LogApiPagarme)
class LogApiPagarmeAdmin(admin.ModelAdmin):
    list_display = ('metodo', 'endpoint', 'status_resposta', 'duracao_ms', 'data_criacao')
    list_filter = ('metodo', 'status_resposta')


@admin.register(RegistroVisita)
class RegistroVisitaAdmin(admin.ModelAdmin):
    list_display = ('ip', 'navegador', 'sistema_operacional', 'tipo_dispositivo', 'pais', 'cidade', 'data_criacao')
    list_filter = ('tipo_dispositivo', 'navegador', 'usuario_registrado')
