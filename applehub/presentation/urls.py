"""
Define as rotas de API REST da AppleHub: carrinho, checkout, pagamentos,
visitas, pedidos, administração e e-mails de conta.
"""
from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from . import views, views_admin, views_auth

urlpatterns = [
    # ====================================================================
    # 1. CARRINHO
    # ====================================================================
    path('carrinho/', views.CarrinhoAPIView.as_view(), name='api_carrinho'),
    # Antes da rota com <produto_id> para não ser capturada por ela
    path('carrinho/sincronizar/', views.SincronizarCarrinhoAPIView.as_view(), name='api_carrinho_sincronizar'),
    path('carrinho/<str:produto_id>/', views.ItemCarrinhoAPIView.as_view(), name='api_carrinho_item'),

    # ====================================================================
    # 2. PEDIDOS
    # ====================================================================
    path('checkout/', views.CheckoutAPIView.as_view(), name='api_checkout'),
    path('pedidos/notificar/', views.NotificarPedidoAPIView.as_view(), name='api_pedido_notificar'),
    path('pedidos/<str:pedido_id>/status/', views.AtualizarStatusPedidoAPIView.as_view(), name='api_pedido_status'),

    # ====================================================================
    # 3. PAGAMENTOS
    # ====================================================================
    path('pix/gerar/', views.GerarPixAPIView.as_view(), name='api_pix_gerar'),
    path('pix/cancelar-expirados/', views.CancelarPixExpiradosAPIView.as_view(), name='api_pix_cancelar_expirados'),
    # Webhook da Pagar.me (rota externa, sem autenticação)
    path('webhook/pagarme/', views.WebhookPagarmeAPIView.as_view(), name='webhook_pagarme'),
    path('cartao/verificar/', views.VerificarCartaoAPIView.as_view(), name='api_cartao_verificar'),

    # ====================================================================
    # 4. VISITAS
    # ====================================================================
    path('visitas/', views.RegistrarVisitaAPIView.as_view(), name='api_visitas'),

    # ====================================================================
    # 5. ADMINISTRAÇÃO
    # ====================================================================
    path('admin/limpar-dados/', views_admin.LimparDadosAPIView.as_view(), name='api_admin_limpar_dados'),
    path('admin/usuarios/', views_admin.ListarUsuariosAPIView.as_view(), name='api_admin_usuarios'),
    path('admin/usuarios/deletar/', views_admin.DeletarUsuarioAPIView.as_view(), name='api_admin_deletar_usuario'),
    path('admin/usuarios/deletar-todos/', views_admin.DeletarTodosUsuariosAPIView.as_view(),
         name='api_admin_deletar_todos'),
    path('admin/configuracoes-pagamento/', views_admin.ConfiguracaoPagamentoAPIView.as_view(),
         name='api_admin_configuracoes_pagamento'),
    path('admin/configuracoes-pagamento/salvar/', views_admin.SalvarConfiguracaoPagamentoAPIView.as_view(),
         name='api_admin_salvar_configuracoes_pagamento'),

    # ====================================================================
    # 6. AUTENTICAÇÃO (JWT) E E-MAILS DE CONTA
    # ====================================================================
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/verificacao-email/', views_auth.EnviarEmailVerificacaoAPIView.as_view(), name='api_verificacao_email'),
    path('auth/recuperar-senha/', views_auth.RecuperarSenhaAPIView.as_view(), name='api_recuperar_senha'),
]
