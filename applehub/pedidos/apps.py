from django.apps import AppConfig

class PedidosConfig(AppConfig):
    name = 'applehub.pedidos'
    label = 'pedidos'
    verbose_name = 'Pedidos e Pagamentos'
    default_auto_field = 'django.db.models.BigAutoField'
