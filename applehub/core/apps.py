# applehub/core/apps.py

from django.apps import AppConfig


class CoreConfig(AppConfig):
    name = 'applehub.core'
    # Label curto usado pelos management commands
    label = 'core'
    verbose_name = 'Camada de Entidades e Lógica (Core)'

    # A camada Core não tem modelos; a Infrastructure cuida da persistência.
    default_auto_field = 'django.db.models.BigAutoField'
