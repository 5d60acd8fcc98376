"""
Management command para cancelar transações PIX não pagas dentro do prazo.
Pensado para rodar periodicamente (cron).
"""
from django.conf import settings
from django.core.management.base import BaseCommand

from applehub.infrastructure.instances import get_cancelar_pix_expirados_use_case


class Command(BaseCommand):
    """Cancela PIX pendentes expirados e os pedidos ainda em análise."""

    help = 'Cancela transações PIX pendentes há mais de PIX_EXPIRACAO_MINUTOS minutos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--minutos',
            type=int,
            default=settings.PIX_EXPIRACAO_MINUTOS,
            help='Idade mínima (em minutos) de uma transação pendente para ser cancelada',
        )

    def handle(self, *args, **options):
        self.stdout.write(f"Procurando PIX pendentes há mais de {options['minutos']} minutos...")

        use_case = get_cancelar_pix_expirados_use_case(minutos=options['minutos'])
        resultado = use_case.executar()

        self.stdout.write(self.style.SUCCESS(
            f"{resultado['message']}: {resultado['cancelled']} pedido(s) cancelado(s)"
        ))
