from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand

from applehub.catalog.models import Categoria, Produto
from applehub.infrastructure.models import ConfiguracaoAdmin


class Command(BaseCommand):
    help = 'Carrega o catálogo inicial e a senha administrativa'

    def add_arguments(self, parser):
        parser.add_argument(
            '--senha-admin',
            default=None,
            help='Senha administrativa gravada em ConfiguracaoAdmin (padrão: ADMIN_PASSWORD)',
        )

    def handle(self, *args, **options):
        self.stdout.write('Criando dados iniciais...')

        # Categorias
        categorias = [
            ('iPhone', 'Smartphones Apple'),
            ('Mac', 'Notebooks e desktops Apple'),
            ('iPad', 'Tablets Apple'),
            ('Apple Watch', 'Relógios inteligentes'),
            ('Acessórios', 'AirPods, carregadores e capas'),
        ]

        for nome, descricao in categorias:
            categoria, created = Categoria.objects.get_or_create(nome=nome, defaults={'descricao': descricao})
            if created:
                self.stdout.write(self.style.SUCCESS(f'Criada categoria "{categoria.nome}"'))

        # Produtos por categoria
        produtos = {
            'iPhone': [
                ('iPhone 15 128GB', 'Tela Super Retina XDR de 6,1"', Decimal('5999.00'), 10),
                ('iPhone 15 Pro 256GB', 'Chip A17 Pro e titânio', Decimal('8999.00'), 6),
            ],
            'Mac': [
                ('MacBook Air M2 13"', '8GB de memória, 256GB SSD', Decimal('8499.00'), 5),
                ('MacBook Pro M3 14"', '16GB de memória, 512GB SSD', Decimal('15999.00'), 3),
            ],
            'iPad': [
                ('iPad 10ª geração 64GB', 'Tela Liquid Retina de 10,9"', Decimal('3999.00'), 8),
            ],
            'Apple Watch': [
                ('Apple Watch Series 9 41mm', 'GPS, caixa de alumínio', Decimal('3699.00'), 7),
            ],
            'Acessórios': [
                ('AirPods Pro (2ª geração)', 'Cancelamento ativo de ruído, estojo USB-C', Decimal('2199.00'), 15),
                ('Carregador USB-C 20W', 'Adaptador de energia original', Decimal('219.00'), 30),
            ],
        }

        for cat_nome, prods in produtos.items():
            try:
                categoria = Categoria.objects.get(nome=cat_nome)
            except Categoria.DoesNotExist:
                self.stdout.write(self.style.ERROR(f'Categoria "{cat_nome}" não encontrada'))
                continue

            for nome, desc, preco, estoque in prods:
                produto, created = Produto.objects.get_or_create(
                    nome=nome,
                    defaults={
                        'descricao': desc,
                        'preco_vista': preco,
                        'estoque': estoque,
                        'categoria': categoria,
                    }
                )
                if created:
                    self.stdout.write(self.style.SUCCESS(f'Criado produto "{produto.nome}"'))

        senha = options.get('senha_admin') or settings.ADMIN_PASSWORD
        if senha and not ConfiguracaoAdmin.objects.exists():
            ConfiguracaoAdmin.objects.create(senha=senha)
            self.stdout.write(self.style.SUCCESS('Senha administrativa configurada'))

        self.stdout.write(self.style.SUCCESS('Dados iniciais carregados com sucesso!'))
