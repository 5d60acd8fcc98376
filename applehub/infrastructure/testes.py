# applehub/infrastructure/testes.py

from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone

from applehub.carrinho.models import ItemCarrinho as ItemCarrinhoModel
from applehub.catalog.models import Categoria, Produto as ProdutoModel
from applehub.core.entities import ConfiguracaoPagamento, ItemPedido, Pedido, Transacao, Usuario
from applehub.core.exceptions import (
    CarrinhoRemotoError, DadosInvalidosError, ItemNaoEncontradoError, PagamentoFalhouError,
    PedidoNaoEncontradoError, TransacaoNaoEncontradaError
)
from applehub.infrastructure.gateways import (
    CarrinhoRemotoHttp, EmailServiceDjango, IpApiGeolocalizador, PagarmeGateway
)
from applehub.infrastructure.models import (
    ConfiguracaoAdmin, ConfiguracaoPagamento as ConfiguracaoPagamentoModel, LogApiPagarme,
    PapelUsuario, Perfil, TentativaPagamentoCartao
)
from applehub.infrastructure.repositories import (
    CarrinhoRepositoryDjango,
    ConfiguracaoRepositoryDjango,
    LimpezaRepositoryDjango,
    LogApiRepositoryDjango,
    PedidoRepositoryDjango,
    ProdutoRepositoryDjango,
    TentativaCartaoRepositoryDjango,
    TransacaoRepositoryDjango,
    UsuarioRepositoryDjango,
)
from applehub.pedidos.models import HistoricoStatusPedido, Pedido as PedidoModel, Transacao as TransacaoModel

User = get_user_model()


def criar_usuario(username='cliente', papel=None, **kwargs):
    usuario = User.objects.create_user(username=username, email=f"{username}@applehub.com.br",
                                       password='senha-forte-123', **kwargs)
    if papel:
        PapelUsuario.objects.create(usuario=usuario, papel=papel)
    return usuario


def criar_produto(nome='iPhone 15 128GB', preco='5999.00', ativo=True):
    categoria, _ = Categoria.objects.get_or_create(nome='iPhone')
    return ProdutoModel.objects.create(
        nome=nome, preco_vista=Decimal(preco), estoque=10, ativo=ativo, categoria=categoria
    )


def criar_pedido_model(usuario, status='em_analise', numero='APH1'):
    return PedidoModel.objects.create(
        usuario=usuario,
        numero_pedido=numero,
        status=status,
        subtotal=Decimal('5999.00'),
        total=Decimal('5999.00'),
        tipo_pagamento='parcelamento_applehub',
    )


def resposta_http(status_code=200, json_data=None, texto=''):
    resposta = mock.Mock()
    resposta.status_code = status_code
    resposta.text = texto
    resposta.content = b'{}' if json_data is not None else b''
    resposta.json.return_value = json_data
    if status_code >= 400:
        resposta.raise_for_status.side_effect = requests.exceptions.HTTPError(response=resposta)
    return resposta


# ====================================================================
# REPOSITÓRIOS DO CATÁLOGO E CARRINHO
# ====================================================================
class ProdutoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = ProdutoRepositoryDjango()
        self.produto = criar_produto()

    def test_buscar_por_id_com_sucesso(self):
        """
        Cenário: O repositório devolve a entidade Produto com o preço à vista.
        """
        produto = self.repository.buscar_por_id(str(self.produto.id))

        self.assertEqual(produto.nome, 'iPhone 15 128GB')
        self.assertEqual(produto.preco_vista, Decimal('5999.00'))

    def test_buscar_por_id_invalido_retorna_none(self):
        """
        Cenário: UUID malformado é tratado como produto inexistente.
        """
        self.assertIsNone(self.repository.buscar_por_id('nao-e-um-uuid'))


class CarrinhoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = CarrinhoRepositoryDjango()
        self.usuario = criar_usuario()
        self.produto = criar_produto()
        self.usuario_id = str(self.usuario.pk)
        self.produto_id = str(self.produto.id)

    def test_adicionar_mesmo_produto_soma_quantidades(self):
        """
        Cenário: Adicionar duas vezes o mesmo produto mantém uma única linha
        com as quantidades somadas.
        """
        # ACT
        self.repository.adicionar_item(self.usuario_id, self.produto_id, 1)
        item = self.repository.adicionar_item(self.usuario_id, self.produto_id, 2)

        # ASSERT
        self.assertEqual(item.quantidade, 3)
        self.assertEqual(ItemCarrinhoModel.objects.filter(usuario=self.usuario).count(), 1)
        self.assertEqual(item.subtotal, Decimal('17997.00'))

    def test_atualizar_quantidade_zero_remove_item(self):
        """
        Cenário: Quantidade zero remove a linha e retorna None.
        """
        self.repository.adicionar_item(self.usuario_id, self.produto_id, 2)

        resultado = self.repository.atualizar_quantidade(self.usuario_id, self.produto_id, 0)

        self.assertIsNone(resultado)
        self.assertFalse(ItemCarrinhoModel.objects.exists())

    def test_atualizar_quantidade_item_inexistente(self):
        """
        Cenário: Atualizar um produto que não está no carrinho levanta ItemNaoEncontradoError.
        """
        with self.assertRaises(ItemNaoEncontradoError):
            self.repository.atualizar_quantidade(self.usuario_id, self.produto_id, 3)

    def test_produto_id_malformado(self):
        """
        Cenário: Um produto_id que não é UUID é tratado como item ausente.
        """
        self.repository.adicionar_item(self.usuario_id, self.produto_id, 1)

        with self.assertRaises(ItemNaoEncontradoError):
            self.repository.atualizar_quantidade(self.usuario_id, 'nao-e-uuid', 3)

        self.repository.remover_item(self.usuario_id, 'nao-e-uuid')
        self.assertEqual(ItemCarrinhoModel.objects.get(usuario=self.usuario).quantidade, 1)

    def test_limpar_afeta_apenas_o_usuario(self):
        """
        Cenário: Limpar o carrinho não apaga itens de outros usuários.
        """
        outro = criar_usuario('outro')
        self.repository.adicionar_item(self.usuario_id, self.produto_id, 1)
        self.repository.adicionar_item(str(outro.pk), self.produto_id, 1)

        self.repository.limpar(self.usuario_id)

        self.assertEqual(self.repository.buscar_itens(self.usuario_id), [])
        self.assertEqual(len(self.repository.buscar_itens(str(outro.pk))), 1)


# ====================================================================
# REPOSITÓRIOS DE PEDIDO E TRANSAÇÃO
# ====================================================================
class PedidoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = PedidoRepositoryDjango()
        self.usuario = criar_usuario()
        self.produto = criar_produto()

    def test_criar_pedido_grava_itens_historico_e_limpa_carrinho(self):
        """
        Cenário: Criar o pedido grava o snapshot dos itens, o primeiro
        histórico de status e esvazia o carrinho do usuário.
        """
        # ARRANGE
        ItemCarrinhoModel.objects.create(usuario=self.usuario, produto=self.produto, quantidade=2)
        pedido = Pedido(
            usuario_id=str(self.usuario.pk),
            numero_pedido='APH1700000000000',
            status='pagamento_confirmado',
            subtotal=Decimal('11998.00'),
            frete=Decimal('0'),
            total=Decimal('11998.00'),
            tipo_pagamento='pix',
            endereco_entrega={'cidade': 'São Paulo'},
            itens=[ItemPedido(str(self.produto.id), self.produto.nome, Decimal('5999.00'), 2)],
        )

        # ACT
        criado = self.repository.criar_pedido(pedido, 'Pagamento confirmado')

        # ASSERT
        self.assertIsNotNone(criado.id)
        self.assertEqual(len(criado.itens), 1)
        self.assertEqual(criado.itens[0].subtotal, Decimal('11998.00'))
        self.assertFalse(ItemCarrinhoModel.objects.filter(usuario=self.usuario).exists())
        historico = HistoricoStatusPedido.objects.get(pedido_id=criado.id)
        self.assertEqual(historico.status, 'pagamento_confirmado')
        self.assertEqual(historico.observacao, 'Pagamento confirmado')

    def test_atualizar_status_grava_historico_e_rastreio(self):
        """
        Cenário: A mudança de status adiciona uma linha de histórico e guarda o código de rastreio.
        """
        model = criar_pedido_model(self.usuario, status='em_separacao')

        pedido = self.repository.atualizar_status(str(model.id), 'em_transporte', 'Pedido enviado', 'AH123456789BR')

        self.assertEqual(pedido.status, 'em_transporte')
        self.assertEqual(pedido.codigo_rastreio, 'AH123456789BR')
        self.assertEqual(HistoricoStatusPedido.objects.filter(pedido=model).count(), 1)

    def test_atualizar_status_pedido_inexistente(self):
        """
        Cenário: Pedido inexistente levanta PedidoNaoEncontradoError.
        """
        with self.assertRaises(PedidoNaoEncontradoError):
            self.repository.atualizar_status('00000000-0000-0000-0000-000000000000', 'cancelado')


class TransacaoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = TransacaoRepositoryDjango()
        self.usuario = criar_usuario()

    def _transacao(self, **kwargs):
        dados = dict(usuario_id=str(self.usuario.pk), tipo='entrada', valor=Decimal('500.00'),
                     metodo_pagamento='pix', pix_copia_cola='00020126pix')
        dados.update(kwargs)
        return self.repository.salvar(Transacao(**dados))

    def test_buscar_por_pix_e_marcar_como_paga(self):
        """
        Cenário: A transação é localizada pelo código copia-e-cola e marcada como paga.
        """
        transacao = self._transacao()
        agora = timezone.now()

        encontrada = self.repository.buscar_por_pix('00020126pix')
        paga = self.repository.marcar_como_paga(encontrada.id, agora)

        self.assertEqual(encontrada.id, transacao.id)
        self.assertEqual(paga.status, 'pago')
        self.assertEqual(TransacaoModel.objects.get(pk=transacao.id).data_pagamento, agora)

    def test_marcar_como_paga_inexistente(self):
        """
        Cenário: Transação inexistente levanta TransacaoNaoEncontradaError.
        """
        with self.assertRaises(TransacaoNaoEncontradaError):
            self.repository.marcar_como_paga('00000000-0000-0000-0000-000000000000', timezone.now())

    def test_listar_pix_pendentes_criados_antes(self):
        """
        Cenário: Só entram PIX pendentes, com código e criados antes do limite.
        """
        # ARRANGE
        antiga = self._transacao()
        recente = self._transacao(pix_copia_cola='recente')
        paga = self._transacao(pix_copia_cola='paga', status='pago')
        sem_codigo = self._transacao(pix_copia_cola=None)
        uma_hora_atras = timezone.now() - timedelta(hours=1)
        TransacaoModel.objects.filter(pk__in=[antiga.id, paga.id, sem_codigo.id]).update(data_criacao=uma_hora_atras)

        # ACT
        expiradas = self.repository.listar_pix_pendentes_criados_antes(timezone.now() - timedelta(minutes=30))

        # ASSERT
        self.assertEqual([t.id for t in expiradas], [antiga.id])
        self.assertNotIn(recente.id, [t.id for t in expiradas])

    def test_criar_em_lote(self):
        """
        Cenário: As parcelas são gravadas de uma vez.
        """
        parcelas = [
            Transacao(usuario_id=str(self.usuario.pk), tipo='parcela', valor=Decimal('100.00'),
                      parcela_numero=numero, total_parcelas=3)
            for numero in range(1, 4)
        ]

        criadas = self.repository.criar_em_lote(parcelas)

        self.assertEqual(len(criadas), 3)
        self.assertEqual(TransacaoModel.objects.filter(tipo='parcela').count(), 3)


# ====================================================================
# CONFIGURAÇÕES, USUÁRIOS E LIMPEZA
# ====================================================================
class ConfiguracaoRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = ConfiguracaoRepositoryDjango()

    def test_salvar_pagamento_mantem_linha_unica(self):
        """
        Cenário: Salvar duas vezes atualiza a mesma linha de configuração.
        """
        self.repository.salvar_pagamento(ConfiguracaoPagamento('re_1', 'sk_1'))
        self.repository.salvar_pagamento(ConfiguracaoPagamento('re_2', 'sk_2', auto_saque_habilitado=True))

        configuracao = self.repository.obter_pagamento()

        self.assertEqual(ConfiguracaoPagamentoModel.objects.count(), 1)
        self.assertEqual(configuracao.recipient_id, 're_2')
        self.assertTrue(configuracao.auto_saque_habilitado)

    def test_obter_senha_admin(self):
        """
        Cenário: Sem ConfiguracaoAdmin não há senha; com ela, a senha é devolvida.
        """
        self.assertIsNone(self.repository.obter_senha_admin())

        ConfiguracaoAdmin.objects.create(senha='segredo')

        self.assertEqual(self.repository.obter_senha_admin(), 'segredo')


class UsuarioRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = UsuarioRepositoryDjango()

    def test_mapeia_perfil_e_papel(self):
        """
        Cenário: O usuário com papel 'admin' é mapeado como administrador com os dados do perfil.
        """
        usuario = criar_usuario('maria', papel='admin')
        Perfil.objects.create(usuario=usuario, nome_completo='Maria Souza', cpf='123.456.789-09')

        entidade = self.repository.buscar_por_id(str(usuario.pk))

        self.assertIsInstance(entidade, Usuario)
        self.assertTrue(entidade.is_admin)
        self.assertEqual(entidade.primeiro_nome, 'Maria')

    def test_superusuario_e_admin(self):
        """
        Cenário: Superusuário sem papel explícito também é administrador.
        """
        usuario = User.objects.create_superuser('root', 'root@applehub.com.br', 'senha-forte-123')

        self.assertTrue(self.repository.buscar_por_id(str(usuario.pk)).is_admin)

    def test_buscar_por_id_invalido(self):
        self.assertIsNone(self.repository.buscar_por_id('abc'))

    def test_listar_por_papel_ignora_superusuarios(self):
        """
        Cenário: A listagem de clientes nunca inclui superusuários.
        """
        cliente = criar_usuario('cliente', papel='cliente')
        root = User.objects.create_superuser('root', 'root@applehub.com.br', 'senha-forte-123')
        PapelUsuario.objects.create(usuario=root, papel='cliente')

        ids = [u.id for u in self.repository.listar_por_papel('cliente')]

        self.assertEqual(ids, [str(cliente.pk)])

    def test_buscar_perfil_cobranca(self):
        usuario = criar_usuario()
        Perfil.objects.create(usuario=usuario, nome_completo='João Lima', telefone='11987654321', cidade='Campinas')

        perfil = self.repository.buscar_perfil_cobranca(str(usuario.pk))

        self.assertEqual(perfil['email'], 'cliente@applehub.com.br')
        self.assertEqual(perfil['cidade'], 'Campinas')


class LimpezaRepositoryTestCase(TestCase):

    def setUp(self):
        self.repository = LimpezaRepositoryDjango()

    def test_tabela_desconhecida(self):
        with self.assertRaises(DadosInvalidosError):
            self.repository.apagar_tabela('produtos')

    def test_apagar_tabela_e_listar_ids_sem_superusuario(self):
        """
        Cenário: A tabela de perfis é apagada e os superusuários ficam fora da lista de usuários.
        """
        cliente = criar_usuario()
        Perfil.objects.create(usuario=cliente, nome_completo='Cliente')
        User.objects.create_superuser('root', 'root@applehub.com.br', 'senha-forte-123')

        apagados = self.repository.apagar_tabela('perfis')

        self.assertEqual(apagados, 1)
        self.assertEqual(self.repository.listar_ids_usuarios(), [str(cliente.pk)])


class AuditoriaRepositoryTestCase(TestCase):

    def test_log_api_registra(self):
        LogApiRepositoryDjango().registrar('/webhook', 'POST', status_resposta=200, metadados={'type': 'webhook_received'})

        log = LogApiPagarme.objects.get()
        self.assertEqual(log.metadados['type'], 'webhook_received')

    def test_tentativa_cartao_registra_numero_mascarado(self):
        usuario = criar_usuario()

        TentativaCartaoRepositoryDjango().registrar(
            str(usuario.pk), 'JOAO LIMA', '**** **** **** 1111', '12/30', Decimal('1.00')
        )

        tentativa = TentativaPagamentoCartao.objects.get()
        self.assertEqual(tentativa.numero_mascarado, '**** **** **** 1111')


# ====================================================================
# GATEWAYS
# ====================================================================
class PagarmeGatewayTestCase(TestCase):

    def setUp(self):
        self.gateway = PagarmeGateway(base_url='https://api.pagar.me/core/v5')
        self.configuracao = ConfiguracaoPagamento('re_123', 'sk_test_123')

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_criar_cobranca_pix(self, mock_post):
        """
        Cenário: O PIX é criado em centavos, com Basic auth da secret key, e o QR Code é lido da resposta.
        """
        # ARRANGE
        mock_post.return_value = resposta_http(200, {
            'id': 'or_1',
            'charges': [{'last_transaction': {'qr_code': '00020126pix', 'qr_code_url': 'https://qr/1.png'}}],
        })

        # ACT
        cobranca = self.gateway.criar_cobranca_pix(self.configuracao, Decimal('150.50'), 'Entrada', 3600)

        # ASSERT
        self.assertEqual(cobranca.qr_code, '00020126pix')
        self.assertEqual(cobranca.referencia_externa, 'or_1')
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://api.pagar.me/core/v5/orders')
        self.assertEqual(kwargs['auth'], ('sk_test_123', ''))
        self.assertEqual(kwargs['json']['items'][0]['amount'], 15050)
        self.assertEqual(kwargs['json']['payments'][0]['pix']['expires_in'], 3600)

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_erro_http_vira_pagamento_falhou(self, mock_post):
        """
        Cenário: Resposta 4xx da Pagar.me vira PagamentoFalhouError com o status e o corpo.
        """
        mock_post.return_value = resposta_http(422, texto='{"message": "invalid"}')

        with self.assertRaises(PagamentoFalhouError) as ctx:
            self.gateway.criar_transferencia(self.configuracao, Decimal('10'))

        self.assertEqual(ctx.exception.status_http, 422)
        self.assertIn('invalid', ctx.exception.detalhes)

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_transferencia_envia_senha_de_saque(self, mock_post):
        mock_post.return_value = resposta_http(200, {'id': 'tr_1'})
        configuracao = ConfiguracaoPagamento('re_123', 'sk_test_123', True, 'senha-saque')

        self.gateway.criar_transferencia(configuracao, Decimal('1000.00'))

        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://api.pagar.me/core/v5/recipients/re_123/transfers')
        self.assertEqual(kwargs['json'], {'amount': 100000, 'metadata': {'password': 'senha-saque'}})

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_resposta_sem_qr_code(self, mock_post):
        mock_post.return_value = resposta_http(200, {'id': 'or_1', 'charges': []})

        with self.assertRaises(PagamentoFalhouError):
            self.gateway.criar_cobranca_pix(self.configuracao, Decimal('10'), 'Entrada', 3600)

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_cobrar_cartao_le_status_e_erro(self, mock_post):
        """
        Cenário: A cobrança recusada traz o status e a primeira mensagem de erro do gateway.
        """
        mock_post.return_value = resposta_http(200, {
            'id': 'or_2',
            'charges': [{
                'id': 'ch_1',
                'status': 'failed',
                'last_transaction': {'gateway_response': {'errors': [{'message': 'Cartão recusado'}]}},
            }],
        })
        cartao = {'card_number': '4111 1111 1111 1111', 'card_holder_name': 'JOAO',
                  'card_expiration_date': '12/30', 'card_cvv': '123'}

        cobranca = self.gateway.cobrar_cartao(self.configuracao, cartao, Decimal('1.00'), {'telefone': '(11) 98765-4321'})

        self.assertEqual(cobranca.status, 'failed')
        self.assertEqual(cobranca.mensagem_erro, 'Cartão recusado')
        cartao_enviado = mock_post.call_args.kwargs['json']['payments'][0]['credit_card']['card']
        self.assertEqual(cartao_enviado['number'], '4111111111111111')
        self.assertEqual(cartao_enviado['exp_year'], 2030)


class IpApiGeolocalizadorTestCase(TestCase):

    @mock.patch('applehub.infrastructure.gateways.requests.get')
    def test_localizar(self, mock_get):
        mock_get.return_value = resposta_http(200, {'country': 'Brazil', 'city': 'São Paulo'})

        self.assertEqual(IpApiGeolocalizador('http://ip-api.com/json').localizar('8.8.8.8'), ('Brazil', 'São Paulo'))

    @mock.patch('applehub.infrastructure.gateways.requests.get')
    def test_falha_retorna_none(self, mock_get):
        """
        Cenário: Erro de rede na geolocalização não interrompe o registro da visita.
        """
        mock_get.side_effect = requests.exceptions.ConnectionError('sem rede')

        self.assertEqual(IpApiGeolocalizador('http://ip-api.com/json').localizar('8.8.8.8'), (None, None))


class CarrinhoRemotoHttpTestCase(TestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.session.headers = {}
        self.remoto = CarrinhoRemotoHttp('https://loja.applehub.com.br/api', 'token-jwt', session=self.session)

    def test_envia_token_e_le_itens(self):
        self.session.request.return_value = resposta_http(200, {'itens': [{
            'id': 'item-1', 'produto_id': 'p1', 'quantidade': 2, 'usuario_id': '7',
            'produto': {'id': 'p1', 'nome': 'iPad', 'preco_vista': '3999.00'},
        }]})

        itens = self.remoto.buscar_itens('7')

        self.assertEqual(self.session.headers['Authorization'], 'Bearer token-jwt')
        self.assertEqual(itens[0].subtotal, Decimal('7998.00'))
        self.session.request.assert_called_once_with('GET', 'https://loja.applehub.com.br/api/carrinho/', timeout=10)

    def test_404_vira_item_nao_encontrado(self):
        self.session.request.return_value = resposta_http(404)

        with self.assertRaises(ItemNaoEncontradoError):
            self.remoto.atualizar_quantidade('7', 'p1', 3)

    def test_erro_de_conexao(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError('offline')

        with self.assertRaises(CarrinhoRemotoError):
            self.remoto.limpar('7')


@override_settings(EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend',
                   PASSWORD_RESET_URL='https://applehub.com.br/reset')
class EmailServiceDjangoTestCase(TestCase):

    def setUp(self):
        self.service = EmailServiceDjango()

    def test_enviar_status_pedido(self):
        """
        Cenário: O e-mail de status leva o número do pedido, o rótulo e o código de rastreio.
        """
        usuario = Usuario(email='maria@applehub.com.br', nome_completo='Maria Souza')
        pedido = Pedido(
            usuario_id='1', numero_pedido='APH123', status='em_transporte', subtotal=Decimal('10'),
            frete=Decimal('0'), total=Decimal('10'), tipo_pagamento='pix', endereco_entrega={},
            codigo_rastreio='AH123456789BR',
        )

        self.service.enviar_status_pedido(usuario, pedido, 'Em Transporte', 'Saiu para entrega')

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Pedido APH123 - Em Transporte')
        self.assertIn('AH123456789BR', mail.outbox[0].body)
        self.assertEqual(mail.outbox[0].to, ['maria@applehub.com.br'])

    def test_verificacao_rejeitada(self):
        self.service.enviar_verificacao_conta('joao@applehub.com.br', 'João', 'rejeitado')

        self.assertEqual(mail.outbox[0].subject, 'Verificação Rejeitada - AppleHub')

    def test_recuperacao_senha(self):
        """
        Cenário: Conta existente recebe o link com uid e token; e-mail desconhecido não recebe nada.
        """
        criar_usuario('maria')

        self.service.enviar_recuperacao_senha('desconhecido@applehub.com.br')
        self.service.enviar_recuperacao_senha('MARIA@applehub.com.br')

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('https://applehub.com.br/reset?uid=', mail.outbox[0].alternatives[0][0])


# ====================================================================
# MANAGEMENT COMMANDS
# ====================================================================
class ManagementCommandsTestCase(TestCase):

    def test_load_initial_data(self):
        """
        Cenário: O catálogo é criado uma única vez e a senha administrativa é gravada.
        """
        call_command('load_initial_data', '--senha-admin', 'segredo', stdout=StringIO())
        call_command('load_initial_data', stdout=StringIO())

        self.assertEqual(Categoria.objects.count(), 5)
        self.assertEqual(ProdutoModel.objects.count(), 8)
        self.assertEqual(ConfiguracaoAdmin.objects.get().senha, 'segredo')

    def test_cancelar_pix_expirados(self):
        """
        Cenário: O comando cancela o PIX pendente antigo e o pedido em análise.
        """
        # ARRANGE
        usuario = criar_usuario()
        pedido = criar_pedido_model(usuario)
        transacao = TransacaoModel.objects.create(
            usuario=usuario, pedido=pedido, tipo='entrada', valor=Decimal('500.00'),
            metodo_pagamento='pix', pix_copia_cola='00020126pix',
        )
        TransacaoModel.objects.filter(pk=transacao.pk).update(data_criacao=timezone.now() - timedelta(hours=1))
        saida = StringIO()

        # ACT
        call_command('cancelar_pix_expirados', '--minutos', '30', stdout=saida)

        # ASSERT
        transacao.refresh_from_db()
        pedido.refresh_from_db()
        self.assertEqual(transacao.status, 'cancelado')
        self.assertEqual(pedido.status, 'cancelado')
        self.assertIn('1 pedido(s) cancelado(s)', saida.getvalue())
