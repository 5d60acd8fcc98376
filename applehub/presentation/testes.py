# applehub/presentation/testes.py

import hashlib
import hmac
import json
import uuid
from decimal import Decimal
from unittest import mock

import requests
from django.contrib.auth import get_user_model
from django.contrib.sessions.backends.db import SessionStore
from django.core import mail
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from applehub.carrinho.models import ItemCarrinho as ItemCarrinhoModel
from applehub.catalog.models import Categoria, Produto as ProdutoModel
from applehub.core.cart_sync import EstadoCarrinho
from applehub.infrastructure.instances import carrinho_repo, get_sincronizador_carrinho, produto_repo
from applehub.infrastructure.models import (
    ConfiguracaoPagamento as ConfiguracaoPagamentoModel, LogApiPagarme, PapelUsuario, Perfil,
    RegistroVisita, TentativaPagamentoCartao
)
from applehub.pedidos.models import AnaliseCredito, Pedido as PedidoModel, Transacao as TransacaoModel

from .cart_manager import CartManager

User = get_user_model()

SECRET_KEY_PAGARME = 'sk_test_applehub'


def criar_usuario(username='cliente', papel=None, perfil=False, **kwargs):
    usuario = User.objects.create_user(username=username, email=f"{username}@applehub.com.br",
                                       password='senha-forte-123', **kwargs)
    if papel:
        PapelUsuario.objects.create(usuario=usuario, papel=papel)
    if perfil:
        Perfil.objects.create(
            usuario=usuario, nome_completo='Maria Souza', cpf='529.982.247-25', telefone='(11) 98765-4321',
            cep='01310-100', endereco='Av. Paulista', numero='1000', cidade='São Paulo', estado='SP',
        )
    return usuario


def criar_produto(nome='iPhone 15 128GB', preco='5999.00'):
    categoria, _ = Categoria.objects.get_or_create(nome='iPhone')
    return ProdutoModel.objects.create(nome=nome, preco_vista=Decimal(preco), estoque=10, categoria=categoria)


def criar_configuracao_pagamento(**kwargs):
    dados = dict(recipient_id='re_applehub', secret_key=SECRET_KEY_PAGARME)
    dados.update(kwargs)
    return ConfiguracaoPagamentoModel.objects.create(**dados)


def resposta_pagarme(json_data, status_code=200):
    resposta = mock.Mock()
    resposta.status_code = status_code
    resposta.json.return_value = json_data
    resposta.text = json.dumps(json_data)
    return resposta


ENDERECO = {
    'cep': '01310-100', 'rua': 'Av. Paulista', 'numero': '1000', 'bairro': 'Bela Vista',
    'cidade': 'São Paulo', 'estado': 'SP',
}


# ====================================================================
# 1. CARRINHO
# ====================================================================
class CarrinhoConvidadoAPITestCase(APITestCase):

    def setUp(self):
        self.produto = criar_produto()
        self.url = reverse('api_carrinho')

    def test_adicionar_soma_quantidades_na_sessao(self):
        """
        Cenário: O convidado adiciona o mesmo produto duas vezes; a sessão guarda a soma.
        """
        # ACT
        self.client.post(self.url, {'produto_id': str(self.produto.id), 'quantidade': 2}, format='json')
        response = self.client.post(self.url, {'produto_id': str(self.produto.id)}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['quantidade'], 3)

        carrinho = self.client.get(self.url)
        self.assertEqual(carrinho.data['quantidade_itens'], 3)
        self.assertEqual(carrinho.data['total'], '17997.00')
        self.assertFalse(ItemCarrinhoModel.objects.exists())

    def test_atualizar_para_zero_remove(self):
        self.client.post(self.url, {'produto_id': str(self.produto.id), 'quantidade': 2}, format='json')
        url_item = reverse('api_carrinho_item', args=[str(self.produto.id)])

        response = self.client.patch(url_item, {'quantidade': 0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(self.client.get(self.url).data['itens'], [])

    def test_produto_inexistente(self):
        """
        Cenário: Adicionar um produto que não existe responde 404.
        """
        response = self.client.post(self.url, {'produto_id': str(uuid.uuid4())}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

    def test_atualizar_item_ausente(self):
        url_item = reverse('api_carrinho_item', args=[str(self.produto.id)])

        response = self.client.patch(url_item, {'quantidade': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_quantidade_invalida(self):
        response = self.client.post(self.url, {'produto_id': str(self.produto.id), 'quantidade': 0}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CarrinhoAutenticadoAPITestCase(APITestCase):

    def setUp(self):
        self.usuario = criar_usuario()
        self.iphone = criar_produto()
        self.carregador = criar_produto('Carregador USB-C 20W', '219.00')
        self.url = reverse('api_carrinho')

    def test_carrinho_remoto(self):
        """
        Cenário: O usuário logado grava o carrinho no banco, uma linha por produto.
        """
        self.client.force_authenticate(self.usuario)

        self.client.post(self.url, {'produto_id': str(self.iphone.id), 'quantidade': 1}, format='json')
        response = self.client.post(self.url, {'produto_id': str(self.iphone.id), 'quantidade': 1}, format='json')

        self.assertEqual(response.data['quantidade'], 2)
        self.assertEqual(response.data['usuario_id'], str(self.usuario.pk))
        self.assertEqual(ItemCarrinhoModel.objects.get(usuario=self.usuario).quantidade, 2)

        response = self.client.delete(self.url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ItemCarrinhoModel.objects.exists())

    def test_sincronizar_mescla_convidado_e_reproduz_fila(self):
        """
        Cenário: No login o carrinho de convidado (sessão + lista enviada) é somado ao
        remoto e a fila offline é reproduzida em ordem.
        """
        # ARRANGE: carrinho de convidado na sessão
        self.client.post(self.url, {'produto_id': str(self.iphone.id), 'quantidade': 2}, format='json')
        self.client.force_authenticate(self.usuario)
        corpo = {
            'itens': [{'produto_id': str(self.carregador.id), 'quantidade': 1}],
            'fila': [
                {'tipo': 'update', 'dados': {'produto_id': str(self.iphone.id), 'quantidade': 5}, 'timestamp': 2},
                {'tipo': 'remove', 'dados': {'produto_id': str(uuid.uuid4())}, 'timestamp': 1},
            ],
        }

        # ACT
        response = self.client.post(reverse('api_carrinho_sincronizar'), corpo, format='json')

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['mesclados'], 2)
        self.assertEqual(response.data['aplicadas'], 2)
        self.assertEqual(response.data['falhas'], 0)
        self.assertEqual(response.data['quantidade_itens'], 6)

        self.client.force_authenticate(None)
        self.assertEqual(self.client.get(self.url).data['itens'], [])

    def test_fila_reproduzida_na_ordem_recebida(self):
        """
        Cenário: A fila offline é aplicada na ordem em que foi enviada, mesmo com
        timestamps ausentes ou fora de ordem.
        """
        self.client.force_authenticate(self.usuario)
        url = reverse('api_carrinho_sincronizar')
        produto_id = str(self.iphone.id)

        # ACT: limpar sem timestamp seguido de uma adição
        response = self.client.post(url, {'fila': [
            {'tipo': 'clear', 'dados': {}},
            {'tipo': 'add', 'dados': {'produto_id': produto_id, 'quantidade': 2}, 'timestamp': 1000},
        ]}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(ItemCarrinhoModel.objects.get(usuario=self.usuario).quantidade, 2)

        # ACT: remoção com timestamp anterior ao da adição que a precede
        response = self.client.post(url, {'fila': [
            {'tipo': 'add', 'dados': {'produto_id': produto_id, 'quantidade': 1}, 'timestamp': 2000},
            {'tipo': 'remove', 'dados': {'produto_id': produto_id}, 'timestamp': 1000},
        ]}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(ItemCarrinhoModel.objects.filter(usuario=self.usuario).exists())

    def test_produto_id_malformado(self):
        """
        Cenário: Um produto_id que não é UUID responde 404 na alteração e 204 na remoção.
        """
        self.client.force_authenticate(self.usuario)
        url_item = reverse('api_carrinho_item', args=['nao-e-uuid'])

        response = self.client.patch(url_item, {'quantidade': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Item não encontrado no carrinho.')

        response = self.client.delete(url_item)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_sincronizar_exige_login(self):
        response = self.client.post(reverse('api_carrinho_sincronizar'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class SincronizadorCarrinhoSessaoTestCase(TestCase):
    """O sincronizador sobre a sessão do Django e o carrinho do banco."""

    def setUp(self):
        self.usuario = criar_usuario()
        self.produto = criar_produto()
        self.request = RequestFactory().get('/')
        self.request.session = SessionStore()

    def test_login_offline_e_reconexao(self):
        """
        Cenário: Convidado adiciona, entra (mescla), fica offline, altera a quantidade
        e, ao reconectar, a fila é aplicada no banco e descartada.
        """
        # ARRANGE
        armazenamento = CartManager(self.request)
        sincronizador = get_sincronizador_carrinho(armazenamento, carrinho_repo)
        produto = produto_repo.buscar_por_id(str(self.produto.id))
        sincronizador.adicionar(produto, 2)
        ItemCarrinhoModel.objects.create(usuario=self.usuario, produto=self.produto, quantidade=1)

        # ACT: login
        sincronizador.entrar(str(self.usuario.pk))

        # ASSERT
        self.assertEqual(sincronizador.quantidade_itens(), 3)
        self.assertIsNone(self.request.session.get(CartManager.SESSION_KEY))

        # ACT: offline e reconexão
        sincronizador.ficar_offline()
        sincronizador.atualizar_quantidade(str(self.produto.id), 7)
        self.assertEqual(len(armazenamento.carregar_fila()), 1)
        aplicadas = sincronizador.reconectar()

        # ASSERT
        self.assertEqual(aplicadas, 1)
        self.assertEqual(sincronizador.estado, EstadoCarrinho.AUTENTICADO)
        self.assertEqual(ItemCarrinhoModel.objects.get(usuario=self.usuario).quantidade, 7)
        self.assertEqual(armazenamento.carregar_fila(), [])


# ====================================================================
# 2. PEDIDOS
# ====================================================================
@override_settings(EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend')
class PedidoAPITestCase(APITestCase):

    def setUp(self):
        self.usuario = criar_usuario(perfil=True)
        self.admin = criar_usuario('admin', papel='admin')
        self.produto = criar_produto()
        ItemCarrinhoModel.objects.create(usuario=self.usuario, produto=self.produto, quantidade=2)

    def test_checkout_pix(self):
        """
        Cenário: Checkout com PIX cria o pedido já confirmado e esvazia o carrinho.
        """
        self.client.force_authenticate(self.usuario)

        response = self.client.post(reverse('api_checkout'), {'tipo_pagamento': 'pix', **ENDERECO}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        pedido = response.data['pedido']
        self.assertEqual(pedido['status'], 'pagamento_confirmado')
        self.assertEqual(pedido['total'], '11998.00')
        self.assertEqual(pedido['endereco_entrega']['cidade'], 'São Paulo')
        self.assertFalse(ItemCarrinhoModel.objects.filter(usuario=self.usuario).exists())

    def test_checkout_parcelado_sem_parcelas(self):
        self.client.force_authenticate(self.usuario)

        response = self.client.post(
            reverse('api_checkout'), {'tipo_pagamento': 'parcelamento_applehub', **ENDERECO}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('parcelas', response.data)

    def test_checkout_carrinho_vazio(self):
        ItemCarrinhoModel.objects.all().delete()
        self.client.force_authenticate(self.usuario)

        response = self.client.post(reverse('api_checkout'), {'tipo_pagamento': 'pix', **ENDERECO}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_checkout_exige_login(self):
        response = self.client.post(reverse('api_checkout'), {'tipo_pagamento': 'pix', **ENDERECO}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_atualizar_status_pelo_admin(self):
        """
        Cenário: O admin aprova o pedido; o histórico é gravado e o cliente recebe o e-mail.
        Transição proibida responde 400.
        """
        # ARRANGE
        self.client.force_authenticate(self.usuario)
        pedido_id = self.client.post(
            reverse('api_checkout'),
            {'tipo_pagamento': 'parcelamento_applehub', 'parcelas': 12, **ENDERECO},
            format='json',
        ).data['pedido']['id']
        self.client.force_authenticate(self.admin)
        url = reverse('api_pedido_status', args=[pedido_id])

        # ACT
        proibida = self.client.post(url, {'status': 'entregue'}, format='json')
        response = self.client.post(url, {'status': 'aprovado', 'observacao': 'Crédito aprovado'}, format='json')

        # ASSERT
        self.assertEqual(proibida.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'aprovado')
        self.assertEqual(PedidoModel.objects.get(pk=pedido_id).historico.count(), 2)
        self.assertEqual(mail.outbox[-1].subject.split(' - ')[-1], 'Aprovado')

    def test_atualizar_status_exige_admin(self):
        self.client.force_authenticate(self.usuario)

        response = self.client.post(reverse('api_pedido_status', args=[str(uuid.uuid4())]), {'status': 'aprovado'})

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_notificar_pedido_inexistente(self):
        """
        Cenário: Notificar um pedido inexistente responde 500 com a mensagem de erro.
        """
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            reverse('api_pedido_notificar'), {'orderId': str(uuid.uuid4()), 'status': 'aprovado'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Pedido não encontrado')


# ====================================================================
# 3. PAGAMENTOS
# ====================================================================
class WebhookPagarmeAPITestCase(APITestCase):

    def setUp(self):
        self.url = reverse('webhook_pagarme')
        self.usuario = criar_usuario()
        self.pedido = PedidoModel.objects.create(
            usuario=self.usuario, numero_pedido='APH1', status='em_analise', subtotal=Decimal('5000.00'),
            total=Decimal('5000.00'), tipo_pagamento='parcelamento_applehub', parcelas=24,
        )
        self.entrada = TransacaoModel.objects.create(
            usuario=self.usuario, pedido=self.pedido, tipo='entrada', valor=Decimal('1000.00'),
            metodo_pagamento='pix', pix_copia_cola='00020126pix-entrada',
        )
        AnaliseCredito.objects.create(
            usuario=self.usuario, pedido=self.pedido, valor_solicitado=Decimal('5000.00'),
            valor_aprovado=Decimal('5000.00'), percentual_aprovado=Decimal('100'), status='aprovado',
        )

    def _corpo(self, qr_code='00020126pix-entrada'):
        return json.dumps({
            'type': 'order.paid',
            'data': {
                'id': 'or_1',
                'amount': 100000,
                'charges': [{'paid_amount': 100000, 'last_transaction': {'qr_code': qr_code}}],
            },
        }).encode()

    def _enviar(self, corpo, assinatura=None):
        cabecalhos = {'HTTP_X_HUB_SIGNATURE': assinatura} if assinatura else {}
        return self.client.post(self.url, data=corpo, content_type='application/json', **cabecalhos)

    @staticmethod
    def _assinar(corpo):
        return 'sha256=' + hmac.new(SECRET_KEY_PAGARME.encode(), corpo, hashlib.sha256).hexdigest()

    def test_sem_configuracao(self):
        response = self._enviar(self._corpo())

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Configurações não encontradas')

    def test_assinatura_invalida(self):
        criar_configuracao_pagamento()

        response = self._enviar(self._corpo(), 'sha256=invalida')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Assinatura inválida')

    def test_assinatura_com_caracteres_nao_ascii(self):
        criar_configuracao_pagamento()

        response = self._enviar(self._corpo(), 'sha256=é')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Assinatura inválida')

    def test_entrada_paga_gera_parcelas_e_confirma_pedido(self):
        """
        Cenário: A entrada paga marca a transação, cria 24 parcelas sobre o valor
        financiado e confirma o pagamento do pedido. Reenvio do evento não duplica nada.
        """
        # ARRANGE
        criar_configuracao_pagamento()
        corpo = self._corpo()

        # ACT
        response = self._enviar(corpo, self._assinar(corpo))
        repetido = self._enviar(corpo, self._assinar(corpo))

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'success': True, 'message': 'Webhook processado'})
        self.assertEqual(repetido.status_code, status.HTTP_200_OK)

        self.entrada.refresh_from_db()
        self.pedido.refresh_from_db()
        self.assertEqual(self.entrada.status, 'pago')
        self.assertEqual(self.pedido.status, 'pagamento_confirmado')

        parcelas = TransacaoModel.objects.filter(tipo='parcela', pedido=self.pedido)
        self.assertEqual(parcelas.count(), 24)
        self.assertEqual(parcelas.filter(parcela_numero=1).get().valor, Decimal('268.07'))
        self.assertTrue(LogApiPagarme.objects.filter(metadados__type='webhook_received').exists())

    def test_transacao_nao_encontrada(self):
        criar_configuracao_pagamento()

        response = self._enviar(self._corpo('codigo-desconhecido'))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_evento_ignorado(self):
        criar_configuracao_pagamento()
        corpo = json.dumps({'type': 'order.created', 'data': {}}).encode()

        response = self._enviar(corpo)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.entrada.refresh_from_db()
        self.assertEqual(self.entrada.status, 'pendente')


@override_settings(PAGARME_API_URL='https://api.pagar.me/core/v5')
class PixECartaoAPITestCase(APITestCase):

    def setUp(self):
        self.usuario = criar_usuario(perfil=True)
        self.admin = criar_usuario('admin', papel='admin')

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_gerar_pix(self, mock_post):
        """
        Cenário: O PIX é gerado na Pagar.me e a transação pendente fica ligada ao usuário do token.
        """
        # ARRANGE
        criar_configuracao_pagamento()
        mock_post.return_value = resposta_pagarme({
            'id': 'or_1',
            'charges': [{'last_transaction': {'qr_code': '00020126pix', 'qr_code_url': 'https://qr/1.png'}}],
        })
        self.client.force_authenticate(self.usuario)

        # ACT
        response = self.client.post(reverse('api_pix_gerar'), {'amount': '150.50', 'user_id': 'outro'}, format='json')

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['qr_code'], '00020126pix')
        self.assertIn('expires_at', response.data)
        transacao = TransacaoModel.objects.get()
        self.assertEqual(transacao.usuario, self.usuario)
        self.assertEqual(transacao.status, 'pendente')
        self.assertEqual(transacao.valor, Decimal('150.50'))

    def test_gerar_pix_sem_configuracao(self):
        self.client.force_authenticate(self.usuario)

        response = self.client.post(reverse('api_pix_gerar'), {'amount': '10.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_gerar_pix_erro_gateway(self, mock_post):
        criar_configuracao_pagamento()
        mock_post.side_effect = requests.exceptions.ConnectionError('timeout')
        self.client.force_authenticate(self.usuario)

        response = self.client.post(reverse('api_pix_gerar'), {'amount': '10.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Erro ao gerar PIX')
        self.assertFalse(TransacaoModel.objects.exists())

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_verificar_cartao_cobra_e_estorna(self, mock_post):
        """
        Cenário: A cobrança paga é estornada na sequência; a tentativa fica registrada com o número mascarado.
        """
        # ARRANGE
        criar_configuracao_pagamento()
        mock_post.side_effect = [
            resposta_pagarme({'id': 'or_2', 'charges': [{'id': 'ch_1', 'status': 'paid'}]}),
            resposta_pagarme({'id': 'rf_1'}),
        ]
        self.client.force_authenticate(self.usuario)
        corpo = {
            'card_number': '4111 1111 1111 1111', 'card_holder_name': 'MARIA SOUZA',
            'card_expiration_date': '12/30', 'card_cvv': '123', 'amount': '1.00',
        }

        # ACT
        response = self.client.post(reverse('api_cartao_verificar'), corpo, format='json')

        # ASSERT
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['refund_id'], 'rf_1')
        self.assertEqual(mock_post.call_args_list[1].args[0], 'https://api.pagar.me/core/v5/charges/ch_1/refund')
        tentativa = TentativaPagamentoCartao.objects.get()
        self.assertNotIn('4111111111111111', tentativa.numero_mascarado.replace(' ', ''))

    @mock.patch('applehub.infrastructure.gateways.requests.post')
    def test_verificar_cartao_recusado(self, mock_post):
        criar_configuracao_pagamento()
        mock_post.return_value = resposta_pagarme({'id': 'or_3', 'charges': [{'id': 'ch_2', 'status': 'failed'}]})
        self.client.force_authenticate(self.usuario)
        corpo = {
            'card_number': '4000000000000002', 'card_holder_name': 'MARIA SOUZA',
            'card_expiration_date': '1230', 'card_cvv': '123', 'amount': '1.00',
        }

        response = self.client.post(reverse('api_cartao_verificar'), corpo, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['status'], 'failed')
        self.assertEqual(mock_post.call_count, 1)

    def test_cancelar_expirados_sem_pendencias(self):
        self.client.force_authenticate(self.admin)

        response = self.client.post(reverse('api_pix_cancelar_expirados'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['cancelled'], 0)


# ====================================================================
# 4. VISITAS
# ====================================================================
class RegistrarVisitaAPITestCase(APITestCase):

    USER_AGENT_IPHONE = (
        'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
        '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'
    )

    @mock.patch('applehub.infrastructure.gateways.requests.get')
    def test_visita_de_convidado(self, mock_get):
        """
        Cenário: IP privado não é geolocalizado e user_id desconhecido é descartado.
        """
        response = self.client.post(
            reverse('api_visitas'),
            {'page_visited': '/produtos', 'session_id': 'sess-1', 'user_id': '999999'},
            format='json',
            HTTP_X_FORWARDED_FOR='10.0.0.5, 200.1.1.1',
            HTTP_USER_AGENT=self.USER_AGENT_IPHONE,
        )

        self.assertEqual(response.data, {'success': True})
        visita = RegistroVisita.objects.get()
        self.assertEqual(visita.ip, '10.0.0.5')
        self.assertEqual(visita.tipo_dispositivo, 'Mobile')
        self.assertEqual(visita.navegador, 'Safari')
        self.assertIsNone(visita.usuario)
        self.assertFalse(visita.usuario_registrado)
        mock_get.assert_not_called()

    @mock.patch('applehub.infrastructure.gateways.requests.get')
    def test_visita_de_usuario_logado(self, mock_get):
        usuario = criar_usuario()
        mock_get.return_value = resposta_pagarme({'country': 'Brazil', 'city': 'Recife'})
        self.client.force_authenticate(usuario)

        self.client.post(reverse('api_visitas'), {}, format='json', HTTP_X_REAL_IP='200.1.1.1')

        visita = RegistroVisita.objects.get()
        self.assertEqual(visita.usuario, usuario)
        self.assertTrue(visita.usuario_registrado)
        self.assertEqual(visita.cidade, 'Recife')


# ====================================================================
# 5. ADMINISTRAÇÃO
# ====================================================================
@override_settings(ADMIN_PASSWORD='senha-admin')
class AdministracaoAPITestCase(APITestCase):

    def setUp(self):
        self.cliente = criar_usuario('cliente', papel='cliente', perfil=True)
        self.root = User.objects.create_superuser('root', 'root@applehub.com.br', 'senha-forte-123')

    def test_limpar_dados_senha_incorreta(self):
        response = self.client.post(reverse('api_admin_limpar_dados'), {'admin_password': 'errada'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Senha de administrador inválida')

    def test_limpar_dados_preserva_superusuario(self):
        """
        Cenário: A limpeza apaga clientes e perfis, mas mantém os superusuários.
        """
        response = self.client.post(
            reverse('api_admin_limpar_dados'), {'admin_password': 'senha-admin'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(list(User.objects.values_list('username', flat=True)), ['root'])
        self.assertFalse(Perfil.objects.exists())

    def test_deletar_usuario(self):
        url = reverse('api_admin_deletar_usuario')

        sem_id = self.client.post(url, {'adminPassword': 'senha-admin'}, format='json')
        senha_errada = self.client.post(url, {'userId': self.cliente.pk, 'adminPassword': 'x'}, format='json')
        inexistente = self.client.post(url, {'userId': 999999, 'adminPassword': 'senha-admin'}, format='json')
        response = self.client.post(url, {'userId': self.cliente.pk, 'adminPassword': 'senha-admin'}, format='json')

        self.assertEqual(sem_id.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(senha_errada.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(inexistente.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.cliente.pk).exists())

    def test_deletar_todos_os_clientes(self):
        url = reverse('api_admin_deletar_todos')

        errado = self.client.post(url, {'confirmationText': 'deletar', 'adminPassword': 'senha-admin'}, format='json')
        response = self.client.post(
            url, {'confirmationText': 'DELETAR TODOS', 'adminPassword': 'senha-admin'}, format='json'
        )

        self.assertEqual(errado.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['deletedCount'], 1)
        self.assertTrue(User.objects.filter(pk=self.root.pk).exists())

    def test_configuracoes_de_pagamento(self):
        """
        Cenário: Salvar e ler as credenciais da Pagar.me exigem a senha administrativa.
        """
        url_salvar = reverse('api_admin_salvar_configuracoes_pagamento')
        url_obter = reverse('api_admin_configuracoes_pagamento')

        negado = self.client.post(url_obter, {'admin_password': 'errada'}, format='json')
        vazio = self.client.post(url_obter, {'admin_password': 'senha-admin'}, format='json')
        salvo = self.client.post(url_salvar, {
            'admin_password': 'senha-admin', 'recipient_id': 're_1', 'secret_key': 'sk_1',
            'auto_withdraw_enabled': True,
        }, format='json')
        lido = self.client.post(url_obter, {'admin_password': 'senha-admin'}, format='json')

        self.assertEqual(negado.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(negado.data['error'], 'Senha administrativa inválida')
        self.assertIsNone(vazio.data['data'])
        self.assertTrue(salvo.data['success'])
        self.assertEqual(lido.data['data']['recipient_id'], 're_1')
        self.assertTrue(lido.data['data']['auto_withdraw_enabled'])

    def test_salvar_configuracao_sem_secret_key(self):
        response = self.client.post(
            reverse('api_admin_salvar_configuracoes_pagamento'),
            {'admin_password': 'senha-admin', 'recipient_id': 're_1'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_listar_usuarios(self):
        """
        Cenário: Sem token 401; cliente 403; administrador recebe usuários e verificações.
        """
        url = reverse('api_admin_usuarios')

        sem_token = self.client.get(url)
        self.client.force_authenticate(self.cliente)
        cliente = self.client.get(url)
        self.client.force_authenticate(self.root)
        admin = self.client.get(url)

        self.assertEqual(sem_token.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(cliente.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(cliente.data['error'], 'Forbidden')
        self.assertEqual(admin.status_code, status.HTTP_200_OK)
        self.assertEqual([u['email'] for u in admin.data['users']], ['cliente@applehub.com.br'])
        self.assertEqual(admin.data['verifications'], [])


# ====================================================================
# 6. E-MAILS DE CONTA E TOKEN
# ====================================================================
@override_settings(EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend')
class ContaAPITestCase(APITestCase):

    def test_recuperar_senha_sem_email(self):
        response = self.client.post(reverse('api_recuperar_senha'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Email é obrigatório')

    def test_recuperar_senha_email_desconhecido(self):
        response = self.client.post(reverse('api_recuperar_senha'), {'email': 'ninguem@applehub.com.br'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

    def test_verificacao_email_exige_admin(self):
        self.client.force_authenticate(criar_usuario())

        response = self.client.post(
            reverse('api_verificacao_email'), {'email': 'x@applehub.com.br', 'status': 'verificado'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_verificacao_email_enviada(self):
        self.client.force_authenticate(criar_usuario('admin', papel='admin'))

        response = self.client.post(
            reverse('api_verificacao_email'),
            {'email': 'maria@applehub.com.br', 'nome': 'Maria', 'status': 'verificado'},
            format='json',
        )

        self.assertEqual(response.data, {'success': True})
        self.assertEqual(mail.outbox[0].subject, 'Conta Verificada - AppleHub')

    def test_token_jwt(self):
        criar_usuario('maria')

        response = self.client.post(
            reverse('token_obtain_pair'), {'username': 'maria', 'password': 'senha-forte-123'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
