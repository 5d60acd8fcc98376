import logging
import re
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

from applehub.core.entities import (
    CobrancaCartao, CobrancaPix, ConfiguracaoPagamento, ItemCarrinho, Pedido, Produto, Usuario
)
from applehub.core.exceptions import CarrinhoRemotoError, ItemNaoEncontradoError, PagamentoFalhouError
from applehub.core.ports import ICarrinhoRepository, IEmailService, IGatewayPagamento, IGeolocalizador
from applehub.core.utils import formatar_data_brasilia

logger = logging.getLogger(__name__)


def _centavos(valor: Decimal) -> int:
    return int((Decimal(valor) * 100).quantize(Decimal('1')))


# ====================================================================
# GATEWAYS: Implementações concretas que se comunicam com APIs externas.
# ====================================================================

class PagarmeGateway(IGatewayPagamento):
    """
    Gateway para a API v5 da Pagar.me.
    A autenticação é Basic com a secret key como usuário e senha vazia.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: int = 15):
        self.api_base_url = (base_url or settings.PAGARME_API_URL).rstrip('/')
        self.timeout = timeout

    def _post(self, configuracao: ConfiguracaoPagamento, caminho: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.api_base_url}{caminho}"
        try:
            response = requests.post(
                url,
                json=payload,
                auth=(configuracao.secret_key, ''),
                headers={'Idempotency-Key': str(uuid.uuid4())},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

        except requests.exceptions.HTTPError as e:
            corpo = e.response.text if e.response is not None else ''
            status = e.response.status_code if e.response is not None else None
            logger.error("Erro Pagar.me em %s (%s): %s", caminho, status, corpo)
            raise PagamentoFalhouError(f"Erro da API Pagar.me: {status}", detalhes=corpo, status_http=status)

        except requests.exceptions.RequestException as e:
            raise PagamentoFalhouError(f"Erro de conexão com a API da Pagar.me: {e}")

    def criar_cobranca_pix(self, configuracao: ConfiguracaoPagamento, valor: Decimal,
                           descricao: str, expira_em_segundos: int) -> CobrancaPix:
        payload = {
            'customer': {'name': 'Cliente AppleHub'},
            'items': [{'amount': _centavos(valor), 'description': descricao, 'quantity': 1}],
            'payments': [{'payment_method': 'pix', 'pix': {'expires_in': expira_em_segundos}}],
        }
        data = self._post(configuracao, '/orders', payload)

        try:
            ultima = data['charges'][0]['last_transaction']
            return CobrancaPix(
                referencia_externa=str(data.get('id')),
                qr_code=ultima['qr_code'],
                qr_code_url=ultima['qr_code_url'],
            )
        except (KeyError, IndexError, TypeError):
            raise PagamentoFalhouError("Resposta da Pagar.me sem dados do PIX.", detalhes=data)

    def criar_transferencia(self, configuracao: ConfiguracaoPagamento, valor: Decimal) -> Dict[str, Any]:
        payload = {'amount': _centavos(valor)}
        if configuracao.senha_saque:
            payload['metadata'] = {'password': configuracao.senha_saque}
        return self._post(configuracao, f"/recipients/{configuracao.recipient_id}/transfers", payload)

    def cobrar_cartao(self, configuracao: ConfiguracaoPagamento, dados_cartao: Dict[str, Any],
                      valor: Decimal, perfil: Dict[str, Any]) -> CobrancaCartao:
        telefone = re.sub(r'\D', '', perfil.get('telefone') or '')
        validade = re.sub(r'\D', '', dados_cartao.get('card_expiration_date') or '')
        titular = dados_cartao.get('card_holder_name', '')

        payload = {
            'customer': {
                'name': titular,
                'type': 'individual',
                'document': re.sub(r'\D', '', perfil.get('cpf') or ''),
                'document_type': 'CPF',
                'phones': {
                    'mobile_phone': {'country_code': '55', 'area_code': telefone[:2], 'number': telefone[2:]},
                },
            },
            'items': [{'amount': _centavos(valor), 'description': 'Verificação de cartão AppleHub', 'quantity': 1}],
            'payments': [{
                'payment_method': 'credit_card',
                'credit_card': {
                    'card': {
                        'number': re.sub(r'\s', '', dados_cartao.get('card_number') or ''),
                        'holder_name': titular,
                        'exp_month': int(validade[:2] or 0),
                        'exp_year': int('20' + (validade[2:4] or '00')),
                        'cvv': dados_cartao.get('card_cvv'),
                        'billing_address': {
                            'line_1': f"{perfil.get('endereco') or ''}, {perfil.get('numero') or ''}",
                            'zip_code': re.sub(r'\D', '', perfil.get('cep') or ''),
                            'city': perfil.get('cidade'),
                            'state': perfil.get('estado'),
                            'country': 'BR',
                        },
                    },
                    'installments': 1,
                    'statement_descriptor': 'APPLEHUB',
                },
            }],
        }
        data = self._post(configuracao, '/orders', payload)

        cobranca = (data.get('charges') or [{}])[0]
        resposta_gateway = (cobranca.get('last_transaction') or {}).get('gateway_response') or {}
        erros = resposta_gateway.get('errors') or []

        return CobrancaCartao(
            referencia_externa=data.get('id'),
            charge_id=cobranca.get('id'),
            status=cobranca.get('status'),
            mensagem_erro=erros[0].get('message') if erros else None,
        )

    def estornar_cobranca(self, configuracao: ConfiguracaoPagamento, charge_id: str,
                          valor: Decimal) -> Dict[str, Any]:
        return self._post(configuracao, f"/charges/{charge_id}/refund", {'amount': _centavos(valor)})


class IpApiGeolocalizador(IGeolocalizador):
    """Geolocalização por IP (ip-api.com). Falhas resultam em (None, None)."""

    def __init__(self, base_url: Optional[str] = None, timeout: int = 5):
        self.base_url = (base_url or settings.IP_API_URL).rstrip('/')
        self.timeout = timeout

    def localizar(self, ip: str) -> Tuple[Optional[str], Optional[str]]:
        try:
            response = requests.get(
                f"{self.base_url}/{ip}", params={'fields': 'country,city'}, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
            return data.get('country') or None, data.get('city') or None
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("Falha na geolocalização do IP %s: %s", ip, e)
            return None, None


class CarrinhoRemotoHttp(ICarrinhoRepository):
    """
    Cliente HTTP da API de carrinho, para uso do sincronizador fora do
    servidor. Autentica com o access token JWT do usuário.
    """

    def __init__(self, base_url: str, token: str, timeout: int = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Authorization': f"Bearer {token}"})

    def _requisitar(self, metodo: str, caminho: str = '', **kwargs) -> Any:
        try:
            response = self.session.request(metodo, f"{self.base_url}/carrinho/{caminho}", timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise CarrinhoRemotoError(f"Erro de conexão com o carrinho remoto: {e}")

        if response.status_code == 404:
            raise ItemNaoEncontradoError("Item não encontrado no carrinho.")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError:
            raise CarrinhoRemotoError(f"Carrinho remoto respondeu {response.status_code}")
        return response.json() if response.content else None

    @staticmethod
    def _item(data: Dict[str, Any]) -> ItemCarrinho:
        produto = data.get('produto')
        return ItemCarrinho(
            id=str(data['id']),
            produto_id=str(data['produto_id']),
            quantidade=int(data['quantidade']),
            usuario_id=data.get('usuario_id'),
            produto=Produto(
                id=str(produto['id']),
                nome=produto['nome'],
                preco_vista=Decimal(str(produto['preco_vista'])),
                estoque=produto.get('estoque', 0),
                ativo=produto.get('ativo', True),
                imagem_url=produto.get('imagem_url'),
            ) if produto else None,
        )

    def buscar_itens(self, usuario_id: str) -> List[ItemCarrinho]:
        data = self._requisitar('GET')
        return [self._item(item) for item in data['itens']]

    def adicionar_item(self, usuario_id: str, produto_id: str, quantidade: int) -> ItemCarrinho:
        return self._item(self._requisitar('POST', json={'produto_id': produto_id, 'quantidade': quantidade}))

    def atualizar_quantidade(self, usuario_id: str, produto_id: str, quantidade: int) -> Optional[ItemCarrinho]:
        data = self._requisitar('PATCH', f"{produto_id}/", json={'quantidade': quantidade})
        return self._item(data) if data else None

    def remover_item(self, usuario_id: str, produto_id: str):
        self._requisitar('DELETE', f"{produto_id}/")

    def limpar(self, usuario_id: str):
        self._requisitar('DELETE')


class EmailServiceDjango(IEmailService):
    """
    Envio de e-mails com o backend de e-mail do Django.
    Implementa o Protocolo IEmailService.
    """

    def _enviar(self, assunto: str, html: str, destinatario: str) -> None:
        texto = re.sub(r'<[^>]+>', '', html).strip()
        send_mail(
            assunto,
            texto,
            settings.DEFAULT_FROM_EMAIL,
            [destinatario],
            html_message=html,
            fail_silently=False,
        )

    def enviar_status_pedido(self, usuario: Usuario, pedido: Pedido, rotulo_status: str,
                             observacao: Optional[str] = None):
        linhas = [
            f"<h1>Olá, {usuario.primeiro_nome}!</h1>",
            f"<p>O status do seu pedido <strong>{pedido.numero_pedido}</strong> foi atualizado para: "
            f"<strong>{rotulo_status}</strong>.</p>",
        ]
        if observacao:
            linhas.append(f"<p>{observacao}</p>")
        if pedido.codigo_rastreio:
            linhas.append(f"<p>Código de rastreio: <strong>{pedido.codigo_rastreio}</strong></p>")
        if pedido.data_criacao:
            linhas.append(f"<p>Pedido realizado em {formatar_data_brasilia(pedido.data_criacao)}.</p>")
        linhas.append(f"<p>Total: R$ {pedido.total:.2f}</p><br/><p>Equipe AppleHub</p>")

        self._enviar(f"Pedido {pedido.numero_pedido} - {rotulo_status}", "\n".join(linhas), usuario.email)
        logger.info("Email de status do pedido %s enviado", pedido.numero_pedido)

    def enviar_verificacao_conta(self, email: str, nome: str, status: str):
        if status == 'verificado':
            assunto = "Conta Verificada - AppleHub"
            html = (
                f"<h1>Parabéns, {nome}!</h1>"
                "<p>Sua conta foi verificada com sucesso na AppleHub.</p>"
                "<p>Agora você pode aproveitar todos os benefícios do parcelamento AppleHub em até 24x.</p>"
                "<p>Acesse sua conta e comece a comprar!</p><br/><p>Equipe AppleHub</p>"
            )
        else:
            assunto = "Verificação Rejeitada - AppleHub"
            html = (
                f"<h1>Olá, {nome}</h1>"
                "<p>Infelizmente sua verificação de conta não foi aprovada.</p>"
                "<p>Por favor, entre em contato conosco através do WhatsApp para mais informações.</p>"
                "<br/><p>Equipe AppleHub</p>"
            )
        self._enviar(assunto, html, email)

    def enviar_recuperacao_senha(self, email: str, redirect_to: Optional[str] = None):
        """Envia o link de redefinição; e-mails desconhecidos não geram erro."""
        usuario = get_user_model().objects.filter(email__iexact=email, is_active=True).first()
        if not usuario:
            logger.info("Recuperação de senha solicitada para e-mail sem conta")
            return

        uid = urlsafe_base64_encode(force_bytes(usuario.pk))
        token = default_token_generator.make_token(usuario)
        base = redirect_to or settings.PASSWORD_RESET_URL
        separador = '&' if '?' in base else '?'
        link = f"{base}{separador}uid={uid}&token={token}"

        html = (
            "<h1>Recuperação de senha</h1>"
            "<p>Recebemos uma solicitação para redefinir a senha da sua conta AppleHub.</p>"
            f'<p><a href="{link}">Clique aqui para criar uma nova senha</a></p>'
            "<p>Se você não fez esta solicitação, ignore este e-mail.</p><br/><p>Equipe AppleHub</p>"
        )
        self._enviar("Recuperação de Senha - AppleHub", html, usuario.email)
