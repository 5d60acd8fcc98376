import logging
from decimal import Decimal

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from applehub.core.entities import OperacaoOffline
from applehub.core.exceptions import (
    AcessoNegadoError,
    AssinaturaInvalidaError,
    BaseErroCore,
    CarrinhoRemotoError,
    CarrinhoVazioError,
    CartaoNaoAutorizadoError,
    ConfiguracaoNaoEncontradaError,
    DadosInvalidosError,
    EstornoFalhouError,
    ItemNaoEncontradoError,
    PagamentoFalhouError,
    PersistenciaError,
    ProdutoNaoEncontradoError,
    SenhaAdminInvalidaError,
    StatusInvalidoError,
    TransicaoInvalidaError,
)
from applehub.core.use_cases import RegistrarVisitaUseCase
from applehub.infrastructure.instances import (
    get_atualizar_status_pedido_use_case,
    get_cancelar_pix_expirados_use_case,
    get_criar_pedido_use_case,
    get_gerar_pix_use_case,
    get_gerenciar_carrinho_use_case,
    get_notificar_status_pedido_use_case,
    get_processar_webhook_use_case,
    get_registrar_visita_use_case,
    get_verificar_cartao_use_case,
    usuario_repo,
)

from .cart_manager import CartManager
from .permissions import IsAdminRole
from .serializers import (
    AdicionarItemSerializer,
    AtualizarQuantidadeSerializer,
    AtualizarStatusSerializer,
    CheckoutSerializer,
    GerarPixSerializer,
    ItemCarrinhoSerializer,
    NotificarPedidoSerializer,
    PedidoSerializer,
    RegistrarVisitaSerializer,
    SincronizarCarrinhoSerializer,
    VerificarCartaoSerializer,
)

logger = logging.getLogger(__name__)

# ====================================================================
# VIEWS: Orquestram a requisição, a execução dos casos de uso e a resposta.
# ====================================================================

STATUS_HTTP_PADRAO = {
    DadosInvalidosError: status.HTTP_400_BAD_REQUEST,
    CarrinhoVazioError: status.HTTP_400_BAD_REQUEST,
    ConfiguracaoNaoEncontradaError: status.HTTP_400_BAD_REQUEST,
    StatusInvalidoError: status.HTTP_400_BAD_REQUEST,
    TransicaoInvalidaError: status.HTTP_400_BAD_REQUEST,
    CartaoNaoAutorizadoError: status.HTTP_400_BAD_REQUEST,
    AssinaturaInvalidaError: status.HTTP_401_UNAUTHORIZED,
    SenhaAdminInvalidaError: status.HTTP_401_UNAUTHORIZED,
    AcessoNegadoError: status.HTTP_403_FORBIDDEN,
    ItemNaoEncontradoError: status.HTTP_404_NOT_FOUND,
    PagamentoFalhouError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    PersistenciaError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    CarrinhoRemotoError: status.HTTP_502_BAD_GATEWAY,
}


class CoreAPIView(APIView):
    """
    APIView base: converte as exceções da Core em `{'error': message}`.

    O status HTTP vem de `_STATUS_HTTP` (sobrescrito por view), procurando
    a classe da exceção e depois as suas bases. Exceções inesperadas viram 500.
    """
    _STATUS_HTTP = {}

    def status_para(self, erro: BaseErroCore) -> int:
        mapa = {**STATUS_HTTP_PADRAO, **self._STATUS_HTTP}
        for classe in type(erro).__mro__:
            if classe in mapa:
                return mapa[classe]
        return status.HTTP_500_INTERNAL_SERVER_ERROR

    def handle_exception(self, exc):
        if isinstance(exc, BaseErroCore):
            codigo = self.status_para(exc)
            if codigo >= 500:
                logger.error("%s em %s: %s", type(exc).__name__, self.__class__.__name__, exc.message)
            return Response({'error': exc.message}, status=codigo)

        if isinstance(exc, (exceptions.APIException, Http404, PermissionDenied)):
            return super().handle_exception(exc)

        logger.exception("Erro inesperado em %s", self.__class__.__name__)
        return Response({'error': str(exc) or 'Erro interno'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _usuario_id(request):
    return str(request.user.pk) if request.user.is_authenticated else None


def _resposta_carrinho(itens):
    return {
        'itens': ItemCarrinhoSerializer(itens, many=True).data,
        'total': str(sum((item.subtotal for item in itens), Decimal('0'))),
        'quantidade_itens': sum(item.quantidade for item in itens),
    }

# ====================================================================
# 1. CARRINHO
# ====================================================================

class CarrinhoAPIView(CoreAPIView):
    """
    Carrinho do usuário logado (tabela de itens) ou do convidado (sessão).
    """
    permission_classes = [AllowAny]

    def get(self, request):
        usuario_id = _usuario_id(request)
        if usuario_id:
            itens = get_gerenciar_carrinho_use_case().listar(usuario_id)
        else:
            itens = CartManager(request).carregar_itens()
        return Response(_resposta_carrinho(itens))

    def post(self, request):
        """
        Adiciona um item ao carrinho (soma ao item existente do mesmo produto).
        """
        serializer = AdicionarItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        produto_id = serializer.validated_data['produto_id']
        quantidade = serializer.validated_data['quantidade']

        usuario_id = _usuario_id(request)
        if usuario_id:
            item = get_gerenciar_carrinho_use_case().adicionar_item(usuario_id, produto_id, quantidade)
        else:
            item = CartManager(request).add_item(produto_id, quantidade)
            if item is None:
                raise ProdutoNaoEncontradoError(f"Produto {produto_id} não encontrado.")

        return Response(ItemCarrinhoSerializer(item).data, status=status.HTTP_201_CREATED)

    def delete(self, request):
        """
        Esvazia o carrinho.
        """
        usuario_id = _usuario_id(request)
        if usuario_id:
            get_gerenciar_carrinho_use_case().limpar(usuario_id)
        else:
            CartManager(request).limpar_itens()
        return Response(status=status.HTTP_204_NO_CONTENT)


class ItemCarrinhoAPIView(CoreAPIView):
    permission_classes = [AllowAny]

    def patch(self, request, produto_id):
        """
        Define a quantidade do item; zero ou menos remove o item (204).
        """
        serializer = AtualizarQuantidadeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quantidade = serializer.validated_data['quantidade']

        usuario_id = _usuario_id(request)
        if usuario_id:
            item = get_gerenciar_carrinho_use_case().atualizar_quantidade(usuario_id, produto_id, quantidade)
        else:
            carrinho = CartManager(request)
            if not carrinho.contem(produto_id):
                raise ItemNaoEncontradoError("Item não encontrado no carrinho.")
            item = carrinho.update_quantity(produto_id, quantidade)

        if item is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(ItemCarrinhoSerializer(item).data)

    def delete(self, request, produto_id):
        usuario_id = _usuario_id(request)
        if usuario_id:
            get_gerenciar_carrinho_use_case().remover_item(usuario_id, produto_id)
        else:
            CartManager(request).remove_item(produto_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SincronizarCarrinhoAPIView(CoreAPIView):
    """
    Login e reconexão: mescla o carrinho de convidado (lista enviada + sessão)
    somando quantidades e reproduz a fila offline em ordem FIFO.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = SincronizarCarrinhoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        usuario_id = _usuario_id(request)
        use_case = get_gerenciar_carrinho_use_case()
        carrinho_sessao = CartManager(request)

        itens = [(item['produto_id'], item['quantidade']) for item in serializer.validated_data['itens']]
        itens += carrinho_sessao.itens_para_mesclar()
        mesclados = use_case.mesclar(usuario_id, itens)
        carrinho_sessao.limpar_itens()

        fila = [OperacaoOffline.from_dict(op) for op in serializer.validated_data['fila']]
        resultado = use_case.reproduzir_fila(usuario_id, fila)
        carrinho_sessao.limpar_fila()

        logger.info(
            "Carrinho do usuário %s sincronizado: %d mesclados, %d operações aplicadas, %d falhas",
            usuario_id, mesclados, resultado['aplicadas'], resultado['falhas'],
        )
        return Response({
            'mesclados': mesclados,
            'aplicadas': resultado['aplicadas'],
            'falhas': resultado['falhas'],
            **_resposta_carrinho(use_case.listar(usuario_id)),
        })

# ====================================================================
# 2. PEDIDOS
# ====================================================================

class CheckoutAPIView(CoreAPIView):
    """
    API View para processar o checkout de um pedido.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        pedido = get_criar_pedido_use_case().executar(
            usuario_id=_usuario_id(request),
            tipo_pagamento=serializer.validated_data['tipo_pagamento'],
            endereco_entrega=serializer.endereco_entrega(),
            frete=serializer.validated_data['frete'],
            parcelas=serializer.validated_data.get('parcelas'),
        )
        return Response(
            {'message': 'Pedido criado com sucesso!', 'pedido': PedidoSerializer(pedido).data},
            status=status.HTTP_201_CREATED,
        )


class AtualizarStatusPedidoAPIView(CoreAPIView):
    permission_classes = [IsAdminRole]

    def post(self, request, pedido_id):
        serializer = AtualizarStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        pedido = get_atualizar_status_pedido_use_case().executar(
            pedido_id,
            serializer.validated_data['status'],
            serializer.validated_data.get('observacao') or None,
        )
        return Response(PedidoSerializer(pedido).data)


class NotificarPedidoAPIView(CoreAPIView):
    """Envia o e-mail de status do pedido. Pedido ou e-mail ausente responde 500."""
    permission_classes = [IsAdminRole]
    _STATUS_HTTP = {ItemNaoEncontradoError: status.HTTP_500_INTERNAL_SERVER_ERROR}

    def post(self, request):
        serializer = NotificarPedidoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data

        resultado = get_notificar_status_pedido_use_case().executar(
            dados['orderId'], dados['status'], dados.get('observacao') or None
        )
        return Response(resultado)

# ====================================================================
# 3. PAGAMENTOS (PIX, WEBHOOK E CARTÃO)
# ====================================================================

class GerarPixAPIView(CoreAPIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = GerarPixSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data

        try:
            resultado = get_gerar_pix_use_case().executar(
                valor=dados['amount'],
                descricao=dados['description'],
                usuario_id=_usuario_id(request),
                pedido_id=dados.get('order_id'),
            )
        except PagamentoFalhouError as e:
            logger.error("Erro ao gerar PIX: %s", e.message)
            return Response(
                {'error': 'Erro ao gerar PIX', 'details': e.detalhes or e.message},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(resultado)


class CancelarPixExpiradosAPIView(CoreAPIView):
    permission_classes = [IsAdminRole]

    def post(self, request):
        return Response(get_cancelar_pix_expirados_use_case().executar())


class WebhookPagarmeAPIView(CoreAPIView):
    """
    Recebe as notificações da Pagar.me. A assinatura HMAC é calculada sobre o
    corpo bruto, por isso `request.data` nunca é lido aqui.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        assinatura = request.META.get('HTTP_X_HUB_SIGNATURE')
        resultado = get_processar_webhook_use_case().executar(request.body, assinatura)
        return Response(resultado)


class VerificarCartaoAPIView(CoreAPIView):
    """Cobra e estorna imediatamente um valor para validar o cartão do cliente."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = VerificarCartaoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = dict(serializer.validated_data)
        valor = dados.pop('amount')

        try:
            resultado = get_verificar_cartao_use_case().executar(_usuario_id(request), dados, valor)
        except CartaoNaoAutorizadoError as e:
            return Response(
                {'success': False, 'error': e.message, 'status': e.status},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except EstornoFalhouError as e:
            return Response(
                {'success': False, 'error': e.message, 'charge_id': e.charge_id},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        except PagamentoFalhouError as e:
            logger.error("Erro Pagar.me na cobrança de verificação: %s", e.message)
            return Response(
                {'success': False, 'error': 'Erro ao processar cartão', 'details': e.detalhes or e.message},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(resultado)

# ====================================================================
# 4. VISITAS
# ====================================================================

class RegistrarVisitaAPIView(CoreAPIView):
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RegistrarVisitaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dados = serializer.validated_data

        usuario_id = _usuario_id(request) or dados.get('user_id') or None
        if usuario_id and not usuario_repo.buscar_por_id(usuario_id):
            usuario_id = None

        get_registrar_visita_use_case().executar(
            ip=RegistrarVisitaUseCase.extrair_ip(
                request.META.get('HTTP_X_FORWARDED_FOR'), request.META.get('HTTP_X_REAL_IP')
            ),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
            pagina_visitada=dados.get('page_visited'),
            referrer=dados.get('referrer'),
            sessao_id=dados.get('session_id'),
            usuario_id=usuario_id,
        )
        return Response({'success': True})
