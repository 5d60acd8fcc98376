from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from applehub.infrastructure.instances import get_enviar_email_verificacao_use_case, get_recuperar_senha_use_case

from .permissions import IsAdminRole
from .views import CoreAPIView


class EnviarEmailVerificacaoAPIView(CoreAPIView):
    """Avisa o cliente do resultado da verificação de conta (verificado/rejeitado)."""
    permission_classes = [IsAdminRole]

    def post(self, request):
        resultado = get_enviar_email_verificacao_use_case().executar(
            request.data.get('email'),
            request.data.get('nome') or 'Cliente',
            request.data.get('status'),
        )
        return Response(resultado)


class RecuperarSenhaAPIView(CoreAPIView):
    """Envia o link de redefinição de senha. E-mails sem conta também recebem 200."""
    permission_classes = [AllowAny]

    def post(self, request):
        resultado = get_recuperar_senha_use_case().executar(
            request.data.get('email'), request.data.get('redirectTo')
        )
        return Response(resultado)
