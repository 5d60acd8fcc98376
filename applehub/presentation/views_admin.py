# applehub/presentation/views_admin.py
"""
Views administrativas.

Limpeza de dados, remoção de usuários e configurações da Pagar.me são
protegidas pela senha administrativa enviada no corpo; a listagem de
usuários exige o token JWT de um administrador.
"""
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from applehub.core.exceptions import SenhaAdminInvalidaError, UsuarioNaoEncontradoError
from applehub.infrastructure.instances import (
    get_configuracao_pagamento_use_case,
    get_deletar_todos_usuarios_use_case,
    get_deletar_usuario_use_case,
    get_limpar_dados_use_case,
    get_listar_usuarios_use_case,
    usuario_repo,
)

from .serializers import ConfiguracaoPagamentoSerializer
from .views import CoreAPIView

# ====================================================================
# LIMPEZA E USUÁRIOS
# ====================================================================

class LimparDadosAPIView(CoreAPIView):
    permission_classes = [AllowAny]
    _STATUS_HTTP = {SenhaAdminInvalidaError: status.HTTP_400_BAD_REQUEST}

    def post(self, request):
        resultado = get_limpar_dados_use_case().executar(request.data.get('admin_password'))
        return Response(resultado)


class DeletarUsuarioAPIView(CoreAPIView):
    permission_classes = [AllowAny]

    def post(self, request):
        resultado = get_deletar_usuario_use_case().executar(
            request.data.get('userId'), request.data.get('adminPassword')
        )
        return Response(resultado)


class DeletarTodosUsuariosAPIView(CoreAPIView):
    permission_classes = [AllowAny]

    def post(self, request):
        resultado = get_deletar_todos_usuarios_use_case().executar(
            request.data.get('confirmationText'), request.data.get('adminPassword')
        )
        return Response(resultado)


class ListarUsuariosAPIView(CoreAPIView):
    """Perfis com e-mail e verificações de conta. 401 sem token, 403 sem papel de admin."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        solicitante = usuario_repo.buscar_por_id(str(request.user.pk))
        if solicitante is None:
            raise UsuarioNaoEncontradoError('Usuário não encontrado')
        return Response(get_listar_usuarios_use_case().executar(solicitante))

# ====================================================================
# CONFIGURAÇÕES DE PAGAMENTO
# ====================================================================

class ConfiguracaoPagamentoAPIView(CoreAPIView):
    permission_classes = [AllowAny]

    def post(self, request):
        configuracao = get_configuracao_pagamento_use_case().obter(request.data.get('admin_password'))
        dados = ConfiguracaoPagamentoSerializer(configuracao).data if configuracao else None
        return Response({'data': dados})


class SalvarConfiguracaoPagamentoAPIView(CoreAPIView):
    permission_classes = [AllowAny]

    def post(self, request):
        configuracao = get_configuracao_pagamento_use_case().salvar(
            request.data.get('admin_password'), request.data
        )
        return Response({'success': True, 'data': ConfiguracaoPagamentoSerializer(configuracao).data})
