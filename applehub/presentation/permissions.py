from rest_framework.permissions import BasePermission


def usuario_e_admin(user) -> bool:
    """Superusuário ou usuário com o papel 'admin' (PapelUsuario)."""
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or user.papeis.filter(papel='admin').exists()


class IsAdminRole(BasePermission):
    """Permite acesso apenas a usuários autenticados com papel de administrador."""
    message = 'Forbidden'

    def has_permission(self, request, view):
        return usuario_e_admin(request.user)
