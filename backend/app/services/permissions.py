"""Checagens de perfil usadas pela interface antes de chamar o `StorageService`."""

from __future__ import annotations

from ..schemas import Role, User


def can_manage_users(user: User) -> bool:
    return user.role is Role.ADMIN


def can_edit_orders(user: User) -> bool:
    """Administradores e operadores alteram pedidos; vendedores só consultam."""
    return user.role in (Role.ADMIN, Role.OPERATOR)


def require_admin(user: User) -> None:
    if not can_manage_users(user):
        raise PermissionError(f"Usuário {user.name} não tem permissão de administrador.")


__all__ = ["can_manage_users", "can_edit_orders", "require_admin"]
