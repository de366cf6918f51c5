"""Role Enforcement — admin-only operations and self-modification guards."""

from qoro.core.domain_types import UserRole
from qoro.core.errors import PermissionDeniedError


def check_admin(role: str | UserRole, message: str | None = None) -> None:
    if role != UserRole.ADMIN:
        raise PermissionDeniedError(
            message or "Apenas administradores podem realizar esta ação.",
        )


def check_not_self(actor_id, target_id, message: str) -> None:
    """Admins cannot change their own permissions or remove themselves."""
    if actor_id == target_id:
        raise PermissionDeniedError(message)
