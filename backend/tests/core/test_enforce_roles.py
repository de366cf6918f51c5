"""Role Enforcement — tests for admin-only checks and self-modification guards."""

from uuid import uuid4

import pytest

from qoro.core.domain_types import UserRole
from qoro.core.enforce_roles import check_admin, check_not_self
from qoro.core.errors import PermissionDeniedError


def test_admin_passes():
    check_admin(UserRole.ADMIN)
    check_admin("admin")


def test_member_blocked_with_default_message():
    with pytest.raises(PermissionDeniedError) as exc:
        check_admin("member")
    assert exc.value.message == "Apenas administradores podem realizar esta ação."


def test_member_blocked_with_custom_message():
    with pytest.raises(PermissionDeniedError) as exc:
        check_admin(UserRole.MEMBER, "Apenas administradores podem convidar usuários.")
    assert "convidar" in exc.value.message


def test_check_not_self():
    uid = uuid4()
    check_not_self(uid, uuid4(), "x")
    with pytest.raises(PermissionDeniedError):
        check_not_self(uid, uid, "Administradores não podem remover a si mesmos.")
