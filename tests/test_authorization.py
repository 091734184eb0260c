from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.user import Role
from utils.decorators import authorize
from utils.exceptions import Forbidden, Unauthenticated
from utils.security import AuthPayload


def _payload(role: Role) -> AuthPayload:
    return AuthPayload(id="u-1", name="Ann", email="a@x.com", role=role, exp=datetime.now(timezone.utc))


def test_role_in_required_set_is_allowed() -> None:
    payload = _payload(Role.ADMIN)
    assert authorize(payload, [Role.ADMIN]) is payload
    assert authorize(_payload(Role.USER), [Role.ADMIN, Role.USER]).role is Role.USER


def test_role_outside_required_set_is_forbidden() -> None:
    with pytest.raises(Forbidden) as exc:
        authorize(_payload(Role.USER), [Role.ADMIN])
    assert exc.value.status == 403
    assert "admin" in exc.value.message


def test_missing_payload_is_unauthenticated() -> None:
    with pytest.raises(Unauthenticated) as exc:
        authorize(None, [Role.USER])
    assert exc.value.status == 401


def test_required_roles_accept_plain_values() -> None:
    assert authorize(_payload(Role.USER), ["user"]).role is Role.USER
