from __future__ import annotations

import logging
from functools import wraps

from flask import current_app, g, request

from models.user import Role
from utils.exceptions import Forbidden, TokenMalformed, Unauthenticated
from utils.security import AuthPayload

logger = logging.getLogger(__name__)


def authorize(payload: AuthPayload | None, required_roles) -> AuthPayload:
    """
    Authorization gate. Allow when the verified payload's role is one of
    `required_roles`; a missing payload means the gate ran before
    authentication, which is reported as Unauthenticated.
    """
    if payload is None:
        logger.error("[AUTHORIZATION] role check called without authentication")
        raise Unauthenticated()
    allowed = frozenset(Role(r) for r in required_roles)
    if payload.role not in allowed:
        logger.warning(
            "[AUTHORIZATION DENIED] %s with role %r needs one of %s",
            payload.email,
            payload.role.value,
            sorted(r.value for r in allowed),
        )
        noun = "role" if len(allowed) == 1 else "one of roles"
        raise Forbidden(f"Access denied: requires {noun} '" + "' or '".join(sorted(r.value for r in allowed)) + "'")
    return payload


def bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise TokenMalformed("Authorization required. Provide Bearer token in Authorization header.")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise TokenMalformed("Authorization required. Provide Bearer token in Authorization header.")
    return token


def jwt_required():
    """Verify the Bearer access token and expose its claims as g.auth."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            sessions = current_app.extensions["bookstore"].sessions
            g.auth = sessions.verify_access_token(bearer_token())
            return current_app.ensure_sync(fn)(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(*required_roles: Role):
    """Allow access only if the authenticated user's role is one of `required_roles`."""
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            authorize(getattr(g, "auth", None), required_roles)
            return current_app.ensure_sync(fn)(*args, **kwargs)

        return wrapper

    return decorator
