"""
security helpers:
- Argon2 hashing via argon2-cffi, used for passwords and refresh tokens alike
- access-token signing/verification via PyJWT
- unpredictable identifiers for refresh tokens and session families
"""
from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from models.user import Role
from utils.exceptions import TokenExpired, TokenMalformed


class Hasher:
    """One-way hash capability: hash(plaintext) -> digest, verify(plaintext, digest) -> bool."""

    def __init__(self, time_cost: int | None = None, memory_cost: int | None = None, parallelism: int | None = None):
        kwargs = {}
        if time_cost:
            kwargs["time_cost"] = time_cost
        if memory_cost:
            kwargs["memory_cost"] = memory_cost
        if parallelism:
            kwargs["parallelism"] = parallelism
        self._ph = PasswordHasher(**kwargs)

    def hash(self, plaintext: str) -> str:
        return self._ph.hash(plaintext)

    def verify(self, plaintext: str, digest: str) -> bool:
        try:
            return self._ph.verify(digest, plaintext)
        except (VerificationError, InvalidHashError):
            return False


def generate_refresh_token() -> Tuple[str, str]:
    """
    New refresh token as (record id, plaintext).
    The plaintext is `<record id>.<secret>`: the id selects one stored row,
    the secret (384 random bits, URL-safe) is what the argon2 digest proves.
    """
    record_id = str(uuid.uuid4())
    return record_id, f"{record_id}.{secrets.token_urlsafe(48)}"


def refresh_token_selector(token: str) -> str | None:
    """Record id carried in front of a refresh token; None when the token is not of that shape."""
    selector, sep, secret = token.partition(".")
    if not sep or not selector or not secret:
        return None
    return selector


def generate_family() -> str:
    """Session family identifier (UUIDv4, 122 random bits)."""
    return str(uuid.uuid4())


def generate_jti() -> str:
    """Access-token id (`jti` claim), 128 random bits as hex."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class AuthPayload:
    """Verified access-token claims."""

    id: str
    name: str
    email: str
    role: Role
    exp: datetime

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthPayload":
        try:
            return cls(
                id=str(claims["id"]),
                name=str(claims["name"]),
                email=str(claims["email"]),
                role=Role(claims["role"]),
                exp=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
            )
        except (KeyError, ValueError, TypeError):
            raise TokenMalformed()

    def public(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role.value}


class TokenCodec:
    """Stateless signer/verifier for short-lived access tokens (HS256 by default)."""

    def __init__(self, secret: str, algorithm: str = "HS256", issuer: str = "bookstore-api"):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer

    def sign(self, claims: Dict[str, Any], ttl: timedelta, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            **claims,
            "iss": self._issuer,
            "sub": str(claims.get("id", "")),
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "type": "access",
            "jti": generate_jti(),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str, expected_type: str = "access") -> Dict[str, Any]:
        """
        Decode and validate a JWT. Raises TokenExpired on an expired token and
        TokenMalformed on anything else (bad signature, garbage, wrong type).
        """
        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.InvalidTokenError:
            raise TokenMalformed()

        if decoded.get("type") != expected_type:
            raise TokenMalformed("Wrong token type.")
        return decoded
