"""
Session manager: login, refresh-token rotation with reuse detection,
logout and logout-all.

Lifecycle of a refresh token (one RefreshToken row):

    login ──> live ──refresh──> replaced (spent) ──replayed──> family revoked
               │
               ├──logout / logout-all──> revoked
               └──expires_at passes────> unusable, later purged

Every login starts a new *family*; each refresh inserts a successor in the
same family and marks its parent `replaced_by_hash`. At most one row per
family is live and not replaced at any time. Presenting a replaced token is
treated as theft: the whole family is revoked (see DESIGN.md).

A refresh token reads `<row id>.<secret>`. The row id selects the single
record to check, so a presented token costs one argon2 verification at most.

The manager is the only code that changes RefreshToken state. All storage
calls are awaited; argon2 work runs in a worker thread so it does not stall
the event loop.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from models.base_model import utcnow
from models.refresh_token import RefreshToken
from models.refresh_token_store import RefreshTokenStore
from models.user import Role, User
from models.user_store import UserStore
from utils.exceptions import (
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidToken,
    MissingCredentials,
    TokenReuseDetected,
    UserNotFound,
)
from utils.security import (
    AuthPayload,
    Hasher,
    TokenCodec,
    generate_family,
    generate_refresh_token,
    refresh_token_selector,
)

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=7)


@dataclass(frozen=True)
class ClientMeta:
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    family: str
    user: dict


@dataclass(frozen=True)
class RefreshResult:
    access_token: str
    refresh_token: str
    family: str


class SessionManager:
    def __init__(
        self,
        users: UserStore,
        records: RefreshTokenStore,
        hasher: Hasher,
        codec: TokenCodec,
        access_ttl: timedelta = ACCESS_TOKEN_TTL,
        refresh_ttl: timedelta = REFRESH_TOKEN_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._users = users
        self._records = records
        self._hasher = hasher
        self._codec = codec
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._clock = clock
        self._dummy_hash: str | None = None

    @property
    def refresh_ttl(self) -> timedelta:
        return self._refresh_ttl

    # hashing helpers (CPU bound, off the event loop)

    async def _hash(self, plaintext: str) -> str:
        return await asyncio.to_thread(self._hasher.hash, plaintext)

    async def _verify(self, plaintext: str, digest: str) -> bool:
        return await asyncio.to_thread(self._hasher.verify, plaintext, digest)

    def _mint_access_token(self, user: User, now: datetime) -> str:
        return self._codec.sign(user.public(), self._access_ttl, now=now)

    # registration

    async def register(self, *, name: str, email: str, password: str, role: Role = Role.USER) -> dict:
        """Create a user; DuplicateEmail comes straight from the store's unique constraint."""
        user = await self._users.create(
            name=name, email=email, password_hash=await self._hash(password), role=role
        )
        logger.info("[USER REGISTERED] %s role=%s", user.email, role.value)
        return user.public()

    # operations

    async def login(self, email: str, password: str, client: ClientMeta | None = None) -> LoginResult:
        client = client or ClientMeta()
        user = await self._users.find_by_email(email)
        if user is None:
            # Spend the same hashing time as a real check
            if self._dummy_hash is None:
                self._dummy_hash = await self._hash(generate_refresh_token()[1])
            await self._verify(password, self._dummy_hash)
            logger.info("[LOGIN FAILED] %s", email)
            raise InvalidCredentials()
        if not await self._verify(password, user.password_hash):
            logger.info("[LOGIN FAILED] %s", user.email)
            raise InvalidCredentials()

        now = self._clock()
        token_id, refresh_plain = generate_refresh_token()
        family = generate_family()
        await self._records.create_record(
            token_id=token_id,
            user_id=user.id,
            token_hash=await self._hash(refresh_plain),
            family=family,
            expires_at=now + self._refresh_ttl,
            now=now,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        logger.info("[LOGIN SUCCESS] %s family=%s", user.email, family)
        return LoginResult(
            access_token=self._mint_access_token(user, now),
            refresh_token=refresh_plain,
            family=family,
            user=user.public(),
        )

    async def _find_presented(self, refresh_token: str, family: str, now: datetime) -> RefreshToken | None:
        """
        The live row the presented token names, or None when the token names
        no live row of `family` or its secret does not match. Costs at most one
        argon2 verification however long the family's history is.
        """
        record_id = refresh_token_selector(refresh_token)
        if record_id is None:
            return None
        record = await self._records.find_live_by_id(record_id, family, now)
        if record is None or not await self._verify(refresh_token, record.token_hash):
            return None
        return record

    async def refresh(
        self, refresh_token: str | None, family: str | None, client: ClientMeta | None = None
    ) -> RefreshResult:
        if not refresh_token or not family:
            raise MissingCredentials()
        client = client or ClientMeta()
        now = self._clock()

        record = await self._find_presented(refresh_token, family, now)
        if record is None:
            if await self._records.find_active_by_family(family, now) is None:
                raise InvalidOrExpiredToken()
            raise InvalidToken()
        if record.is_spent:
            await self._revoke_on_reuse(family, now)
            raise TokenReuseDetected()

        user = await self._users.find_by_id(record.user_id)
        if user is None:
            raise UserNotFound()

        new_id, new_plain = generate_refresh_token()
        successor = await self._records.rotate(
            record.id,
            now,
            token_id=new_id,
            user_id=user.id,
            token_hash=await self._hash(new_plain),
            family=family,
            expires_at=now + self._refresh_ttl,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        if successor is None:
            # Lost the race against a concurrent rotation of the same token
            await self._revoke_on_reuse(family, now)
            raise TokenReuseDetected()

        logger.info("[TOKEN ROTATED] user=%s family=%s", user.id, family)
        return RefreshResult(
            access_token=self._mint_access_token(user, now),
            refresh_token=new_plain,
            family=family,
        )

    async def _revoke_on_reuse(self, family: str, now: datetime) -> None:
        revoked = await self._records.revoke_family(family, now)
        logger.warning("[TOKEN REUSE DETECTED] family=%s revoked=%s", family, revoked)

    async def logout(self, refresh_token: str | None, family: str | None) -> None:
        """Never fails on unknown, spent or already revoked sessions."""
        if not refresh_token or not family:
            return
        now = self._clock()
        record = await self._find_presented(refresh_token, family, now)
        if record is None:
            return
        await self._records.revoke_family(family, now)
        logger.info("[LOGOUT] user=%s family=%s", record.user_id, family)

    async def logout_all_devices(self, user_id: str) -> int:
        """Revoke every session of `user_id`; the caller must already be that user."""
        revoked = await self._records.revoke_all_for_user(user_id, self._clock())
        logger.info("[LOGOUT ALL] user=%s revoked=%s", user_id, revoked)
        return revoked

    def verify_access_token(self, token: str) -> AuthPayload:
        """Signature and expiry only; no storage lookup."""
        return AuthPayload.from_claims(self._codec.decode(token))

    async def list_sessions(self, user_id: str) -> list[RefreshToken]:
        return await self._records.list_active_for_user(user_id, self._clock())

    async def purge_expired(self) -> int:
        purged = await self._records.purge_expired(self._clock())
        logger.info("[SESSIONS PURGED] %s", purged)
        return purged
