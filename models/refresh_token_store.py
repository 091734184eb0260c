"""
Session record store: persistence of RefreshToken rows.

All queries that decide whether a token may still be used filter on
`revoked_at IS NULL AND expires_at > now`, so an expired row is never
accepted even before `purge_expired` has removed it.

The only mutation of a live row besides revocation is `replaced_by_hash`,
written through a conditional UPDATE that succeeds only while the column is
still NULL. Two concurrent rotations of the same row therefore cannot both
win.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.db_storage import DBStorage, storage_errors
from models.refresh_token import RefreshToken


def _live(now: datetime):
    return (RefreshToken.revoked_at.is_(None), RefreshToken.expires_at > now)


class RefreshTokenStore:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    @staticmethod
    def _new_record(
        *,
        user_id: str,
        token_hash: str,
        family: str,
        expires_at: datetime,
        now: datetime,
        token_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> RefreshToken:
        return RefreshToken(
            id=token_id,
            user_id=user_id,
            token_hash=token_hash,
            family=family,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent[:512] if user_agent else None,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    async def _mark_replaced(session: AsyncSession, record_id: str, new_hash: str, now: datetime) -> bool:
        result = await session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.id == record_id,
                RefreshToken.replaced_by_hash.is_(None),
                *_live(now),
            )
            .values(replaced_by_hash=new_hash, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def create_record(self, **fields) -> RefreshToken:
        record = self._new_record(**fields)
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    session.add(record)
        return record

    async def find_active_by_family(self, family: str, now: datetime) -> RefreshToken | None:
        """The current (not yet rotated) live token of a session, if any."""
        with storage_errors():
            async with self._storage.session() as session:
                return await session.scalar(
                    select(RefreshToken)
                    .where(RefreshToken.family == family, RefreshToken.replaced_by_hash.is_(None), *_live(now))
                    .order_by(RefreshToken.created_at.desc())
                    .limit(1)
                )

    async def find_live_by_id(self, record_id: str, family: str, now: datetime) -> RefreshToken | None:
        """Live row of `family` with this id, rotated or not; None when unknown, revoked or expired."""
        with storage_errors():
            async with self._storage.session() as session:
                return await session.scalar(
                    select(RefreshToken).where(
                        RefreshToken.id == record_id, RefreshToken.family == family, *_live(now)
                    )
                )

    async def list_active_for_user(self, user_id: str, now: datetime) -> list[RefreshToken]:
        """Current token of each live session owned by the user."""
        with storage_errors():
            async with self._storage.session() as session:
                rows = await session.scalars(
                    select(RefreshToken)
                    .where(RefreshToken.user_id == user_id, RefreshToken.replaced_by_hash.is_(None), *_live(now))
                    .order_by(RefreshToken.created_at.desc())
                )
                return list(rows)

    async def mark_replaced(self, record_id: str, new_hash: str, now: datetime) -> bool:
        """False means conflict: the row was already rotated, revoked or expired."""
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    return await self._mark_replaced(session, record_id, new_hash, now)

    async def rotate(self, record_id: str, now: datetime, **fields) -> RefreshToken | None:
        """
        Mark `record_id` as replaced and insert its successor in one transaction.
        Returns the new row, or None when another rotation got there first.
        """
        record = self._new_record(now=now, **fields)
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    if not await self._mark_replaced(session, record_id, record.token_hash, now):
                        return None
                    session.add(record)
        return record

    async def revoke(self, record_id: str, now: datetime) -> bool:
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    result = await session.execute(
                        update(RefreshToken)
                        .where(RefreshToken.id == record_id, RefreshToken.revoked_at.is_(None))
                        .values(revoked_at=now, updated_at=now)
                        .execution_options(synchronize_session=False)
                    )
                    return result.rowcount == 1

    async def revoke_family(self, family: str, now: datetime) -> int:
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    result = await session.execute(
                        update(RefreshToken)
                        .where(RefreshToken.family == family, RefreshToken.revoked_at.is_(None))
                        .values(revoked_at=now, updated_at=now)
                        .execution_options(synchronize_session=False)
                    )
                    return result.rowcount

    async def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    result = await session.execute(
                        update(RefreshToken)
                        .where(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
                        .values(revoked_at=now, updated_at=now)
                        .execution_options(synchronize_session=False)
                    )
                    return result.rowcount

    async def purge_expired(self, now: datetime) -> int:
        """Time-based sweep: delete rows whose expiry has passed."""
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(RefreshToken)
                        .where(RefreshToken.expires_at <= now)
                        .execution_options(synchronize_session=False)
                    )
                    return result.rowcount
