"""
Credential store: persistence of User identities.
"""
from __future__ import annotations

from sqlalchemy import select

from models.db_storage import DBStorage, storage_errors
from models.user import Role, User
from utils.exceptions import DuplicateEmail


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    async def find_by_email(self, email: str) -> User | None:
        with storage_errors():
            async with self._storage.session() as session:
                return await session.scalar(
                    select(User).where(User.email == normalize_email(email))
                )

    async def find_by_id(self, user_id: str) -> User | None:
        with storage_errors():
            async with self._storage.session() as session:
                return await session.get(User, user_id)

    async def find_any_admin(self) -> User | None:
        with storage_errors():
            async with self._storage.session() as session:
                return await session.scalar(select(User).where(User.role == Role.ADMIN).limit(1))

    async def create(self, *, name: str, email: str, password_hash: str, role: Role = Role.USER) -> User:
        """Insert a user. A concurrent or repeated email fails with DuplicateEmail."""
        user = User(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
        )
        with storage_errors(duplicate=DuplicateEmail):
            async with self._storage.session() as session:
                async with session.begin():
                    session.add(user)
        return user
