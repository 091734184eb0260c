"""
DBStorage: the process-wide database handle.

Owns the async engine and the session factory. It is created explicitly by
the application factory (or by tests) and handed to the stores; nothing in
the code base reads connection state from a module global.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from os import getenv

from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from models.base_model import Base
# Model modules register their tables on Base.metadata for reload()
from models.book import Book  # noqa: F401
from models.refresh_token import RefreshToken  # noqa: F401
from models.user import User  # noqa: F401
from utils.exceptions import AppError, StorageUnavailable

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///book-store.db"



class DBStorage:
    __engine = None
    __session_factory = None

    def __init__(self, url: str | None = None, timeout: float = 5, echo: bool = False):
        """Build the engine; no connection is opened until first use."""
        url = url or getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        backend = url.split(":", 1)[0]

        if backend.startswith("sqlite"):
            # sqlite3 busy timeout: how long a writer waits for the lock
            connect_args = {"timeout": timeout}
        elif backend.startswith("postgresql"):
            connect_args = {"timeout": timeout, "command_timeout": timeout}
        else:
            connect_args = {}

        # Each Flask async view runs on a fresh event loop, so connections
        # are never pooled across requests.
        self.__engine = create_async_engine(
            url, echo=echo, poolclass=NullPool, connect_args=connect_args
        )

        if self.__engine.url.get_backend_name() == "sqlite":
            sync_engine = self.__engine.sync_engine

            @event.listens_for(sync_engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                # Take over transaction control from the driver
                dbapi_connection.isolation_level = None
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            @event.listens_for(sync_engine, "begin")
            def _begin_immediate(conn):
                # Writers serialize at BEGIN instead of failing at COMMIT
                conn.exec_driver_sql("BEGIN IMMEDIATE")

        self.__session_factory = async_sessionmaker(
            bind=self.__engine, expire_on_commit=False, class_=AsyncSession
        )

    async def reload(self):
        """Create tables"""
        async with self.__engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def session(self) -> AsyncSession:
        """New AsyncSession; use as `async with storage.session() as s:`."""
        return self.__session_factory()

    async def get(self, cls, id):
        """Fetch one object by model class and primary key"""
        async with self.session() as session:
            return await session.get(cls, id)

    async def ping(self) -> bool:
        """Round trip to the database (readiness check)."""
        with storage_errors():
            async with self.session() as session:
                return await session.scalar(text("SELECT 1")) == 1

    async def close(self):
        """Dispose the engine (application / test teardown)"""
        await self.__engine.dispose()


@contextmanager
def storage_errors(duplicate: type[AppError] | None = None):
    """
    Translate driver failures into application errors at the store boundary.
    - unique-constraint violations -> `duplicate` (when given)
    - connection / lock / timeout failures -> StorageUnavailable
    """
    try:
        yield
    except IntegrityError as exc:
        if duplicate is not None and "unique" in str(getattr(exc, "orig", exc)).lower():
            raise duplicate() from exc
        raise
    except (OperationalError, InterfaceError, asyncio.TimeoutError) as exc:
        logger.error("Storage unavailable: %s", exc.__class__.__name__)
        raise StorageUnavailable() from exc
