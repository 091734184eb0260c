"""
Catalog store: persistence of Book rows.
"""
from __future__ import annotations

from typing import Tuple

from sqlalchemy import func, or_, select

from models.base_model import utcnow
from models.book import Book
from models.db_storage import DBStorage, storage_errors
from utils.exceptions import DuplicateIsbn, NotFound

SEARCH_LIMIT = 20


class BookStore:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    async def list_books(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        fanzine: bool | None = None,
        latest_book: bool | None = None,
    ) -> Tuple[list[Book], int]:
        """Newest first, optional flag filters. Returns (rows, total)."""
        query = select(Book)
        if fanzine is not None:
            query = query.where(Book.fanzine == fanzine)
        if latest_book is not None:
            query = query.where(Book.latest_book == latest_book)

        with storage_errors():
            async with self._storage.session() as session:
                total = await session.scalar(select(func.count()).select_from(query.subquery()))
                rows = await session.scalars(
                    query.order_by(Book.created_at.desc()).offset((page - 1) * limit).limit(limit)
                )
                return list(rows), total

    async def search(self, term: str) -> list[Book]:
        # Case-insensitive substring across title/author/editorial, or exact ISBN
        like = f"%{term.lower()}%"
        query = (
            select(Book)
            .where(
                or_(
                    func.lower(Book.title).like(like),
                    func.lower(Book.first_name).like(like),
                    func.lower(Book.last_name).like(like),
                    func.lower(Book.editorial).like(like),
                    Book.isbn == term.upper(),
                )
            )
            .order_by(Book.title.asc())
            .limit(SEARCH_LIMIT)
        )
        with storage_errors():
            async with self._storage.session() as session:
                return list(await session.scalars(query))

    async def get(self, book_id: str) -> Book:
        with storage_errors():
            book = await self._storage.get(Book, book_id)
        if book is None:
            raise NotFound("Book not found")
        return book

    async def create(self, data: dict) -> Book:
        book = Book(**data)
        with storage_errors(duplicate=DuplicateIsbn):
            async with self._storage.session() as session:
                async with session.begin():
                    session.add(book)
        return book

    async def update(self, book_id: str, data: dict) -> Book:
        with storage_errors(duplicate=DuplicateIsbn):
            async with self._storage.session() as session:
                async with session.begin():
                    book = await session.get(Book, book_id)
                    if book is None:
                        raise NotFound("Book not found")
                    for field, value in data.items():
                        setattr(book, field, value)
                    book.updated_at = utcnow()
        return book

    async def delete(self, book_id: str) -> Book:
        with storage_errors():
            async with self._storage.session() as session:
                async with session.begin():
                    book = await session.get(Book, book_id)
                    if book is None:
                        raise NotFound("Book not found")
                    await session.delete(book)
        return book
