from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    Boolean,
    CheckConstraint,
    Index,
)

from models.base_model import BaseModel, Base


class Book(BaseModel, Base):
    __tablename__ = "books"

    img = Column(String(512), nullable=False)
    # Stored upper-cased without separators; uniqueness enforced here
    isbn = Column(String(13), nullable=False, unique=True, index=True)
    title = Column(String(200), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    editorial = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    latest_book = Column(Boolean, nullable=False, default=False)
    fanzine = Column(Boolean, nullable=False, default=False)
    url = Column(String(512), nullable=False)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_books_stock_nonnegative"),
        CheckConstraint("price >= 0", name="ck_books_price_nonnegative"),
        Index("ix_books_title", "title"),
        Index("ix_books_fanzine_latest", "fanzine", "latest_book"),
    )

    @property
    def author_full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def in_stock(self) -> bool:
        return (self.stock or 0) > 0
