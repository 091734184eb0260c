from models.base_model import Base, BaseModel
from models.book import Book
from models.refresh_token import RefreshToken
from models.user import Role, User
from models.db_storage import DBStorage

__all__ = ["Base", "BaseModel", "Book", "RefreshToken", "Role", "User", "DBStorage"]
