import enum

from sqlalchemy import Column, String, Enum

from models.base_model import Base, BaseModel


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class User(BaseModel, Base):
    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    # Stored trimmed and lower-cased; uniqueness enforced here, not in code
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER,
    )

    def public(self) -> dict:
        """Projection safe to return to clients and to embed in access tokens."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": Role(self.role).value,
        }

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={Role(self.role).value}>"
