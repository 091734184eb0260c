"""
RefreshToken model: one issued refresh token.

Fields:
- user_id (String(36)) - FK to users.id
- token_hash: argon2 digest of the plaintext handed to the client (unique)
- family: session identifier shared by every token of one rotation chain
- expires_at: absolute expiry
- revoked_at: set by logout / logout-all / reuse detection
- replaced_by_hash: set exactly once, when the token is rotated away
- ip_address, user_agent: audit only
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(255), nullable=False, unique=True)
    family = Column(String(64), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    replaced_by_hash = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    __table_args__ = (
        Index("ix_refresh_tokens_family_revoked", "family", "revoked_at"),
    )

    @property
    def is_spent(self) -> bool:
        return self.replaced_by_hash is not None

    def __repr__(self):
        return f"<RefreshToken id={self.id} family={self.family} revoked={self.revoked_at is not None}>"
