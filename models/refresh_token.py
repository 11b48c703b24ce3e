"""
RefreshToken model: server-side shadow of every issued refresh token so we
can validate, rotate and revoke them.
Fields:
- token_hash (unique) - SHA-256 of the token value, the raw token is never stored
- user_id (String(36)) - FK to users.id, indexed for bulk revocation
- issued_at, expires_at (indexed for purging expired rows)
- revoked, revoked_at
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index

from models.base_model import BaseModel, Base, utcnow


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    issued_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_refresh_tokens_user_active", "user_id", "revoked"),
    )

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} revoked={self.revoked}>"
