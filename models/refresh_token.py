"""
RefreshToken model: one row per issued refresh token.

Only the sha256 of the token is stored, so a leaked table cannot be replayed.
Fields:
- token_hash (unique, indexed)
- user_id (String(36)) - FK to users.id
- expires_at
- revoked, revoked_at
- replaced_by_id - set when the record was consumed by rotation

A record is usable iff revoked is false and now < expires_at.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, false
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

ACTIVE = "active"
ROTATED = "rotated"
REVOKED = "revoked"
EXPIRED = "expired"


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    revoked = Column(Boolean, default=False, server_default=false(), nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    replaced_by_id = Column(String(36), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index("ix_refresh_tokens_user_revoked", "user_id", "revoked"),
    )

    def state(self, now) -> str:
        if self.revoked:
            return ROTATED if self.replaced_by_id else REVOKED
        if now >= self.expires_at:
            return EXPIRED
        return ACTIVE

    def __repr__(self):
        return f"<RefreshToken id={self.id} user_id={self.user_id} revoked={self.revoked}>"
