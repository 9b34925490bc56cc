"""
OneTimeCode model: short numeric codes proving control of an email address.

At most one live code exists per (user_id, purpose); a code value is unique
within its purpose so lookup by (code, purpose) resolves to a single user.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"
PURPOSES = (EMAIL_VERIFICATION, PASSWORD_RESET)


class OneTimeCode(BaseModel, Base):
    __tablename__ = "one_time_codes"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    purpose = Column(String(32), nullable=False)
    code = Column(String(16), nullable=False)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="one_time_codes")

    __table_args__ = (
        UniqueConstraint("user_id", "purpose", name="uq_one_time_codes_user_purpose"),
        UniqueConstraint("purpose", "code", name="uq_one_time_codes_purpose_code"),
        Index("ix_one_time_codes_code", "code"),
    )

    def is_expired(self, now) -> bool:
        return now >= self.expires_at

    def __repr__(self):
        return f"<OneTimeCode id={self.id} user_id={self.user_id} purpose={self.purpose}>"
