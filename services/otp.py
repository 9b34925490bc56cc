"""
One-time code manager.

One instance per purpose. The manager only issues, delivers and consumes
codes; what a successful verification *means* (mark verified, reset a
password) is wired by the flows in services.auth.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import delete

from models import storage
from models.one_time_code import EMAIL_VERIFICATION, PASSWORD_RESET, OneTimeCode
from utils import clock
from utils.errors import DeliveryFailure
from utils.security import generate_numeric_code

logger = logging.getLogger(__name__)

# a fresh draw colliding with a live code of the same purpose is retried
MAX_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class IssuedCode:
    code: str
    user_id: str
    delivered: bool


class OtpManager:
    def __init__(self, purpose: str, expires_key: str, subject: str, body: str):
        self.purpose = purpose
        self.expires_key = expires_key
        self.subject = subject
        self.body = body

    def _lifetime(self):
        return current_app.config[self.expires_key]

    def _gateway(self):
        return current_app.extensions["notifier"]

    def _new_code(self, session) -> str:
        length = int(current_app.config.get("OTP_LENGTH", 6))
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_numeric_code(length)
            taken = (
                session.query(OneTimeCode.id)
                .filter(OneTimeCode.purpose == self.purpose, OneTimeCode.code == code)
                .first()
            )
            if taken is None:
                return code
        raise RuntimeError(f"could not draw a free {self.purpose} code")

    def issue(self, user_id: str, address: str) -> IssuedCode:
        """
        Replace any live code of this purpose for ``user_id`` and deliver the
        new one to ``address``. A failed delivery leaves the code valid.
        """
        session = storage.get_session()
        try:
            session.execute(
                delete(OneTimeCode)
                .where(OneTimeCode.user_id == user_id, OneTimeCode.purpose == self.purpose)
                .execution_options(synchronize_session=False)
            )
            record = OneTimeCode(
                user_id=user_id,
                purpose=self.purpose,
                code=self._new_code(session),
                expires_at=clock.utcnow() + self._lifetime(),
            )
            session.add(record)
            storage.save()
        except Exception:
            session.rollback()
            raise
        logger.info("issued %s code for user %s", self.purpose, user_id)

        delivered = self.deliver(record, address)
        return IssuedCode(code=record.code, user_id=user_id, delivered=delivered)

    def deliver(self, record: OneTimeCode, address: str) -> bool:
        minutes = int(self._lifetime().total_seconds() // 60)
        body = self.body.format(code=record.code, minutes=minutes)
        delivered = self._gateway().deliver(address, self.subject, body)
        if not delivered:
            logger.warning("%s code for user %s was not delivered", self.purpose, record.user_id)
        return delivered

    def live_code(self, user_id: str) -> OneTimeCode | None:
        session = storage.get_session()
        record = (
            session.query(OneTimeCode)
            .filter(OneTimeCode.user_id == user_id, OneTimeCode.purpose == self.purpose)
            .first()
        )
        if record is None or record.is_expired(clock.utcnow()):
            return None
        return record

    def redeliver(self, user_id: str, address: str) -> bool:
        """
        Send the current live code again without re-issuing it. Returns False
        when there is no live code; raises DeliveryFailure if sending fails.
        """
        record = self.live_code(user_id)
        if record is None:
            return False
        if not self.deliver(record, address):
            raise DeliveryFailure()
        return True

    def verify(self, code: str) -> str | None:
        """
        Consume ``code``. Returns the owning user id, or None when the code is
        unknown or expired. Expired codes are deleted on sight.
        """
        if not code:
            return None
        session = storage.get_session()
        record = (
            session.query(OneTimeCode)
            .filter(OneTimeCode.code == code, OneTimeCode.purpose == self.purpose)
            .first()
        )
        if record is None:
            logger.warning("unknown %s code presented", self.purpose)
            return None

        expired = record.is_expired(clock.utcnow())
        # single use: the delete decides the winner when two requests race
        result = session.execute(
            delete(OneTimeCode)
            .where(OneTimeCode.id == record.id)
            .execution_options(synchronize_session=False)
        )
        storage.save()
        session.expunge(record)
        if expired or result.rowcount != 1:
            logger.warning("expired or spent %s code for user %s", self.purpose, record.user_id)
            return None
        return record.user_id


email_verification = OtpManager(
    EMAIL_VERIFICATION,
    "EMAIL_VERIFICATION_CODE_EXPIRES",
    subject="Verify Your Email - Your OTP Code",
    body="Your verification code is: {code}\nIt expires in {minutes} minutes.",
)

password_reset = OtpManager(
    PASSWORD_RESET,
    "PASSWORD_RESET_CODE_EXPIRES",
    subject="Reset Your Password - Your OTP Code",
    body=(
        "Your password reset code is: {code}\nIt expires in {minutes} minutes.\n"
        "If you did not ask for a reset, ignore this message."
    ),
)

managers = {
    EMAIL_VERIFICATION: email_verification,
    PASSWORD_RESET: password_reset,
}
