"""
Credential and session flows behind the /auth endpoints.

Each flow takes plain values, returns plain values, and raises one of the
utils.errors kinds; lookups below this layer report misses as None and are
collapsed here into the generic error for that path.
"""
from __future__ import annotations

import logging

from models.one_time_code import EMAIL_VERIFICATION
from services import credentials, ledger, otp, tokens
from services.tokens import TokenPair
from utils.errors import InvalidOrExpiredCode, InvalidRefreshToken
from utils.security import generate_refresh_token

logger = logging.getLogger(__name__)


def register(address: str, secret: str, profile: dict | None = None):
    """
    Create the user and open a first session. Returns (user, TokenPair).
    The user is committed before the refresh token is stored, so a ledger
    failure leaves a registered account without a session; the caller can log in.
    """
    user = credentials.register(address, secret, profile)
    return user, tokens.issue_pair(user)


def login(address: str, secret: str) -> TokenPair:
    user = credentials.authenticate(address, secret)
    logger.info("user %s logged in", user.id)
    return tokens.issue_pair(user)


def refresh(refresh_token: str) -> TokenPair:
    record = ledger.lookup(refresh_token)
    if record is None:
        raise InvalidRefreshToken()

    user = credentials.get_user(record.user_id)
    if user is None:
        raise InvalidRefreshToken()

    new_refresh = generate_refresh_token()
    replacement = ledger.rotate(record.id, new_refresh, tokens.refresh_expiry())
    if replacement is None:
        raise InvalidRefreshToken()
    return tokens.mint(str(user.id), refresh_token=new_refresh)


def logout(refresh_token: str | None) -> bool:
    """Revoke one session. Unknown, stale or missing tokens are a no-op."""
    record = ledger.lookup(refresh_token) if refresh_token else None
    if record is None:
        return False
    revoked = ledger.revoke_one(record.id)
    logger.info("user %s logged out", record.user_id)
    return revoked


def logout_everywhere(user_id: str) -> int:
    return ledger.revoke_all(user_id)


def request_email_verification(address: str) -> otp.IssuedCode | None:
    """
    Issue and send a verification code. Returns None, without telling the
    caller why, when the address is unknown or already verified.
    """
    user = credentials.find_by_email(address)
    if user is None or user.is_verified:
        return None
    return otp.email_verification.issue(str(user.id), user.email)


def confirm_email_verification(code: str):
    user_id = otp.email_verification.verify(code)
    if user_id is None or credentials.get_user(user_id) is None:
        raise InvalidOrExpiredCode()
    return credentials.mark_verified(user_id)


def request_password_reset(address: str) -> otp.IssuedCode | None:
    user = credentials.find_by_email(address)
    if user is None:
        return None
    return otp.password_reset.issue(str(user.id), user.email)


def resend_code(address: str, purpose: str) -> bool:
    """
    Send the live code of ``purpose`` again without re-issuing it. Returns
    False, and sends nothing, when the address is unknown, already verified
    (for email verification) or has no live code. A gateway failure raises
    DeliveryFailure.
    """
    user = credentials.find_by_email(address)
    if user is None or (purpose == EMAIL_VERIFICATION and user.is_verified):
        return False
    return otp.managers[purpose].redeliver(str(user.id), user.email)


def confirm_password_reset(code: str, new_secret: str) -> int:
    """
    Set the new password and revoke every refresh token of the user, so no
    new access token can be minted from a session opened with the old one.
    Returns the number of sessions revoked.
    """
    user_id = otp.password_reset.verify(code)
    if user_id is None or credentials.get_user(user_id) is None:
        raise InvalidOrExpiredCode(status=404)
    credentials.set_password(user_id, new_secret)
    revoked = ledger.revoke_all(user_id)
    logger.info("password reset for user %s; %d session(s) revoked", user_id, revoked)
    return revoked
