"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT access token creation/verification via PyJWT
- opaque refresh tokens and their one-way hash
- numeric one-time codes
"""
from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from flask import current_app

from utils import clock
from utils.errors import InvalidSignature, TokenExpired

ph = PasswordHasher()

# Verified against when the address is unknown so both login failures cost the same
_DUMMY_HASH = ph.hash("not-a-real-password")


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """ Verify a plaintext password using argon2.

    A missing hash still runs a full verification against a dummy hash.
    """
    if password_hash is None:
        try:
            ph.verify(_DUMMY_HASH, password)
        except VerificationError:
            pass
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def password_needs_rehash(password_hash: str) -> bool:
    try:
        return ph.check_needs_rehash(password_hash)
    except InvalidHash:
        return True


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def create_access_token(subject: str, jti: str | None = None) -> str:
    """
    Mint a signed access token for ``subject``.
    Claims: iss, sub, iat, exp, type="access", jti.
    """
    jti = jti or generate_jti()
    now = clock.utcnow()
    exp = now + current_app.config["ACCESS_TOKEN_EXPIRES"]
    payload = {
        "iss": current_app.config.get("JWT_ISSUER", "cultural-auth-api"),
        "sub": str(subject),
        "iat": int(_timestamp(now)),
        "exp": int(_timestamp(exp)),
        "type": "access",
        "jti": jti,
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=current_app.config["JWT_ALGORITHM"])


def decode_token(token: str, expected_type: str = "access") -> Dict[str, Any]:
    """
    Decode and validate a JWT. Signature and expiry are the only checks; no
    database lookup happens here.
    Raises TokenExpired or InvalidSignature.
    """
    try:
        decoded = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            issuer=current_app.config.get("JWT_ISSUER", "cultural-auth-api"),
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError:
        raise InvalidSignature()

    if decoded.get("type") != expected_type:
        raise InvalidSignature("Wrong token type")
    return decoded


def generate_refresh_token() -> str:
    """Opaque refresh token; never persisted, only its hash is."""
    nbytes = max(16, int(current_app.config.get("REFRESH_TOKEN_BYTES", 32)))
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_numeric_code(length: int = 6) -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def _timestamp(naive_utc: datetime) -> float:
    # naive datetimes from clock.utcnow() are UTC
    return naive_utc.replace(tzinfo=timezone.utc).timestamp()
