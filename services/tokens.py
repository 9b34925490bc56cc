"""
Token issuer: pairs a stateless access token with an opaque refresh token.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from services import ledger
from utils import clock
from utils.security import create_access_token, decode_token, generate_refresh_token


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }


@dataclass(frozen=True)
class Identity:
    """Who the caller is, as asserted by a verified access token."""

    user_id: str
    issued_at: int
    expires_at: int
    jti: str | None = None


def refresh_expiry() -> datetime:
    return clock.utcnow() + current_app.config["REFRESH_TOKEN_EXPIRES"]


def access_expires_in() -> int:
    return int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds())


def mint(user_id: str, refresh_token: str | None = None) -> TokenPair:
    """Mint a pair without touching the ledger."""
    return TokenPair(
        access_token=create_access_token(subject=user_id),
        refresh_token=refresh_token or generate_refresh_token(),
        expires_in=access_expires_in(),
    )


def issue_pair(user) -> TokenPair:
    """Mint a pair and record the refresh token's hash in the ledger."""
    pair = mint(str(user.id))
    ledger.store(pair.refresh_token, str(user.id), refresh_expiry())
    return pair


def verify(token: str) -> Identity:
    """Stateless check of an access token: raises TokenExpired or InvalidSignature."""
    claims = decode_token(token, expected_type="access")
    return Identity(
        user_id=claims["sub"],
        issued_at=claims["iat"],
        expires_at=claims["exp"],
        jti=claims.get("jti"),
    )
