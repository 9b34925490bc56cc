"""
Refresh token ledger.

Records move Active -> Rotated | Revoked | Expired and never come back.
Lookups hash the presented token and only match usable rows, so a stale
record is indistinguishable from a missing one.

rotate() is the one multi-step write: a compare-and-swap UPDATE on the old
row (still unrevoked and unexpired) plus the INSERT of its replacement, in a
single transaction. Two concurrent rotations of the same row cannot both see
a row count of 1.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update

from models import storage
from models.refresh_token import RefreshToken
from utils import clock
from utils.security import hash_token

logger = logging.getLogger(__name__)


def store(token: str, user_id: str, expires_at: datetime) -> RefreshToken:
    """Persist the hash of a freshly minted token as an Active record."""
    record = RefreshToken(token_hash=hash_token(token), user_id=user_id, expires_at=expires_at)
    storage.new(record)
    storage.save()
    return record


def lookup(token: str) -> RefreshToken | None:
    if not token:
        return None
    session = storage.get_session()
    now = clock.utcnow()
    return (
        session.query(RefreshToken)
        .filter(
            RefreshToken.token_hash == hash_token(token),
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > now,
        )
        .first()
    )


def rotate(old_record_id: str, new_token: str, expires_at: datetime) -> RefreshToken | None:
    """
    Atomically retire ``old_record_id`` and store ``new_token`` in its place.
    Returns the new record, or None when the old one was no longer Active
    (already rotated by a concurrent request, revoked, or expired).
    """
    session = storage.get_session()
    now = clock.utcnow()
    old = storage.get(RefreshToken, old_record_id)
    if old is None:
        return None

    replacement = RefreshToken(
        token_hash=hash_token(new_token), user_id=old.user_id, expires_at=expires_at
    )
    try:
        result = session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.id == old_record_id,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > now,
            )
            .values(revoked=True, revoked_at=now, replaced_by_id=replacement.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            logger.warning("refresh token %s was %s at rotation", old_record_id, old.state(now))
            return None
        session.add(replacement)
        storage.save()
    except Exception:
        session.rollback()
        raise
    session.expire(old)
    logger.info("rotated refresh token %s -> %s", old_record_id, replacement.id)
    return replacement


def revoke_one(record_id: str) -> bool:
    session = storage.get_session()
    result = session.execute(
        update(RefreshToken)
        .where(RefreshToken.id == record_id, RefreshToken.revoked.is_(False))
        .values(revoked=True, revoked_at=clock.utcnow())
        .execution_options(synchronize_session=False)
    )
    storage.save()
    session.expire_all()
    return result.rowcount == 1


def revoke_all(user_id: str) -> int:
    """Revoke every unrevoked record of ``user_id``; returns how many."""
    session = storage.get_session()
    result = session.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .values(revoked=True, revoked_at=clock.utcnow())
        .execution_options(synchronize_session=False)
    )
    storage.save()
    session.expire_all()
    logger.info("revoked %d refresh token(s) for user %s", result.rowcount, user_id)
    return result.rowcount


def active_for_user(user_id: str) -> list[RefreshToken]:
    session = storage.get_session()
    return (
        session.query(RefreshToken)
        .filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > clock.utcnow(),
        )
        .all()
    )
