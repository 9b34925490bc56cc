"""
Credential store: owns User records and their password hashes.

authenticate() raises the same InvalidCredentials for an unknown address and
for a wrong password, and spends the same argon2 work in both cases.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from models import storage
from models.user import User
from utils.errors import DuplicateAddress, InvalidCredentials
from utils.security import hash_password, password_needs_rehash, verify_password

logger = logging.getLogger(__name__)


def normalize_email(address: str) -> str:
    return address.strip().lower()


def redact_email(address: str) -> str:
    """ab***@domain form for logs."""
    if not address or "@" not in address:
        return "redacted"
    local, domain = address.split("@", 1)
    return f"{local[:2]}***@{domain}"


def find_by_email(address: str) -> User | None:
    session = storage.get_session()
    return session.query(User).filter(User.email == normalize_email(address)).first()


def get_user(user_id: str) -> User | None:
    return storage.get(User, user_id)


def register(address: str, secret: str, profile: dict | None = None) -> User:
    email = normalize_email(address)
    if find_by_email(email):
        raise DuplicateAddress()

    profile = profile or {}
    user = User(
        email=email,
        password_hash=hash_password(secret),
        full_name=profile.get("full_name"),
        is_verified=False,
    )
    storage.new(user)
    try:
        storage.save()
    except IntegrityError:
        # lost a race with a concurrent registration of the same address
        raise DuplicateAddress()
    logger.info("registered user %s (%s)", user.id, redact_email(email))
    return user


def authenticate(address: str, secret: str) -> User:
    user = find_by_email(address)
    if not verify_password(secret, user.password_hash if user else None):
        logger.warning("failed login for %s", redact_email(normalize_email(address)))
        raise InvalidCredentials()

    if password_needs_rehash(user.password_hash):
        user.password_hash = hash_password(secret)
        storage.new(user)
        storage.save()
        logger.info("rehashed password for user %s", user.id)
    return user


def set_password(user_id: str, new_secret: str) -> User:
    """Replace the hash. Revoking sessions is the calling flow's job."""
    user = get_user(user_id)
    if user is None:
        raise LookupError(f"user {user_id} does not exist")
    user.password_hash = hash_password(new_secret)
    storage.new(user)
    storage.save()
    logger.info("password changed for user %s", user.id)
    return user


def mark_verified(user_id: str) -> User:
    user = get_user(user_id)
    if user is None:
        raise LookupError(f"user {user_id} does not exist")
    if not user.is_verified:
        user.is_verified = True
        storage.new(user)
        storage.save()
        logger.info("email verified for user %s", user.id)
    return user
