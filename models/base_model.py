#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixin for the auth API models.

- UUID primary key (String(36)) with a Python-side default
- created_at / updated_at timestamps filled by the database

Notes:
- Server-side defaults (func.now()) keep timestamps consistent; on SQLite
  func.now() maps to CURRENT_TIMESTAMP.
- Models that need a clock-driven lifetime (refresh tokens, one-time codes)
  carry their own expires_at written from utils.clock, not from the database.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Attribute initialization via kwargs, without touching a session.
        The id is assigned eagerly so callers can reference a record before flush
        (the ledger links an old token to its replacement this way).
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"
