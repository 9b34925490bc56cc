"""
Single source of "now" for the auth core.

All timestamps are naive UTC datetimes, matching what SQLite hands back for
DateTime columns. Tests monkeypatch ``utcnow`` to simulate the passage of time,
so callers must go through the module attribute (``clock.utcnow()``).
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
