from __future__ import annotations
from functools import wraps
from flask import request
from services.tokens import verify
from utils.errors import InvalidAccessToken


def bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise InvalidAccessToken("Missing or invalid Authorization header")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise InvalidAccessToken("Missing or invalid Authorization header")
    return token


def jwt_required():
    """
    Verify the bearer access token and hand the caller's Identity to the view
    as the ``identity`` keyword argument. Signature and expiry only; the
    refresh ledger is never consulted.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            kwargs["identity"] = verify(bearer_token())
            return fn(*args, **kwargs)

        return wrapper

    return decorator
