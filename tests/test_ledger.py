"""Tests for the refresh token ledger and the refresh flow."""

import threading
from datetime import timedelta

import pytest

from models import storage
from models.refresh_token import ACTIVE, EXPIRED, REVOKED, ROTATED, RefreshToken
from services import auth as auth_service
from services import credentials, ledger, tokens
from services.tokens import TokenPair
from utils.errors import InvalidRefreshToken
from utils.security import hash_token

from conftest import TEST_EMAIL, TEST_PASSWORD


@pytest.fixture
def pair(user):
    return tokens.issue_pair(user)


class TestStoreAndLookup:
    def test_only_hash_is_persisted(self, user, pair):
        record = ledger.lookup(pair.refresh_token)

        assert record.user_id == user.id
        assert record.token_hash == hash_token(pair.refresh_token)
        assert storage.get_session().query(RefreshToken).filter(
            RefreshToken.token_hash == pair.refresh_token
        ).first() is None

    def test_unknown_token(self, ctx):
        assert ledger.lookup("never-issued") is None
        assert ledger.lookup("") is None

    def test_expired_record_is_not_found(self, pair, clock):
        clock.advance(days=31)

        assert ledger.lookup(pair.refresh_token) is None

    def test_states(self, user, clock):
        now = clock()
        record = RefreshToken(
            token_hash="h", user_id=user.id, expires_at=now + timedelta(days=1)
        )

        assert record.state(now) == ACTIVE
        record.revoked = True
        assert record.state(now) == REVOKED
        record.replaced_by_id = "next"
        assert record.state(now) == ROTATED
        record.revoked = False
        record.replaced_by_id = None
        assert record.state(record.expires_at) == EXPIRED


class TestRotate:
    def test_rotation_replaces_record(self, user, pair):
        old = ledger.lookup(pair.refresh_token)

        new = ledger.rotate(old.id, "next-token", tokens.refresh_expiry())

        assert new is not None
        assert ledger.lookup(pair.refresh_token) is None
        assert ledger.lookup("next-token").id == new.id
        spent = storage.get(RefreshToken, old.id)
        assert spent.revoked is True
        assert spent.replaced_by_id == new.id

    def test_second_rotation_of_same_record_fails(self, pair):
        old = ledger.lookup(pair.refresh_token)
        ledger.rotate(old.id, "first", tokens.refresh_expiry())

        assert ledger.rotate(old.id, "second", tokens.refresh_expiry()) is None
        assert ledger.lookup("second") is None

    def test_revoked_record_cannot_rotate(self, pair):
        old = ledger.lookup(pair.refresh_token)
        ledger.revoke_one(old.id)

        assert ledger.rotate(old.id, "next", tokens.refresh_expiry()) is None


class TestRevocation:
    def test_revoke_one(self, pair):
        record = ledger.lookup(pair.refresh_token)

        assert ledger.revoke_one(record.id) is True
        assert ledger.revoke_one(record.id) is False
        assert ledger.lookup(pair.refresh_token) is None

    def test_revoke_all_only_touches_owner(self, user, ctx):
        other = credentials.register("b@x.com", TEST_PASSWORD)
        mine = [tokens.issue_pair(user) for _ in range(3)]
        theirs = tokens.issue_pair(other)

        assert ledger.revoke_all(user.id) == 3

        assert all(ledger.lookup(p.refresh_token) is None for p in mine)
        assert ledger.lookup(theirs.refresh_token) is not None
        assert ledger.active_for_user(user.id) == []


class TestRefreshFlow:
    def test_refresh_returns_new_pair(self, user, pair):
        new_pair = auth_service.refresh(pair.refresh_token)

        assert new_pair.refresh_token != pair.refresh_token
        assert tokens.verify(new_pair.access_token).user_id == user.id
        assert ledger.lookup(new_pair.refresh_token) is not None

    def test_spent_token_fails_even_before_expiry(self, pair):
        auth_service.refresh(pair.refresh_token)

        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh(pair.refresh_token)

    def test_revoked_token_fails(self, pair):
        auth_service.logout(pair.refresh_token)

        with pytest.raises(InvalidRefreshToken):
            auth_service.refresh(pair.refresh_token)

    def test_logout_tolerates_unknown_or_missing_token(self, ctx):
        assert auth_service.logout(None) is False
        assert auth_service.logout("never-issued") is False


def test_concurrent_refresh_has_single_winner(app):
    with app.app_context():
        user = credentials.register(TEST_EMAIL, TEST_PASSWORD)
        user_id = user.id
        pair = tokens.issue_pair(user)

    barrier = threading.Barrier(2)
    outcomes = []

    def worker():
        with app.app_context():
            barrier.wait()
            try:
                outcomes.append(auth_service.refresh(pair.refresh_token))
            except InvalidRefreshToken as exc:
                outcomes.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    winners = [o for o in outcomes if isinstance(o, TokenPair)]
    losers = [o for o in outcomes if isinstance(o, InvalidRefreshToken)]
    assert len(winners) == 1
    assert len(losers) == 1

    with app.app_context():
        active = ledger.active_for_user(user_id)
        assert len(active) == 1
        assert active[0].token_hash == hash_token(winners[0].refresh_token)
