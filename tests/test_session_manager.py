from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from gatehouse.db.models import User, WebSession
from gatehouse.services.credential_store import CredentialStore, StoreUnavailable
from gatehouse.services.session_manager import SessionManager


@pytest.fixture()
def sessions(store: CredentialStore) -> SessionManager:
    return SessionManager(store=store, ttl_s=3600)


@pytest.fixture()
def alice(db, store: CredentialStore) -> User:
    return store.insert(db, username="alice", password_hash="irrelevant")


def test_establish_and_resolve(db, sessions: SessionManager, alice: User):
    token = sessions.establish(db, alice)
    assert token

    user = sessions.resolve(db, token)
    assert user is not None
    assert user.id == alice.id


def test_only_token_digest_and_user_id_are_stored(db, sessions: SessionManager, alice: User):
    token = sessions.establish(db, alice)
    ws = db.execute(select(WebSession)).scalar_one()

    assert ws.user_id == alice.id
    assert ws.token_sha256 != token
    assert len(ws.token_sha256) == 64
    assert ws.expires_at is not None


def test_tokens_are_unique_per_establish(db, sessions: SessionManager, alice: User):
    assert sessions.establish(db, alice) != sessions.establish(db, alice)


def test_resolve_unknown_or_empty_token(db, sessions: SessionManager):
    assert sessions.resolve(db, "") is None
    assert sessions.resolve(db, "does-not-exist") is None


def test_terminate_is_final_and_idempotent(db, sessions: SessionManager, alice: User):
    token = sessions.establish(db, alice)
    sessions.terminate(db, token)
    assert sessions.resolve(db, token) is None

    # No-op on already terminated / unknown tokens.
    sessions.terminate(db, token)
    sessions.terminate(db, "does-not-exist")
    sessions.terminate(db, "")
    assert sessions.resolve(db, token) is None


def test_terminate_leaves_other_sessions_active(db, sessions: SessionManager, alice: User):
    first = sessions.establish(db, alice)
    second = sessions.establish(db, alice)
    sessions.terminate(db, first)

    assert sessions.resolve(db, first) is None
    assert sessions.resolve(db, second).id == alice.id


def test_resolve_fails_closed_when_user_deleted(db, sessions: SessionManager, alice: User):
    token = sessions.establish(db, alice)
    db.delete(alice)
    db.commit()

    assert sessions.resolve(db, token) is None


def test_resolve_returns_live_user_fields(db, sessions: SessionManager, alice: User):
    token = sessions.establish(db, alice)
    # Changed behind the session's back (e.g. by an administrator).
    alice.username = "alice2"
    db.commit()

    assert sessions.resolve(db, token).username == "alice2"


def test_expired_session_resolves_absent(db, store: CredentialStore, alice: User):
    sessions = SessionManager(store=store, ttl_s=60)
    token = sessions.establish(db, alice)

    ws = db.execute(select(WebSession)).scalar_one()
    ws.expires_at = dt.datetime.now(dt.timezone.utc) - dt.timedelta(seconds=1)
    db.commit()

    assert sessions.resolve(db, token) is None
    db.refresh(ws)
    assert ws.terminated_at is not None


def test_zero_ttl_means_no_expiry(db, store: CredentialStore, alice: User):
    sessions = SessionManager(store=store, ttl_s=0)
    token = sessions.establish(db, alice)

    ws = db.execute(select(WebSession)).scalar_one()
    assert ws.expires_at is None
    assert sessions.resolve(db, token).id == alice.id


def test_purge_removes_terminated_and_expired(db, sessions: SessionManager, alice: User):
    active = sessions.establish(db, alice)
    ended = sessions.establish(db, alice)
    sessions.establish(db, alice)
    sessions.terminate(db, ended)

    later = dt.datetime.now(dt.timezone.utc) + dt.timedelta(hours=2)
    assert sessions.purge(db) == 1
    assert sessions.resolve(db, active).id == alice.id

    # Everything left has expired by `later`.
    assert sessions.purge(db, now=later) == 2
    assert db.execute(select(WebSession)).scalars().all() == []


def _fail_commits(db, monkeypatch) -> None:
    def boom():
        raise OperationalError("UPDATE sessions", {}, Exception("db down"))

    monkeypatch.setattr(db, "commit", boom)


def test_terminate_store_failure_raises_store_unavailable(db, sessions: SessionManager, alice: User, monkeypatch):
    token = sessions.establish(db, alice)
    _fail_commits(db, monkeypatch)

    with pytest.raises(StoreUnavailable):
        sessions.terminate(db, token)

    monkeypatch.undo()
    assert sessions.resolve(db, token).id == alice.id


def test_dangling_session_store_failure_raises_store_unavailable(
    db, sessions: SessionManager, alice: User, monkeypatch
):
    token = sessions.establish(db, alice)
    db.delete(alice)
    db.commit()
    _fail_commits(db, monkeypatch)

    with pytest.raises(StoreUnavailable):
        sessions.resolve(db, token)
