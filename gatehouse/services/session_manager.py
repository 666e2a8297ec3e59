from __future__ import annotations

import datetime as dt
import hashlib
import logging
import secrets
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gatehouse.db.models import User, WebSession
from gatehouse.services.credential_store import CredentialStore, StoreUnavailable

logger = logging.getLogger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=dt.timezone.utc)


class SessionManager:
    """Server-side sessions keyed by an opaque cookie token.

    Only the token's SHA-256 and the user id are stored. The user itself is
    looked up again on every `resolve()`, so a session never serves stale user
    fields and stops working as soon as the user row is gone.

    Lifecycle: Active (after `establish`) -> Terminated (logout or expiry).
    Terminated is final.
    """

    def __init__(self, *, store: CredentialStore, ttl_s: int = 0) -> None:
        self._store = store
        self._ttl_s = max(0, int(ttl_s))

    @property
    def ttl_s(self) -> int:
        return self._ttl_s

    @staticmethod
    def _sha256_hex(raw: str) -> str:
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def establish(self, db: Session, user: User) -> str:
        now = _utcnow()
        token = secrets.token_urlsafe(32)
        ws = WebSession(
            token_sha256=self._sha256_hex(token),
            user_id=int(user.id),
            created_at=now,
            expires_at=now + dt.timedelta(seconds=self._ttl_s) if self._ttl_s else None,
        )
        try:
            db.add(ws)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable("Could not persist session") from e
        return token

    def _active(self, db: Session, token: str) -> Optional[WebSession]:
        if not token:
            return None
        try:
            ws = db.execute(
                select(WebSession).where(WebSession.token_sha256 == self._sha256_hex(token))
            ).scalar_one_or_none()
            if ws is None or ws.terminated_at is not None:
                return None

            expires_at = _as_utc(ws.expires_at)
            if expires_at is not None and expires_at <= _utcnow():
                ws.terminated_at = _utcnow()
                db.commit()
                return None
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable("Session lookup failed") from e
        return ws

    @staticmethod
    def _mark_terminated(db: Session, ws: WebSession) -> None:
        try:
            ws.terminated_at = _utcnow()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable("Could not terminate session") from e

    def resolve(self, db: Session, token: str) -> Optional[User]:
        ws = self._active(db, token)
        if ws is None:
            return None

        user = self._store.find_by_id(db, ws.user_id)
        if user is None:
            logger.info("Session %s references missing user_id=%s", ws.id, ws.user_id)
            self._mark_terminated(db, ws)
            return None
        return user

    def terminate(self, db: Session, token: str) -> None:
        ws = self._active(db, token)
        if ws is None:
            return
        self._mark_terminated(db, ws)
        logger.info("Session %s terminated for user_id=%s", ws.id, ws.user_id)

    def purge(self, db: Session, *, now: Optional[dt.datetime] = None) -> int:
        """Delete terminated and expired sessions. Returns the number of rows removed."""
        now = now or _utcnow()
        result = db.execute(
            delete(WebSession)
            .where(
                or_(
                    WebSession.terminated_at.is_not(None),
                    WebSession.expires_at <= now,
                )
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
        count = int(result.rowcount or 0)
        if count:
            logger.info("Purged %s inactive sessions", count)
        return count
