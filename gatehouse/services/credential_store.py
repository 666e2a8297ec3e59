from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gatehouse.db.models import User

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    pass


class DuplicateUsername(StoreError):
    def __init__(self, username: str):
        super().__init__("Username already exists")
        self.username = username


class StoreUnavailable(StoreError):
    pass


class CredentialStore:
    """Owns the `users` table.

    Lookups never raise on not-found; they return None. `insert` is the only
    mutator and commits (or rolls back) as a single transaction.
    """

    def find_by_username(self, db: Session, username: str) -> Optional[User]:
        if not username:
            return None
        try:
            return db.execute(select(User).where(User.username == username)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailable("User lookup failed") from e

    def find_by_id(self, db: Session, user_id: int) -> Optional[User]:
        try:
            return db.get(User, int(user_id))
        except (TypeError, ValueError):
            return None
        except SQLAlchemyError as e:
            raise StoreUnavailable("User lookup failed") from e

    def insert(self, db: Session, *, username: str, password_hash: str) -> User:
        user = User(username=username, password_hash=password_hash)
        try:
            db.add(user)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            # Only the username constraint maps to DuplicateUsername; anything else is a store fault.
            if self._exists(db, username):
                raise DuplicateUsername(username) from e
            raise StoreUnavailable("Insert rejected by the database") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailable("Insert failed") from e

        db.refresh(user)
        return user

    def _exists(self, db: Session, username: str) -> bool:
        try:
            return self.find_by_username(db, username) is not None
        except StoreUnavailable:
            logger.warning("Could not confirm duplicate username after integrity error", exc_info=True)
            return False
