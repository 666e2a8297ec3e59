from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from gatehouse.db.models import User
from gatehouse.services.credential_store import CredentialStore, StoreUnavailable
from gatehouse.services.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."
INTERNAL_ERROR = "Something went wrong. Please try again."

USERNAME_MAX_LENGTH = 150
PASSWORD_MIN_LENGTH = 6


class AuthError(RuntimeError):
    pass


class CredentialError(AuthError):
    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS)


class AuthInternalError(AuthError):
    def __init__(self) -> None:
        super().__init__(INTERNAL_ERROR)


class ValidationError(AuthError):
    def __init__(self, messages: List[str]):
        super().__init__("; ".join(messages))
        self.messages = list(messages)


@dataclass(frozen=True)
class AuthOutcome:
    user: Optional[User] = None
    error: Optional[AuthError] = None

    @property
    def accepted(self) -> bool:
        return self.user is not None and self.error is None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""


def validate_registration(username: str, password: str, confirm_password: str) -> List[str]:
    """Return every violated rule, in form order. Empty list means valid."""
    errors: List[str] = []
    username = username or ""
    password = password or ""

    if not username.strip():
        errors.append("Username is required.")
    elif len(username) > USERNAME_MAX_LENGTH:
        errors.append(f"Username must be at most {USERNAME_MAX_LENGTH} characters.")

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.")

    if (confirm_password or "") != password:
        errors.append("Passwords do not match.")

    return errors


class AuthService:
    """Local username/password strategy plus account registration.

    Both login failure paths (unknown user, wrong password) produce the same
    CredentialError and both pay for one hash verification.
    """

    def __init__(self, *, store: CredentialStore, hasher: PasswordHasher) -> None:
        self._store = store
        self._hasher = hasher
        # Verified against when the username does not exist.
        self._dummy_hash = hasher.hash("gatehouse-dummy-password")

    def authenticate(self, db: Session, *, username: str, password: str) -> AuthOutcome:
        try:
            user = self._store.find_by_username(db, username)
        except StoreUnavailable:
            logger.exception("Credential store unavailable during login")
            return AuthOutcome(error=AuthInternalError())

        if user is None:
            self._hasher.verify(password or "", self._dummy_hash)
            logger.info("Login rejected for username=%r", username)
            return AuthOutcome(error=CredentialError())

        if not self._hasher.verify(password or "", user.password_hash):
            logger.info("Login rejected for username=%r", username)
            return AuthOutcome(error=CredentialError())

        if self._hasher.needs_rehash(user.password_hash):
            logger.info("Password hash for user_id=%s uses outdated parameters", user.id)

        logger.info("Login accepted for user_id=%s", user.id)
        return AuthOutcome(user=user)

    def register(self, db: Session, *, username: str, password: str, confirm_password: str) -> User:
        """Validate, hash and insert a new user.

        Raises ValidationError (all violations at once), DuplicateUsername or StoreUnavailable.
        """
        errors = validate_registration(username, password, confirm_password)
        if errors:
            raise ValidationError(errors)

        password_hash = self._hasher.hash(password)
        user = self._store.insert(db, username=username, password_hash=password_hash)
        logger.info("Registered user_id=%s", user.id)
        return user
