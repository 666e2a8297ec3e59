from __future__ import annotations

from argon2 import PasswordHasher as _Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher:
    """One-way adaptive password hashing (argon2id).

    The cost parameters are fixed at construction time and never depend on the
    input. Every `hash()` call draws a fresh random salt, and the encoded result
    carries the algorithm, parameters, salt and digest, so `verify()` needs
    nothing but the stored string.
    """

    def __init__(self, *, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4) -> None:
        self._hasher = _Argon2Hasher(
            time_cost=int(time_cost),
            memory_cost=int(memory_cost),
            parallelism=int(parallelism),
        )

    def hash(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("Cannot hash an empty password")
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, encoded_hash: str) -> bool:
        # Mismatch and malformed hashes both read as "no": callers never learn which.
        if not plaintext or not encoded_hash:
            return False
        try:
            return self._hasher.verify(encoded_hash, plaintext)
        except (VerificationError, InvalidHashError, UnicodeError):
            return False

    def needs_rehash(self, encoded_hash: str) -> bool:
        try:
            return self._hasher.check_needs_rehash(encoded_hash)
        except (InvalidHashError, ValueError):
            return True
