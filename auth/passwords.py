"""
auth/passwords.py -- Password hashing.

bcrypt is used directly rather than through passlib[bcrypt]: passlib's
wrap-bug detection feeds bcrypt 4.x a password longer than 72 bytes, which
it rejects with an explicit error.

bcrypt only reads the first 72 bytes of a password, and bcrypt 5 raises
ValueError for anything longer. BcryptPasswordHasher truncates the UTF-8
encoding to MAX_PASSWORD_BYTES in both hash() and verify(), so neither can
fail on length. The API layer also rejects longer passwords with a 422 (see
api/models.py).

bcrypt is deliberately slow. Route handlers that hash are plain `def`
functions so FastAPI runs them in its worker thread pool instead of on the
event loop.
"""

from __future__ import annotations

from typing import Protocol

import bcrypt

MAX_PASSWORD_BYTES = 72


class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str: ...

    def verify(self, plaintext: str, digest: str) -> bool: ...


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:MAX_PASSWORD_BYTES]


class BcryptPasswordHasher:
    """Salted adaptive hashing: the same plaintext hashes differently on every call."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if plaintext produced digest. A malformed digest is a mismatch."""
        try:
            return bcrypt.checkpw(_encode(plaintext), digest.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False
