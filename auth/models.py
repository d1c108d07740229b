"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in blog/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

from dataclasses import dataclass


class Authorities:
    """Role strings used for coarse-grained access control."""

    ROLE_USER = "ROLE_USER"
    ROLE_ADMIN = "ROLE_ADMIN"


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt digest. It never leaves the auth layer:
    the API maps User to a public view carrying only id and username.

    id is None before the record is written to the database.
    """

    username: str
    hashed_password: str
    authority: str = Authorities.ROLE_USER
    id: int | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class Principal:
    """Identity and authority set derived from a verified token.

    Lives for a single request (request.state.principal) and is discarded
    afterwards. It is not re-checked against the users table.
    """

    username: str
    authorities: frozenset[str]

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a successful signup or login."""

    token: str
    user: User
