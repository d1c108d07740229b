"""
tests/conftest.py -- Shared test fixtures for Inkwell.

This module provides:
  - InMemoryUserStore / PlainPasswordHasher: test doubles for the UserRepository
    and PasswordHasher protocols, for fast service-level tests
  - codec / fast_hasher: real TokenCodec and a low-cost bcrypt hasher
  - _make_test_stores(): isolated named shared-memory SQLite stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a seeded "Alice" account with two posts

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

DEBUG must be set before any api/ or core/ import so get_settings() can
auto-generate SECRET_KEY instead of raising ValueError. The rate limit is
raised so the whole suite can log in from one client address.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone

# CRITICAL: set before any api/ or core/ import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from api.main import app, wire_services
from auth.models import Authorities, User
from auth.passwords import BcryptPasswordHasher
from auth.service import AuthenticationService
from auth.store import UserStore
from auth.tokens import TokenCodec
from blog.models import Post
from blog.store import PostStore

TEST_SECRET = "test-secret-key-0123456789abcdef-0123456789abcdef"

# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class InMemoryUserStore:
    """Dict-backed UserRepository. Raises IntegrityError on duplicate usernames like the real store."""

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._next_id = 1

    def exists_by_username(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def find_by_username(self, username: str) -> User | None:
        return next((u for u in self._users.values() if u.username == username), None)

    def find_by_id(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    def save(self, user: User) -> User:
        if user.id is None:
            if self.exists_by_username(user.username):
                raise IntegrityError(
                    "INSERT INTO users", {}, Exception("UNIQUE constraint failed: users.username")
                )
            user = replace(user, id=self._next_id, created_at=datetime.now(timezone.utc).isoformat())
            self._next_id += 1
        self._users[user.id] = user
        return user

    def delete(self, user_id: int) -> bool:
        return self._users.pop(user_id, None) is not None

    def delete_all(self) -> None:
        self._users.clear()

    def __len__(self) -> int:
        return len(self._users)


class PlainPasswordHasher:
    """Reversible stand-in for bcrypt. Records verify() calls for timing assertions."""

    def __init__(self) -> None:
        self.verify_calls = 0

    def hash(self, plaintext: str) -> str:
        return f"plain${uuid.uuid4().hex[:8]}${plaintext}"

    def verify(self, plaintext: str, digest: str) -> bool:
        self.verify_calls += 1
        parts = digest.split("$")
        return len(parts) == 3 and parts[0] == "plain" and parts[2] == plaintext


@pytest.fixture
def user_repo() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def plain_hasher() -> PlainPasswordHasher:
    return PlainPasswordHasher()


@pytest.fixture
def fast_hasher() -> BcryptPasswordHasher:
    """Real bcrypt at the minimum cost factor."""
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET, ttl_seconds=3600)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def memory_db_url(name: str) -> str:
    return f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"


def _make_test_stores() -> tuple[UserStore, PostStore]:
    """Create stores over one isolated named shared-memory database.

    Each call gets a unique name, so tests never see each other's rows.
    """
    url = memory_db_url(f"test_inkwell_{uuid.uuid4().hex}")
    return UserStore(url), PostStore(url)


def _patch_lifespan(user_store: UserStore, post_store: PostStore, hasher, codec: TokenCodec):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, user_store, post_store, hasher, codec)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    user_store: UserStore
    post_store: PostStore
    codec: TokenCodec
    alice: User
    bearer: str
    admin_bearer: str

    def auth(self, bearer: str | None = None) -> dict[str, str]:
        return {"Authorization": bearer or self.bearer}


@pytest.fixture
def api_client(fast_hasher: BcryptPasswordHasher, codec: TokenCodec) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext backed by fresh stores.

    Alice signs up with password "password" and owns two posts ("First",
    "Second"). An admin account "root" exists for admin-only routes.
    """
    user_store, post_store = _make_test_stores()
    service = AuthenticationService(user_store, fast_hasher, codec)

    alice = service.signup("Alice", "password")
    post_store.save(Post(title="First", body="Hello", user_id=alice.user.id))
    post_store.save(Post(title="Second", body="Hello again", user_id=alice.user.id))
    admin = service.signup("root", "rootpassword", authority=Authorities.ROLE_ADMIN)

    app.router.lifespan_context = _patch_lifespan(user_store, post_store, fast_hasher, codec)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            user_store=user_store,
            post_store=post_store,
            codec=codec,
            alice=alice.user,
            bearer=f"Bearer {alice.token}",
            admin_bearer=f"Bearer {admin.token}",
        )

    post_store.close()
    user_store.close()
