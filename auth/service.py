"""
auth/service.py -- Signup, login and account lookup.

AuthenticationService orchestrates the collaborators it is given:
  users   -- UserRepository (auth.store.UserStore in production)
  hasher  -- PasswordHasher (auth.passwords.BcryptPasswordHasher)
  tokens  -- TokenCodec

Security:
  Login runs bcrypt whether or not the username exists. An unknown username
  is checked against a dummy hash, so response time does not reveal which
  usernames are registered, and both failures raise the same
  InvalidCredentialsError.

  Signup has no partial side effects: the uniqueness check happens before
  anything is hashed, saved or issued. The UNIQUE(username) constraint backs
  the check up when two signups race; the loser gets UsernameTakenError.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from auth.errors import InvalidCredentialsError, NotFoundError, UsernameTakenError
from auth.models import Authorities, AuthResult, Principal, User
from auth.passwords import PasswordHasher
from auth.store import UserRepository
from auth.tokens import TokenCodec

logger = logging.getLogger("inkwell.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthenticationService:
    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenCodec,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.clock = clock
        self._dummy_hash: str | None = None

    def signup(self, username: str, password: str, authority: str = Authorities.ROLE_USER) -> AuthResult:
        """Create an account and return a token for it.

        Raises UsernameTakenError if the username is already registered.
        """
        if self.users.exists_by_username(username):
            logger.info("Signup rejected: username taken (%s)", username)
            raise UsernameTakenError()

        hashed = self.hasher.hash(password)
        try:
            user = self.users.save(User(username=username, hashed_password=hashed, authority=authority))
        except IntegrityError as exc:
            logger.info("Signup lost a race for username %s", username)
            raise UsernameTakenError() from exc

        token = self._issue_for(user)
        logger.info("Signup: user_id=%s username=%s", user.id, user.username)
        return AuthResult(token=token, user=user)

    def login(self, username: str, password: str) -> AuthResult:
        """Verify credentials and return a fresh token.

        Raises InvalidCredentialsError for an unknown username and for a wrong
        password alike.
        """
        user = self.users.find_by_username(username)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify(password, self._get_dummy_hash())
            logger.info("Login failure: unknown username")
            raise InvalidCredentialsError()
        if not self.hasher.verify(password, user.hashed_password):
            logger.info("Login failure: user_id=%s", user.id)
            raise InvalidCredentialsError()

        token = self._issue_for(user)
        logger.info("Login success: user_id=%s username=%s", user.id, user.username)
        return AuthResult(token=token, user=user)

    def get_user_by_username(self, username: str) -> User:
        user = self.users.find_by_username(username)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def get_user(self, user_id: int) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def load_principal(self, username: str) -> Principal:
        """Return the principal view of a stored user. Raises NotFoundError."""
        user = self.get_user_by_username(username)
        return Principal(username=user.username, authorities=frozenset({user.authority}))

    def delete_user(self, user_id: int) -> None:
        """Remove a user. Tokens already issued to them simply run out."""
        if not self.users.delete(user_id):
            raise NotFoundError("User not found.")
        logger.info("Deleted user_id=%s", user_id)

    def _issue_for(self, user: User) -> str:
        return self.tokens.issue(user.username, [user.authority], now=self.clock())

    def _get_dummy_hash(self) -> str:
        # Built lazily with the configured hasher so its cost matches real hashes.
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash("inkwell_timing_dummy")
        return self._dummy_hash
