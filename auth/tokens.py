"""
auth/tokens.py -- Signed, time-bound bearer tokens.

Security design decisions:
  Format: compact JWS (JWT) via python-jose, HS256. Claims are
       sub (username), authorities (list of role strings), iat and exp
       (integer epoch seconds). Nothing is stored server-side.

  Verification order: structure first (MalformedTokenError), then signature
       (BadSignatureError), then expiry (TokenExpiredError). jose's HMAC key
       compares signatures with hmac.compare_digest, so the check is
       constant-time. The signature segment must also be canonical
       base64url: a last character whose spare bits differ decodes to the
       same bytes but is still rejected as a bad signature.

  Expiry is evaluated against an explicit `now` rather than jose's own clock,
       so callers (and tests) control the reference time. A token is expired
       at exactly exp, not one second later.

  SECRET_KEY: passed into TokenCodec by the caller. TokenCodec.from_settings()
       is the startup path; there is no module-level key.

Layer rule: no imports from api/ or blog/.
"""

from __future__ import annotations

import binascii
import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from jose import jws, jwt
from jose.exceptions import JWSError, JWTError
from jose.utils import base64url_decode, base64url_encode

from auth.errors import BadSignatureError, MalformedTokenError, TokenExpiredError
from auth.models import Principal
from core.config import Settings

logger = logging.getLogger("inkwell.auth")

_ALGORITHM = "HS256"


def _epoch(now: datetime | None) -> int:
    if now is None:
        now = datetime.now(timezone.utc)
    return int(now.timestamp())


def _is_canonical_segment(segment: str) -> bool:
    """True if segment is the one base64url spelling of the bytes it decodes to.

    The last character of an unpadded segment carries spare bits that the
    decoder ignores, so several spellings decode to the same signature.
    """
    raw = segment.encode("ascii", errors="replace")
    try:
        return base64url_encode(base64url_decode(raw)) == raw
    except (binascii.Error, TypeError, ValueError):
        return False


class TokenCodec:
    """Issue and verify bearer tokens with a process-wide signing key.

    Usage:
        codec = TokenCodec(secret_key, ttl_seconds=3600)
        token = codec.issue("alice", ["ROLE_USER"])
        principal = codec.verify(token)
    """

    def __init__(self, secret_key: str, ttl_seconds: int = 3600, algorithm: str = _ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenCodec requires a signing key.")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenCodec:
        return cls(settings.secret_key, ttl_seconds=settings.token_expire_seconds)

    def issue(self, subject: str, authorities: Iterable[str], now: datetime | None = None) -> str:
        """Encode and sign a token for subject, valid for ttl_seconds from now."""
        issued_at = _epoch(now)
        claims = {
            "sub": subject,
            "authorities": sorted(set(authorities)),
            "iat": issued_at,
            "exp": issued_at + self.ttl_seconds,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str, now: datetime | None = None) -> Principal:
        """Return the Principal encoded in token.

        Raises MalformedTokenError, BadSignatureError or TokenExpiredError.
        """
        try:
            claims = jwt.get_unverified_claims(token)
        except (JWTError, JWSError, UnicodeError, ValueError) as exc:
            raise MalformedTokenError() from exc

        subject = claims.get("sub")
        authorities = claims.get("authorities")
        expires_at = claims.get("exp")
        if not isinstance(subject, str) or not subject:
            raise MalformedTokenError("Token has no subject.")
        if not isinstance(authorities, list) or not all(isinstance(a, str) for a in authorities):
            raise MalformedTokenError("Token authorities are not a list of strings.")
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            raise MalformedTokenError("Token has no integer expiry.")

        if not _is_canonical_segment(token.rsplit(".", 1)[-1]):
            raise BadSignatureError()
        try:
            jws.verify(token, self._secret_key, algorithms=[self.algorithm])
        except JWSError as exc:
            # Includes JWSSignatureError and a header naming a foreign algorithm.
            raise BadSignatureError() from exc

        if _epoch(now) >= expires_at:
            raise TokenExpiredError()

        return Principal(username=subject, authorities=frozenset(authorities))
