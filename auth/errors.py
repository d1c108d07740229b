"""
auth/errors.py -- Domain error taxonomy.

Errors are raised where they are detected (services, TokenCodec, the
authorization filter) and travel unchanged to the FastAPI exception handlers
in api/main.py, which own the only mapping to HTTP status codes:

  UsernameTakenError       -> 409
  InvalidCredentialsError  -> 401 (generic message)
  TokenError and subtypes  -> 401, empty body
  NotFoundError            -> 404
"""

from __future__ import annotations


class InkwellError(Exception):
    """Base class for every domain error. code is the machine-readable kind."""

    code = "error"
    message = "An error occurred."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class UsernameTakenError(InkwellError):
    code = "username_taken"
    message = "Username already exists, please try to be original."


class InvalidCredentialsError(InkwellError):
    # Same message for unknown user and wrong password (no enumeration).
    code = "bad_credentials"
    message = "Invalid username or password."


class NotFoundError(InkwellError):
    code = "not_found"
    message = "Resource not found."


class TokenError(InkwellError):
    code = "invalid_token"
    message = "Token rejected."


class MissingCredentialsError(TokenError):
    code = "missing_token"
    message = "No bearer token presented."


class MalformedTokenError(TokenError):
    code = "malformed_token"
    message = "Token could not be decoded."


class BadSignatureError(TokenError):
    code = "bad_signature"
    message = "Token signature does not match."


class TokenExpiredError(TokenError):
    code = "token_expired"
    message = "Token has expired."
