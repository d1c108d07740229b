"""
tests/test_authorization.py -- Tests for auth/dependencies.py.

Unit level: parse_bearer() and authorize() walk the header -> token ->
principal chain and raise the right TokenError subtype at each step.

Integration level (api_client): every rejection from AuthorizationFilter is
a bare 401 -- empty body, WWW-Authenticate: Bearer -- whatever the reason,
and public paths pass without a token.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.dependencies import PUBLIC_PATHS, authorize, parse_bearer
from auth.errors import BadSignatureError, MalformedTokenError, MissingCredentialsError, TokenExpiredError
from auth.tokens import TokenCodec


class TestParseBearer:
    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing_header(self, header) -> None:
        with pytest.raises(MissingCredentialsError):
            parse_bearer(header)

    @pytest.mark.parametrize("header", ["Bearer", "Bearer ", "Basic dXNlcjpwYXNz", "Token abc", "Bearer a b"])
    def test_malformed_header(self, header: str) -> None:
        with pytest.raises(MalformedTokenError):
            parse_bearer(header)

    @pytest.mark.parametrize("header", ["Bearer abc.def.ghi", "bearer abc.def.ghi", "  Bearer   abc.def.ghi  "])
    def test_extracts_token(self, header: str) -> None:
        assert parse_bearer(header) == "abc.def.ghi"


class TestAuthorize:
    def test_valid_token(self, codec: TokenCodec) -> None:
        principal = authorize(f"Bearer {codec.issue('alice', ['ROLE_USER'])}", codec)
        assert principal.username == "alice"

    def test_expired_token(self, codec: TokenCodec) -> None:
        issued = datetime(2026, 1, 1, tzinfo=timezone.utc)
        header = f"Bearer {codec.issue('alice', ['ROLE_USER'], now=issued)}"
        with pytest.raises(TokenExpiredError):
            authorize(header, codec, now=issued + timedelta(hours=2))

    def test_foreign_signature(self, codec: TokenCodec) -> None:
        header = f"Bearer {TokenCodec('z' * 64).issue('alice', ['ROLE_USER'])}"
        with pytest.raises(BadSignatureError):
            authorize(header, codec)

    def test_no_header(self, codec: TokenCodec) -> None:
        with pytest.raises(MissingCredentialsError):
            authorize(None, codec)


def _assert_bare_401(resp) -> None:
    assert resp.status_code == 401, f"Expected 401, got {resp.status_code}: {resp.text}"
    assert resp.text == ""
    assert resp.headers.get("www-authenticate") == "Bearer"


class TestAuthorizationFilter:
    def test_no_header(self, api_client) -> None:
        _assert_bare_401(api_client.client.get("/posts"))

    def test_wrong_scheme(self, api_client) -> None:
        _assert_bare_401(api_client.client.get("/posts", headers={"Authorization": "Basic dXNlcjpwYXNz"}))

    def test_garbage_token(self, api_client) -> None:
        _assert_bare_401(api_client.client.get("/posts", headers={"Authorization": "Bearer not-a-token"}))

    def test_tampered_token(self, api_client) -> None:
        header, payload, signature = api_client.bearer.removeprefix("Bearer ").split(".")
        tampered = ".".join([header, payload, ("A" if signature[0] != "A" else "B") + signature[1:]])
        _assert_bare_401(api_client.client.get("/posts", headers={"Authorization": f"Bearer {tampered}"}))

    def test_expired_token(self, api_client) -> None:
        stale = api_client.codec.issue("Alice", ["ROLE_USER"], now=datetime.now(timezone.utc) - timedelta(hours=2))
        _assert_bare_401(api_client.client.get("/posts", headers={"Authorization": f"Bearer {stale}"}))

    def test_token_from_another_key(self, api_client) -> None:
        foreign = TokenCodec("q" * 64).issue("Alice", ["ROLE_USER"])
        _assert_bare_401(api_client.client.get("/posts", headers={"Authorization": f"Bearer {foreign}"}))

    def test_protected_mutation_rejected_before_handler(self, api_client) -> None:
        resp = api_client.client.post("/posts", json={"title": "x", "body": "y"})
        _assert_bare_401(resp)
        assert len(api_client.post_store.find_all_by_user(api_client.alice.id)) == 2

    def test_unknown_path_still_requires_token(self, api_client) -> None:
        _assert_bare_401(api_client.client.get("/does-not-exist"))

    def test_public_paths(self, api_client) -> None:
        assert "/auth/login" in PUBLIC_PATHS
        assert api_client.client.get("/health").status_code == 200
        resp = api_client.client.post("/auth/login", json={"username": "Alice", "password": "password"})
        assert resp.status_code == 200

    def test_valid_token_passes(self, api_client) -> None:
        assert api_client.client.get("/posts", headers=api_client.auth()).status_code == 200
