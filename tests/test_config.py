"""Unit tests for core/config.py Settings validation.

Covers:
- DEBUG mode auto-generates a 64-char hex SECRET_KEY
- production mode without SECRET_KEY refuses to start
- short keys, out-of-range bcrypt rounds and non-positive TTLs are rejected
- get_settings() is cached until cache_clear()
"""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings

GOOD_KEY = "k" * 40


@pytest.fixture(autouse=True)
def _no_secret_in_env(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)


def test_debug_generates_key():
    s = Settings(_env_file=None, debug=True)
    assert len(s.secret_key) == 64


def test_debug_keeps_configured_key():
    s = Settings(_env_file=None, debug=True, secret_key=GOOD_KEY)
    assert s.secret_key == GOOD_KEY


def test_production_requires_key():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False)


def test_production_with_key():
    s = Settings(_env_file=None, debug=False, secret_key=GOOD_KEY)
    assert s.token_expire_seconds == 3600
    assert s.bcrypt_rounds == 12
    assert s.database_url.startswith("sqlite:///")


@pytest.mark.parametrize("debug", [True, False])
def test_short_key_rejected(debug):
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, debug=debug, secret_key="too-short")


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_range(rounds):
    with pytest.raises(ValidationError, match="BCRYPT_ROUNDS"):
        Settings(_env_file=None, secret_key=GOOD_KEY, bcrypt_rounds=rounds)


@pytest.mark.parametrize("ttl", [0, -60])
def test_token_ttl_must_be_positive(ttl):
    with pytest.raises(ValidationError, match="TOKEN_EXPIRE_SECONDS"):
        Settings(_env_file=None, secret_key=GOOD_KEY, token_expire_seconds=ttl)


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "120")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    s = Settings(_env_file=None)
    assert s.secret_key == GOOD_KEY
    assert s.token_expire_seconds == 120
    assert s.bcrypt_rounds == 4


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
