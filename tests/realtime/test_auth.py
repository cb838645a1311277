"""Unit tests for src/realtime/auth.py"""

from unittest.mock import patch

import pytest
from itsdangerous import URLSafeTimedSerializer

from src.core.exceptions import InvalidTokenError
from src.realtime.auth import TOKEN_SALT, TokenVerifier


@pytest.fixture
def verifier() -> TokenVerifier:
    return TokenVerifier("test-secret", max_age_sec=3600)


def test_signed_token_round_trip(verifier: TokenVerifier) -> None:
    assert verifier.verify(verifier.sign("alice")) == "alice"


def test_token_signed_with_other_key(verifier: TokenVerifier) -> None:
    token = TokenVerifier("other-secret", max_age_sec=3600).sign("alice")
    with pytest.raises(InvalidTokenError):
        verifier.verify(token)


def test_garbage_token(verifier: TokenVerifier) -> None:
    with pytest.raises(InvalidTokenError):
        verifier.verify("definitely.not.a.token")


def test_expired_token() -> None:
    verifier = TokenVerifier("test-secret", max_age_sec=60)
    # issued at the epoch, long expired by now
    with patch("itsdangerous.timed.time.time", return_value=1_000_000):
        token = verifier.sign("alice")
    with pytest.raises(InvalidTokenError, match="expired"):
        verifier.verify(token)


@pytest.mark.parametrize("payload", [{}, {"user_id": ""}, ["alice"]])
def test_token_without_user(verifier: TokenVerifier, payload: object) -> None:
    token = URLSafeTimedSerializer("test-secret", salt=TOKEN_SALT).dumps(payload)
    with pytest.raises(InvalidTokenError):
        verifier.verify(token)
