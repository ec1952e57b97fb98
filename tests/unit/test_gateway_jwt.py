"""Unit tests for JWT handler."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from config.settings import settings
from src.p2p_common.errors import InvalidCredentialsError
from src.p2p_gateway.auth.jwt_handler import create_access_token, decode_token


def _encode(claims: dict) -> str:
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token(42)
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "42"
    assert payload["type"] == "access"


def test_decode_returns_numeric_user_id() -> None:
    assert decode_token(create_access_token(42)) == 42


def test_token_without_type_is_accepted() -> None:
    exp = datetime.now(UTC) + timedelta(minutes=5)
    assert decode_token(_encode({"sub": "7", "exp": exp})) == 7


def test_expired_token_raises_credentials_error() -> None:
    exp = datetime.now(UTC) - timedelta(seconds=1)
    with pytest.raises(InvalidCredentialsError):
        decode_token(_encode({"sub": "7", "type": "access", "exp": exp}))


def test_refresh_token_rejected() -> None:
    exp = datetime.now(UTC) + timedelta(minutes=5)
    with pytest.raises(InvalidCredentialsError):
        decode_token(_encode({"sub": "7", "type": "refresh", "exp": exp}))


@pytest.mark.parametrize("sub", ["abc", "0", "-3", ""])
def test_non_positive_or_non_numeric_subject_rejected(sub: str) -> None:
    exp = datetime.now(UTC) + timedelta(minutes=5)
    with pytest.raises(InvalidCredentialsError):
        decode_token(_encode({"sub": sub, "exp": exp}))


def test_wrong_secret_rejected() -> None:
    token = jwt.encode({"sub": "1"}, "other-secret", algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_garbage_token_rejected() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_token("not.a.jwt")
