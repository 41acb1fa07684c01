"""Unit tests for bearer token issue/verify."""

from datetime import timedelta

import pytest
from jose import jwt

from src.pm_common.errors import InvalidCredentialsError
from src.pm_gateway.auth.jwt_handler import create_access_token, decode_token

SECRET = "unit-test-secret"


def test_round_trip_subject() -> None:
    token = create_access_token("user-42", SECRET)
    payload = decode_token(token, SECRET)
    assert payload["sub"] == "user-42"
    assert payload["type"] == "access"


def test_wrong_secret() -> None:
    token = create_access_token("user-42", SECRET)
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, "other")


def test_expired() -> None:
    token = create_access_token("user-42", SECRET, expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, SECRET)


def test_refresh_token_type_rejected() -> None:
    token = jwt.encode({"sub": "user-42", "type": "refresh"}, SECRET, algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, SECRET)


def test_missing_subject_rejected() -> None:
    token = jwt.encode({"type": "access"}, SECRET, algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, SECRET)


def test_algorithm_pinned() -> None:
    token = create_access_token("user-42", SECRET, algorithm="HS512")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, SECRET, algorithm="HS256")
