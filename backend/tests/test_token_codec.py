from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.core.config import Settings
from app.core.security import InvalidTokenError, TokenCodec, TokenType


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(Settings(JWT_ACCESS_SECRET="a-secret", JWT_REFRESH_SECRET="r-secret"))


def test_issue_returns_two_distinct_tokens_bound_to_user(codec: TokenCodec) -> None:
    pair = codec.issue("user-1")
    assert pair.access_token and pair.refresh_token
    assert pair.access_token != pair.refresh_token
    assert codec.verify_access(pair.access_token) == "user-1"
    assert codec.verify_refresh(pair.refresh_token) == "user-1"


def test_default_lifetimes_are_ten_minutes_and_seven_days(codec: TokenCodec) -> None:
    pair = codec.issue("user-1")
    access = jwt.get_unverified_claims(pair.access_token)
    refresh = jwt.get_unverified_claims(pair.refresh_token)
    assert access["exp"] - access["iat"] == 10 * 60
    assert refresh["exp"] - refresh["iat"] == 7 * 24 * 60 * 60
    assert refresh["exp"] == int(pair.refresh_expires_at.timestamp())


def test_tokens_issued_back_to_back_differ(codec: TokenCodec) -> None:
    first = codec.issue("user-1")
    second = codec.issue("user-1")
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_expired_access_token_is_rejected(codec: TokenCodec) -> None:
    token = codec.create_token("user-1", TokenType.ACCESS, expires_delta=timedelta(seconds=-5))
    with pytest.raises(InvalidTokenError, match="expired"):
        codec.verify_access(token)


def test_expired_refresh_token_is_rejected(codec: TokenCodec) -> None:
    token = codec.create_token("user-1", TokenType.REFRESH, expires_delta=timedelta(seconds=-5))
    with pytest.raises(InvalidTokenError):
        codec.verify_refresh(token)


def test_token_kinds_are_not_interchangeable(codec: TokenCodec) -> None:
    pair = codec.issue("user-1")
    with pytest.raises(InvalidTokenError):
        codec.verify_access(pair.refresh_token)
    with pytest.raises(InvalidTokenError):
        codec.verify_refresh(pair.access_token)


def test_same_secret_still_separates_kinds_by_type_claim() -> None:
    shared = TokenCodec(Settings(JWT_ACCESS_SECRET="same", JWT_REFRESH_SECRET="same"))
    pair = shared.issue("user-1")
    with pytest.raises(InvalidTokenError, match="Wrong token type"):
        shared.verify_access(pair.refresh_token)


def test_token_signed_with_another_key_is_rejected(codec: TokenCodec) -> None:
    other = TokenCodec(Settings(JWT_ACCESS_SECRET="other", JWT_REFRESH_SECRET="other-r"))
    with pytest.raises(InvalidTokenError):
        codec.verify_access(other.issue("user-1").access_token)


def test_tampered_and_garbage_tokens_are_rejected(codec: TokenCodec) -> None:
    header, _, signature = codec.issue("user-1").access_token.split(".")
    forged_claims = jwt.encode(
        {"sub": "user-2", "type": "access", "exp": datetime.now(timezone.utc) + timedelta(minutes=1)},
        "guess",
        algorithm="HS256",
    ).split(".")[1]
    tampered = ".".join([header, forged_claims, signature])
    for bad in (tampered, "not-a-jwt", ""):
        with pytest.raises(InvalidTokenError):
            codec.verify_access(bad)


def test_token_without_subject_is_rejected(codec: TokenCodec) -> None:
    token = jwt.encode(
        {"type": "access", "exp": datetime.now(timezone.utc) + timedelta(minutes=1)},
        "a-secret",
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError, match="subject"):
        codec.verify_access(token)
