import uuid
from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from app.config import Settings, parse_duration
from app.services.token_issuer import TokenIssuer, subject_id


@pytest.fixture
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer(settings)


@pytest.fixture
def user():
    return SimpleNamespace(
        id=uuid.uuid4(),
        username="alice",
        email="alice@example.com",
        full_name="Alice Example",
    )


def test_access_token_carries_identity_claims(issuer, user):
    claims = issuer.verify_access_token(issuer.issue_access_token(user))

    assert claims is not None
    assert subject_id(claims) == user.id
    assert claims["username"] == "alice"
    assert claims["email"] == "alice@example.com"
    assert claims["fullName"] == "Alice Example"
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == 15 * 60


def test_refresh_token_only_carries_subject(issuer, user):
    claims = issuer.verify_refresh_token(issuer.issue_refresh_token(user))

    assert subject_id(claims) == user.id
    assert claims["type"] == "refresh"
    assert "email" not in claims
    assert claims["exp"] - claims["iat"] == 10 * 24 * 3600


def test_tokens_issued_back_to_back_differ(issuer, user):
    first = issuer.issue_pair(user)
    second = issuer.issue_pair(user)
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_contexts_are_not_interchangeable(issuer, user):
    pair = issuer.issue_pair(user)
    assert issuer.verify_refresh_token(pair.access_token) is None
    assert issuer.verify_access_token(pair.refresh_token) is None


def test_expired_token_is_rejected(settings, user):
    settings.access_token_expiry = timedelta(seconds=-1)
    issuer = TokenIssuer(settings)
    assert issuer.verify_access_token(issuer.issue_access_token(user)) is None


def test_token_signed_with_other_secret_is_rejected(issuer, user):
    forged = jwt.encode(
        {"sub": str(user.id), "type": "access"}, "someone-else", algorithm="HS256"
    )
    assert issuer.verify_access_token(forged) is None
    assert issuer.verify_access_token("garbage") is None


def test_subject_id_rejects_non_uuid():
    assert subject_id({"sub": "not-a-uuid"}) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("15m", timedelta(minutes=15)),
        ("1d", timedelta(days=1)),
        ("10d", timedelta(days=10)),
        ("2h", timedelta(hours=2)),
        ("3600", timedelta(seconds=3600)),
        (90, timedelta(seconds=90)),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("soon")


def test_production_refuses_default_secrets():
    with pytest.raises(ValueError):
        Settings(_env_file=None, app_env="production")
