import warnings
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from api.config import TestingConfig
from models.user import Role
from utils.exceptions import InvalidRefreshToken, Unauthorized
from utils.security import AuthSettings, TokenIssuer, hash_password, verify_password

from tests.helpers import FakeClock

SETTINGS = AuthSettings(
    access_secret="access-secret-" + "a" * 32,
    refresh_secret="refresh-secret-" + "r" * 32,
)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def token_issuer(clock):
    return TokenIssuer(SETTINGS, clock)


@pytest.fixture
def user():
    return SimpleNamespace(
        id="3f0c5a5e-0000-4000-8000-000000000001",
        email="grace@example.com",
        role=Role.TEACHER,
        first_name="Grace",
        last_name="Hopper",
    )


def test_password_hash_is_salted_and_verifies():
    h1 = hash_password("correct horse")
    h2 = hash_password("correct horse")
    assert h1 != h2
    assert verify_password("correct horse", h1)
    assert not verify_password("wrong horse", h1)
    assert not verify_password("correct horse", "not-an-argon2-hash")


def test_access_token_claims(token_issuer, user):
    issued = token_issuer.issue_access_token(user)
    claims = token_issuer.verify_access_token(issued.value)
    assert claims["sub"] == user.id
    assert claims["email"] == "grace@example.com"
    assert claims["role"] == "teacher"
    assert claims["firstName"] == "Grace"
    assert claims["lastName"] == "Hopper"
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == 3600


def test_refresh_token_carries_only_subject(token_issuer, user):
    issued = token_issuer.issue_refresh_token(user)
    claims = token_issuer.verify_refresh_token(issued.value)
    assert claims["sub"] == user.id
    assert "email" not in claims and "role" not in claims
    assert claims["exp"] - claims["iat"] == 7 * 24 * 3600
    assert issued.expires_at == token_issuer.now() + timedelta(days=7)


def test_tokens_minted_in_the_same_second_differ(token_issuer, user):
    assert token_issuer.issue_refresh_token(user).value != token_issuer.issue_refresh_token(user).value


def test_access_token_valid_one_second_before_expiry(token_issuer, clock, user):
    token = token_issuer.issue_access_token(user).value
    clock.advance(seconds=3599)
    assert token_issuer.verify_access_token(token)["sub"] == user.id


def test_access_token_rejected_after_expiry(token_issuer, clock, user):
    token = token_issuer.issue_access_token(user).value
    clock.advance(hours=1)
    with pytest.raises(Unauthorized, match="expired"):
        token_issuer.verify_access_token(token)


def test_refresh_token_is_not_an_access_token(token_issuer, user):
    refresh = token_issuer.issue_refresh_token(user).value
    with pytest.raises(Unauthorized):
        token_issuer.verify_access_token(refresh)
    access = token_issuer.issue_access_token(user).value
    with pytest.raises(InvalidRefreshToken):
        token_issuer.verify_refresh_token(access)


def test_bad_signature_and_garbage_rejected(token_issuer, user):
    forged = jwt.encode(
        {"sub": user.id, "type": "access", "iat": 0, "exp": 2**31, "iss": SETTINGS.issuer},
        "someone-elses-secret-" + "x" * 32,
        algorithm="HS256",
    )
    for token in (forged, "not.a.jwt", ""):
        with pytest.raises(Unauthorized):
            token_issuer.verify_access_token(token)


def test_settings_require_distinct_secrets():
    with pytest.raises(ValueError):
        AuthSettings(access_secret="same", refresh_secret="same")
    with pytest.raises(ValueError):
        AuthSettings(access_secret="", refresh_secret="x")


def test_settings_from_config_mapping():
    settings = AuthSettings.from_mapping({
        "JWT_SECRET": "a",
        "JWT_REFRESH_SECRET": "b",
        "ACCESS_TOKEN_EXPIRES": timedelta(minutes=5),
        "LOGOUT_REQUIRE_OWNER": True,
    })
    assert settings.access_ttl == timedelta(minutes=5)
    assert settings.refresh_ttl == timedelta(days=7)
    assert settings.logout_require_owner is True


def test_test_secrets_are_long_enough_for_hs256(user):
    settings = AuthSettings.from_mapping({
        "JWT_SECRET": TestingConfig.JWT_SECRET,
        "JWT_REFRESH_SECRET": TestingConfig.JWT_REFRESH_SECRET,
    })
    assert len(settings.access_secret.encode()) >= 32
    assert len(settings.refresh_secret.encode()) >= 32
    issuer = TokenIssuer(settings)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        issuer.verify_access_token(issuer.issue_access_token(user).value)
        issuer.verify_refresh_token(issuer.issue_refresh_token(user).value)
