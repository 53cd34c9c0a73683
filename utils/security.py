"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT creation/verification via PyJWT (TokenIssuer)
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from utils.exceptions import InvalidRefreshToken, Unauthorized

ph = PasswordHasher()

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2 (salted, constant-time)
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    return ph.check_needs_rehash(password_hash)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthSettings:
    """Immutable token configuration, built once when the app starts."""

    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    issuer: str = "study-portal-api"
    access_ttl: timedelta = timedelta(hours=1)
    refresh_ttl: timedelta = timedelta(days=7)
    logout_require_owner: bool = False

    def __post_init__(self):
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must be set")
        if self.access_secret == self.refresh_secret:
            raise ValueError("access and refresh tokens must use different secrets")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "AuthSettings":
        return cls(
            access_secret=config["JWT_SECRET"],
            refresh_secret=config["JWT_REFRESH_SECRET"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
            issuer=config.get("JWT_ISSUER", "study-portal-api"),
            access_ttl=config.get("ACCESS_TOKEN_EXPIRES", timedelta(hours=1)),
            refresh_ttl=config.get("REFRESH_TOKEN_EXPIRES", timedelta(days=7)),
            logout_require_owner=bool(config.get("LOGOUT_REQUIRE_OWNER", False)),
        )


@dataclass(frozen=True)
class IssuedToken:
    value: str
    expires_at: datetime


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request."""

    id: str
    email: str
    role: str
    first_name: str | None = None
    last_name: str | None = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Principal":
        return cls(
            id=claims["sub"],
            email=claims.get("email", ""),
            role=claims.get("role", ""),
            first_name=claims.get("firstName"),
            last_name=claims.get("lastName"),
        )


class TokenIssuer:
    """
    Mints and verifies the two token kinds.

    Access tokens carry the display fields of the user (firstName/lastName)
    so the gate never needs a lookup; they go stale after a rename until the
    token expires. Refresh tokens carry only the subject and are also
    persisted by the session layer.

    Expiry is checked against the injected clock: a token is valid while
    now < exp.
    """

    def __init__(self, settings: AuthSettings, clock: Callable[[], datetime] = utcnow):
        self.settings = settings
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def issue_access_token(self, user) -> IssuedToken:
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "role": _role_value(user.role),
            "firstName": user.first_name,
            "lastName": user.last_name,
        }
        return self._encode(claims, ACCESS, self.settings.access_ttl, self.settings.access_secret)

    def issue_refresh_token(self, user) -> IssuedToken:
        claims = {"sub": str(user.id)}
        return self._encode(claims, REFRESH, self.settings.refresh_ttl, self.settings.refresh_secret)

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        try:
            return self._decode(token, ACCESS, self.settings.access_secret)
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.InvalidTokenError as exc:
            raise Unauthorized(f"Invalid token: {exc}")

    def verify_refresh_token(self, token: str) -> Dict[str, Any]:
        try:
            return self._decode(token, REFRESH, self.settings.refresh_secret)
        except jwt.InvalidTokenError:
            raise InvalidRefreshToken()

    def _encode(self, claims: Dict[str, Any], token_type: str, ttl: timedelta, secret: str) -> IssuedToken:
        issued_at = self.now()
        expires_at = issued_at + ttl
        payload = {
            **claims,
            "iss": self.settings.issuer,
            "type": token_type,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": generate_jti(),
        }
        token = jwt.encode(payload, secret, algorithm=self.settings.algorithm)
        return IssuedToken(value=token, expires_at=expires_at)

    def _decode(self, token: str, expected_type: str, secret: str) -> Dict[str, Any]:
        """
        Check signature and issuer with PyJWT, then expiry against our clock.
        Raises jwt.InvalidTokenError subclasses.
        """
        if not token:
            raise jwt.InvalidTokenError("empty token")
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[self.settings.algorithm],
            issuer=self.settings.issuer,
            options={
                "require": ["exp", "iat", "sub", "type"],
                "verify_exp": False,
                "verify_iat": False,
            },
        )
        if decoded.get("type") != expected_type:
            raise jwt.InvalidTokenError("Wrong token type")
        if self.now().timestamp() >= decoded["exp"]:
            raise jwt.ExpiredSignatureError("Signature has expired")
        return decoded


def _role_value(role) -> str:
    return getattr(role, "value", role)
