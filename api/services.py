"""
Authentication services used by the auth and users blueprints.

- CredentialVerifier: email/password check against the argon2 hash
- SessionLifecycle: login, register, refresh (rotation), logout, logout-all, profile

Each public SessionLifecycle method runs in one transaction on the scoped
session: it commits on success and rolls back before raising.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from models.base_model import as_naive_utc
from models.schemas.user import normalize_email
from models.token_store import RefreshTokenStore
from models.user import Role, User
from utils.exceptions import Conflict, InvalidCredentials, InvalidRefreshToken, NotFound
from utils.security import TokenIssuer, hash_password, needs_rehash, verify_password

logger = logging.getLogger(__name__)

TOKEN_TYPE = "Bearer"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = TOKEN_TYPE


class CredentialVerifier:
    def __init__(self, storage):
        self.storage = storage
        # Verified against when the email is unknown, so both failures cost one argon2 verify
        self._dummy_hash = hash_password("dummy-password-for-timing")

    def verify(self, email: str, password: str) -> User:
        user = self.storage.find_by(User, email=normalize_email(email))
        if user is None:
            verify_password(password, self._dummy_hash)
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            self.storage.new(user)
        return user


class SessionLifecycle:
    def __init__(self, storage, issuer: TokenIssuer, tokens: RefreshTokenStore | None = None,
                 verifier: CredentialVerifier | None = None):
        self.storage = storage
        self.issuer = issuer
        self.tokens = tokens or RefreshTokenStore(storage)
        self.verifier = verifier or CredentialVerifier(storage)

    @property
    def settings(self):
        return self.issuer.settings

    def login(self, email: str, password: str) -> TokenPair:
        try:
            user = self.verifier.verify(email, password)
        except InvalidCredentials:
            self.storage.rollback()
            logger.info("login failed")
            raise
        pair = self._issue_pair(user)
        self.storage.save()
        logger.info("login user=%s", user.id)
        return pair

    def register(self, email: str, password: str, first_name: str, last_name: str,
                 role: Role = Role.STUDENT) -> TokenPair:
        try:
            user = self.create_user(email, password, first_name, last_name, role)
        except Conflict:
            self.storage.rollback()
            raise
        pair = self._issue_pair(user)
        self.storage.save()
        logger.info("registered user=%s role=%s", user.id, user.role.value)
        return pair

    def create_user(self, email: str, password: str, first_name: str, last_name: str,
                    role: Role = Role.STUDENT) -> User:
        """Insert a user (flushed, not committed). Raises Conflict on a taken email."""
        email = normalize_email(email)
        if self.storage.find_by(User, email=email) is not None:
            raise Conflict()
        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        self.storage.new(user)
        try:
            # A concurrent registration of the same email trips the unique index here
            self.storage.flush()
        except IntegrityError:
            raise Conflict()
        return user

    def refresh(self, refresh_token: str) -> TokenPair:
        try:
            self.issuer.verify_refresh_token(refresh_token)
            now = self.issuer.now()
            record = self.tokens.find_by_token(refresh_token)
            if record is None or not record.is_active(as_naive_utc(now)):
                raise InvalidRefreshToken()
            owner_id = record.user_id
            # Conditional revoke: of two concurrent rotations of one token only one matches
            if not self.tokens.revoke_if_active(refresh_token, now):
                logger.warning("refresh token replay for user=%s", owner_id)
                raise InvalidRefreshToken()
            user = self.storage.get(User, owner_id)
            if user is None:
                raise InvalidRefreshToken()
            pair = self._issue_pair(user)
            self.storage.save()
        except InvalidRefreshToken:
            self.storage.rollback()
            raise
        logger.info("rotated refresh token for user=%s", user.id)
        return pair

    def logout(self, refresh_token: str, principal_id: str | None = None) -> None:
        """
        Revoke one refresh token. Unknown or already revoked tokens are a no-op.

        Without LOGOUT_REQUIRE_OWNER any authenticated caller may revoke any
        token it holds. With it, tokens owned by someone else are left alone.
        """
        record = self.tokens.find_by_token(refresh_token)
        if record is None:
            return
        if self.settings.logout_require_owner and record.user_id != principal_id:
            logger.warning("logout of a token owned by another user ignored (caller=%s)", principal_id)
            return
        self.tokens.revoke(record)
        self.storage.save()
        logger.info("logout user=%s", record.user_id)

    def logout_all(self, owner_id: str) -> None:
        count = self.tokens.revoke_all_for_owner(owner_id)
        self.storage.save()
        logger.info("logout-all user=%s revoked=%d", owner_id, count)

    def get_profile(self, owner_id: str) -> User:
        user = self.storage.get(User, owner_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def _issue_pair(self, user: User) -> TokenPair:
        access = self.issuer.issue_access_token(user)
        refresh = self.issuer.issue_refresh_token(user)
        self.tokens.create(refresh.value, user.id, refresh.expires_at)
        return TokenPair(
            access_token=access.value,
            refresh_token=refresh.value,
            expires_in=int(self.settings.access_ttl.total_seconds()),
        )
