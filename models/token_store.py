"""
RefreshTokenStore: the persisted ledger of refresh tokens.

Nothing here commits. SessionLifecycle owns the transaction so that
"revoke the old token, persist the new one" lands in a single commit.
Bulk UPDATEs skip session synchronization; reads use populate_existing so
records already in the session pick up the new state.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update

from models.base_model import as_naive_utc, utcnow_naive
from models.refresh_token import RefreshToken


class RefreshTokenStore:
    def __init__(self, storage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def create(self, token_value: str, owner_id: str, expires_at: datetime) -> RefreshToken:
        record = RefreshToken(
            token=token_value,
            user_id=owner_id,
            revoked=False,
            expires_at=as_naive_utc(expires_at),
        )
        self.storage.new(record)
        return record

    def find_by_token(self, token_value: str) -> RefreshToken | None:
        """Return the record whatever its state; validity is the caller's call."""
        if not token_value:
            return None
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token == token_value)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().first()

    def revoke(self, record: RefreshToken) -> None:
        if record.revoked:
            return
        record.revoked = True
        record.revoked_at = utcnow_naive()
        self.storage.new(record)

    def revoke_if_active(self, token_value: str, now: datetime) -> bool:
        """
        Revoke the token only if it is still usable, in one UPDATE.

        Returns True when this call flipped the row. Of two concurrent callers
        holding the same token, the database lets only one match the WHERE
        clause; the other sees rowcount 0.
        """
        now = as_naive_utc(now)
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token == token_value,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > now,
            )
            .values(revoked=True, revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def revoke_all_for_owner(self, owner_id: str) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == owner_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=utcnow_naive())
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount

    def purge_expired(self, before: datetime) -> int:
        """Hard-delete records that expired before `before` (maintenance only)."""
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.expires_at < as_naive_utc(before))
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount

    def list_for_owner(self, owner_id: str, active_only: bool = False) -> list[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == owner_id)
            .execution_options(populate_existing=True)
        )
        if active_only:
            stmt = stmt.where(RefreshToken.revoked.is_(False), RefreshToken.expires_at > utcnow_naive())
        return list(self.session.execute(stmt.order_by(RefreshToken.created_at)).scalars())
