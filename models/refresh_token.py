"""
RefreshToken model: ledger of issued refresh tokens so we can revoke and rotate them.
Fields:
- token (signed JWT, unique)
- user_id (String(36)) - FK to users.id
- revoked (bool), revoked_at
- created_at (issued at), expires_at

Rows are never deleted on the request path; they are the audit trail of
sessions. `flask purge-refresh-tokens` removes long-expired ones.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String

from models.base_model import Base, BaseModel


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(512), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_refresh_tokens_user_revoked", "user_id", "revoked"),
    )

    def is_active(self, now) -> bool:
        """Usable for rotation: not revoked and not yet expired (naive UTC `now`)."""
        return not self.revoked and self.expires_at > now

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} revoked={self.revoked}>"
