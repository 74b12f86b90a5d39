import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from admin_auth.models.base import Base, UTCDateTime, UUIDPrimaryKeyMixin, utcnow


class PasswordHistoryEntry(Base, UUIDPrimaryKeyMixin):
    """A password hash the account used before `changed_at`."""

    __tablename__ = "admin_password_history"

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("admin_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
