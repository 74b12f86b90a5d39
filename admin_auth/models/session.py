"""
Admin session model: one row per login, owned by an AdminAccount.

Sessions are never deleted on logout/revocation; `is_active` is flipped
and `ended_at` stamped so the history of which sessions existed and when
they were killed stays reviewable.
"""

import uuid
from datetime import datetime, timedelta

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from admin_auth.models.base import Base, UTCDateTime, UUIDPrimaryKeyMixin, utcnow
from admin_auth.models.device_info import DeviceInfo

SESSION_LIFETIME = timedelta(hours=24)
SESSION_INACTIVITY_TIMEOUT = timedelta(hours=24)


class AdminSession(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "admin_sessions"

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("admin_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    session_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # ── Device captured at creation ──────────────────────────────────
    ip: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    user_agent: Mapped[str] = mapped_column(String(512), default="", nullable=False)
    browser: Mapped[str] = mapped_column(String(64), default="Unknown", nullable=False)
    os: Mapped[str] = mapped_column(String(64), default="Unknown", nullable=False)
    device_type: Mapped[str] = mapped_column(String(32), default="Unknown", nullable=False)
    location: Mapped[str] = mapped_column(String(128), default="Unknown Location", nullable=False)

    # ── Lifecycle ────────────────────────────────────────────────────
    login_time: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    last_activity: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("account_id", "session_id", name="uq_admin_sessions_account_session"),
        Index("ix_admin_sessions_account_active", "account_id", "is_active"),
    )

    @classmethod
    def open(cls, session_id: str, device: DeviceInfo, now: datetime) -> "AdminSession":
        return cls(
            session_id=session_id,
            ip=device.ip,
            user_agent=device.user_agent[:512],
            browser=device.browser,
            os=device.os,
            device_type=device.device_type,
            location=device.location,
            login_time=now,
            last_activity=now,
            expires_at=now + SESSION_LIFETIME,
            is_active=True,
        )

    def is_stale(self, now: datetime) -> bool:
        """Past its absolute expiry or idle beyond the inactivity cutoff."""
        return self.expires_at <= now or self.last_activity < now - SESSION_INACTIVITY_TIMEOUT

    def is_usable(self, now: datetime) -> bool:
        return bool(self.is_active) and not self.is_stale(now)

    def deactivate(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        self.is_active = False
        self.ended_at = now
        return True

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(
            ip=self.ip,
            user_agent=self.user_agent,
            browser=self.browser,
            os=self.os,
            device_type=self.device_type,
            location=self.location,
        )

    def __repr__(self) -> str:
        return f"<AdminSession account={self.account_id} active={self.is_active}>"
