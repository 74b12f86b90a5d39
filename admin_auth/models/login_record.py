import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from admin_auth.models.base import Base, UTCDateTime, UUIDPrimaryKeyMixin, utcnow
from admin_auth.models.device_info import DeviceInfo


class LoginRecord(Base, UUIDPrimaryKeyMixin):
    """One login attempt.  Written once, never modified; pruned by the account."""

    __tablename__ = "admin_login_records"

    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("admin_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    ip: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    user_agent: Mapped[str] = mapped_column(String(512), default="", nullable=False)
    location: Mapped[str] = mapped_column(String(128), default="Unknown Location", nullable=False)
    browser: Mapped[str] = mapped_column(String(64), default="Unknown", nullable=False)
    os: Mapped[str] = mapped_column(String(64), default="Unknown", nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    login_time: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        Index("ix_admin_login_records_account_time", "account_id", "login_time"),
    )

    @classmethod
    def from_device(
        cls,
        device: DeviceInfo,
        *,
        success: bool,
        now: datetime,
        failure_reason: str | None = None,
    ) -> "LoginRecord":
        return cls(
            ip=device.ip,
            user_agent=device.user_agent[:512],
            location=device.location,
            browser=device.browser,
            os=device.os,
            success=success,
            login_time=now,
            failure_reason=None if success else (failure_reason or "unknown"),
        )

    @property
    def signature(self) -> str:
        return f"{self.browser}-{self.os}"

    def __repr__(self) -> str:
        return f"<LoginRecord {self.ip} success={self.success} at={self.login_time}>"
