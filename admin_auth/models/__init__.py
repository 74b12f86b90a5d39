"""
Models package: import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from admin_auth.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from admin_auth.models.device_info import DeviceInfo
from admin_auth.models.session import AdminSession
from admin_auth.models.login_record import LoginRecord
from admin_auth.models.password_history import PasswordHistoryEntry
from admin_auth.models.admin import AdminAccount, AdminRole, AdminStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "DeviceInfo",
    "AdminSession",
    "LoginRecord",
    "PasswordHistoryEntry",
    "AdminAccount",
    "AdminRole",
    "AdminStatus",
]
