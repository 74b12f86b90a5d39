"""
Admin account model: the aggregate root for everything security related.

Design decisions:
- Sessions, login history and password history are child tables loaded
  with the account (`selectin`) and only ever mutated through the
  methods below, so one `SELECT ... FOR UPDATE` on the account row is
  enough to serialise concurrent logins for the same admin.
- Role is a two-variant enum; the derived checks (`is_principal`,
  `can_access_admin`) are plain functions over it, not string compares
  scattered through controllers.
- Nothing is hard-deleted except by the history caps: sessions are
  deactivated and accounts are soft-deleted.
- Login history is chronological (oldest first); "last N" is a tail slice.
"""

from __future__ import annotations

import enum
import secrets
import uuid
from datetime import datetime, timedelta

from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from admin_auth.core.security import hash_password, hash_token, token_matches, verify_password
from admin_auth.models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin, utcnow
from admin_auth.models.device_info import DeviceInfo
from admin_auth.models.login_record import LoginRecord
from admin_auth.models.password_history import PasswordHistoryEntry
from admin_auth.models.session import AdminSession

# ── Policy ───────────────────────────────────────────────────────────
MAX_ACTIVE_SESSIONS = 5
LOGIN_HISTORY_LIMIT = 50
PASSWORD_HISTORY_LIMIT = 5

LOCKOUT_THRESHOLD = 3
LOCKOUT_DURATION = timedelta(minutes=5)
EXTENDED_LOCKOUT_THRESHOLD = 5
EXTENDED_LOCKOUT_DURATION = timedelta(minutes=30)

RESET_CODE_TTL = timedelta(minutes=15)
RESET_MAX_REQUESTS = 3
RESET_COUNTER_COOLDOWN = timedelta(hours=1)


class AdminRole(str, enum.Enum):
    PRINCIPAL = "principal"
    ADMIN = "admin"


class AdminStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


def is_principal_role(role: AdminRole | str) -> bool:
    return AdminRole(role) is AdminRole.PRINCIPAL


def has_admin_access(status: AdminStatus | str, is_deleted: bool) -> bool:
    return AdminStatus(status) is AdminStatus.APPROVED and not is_deleted


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_session_id() -> str:
    # 256 bits
    return secrets.token_hex(32)


def generate_reset_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


NOTIFICATION_PREFERENCES = (
    "new_login",
    "new_registration",
    "security_alerts",
    "suspicious_activity",
)


class AdminAccount(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "admin_accounts"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(256), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    role: Mapped[AdminRole] = mapped_column(
        Enum(AdminRole, name="admin_role", values_callable=lambda e: [m.value for m in e]),
        default=AdminRole.ADMIN,
        nullable=False,
    )
    status: Mapped[AdminStatus] = mapped_column(
        Enum(AdminStatus, name="admin_status", values_callable=lambda e: [m.value for m in e]),
        default=AdminStatus.PENDING,
        nullable=False,
        index=True,
    )

    # ── Approval ─────────────────────────────────────────────────────
    approved_by_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # ── Lockout ──────────────────────────────────────────────────────
    failed_login_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lockout_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True, index=True)

    last_login: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_logout: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_password_change: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # ── Password reset (code stored hashed) ──────────────────────────
    reset_password_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reset_password_expires: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reset_password_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # ── Email notification preferences ───────────────────────────────
    notify_new_login: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_new_registration: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_security_alerts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_suspicious_activity: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # ── Soft delete ──────────────────────────────────────────────────
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    deleted_by_id: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    # ── Relationships ────────────────────────────────────────────────
    sessions: Mapped[list[AdminSession]] = relationship(
        order_by=AdminSession.login_time,
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    login_history: Mapped[list[LoginRecord]] = relationship(
        order_by=LoginRecord.login_time,
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    password_history: Mapped[list[PasswordHistoryEntry]] = relationship(
        order_by=PasswordHistoryEntry.changed_at,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @classmethod
    def register(
        cls,
        *,
        name: str,
        email: str,
        password: str,
        role: AdminRole = AdminRole.ADMIN,
        status: AdminStatus = AdminStatus.PENDING,
    ) -> AdminAccount:
        account = cls(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=hash_password(password),
            role=role,
            status=status,
            failed_login_attempts=0,
            reset_password_attempts=0,
            notify_new_login=True,
            notify_new_registration=True,
            notify_security_alerts=True,
            notify_suspicious_activity=True,
            is_deleted=False,
            sessions=[],
            login_history=[],
            password_history=[],
        )
        return account

    # ── Derived state ────────────────────────────────────────────────

    @property
    def is_principal(self) -> bool:
        return is_principal_role(self.role)

    @property
    def can_access_admin(self) -> bool:
        return has_admin_access(self.status, bool(self.is_deleted))

    def is_locked(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.lockout_until is not None and self.lockout_until > now

    def lockout_remaining_minutes(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        if not self.is_locked(now):
            return 0
        seconds = (self.lockout_until - now).total_seconds()
        return max(1, -(-int(seconds) // 60))

    # ── Credentials ──────────────────────────────────────────────────

    def match_password(self, candidate: str) -> bool:
        return verify_password(candidate, self.password_hash)

    def is_password_reused(self, candidate: str) -> bool:
        """True if `candidate` is the current password or any of the last five."""
        if self.match_password(candidate):
            return True
        return any(verify_password(candidate, entry.password_hash) for entry in self.password_history)

    def set_password(self, new_password: str, now: datetime | None = None) -> None:
        now = now or utcnow()
        if self.password_hash:
            self.password_history.append(
                PasswordHistoryEntry(password_hash=self.password_hash, changed_at=now)
            )
            excess = len(self.password_history) - PASSWORD_HISTORY_LIMIT
            if excess > 0:
                del self.password_history[:excess]
        self.password_hash = hash_password(new_password)
        self.last_password_change = now

    # ── Lockout ──────────────────────────────────────────────────────

    def register_failed_login(self, now: datetime | None = None) -> bool:
        """
        Bump the failure counter and apply progressive lockout.

        Returns True when this failure applied or extended a lockout.
        """
        now = now or utcnow()
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts >= EXTENDED_LOCKOUT_THRESHOLD:
            self.lockout_until = now + EXTENDED_LOCKOUT_DURATION
            return True
        if self.failed_login_attempts >= LOCKOUT_THRESHOLD:
            self.lockout_until = now + LOCKOUT_DURATION
            return True
        return False

    def reset_failed_logins(self) -> None:
        self.failed_login_attempts = 0
        self.lockout_until = None

    # ── Login history ────────────────────────────────────────────────

    def record_login(
        self,
        device: DeviceInfo,
        *,
        success: bool,
        now: datetime | None = None,
        failure_reason: str | None = None,
    ) -> LoginRecord:
        now = now or utcnow()
        record = LoginRecord.from_device(
            device, success=success, now=now, failure_reason=failure_reason
        )
        self.login_history.append(record)
        excess = len(self.login_history) - LOGIN_HISTORY_LIMIT
        if excess > 0:
            del self.login_history[:excess]
        return record

    def recent_logins(self, limit: int, *, success: bool | None = None) -> list[LoginRecord]:
        """Newest-last tail of the history, optionally filtered by outcome."""
        records = self.login_history
        if success is not None:
            records = [r for r in records if bool(r.success) is success]
        return list(records[-limit:]) if limit > 0 else []

    # ── Sessions ─────────────────────────────────────────────────────

    def active_sessions(self, now: datetime | None = None) -> list[AdminSession]:
        now = now or utcnow()
        return [s for s in self.sessions if s.is_usable(now)]

    def find_session(self, session_id: str) -> AdminSession | None:
        for session in self.sessions:
            if session.session_id == session_id:
                return session
        return None

    def add_session(self, device: DeviceInfo, now: datetime | None = None) -> AdminSession:
        """
        Open a new session, evicting the oldest active one at the cap.

        Stale sessions are swept first so they never count against the cap.
        """
        now = now or utcnow()
        self.clean_expired_sessions(now)
        active = [s for s in self.sessions if s.is_active]
        while len(active) >= MAX_ACTIVE_SESSIONS:
            oldest = min(active, key=lambda s: s.login_time)
            oldest.deactivate(now)
            active.remove(oldest)

        session_id = generate_session_id()
        while self.find_session(session_id) is not None:
            session_id = generate_session_id()
        session = AdminSession.open(session_id, device, now)
        self.sessions.append(session)
        return session

    def update_session_activity(self, session_id: str, now: datetime | None = None) -> bool:
        session = self.find_session(session_id)
        if session is None or not session.is_active:
            return False
        session.last_activity = now or utcnow()
        return True

    def remove_session(self, session_id: str, now: datetime | None = None) -> bool:
        session = self.find_session(session_id)
        if session is None:
            return False
        return session.deactivate(now or utcnow())

    def remove_all_sessions(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        return sum(1 for s in self.sessions if s.deactivate(now))

    def remove_all_other_sessions(self, keep_session_id: str | None, now: datetime | None = None) -> int:
        now = now or utcnow()
        return sum(
            1 for s in self.sessions if s.session_id != keep_session_id and s.deactivate(now)
        )

    def clean_expired_sessions(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        return sum(1 for s in self.sessions if s.is_active and s.is_stale(now) and s.deactivate(now))

    # ── Lifecycle ────────────────────────────────────────────────────

    def approve(self, approver: AdminAccount, now: datetime | None = None) -> None:
        self.status = AdminStatus.APPROVED
        self.approved_by_id = approver.id
        self.approved_at = now or utcnow()
        self.rejection_reason = None

    def reject(self, reason: str | None = None) -> None:
        self.status = AdminStatus.REJECTED
        self.rejection_reason = reason or None

    def suspend(self, now: datetime | None = None) -> int:
        self.status = AdminStatus.SUSPENDED
        return self.remove_all_sessions(now)

    def reactivate(self) -> None:
        self.status = AdminStatus.APPROVED

    def soft_delete(self, deleted_by: AdminAccount | None, now: datetime | None = None) -> int:
        now = now or utcnow()
        self.is_deleted = True
        self.status = AdminStatus.SUSPENDED
        self.deleted_at = now
        self.deleted_by_id = deleted_by.id if deleted_by is not None else None
        return self.remove_all_sessions(now)

    # ── Password reset codes ─────────────────────────────────────────

    def issue_reset_code(self, now: datetime | None = None) -> str | None:
        """
        Generate a fresh one-time code, or None when the request budget
        is spent.  The budget restarts an hour after the last code expired.
        """
        now = now or utcnow()
        if (
            self.reset_password_expires is not None
            and now > self.reset_password_expires + RESET_COUNTER_COOLDOWN
        ):
            self.reset_password_attempts = 0
        if (self.reset_password_attempts or 0) >= RESET_MAX_REQUESTS:
            return None
        code = generate_reset_code()
        self.reset_password_token = hash_token(code)
        self.reset_password_expires = now + RESET_CODE_TTL
        self.reset_password_attempts = (self.reset_password_attempts or 0) + 1
        return code

    def reset_code_matches(self, code: str, now: datetime | None = None) -> bool:
        now = now or utcnow()
        if not code or self.reset_password_token is None or self.reset_password_expires is None:
            return False
        if now > self.reset_password_expires:
            return False
        return token_matches(code, self.reset_password_token)

    def clear_reset_code(self) -> None:
        self.reset_password_token = None
        self.reset_password_expires = None
        self.reset_password_attempts = 0

    # ── Notification preferences ─────────────────────────────────────

    @property
    def email_notifications(self) -> dict[str, bool]:
        return {key: bool(getattr(self, f"notify_{key}")) for key in NOTIFICATION_PREFERENCES}

    def update_email_notifications(self, changes: dict[str, bool]) -> dict[str, bool]:
        for key, value in changes.items():
            if key in NOTIFICATION_PREFERENCES and value is not None:
                setattr(self, f"notify_{key}", bool(value))
        return self.email_notifications

    def __repr__(self) -> str:
        return f"<AdminAccount {self.email} role={self.role} status={self.status}>"
