"""
Pydantic schemas for request / response serialization.

Kept in a single file for now; split per-domain when it grows.
Schemas are deliberately decoupled from SQLAlchemy models so the
API surface can evolve independently of the DB layer.

Password fields cap at 72 characters: bcrypt ignores (and newer releases
reject) anything longer.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

PASSWORD_MIN = 8
PASSWORD_MAX = 72


# ── Generic ──────────────────────────────────────────────────────────
class MessageResponse(BaseModel):
    message: str


# ── Auth ─────────────────────────────────────────────────────────────
class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=PASSWORD_MAX)


class AdminSummary(BaseModel):
    id: str
    name: str
    email: str
    role: str
    status: str


class LoginResponse(BaseModel):
    message: str = "Login successful"
    access_token: str
    token_type: str = "bearer"
    session_id: str
    expires_at: datetime
    admin: AdminSummary
    security_warnings: list[str] = []


class LogoutAllResponse(BaseModel):
    message: str
    sessions_revoked: int


# ── Password ─────────────────────────────────────────────────────────
class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=PASSWORD_MAX)
    new_password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)


class ResetRequest(BaseModel):
    email: EmailStr


class VerifyCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(pattern=r"^\d{6}$")


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    code: str = Field(pattern=r"^\d{6}$")
    new_password: str = Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX)


class SessionsRevokedResponse(BaseModel):
    message: str
    sessions_revoked: int


# ── Account ──────────────────────────────────────────────────────────
class NotificationPreferences(BaseModel):
    new_login: bool
    new_registration: bool
    security_alerts: bool
    suspicious_activity: bool


class NotificationPreferencesUpdate(BaseModel):
    new_login: bool | None = None
    new_registration: bool | None = None
    security_alerts: bool | None = None
    suspicious_activity: bool | None = None


class ProfileOut(BaseModel):
    id: str
    name: str
    email: str
    role: str
    status: str
    last_login: datetime | None = None
    last_password_change: datetime | None = None
    created_at: datetime
    email_notifications: NotificationPreferences


class DeviceInfoOut(BaseModel):
    ip: str
    user_agent: str
    browser: str
    os: str
    device_type: str
    location: str


class SessionOut(BaseModel):
    session_id: str
    device_info: DeviceInfoOut
    login_time: datetime
    last_activity: datetime
    expires_at: datetime
    is_current: bool


class SecurityFlags(BaseModel):
    has_recent_failures: bool
    multiple_locations: bool
    multiple_ips: bool
    is_locked: bool


class SecurityReport(BaseModel):
    period_days: int
    total_logins: int
    successful_logins: int
    failed_logins: int
    unique_ips: int
    unique_locations: int
    failure_rate: float
    active_sessions: int
    total_sessions: int
    last_login: datetime | None = None
    flags: SecurityFlags


# ── Principal administration ─────────────────────────────────────────
class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class AdminListItem(BaseModel):
    id: str
    name: str
    email: str
    role: str
    status: str
    created_at: datetime
    last_login: datetime | None = None
    is_locked: bool
    active_sessions: int


class AdminListResponse(BaseModel):
    admins: list[AdminListItem]
    counts: dict[str, int]
    total: int


class AdminSessionOut(BaseModel):
    session_id: str
    device_info: DeviceInfoOut
    login_time: datetime
    last_activity: datetime
    is_active: bool


class LoginRecordOut(BaseModel):
    ip: str
    location: str
    browser: str
    os: str
    success: bool
    login_time: datetime
    failure_reason: str | None = None


class AdminDetail(AdminListItem):
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    failed_login_attempts: int
    lockout_until: datetime | None = None
    last_password_change: datetime | None = None
    sessions: list[AdminSessionOut]
    login_history: list[LoginRecordOut]


class AdminStatusResponse(BaseModel):
    message: str
    admin: AdminSummary
