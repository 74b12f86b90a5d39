"""
Authentication service.

Handles:
- Login: credential check, progressive lockout, approval gate, session
  creation, threat analysis and token issuance
- Token validation on every protected request, re-checking the embedded
  session against the account's live session list
- Logout (current session) and logout-all

Ordering rules for login:
1. Unknown, deleted or wrong password -> generic INVALID_CREDENTIALS
   (a wrong password also bumps the lockout counter and is recorded)
2. Locked -> ACCOUNT_LOCKED with the remaining minutes
3. Not approved -> ACCOUNT_NOT_APPROVED

All business logic lives here; controllers call service methods
and map the returned Outcome onto HTTP.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.core.errors import ErrorCode, Failure, Outcome, Success
from admin_auth.core.security import TokenClaims, TokenService
from admin_auth.models.admin import AdminAccount, AdminStatus
from admin_auth.models.base import utcnow
from admin_auth.models.device_info import DeviceInfo
from admin_auth.services.account_service import get_account_by_email, get_account_by_id
from admin_auth.services.notification_service import AccountNotifier
from admin_auth.services.threat_service import ThreatAnalyzer

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    token: str
    session_id: str
    account: AdminAccount
    expires_at: datetime
    threats: list[str] = field(default_factory=list)


@dataclass
class AuthContext:
    account: AdminAccount
    session_id: str | None
    claims: TokenClaims


def _invalid_credentials() -> Failure:
    return Failure(ErrorCode.INVALID_CREDENTIALS, "Invalid credentials")


class AuthService:
    def __init__(
        self,
        *,
        tokens: TokenService,
        analyzer: ThreatAnalyzer,
        notifier: AccountNotifier,
    ):
        self.tokens = tokens
        self.analyzer = analyzer
        self.notifier = notifier

    # ── Login ────────────────────────────────────────────────────────

    async def login(
        self,
        db: AsyncSession,
        *,
        email: str,
        password: str,
        device: DeviceInfo,
        now: datetime | None = None,
    ) -> Outcome[LoginResult]:
        now = now or utcnow()
        account = await get_account_by_email(email, db, for_update=True)

        if account is None or account.is_deleted:
            logger.warning("Failed login for unknown account %s from %s", email, device.ip)
            return _invalid_credentials()

        if not account.match_password(password):
            return await self._reject_password(db, account, device, now)

        if account.is_locked(now):
            minutes = account.lockout_remaining_minutes(now)
            logger.warning("Login refused for locked account %s (%d min left)", account.email, minutes)
            return Failure(
                ErrorCode.ACCOUNT_LOCKED,
                f"Account is locked. Try again in {minutes} minutes",
                {"lockout_remaining_minutes": minutes},
            )

        if account.status != AdminStatus.APPROVED:
            logger.warning("Login refused for %s account %s", account.status.value, account.email)
            return Failure(
                ErrorCode.ACCOUNT_NOT_APPROVED,
                f"Account is {account.status.value}. Contact a principal administrator",
                {"status": account.status.value},
            )

        account.reset_failed_logins()
        session = account.add_session(device, now)
        assessment = self.analyzer.analyze(account, device, now)
        account.record_login(device, success=True, now=now)
        account.last_login = now
        await db.flush()

        token = self.tokens.create_access_token(
            account_id=str(account.id),
            session_id=session.session_id,
            role=account.role.value,
        )
        logger.info("Admin %s logged in from %s (%s)", account.email, device.ip, device.location)

        self.notifier.login(account, device, now)
        if assessment.alert:
            self.notifier.security_alert(account, assessment.messages, device)

        return Success(
            LoginResult(
                token=token,
                session_id=session.session_id,
                account=account,
                expires_at=session.expires_at,
                threats=assessment.messages,
            )
        )

    async def _reject_password(
        self,
        db: AsyncSession,
        account: AdminAccount,
        device: DeviceInfo,
        now: datetime,
    ) -> Failure:
        locked = account.register_failed_login(now)
        account.record_login(device, success=False, now=now, failure_reason="Invalid password")
        # The failure is returned, not raised; persist the counter now.
        await db.commit()

        logger.warning(
            "Failed login for %s from %s (attempt %d)",
            account.email,
            device.ip,
            account.failed_login_attempts,
        )
        if locked:
            minutes = account.lockout_remaining_minutes(now)
            logger.warning("Account %s locked for %d minutes", account.email, minutes)
            self.notifier.account_locked(account, device, minutes)
        return _invalid_credentials()

    # ── Token validation ─────────────────────────────────────────────

    async def authenticate_token(
        self,
        db: AsyncSession,
        token: str | None,
        now: datetime | None = None,
    ) -> Outcome[AuthContext]:
        now = now or utcnow()
        decoded = self.tokens.decode_access_token(token)
        if not decoded.ok:
            return decoded
        claims = decoded.value

        account = await get_account_by_id(claims.account_id, db, for_update=True)
        if account is None:
            return Failure(ErrorCode.USER_NOT_FOUND, "Account not found")
        if account.is_deleted:
            return Failure(ErrorCode.ACCOUNT_DELETED, "Account has been deleted")
        if account.status != AdminStatus.APPROVED:
            return Failure(
                ErrorCode.ACCOUNT_NOT_APPROVED,
                "Account is not approved",
                {"status": account.status.value},
            )
        if account.is_locked(now):
            minutes = account.lockout_remaining_minutes(now)
            return Failure(
                ErrorCode.ACCOUNT_LOCKED,
                f"Account is locked. Try again in {minutes} minutes",
                {"lockout_remaining_minutes": minutes},
            )

        if claims.session_id is not None:
            session = account.find_session(claims.session_id)
            if session is None or not session.is_usable(now):
                if session is not None and session.deactivate(now):
                    await db.commit()
                return Failure(ErrorCode.SESSION_EXPIRED, "Session expired. Please log in again")
            account.update_session_activity(claims.session_id, now)
            await db.flush()

        logger.debug("Token accepted for %s", account.email)
        return Success(AuthContext(account=account, session_id=claims.session_id, claims=claims))

    # ── Logout ───────────────────────────────────────────────────────

    async def logout(
        self,
        db: AsyncSession,
        context: AuthContext,
        now: datetime | None = None,
    ) -> None:
        now = now or utcnow()
        account = context.account
        if context.session_id is not None:
            account.remove_session(context.session_id, now)
        account.last_logout = now
        await db.flush()
        logger.info("Admin %s logged out", account.email)

    async def logout_all(
        self,
        db: AsyncSession,
        context: AuthContext,
        now: datetime | None = None,
    ) -> int:
        now = now or utcnow()
        account = context.account
        count = account.remove_all_sessions(now)
        account.last_logout = now
        await db.flush()
        logger.info("Admin %s logged out of %d sessions", account.email, count)
        return count
