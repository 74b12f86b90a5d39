"""
Password change & reset.

Change (authenticated): verify the current password, refuse reuse,
apply, and sign out every *other* session.

Reset (unauthenticated, three steps):
1. request  - always answers the same way; issues a 6-digit code only
              for an approved, non-deleted account with budget left
2. verify   - checks the code without consuming it
3. reset    - re-checks the code, refuses reuse, applies the password,
              clears the code and signs out *every* session
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.core.errors import ErrorCode, Failure, Outcome, Success
from admin_auth.models.admin import RESET_CODE_TTL, AdminAccount, AdminStatus
from admin_auth.models.base import utcnow
from admin_auth.services.account_service import get_account_by_email
from admin_auth.services.notification_service import AccountNotifier

logger = logging.getLogger(__name__)

RESET_REQUEST_ACKNOWLEDGEMENT = "If an account exists for this email, a reset code has been sent."

_REUSE_MESSAGE = "New password must differ from your current and last 5 passwords"


def _eligible(account: AdminAccount | None) -> bool:
    return account is not None and not account.is_deleted and account.status == AdminStatus.APPROVED


async def change_password(
    db: AsyncSession,
    account: AdminAccount,
    *,
    current_password: str,
    new_password: str,
    current_session_id: str | None,
    notifier: AccountNotifier,
    now: datetime | None = None,
) -> Outcome[int]:
    """Returns the number of other sessions that were signed out."""
    now = now or utcnow()
    if not account.match_password(current_password):
        logger.warning("Password change for %s refused: wrong current password", account.email)
        return Failure(ErrorCode.INCORRECT_PASSWORD, "Current password is incorrect")
    if account.is_password_reused(new_password):
        return Failure(ErrorCode.PASSWORD_REUSED, _REUSE_MESSAGE)

    account.set_password(new_password, now)
    revoked = account.remove_all_other_sessions(current_session_id, now)
    await db.flush()
    logger.info("Password changed for %s (%d other sessions revoked)", account.email, revoked)
    notifier.password_changed(account, now)
    return Success(revoked)


async def request_reset(
    db: AsyncSession,
    *,
    email: str,
    notifier: AccountNotifier,
    now: datetime | None = None,
) -> Outcome[str]:
    now = now or utcnow()
    account = await get_account_by_email(email, db, for_update=True)
    if not _eligible(account):
        logger.info("Password reset requested for unknown or ineligible email %s", email)
        return Success(RESET_REQUEST_ACKNOWLEDGEMENT)

    code = account.issue_reset_code(now)
    if code is None:
        logger.warning("Password reset budget exhausted for %s", account.email)
        return Success(RESET_REQUEST_ACKNOWLEDGEMENT)

    await db.flush()
    notifier.reset_code(account, code, int(RESET_CODE_TTL.total_seconds() // 60))
    logger.info("Password reset code issued for %s", account.email)
    return Success(RESET_REQUEST_ACKNOWLEDGEMENT)


async def _account_for_code(
    db: AsyncSession,
    email: str,
    code: str,
    now: datetime,
    *,
    for_update: bool = False,
) -> Outcome[AdminAccount]:
    account = await get_account_by_email(email, db, for_update=for_update)
    if not _eligible(account) or not account.reset_code_matches(code, now):
        return Failure(ErrorCode.INVALID_RESET_CODE, "Invalid or expired reset code")
    return Success(account)


async def verify_reset_code(
    db: AsyncSession,
    *,
    email: str,
    code: str,
    now: datetime | None = None,
) -> Outcome[None]:
    found = await _account_for_code(db, email, code, now or utcnow())
    if not found.ok:
        return found
    return Success(None)


async def reset_password(
    db: AsyncSession,
    *,
    email: str,
    code: str,
    new_password: str,
    notifier: AccountNotifier,
    now: datetime | None = None,
) -> Outcome[int]:
    """Returns the number of sessions that were signed out."""
    now = now or utcnow()
    found = await _account_for_code(db, email, code, now, for_update=True)
    if not found.ok:
        return found
    account = found.value
    if account.is_password_reused(new_password):
        return Failure(ErrorCode.PASSWORD_REUSED, _REUSE_MESSAGE)

    account.set_password(new_password, now)
    account.clear_reset_code()
    revoked = account.remove_all_sessions(now)
    await db.flush()
    logger.info("Password reset for %s (%d sessions revoked)", account.email, revoked)
    notifier.password_changed(account, now)
    return Success(revoked)
