"""
Approval workflow: admin account lifecycle.

    register ─► pending ─┬─► approved ◄──► suspended
                         └─► rejected
    any non-principal ─► deleted (soft, terminal)

Business rules enforced:
- Only principals act on other accounts; nobody acts on themselves.
- Principal accounts cannot be suspended, toggled, deleted, approved
  or rejected by anyone.
- Registration answers identically whether or not the email is taken,
  so the endpoint cannot be used to enumerate accounts.  A rejected
  admin keeps the email and therefore cannot re-register.
"""

import logging
import uuid
from collections import Counter
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.core.errors import ErrorCode, Failure, Outcome, Success
from admin_auth.models.admin import AdminAccount, AdminRole, AdminStatus
from admin_auth.models.base import utcnow
from admin_auth.services.account_service import (
    AccountFilter,
    email_taken,
    find_accounts,
    get_account_by_id,
    get_notification_recipients,
    save_account,
)
from admin_auth.services.notification_service import AccountNotifier

logger = logging.getLogger(__name__)

REGISTRATION_ACKNOWLEDGEMENT = (
    "Registration received. Your account will be reviewed by a principal administrator."
)
RECENT_LOGINS_SHOWN = 10


# ── Registration ─────────────────────────────────────────────────────


async def register_admin(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
    notifier: AccountNotifier,
) -> Outcome[str]:
    if await email_taken(email, db):
        logger.warning("Registration attempted for existing email %s", email)
        return Success(REGISTRATION_ACKNOWLEDGEMENT)

    account = AdminAccount.register(name=name, email=email, password=password)
    await save_account(account, db)
    logger.info("New admin registration: %s (pending approval)", account.email)

    recipients = await get_notification_recipients(db)
    notifier.new_registration(recipients, account)
    return Success(REGISTRATION_ACKNOWLEDGEMENT)


# ── Listing ──────────────────────────────────────────────────────────


def summarize_account(account: AdminAccount, now: datetime | None = None) -> dict:
    return {
        "id": str(account.id),
        "name": account.name,
        "email": account.email,
        "role": account.role.value,
        "status": account.status.value,
        "created_at": account.created_at,
        "last_login": account.last_login,
        "is_locked": account.is_locked(now),
        "active_sessions": len(account.active_sessions(now)),
    }


async def list_pending(db: AsyncSession) -> list[dict]:
    accounts = await find_accounts(db, AccountFilter(status=AdminStatus.PENDING))
    return [summarize_account(a) for a in accounts]


async def list_admins(db: AsyncSession) -> dict:
    """Every non-principal, non-deleted account, with counts by status."""
    accounts = await find_accounts(db, AccountFilter(exclude_role=AdminRole.PRINCIPAL))
    counts = Counter(a.status.value for a in accounts)
    return {
        "admins": [summarize_account(a) for a in accounts],
        "counts": {s.value: counts.get(s.value, 0) for s in AdminStatus},
        "total": len(accounts),
    }


async def get_admin_details(db: AsyncSession, account_id: uuid.UUID | str) -> Outcome[dict]:
    account = await get_account_by_id(account_id, db)
    if account is None or account.is_deleted:
        return Failure(ErrorCode.ACCOUNT_NOT_FOUND, "Admin not found")

    approver_name = None
    if account.approved_by_id is not None:
        approver = await get_account_by_id(account.approved_by_id, db)
        approver_name = approver.name if approver else None

    now = utcnow()
    details = summarize_account(account, now)
    details.update(
        {
            "approved_by": approver_name,
            "approved_at": account.approved_at,
            "rejection_reason": account.rejection_reason,
            "failed_login_attempts": account.failed_login_attempts,
            "lockout_until": account.lockout_until,
            "last_password_change": account.last_password_change,
            "sessions": [
                {
                    "session_id": s.session_id,
                    "device_info": s.device_info.as_dict(),
                    "login_time": s.login_time,
                    "last_activity": s.last_activity,
                    "is_active": s.is_usable(now),
                }
                for s in sorted(account.sessions, key=lambda s: s.login_time, reverse=True)
            ],
            "login_history": [
                {
                    "ip": r.ip,
                    "location": r.location,
                    "browser": r.browser,
                    "os": r.os,
                    "success": r.success,
                    "login_time": r.login_time,
                    "failure_reason": r.failure_reason,
                }
                for r in reversed(account.recent_logins(RECENT_LOGINS_SHOWN))
            ],
        }
    )
    return Success(details)


# ── Transitions ──────────────────────────────────────────────────────


async def _load_target(
    db: AsyncSession,
    actor: AdminAccount,
    target_id: uuid.UUID | str,
    *,
    allow_principal: bool = False,
) -> Outcome[AdminAccount]:
    if not actor.is_principal:
        return Failure(ErrorCode.INSUFFICIENT_PRIVILEGES, "Principal admin access required")
    # Guards run on a plain read so a request against another principal
    # never waits on that principal's own row lock.
    target = await get_account_by_id(target_id, db)
    if target is None or target.is_deleted:
        return Failure(ErrorCode.ACCOUNT_NOT_FOUND, "Admin not found")
    if target.id == actor.id:
        return Failure(ErrorCode.CANNOT_TARGET_SELF, "You cannot perform this action on your own account")
    if target.is_principal and not allow_principal:
        return Failure(ErrorCode.CANNOT_MODIFY_PRINCIPAL, "Principal admin accounts cannot be modified")
    target = await get_account_by_id(target.id, db, for_update=True)
    if target is None or target.is_deleted:
        return Failure(ErrorCode.ACCOUNT_NOT_FOUND, "Admin not found")
    return Success(target)


async def approve_admin(
    db: AsyncSession,
    actor: AdminAccount,
    target_id: uuid.UUID | str,
    *,
    notifier: AccountNotifier,
) -> Outcome[AdminAccount]:
    loaded = await _load_target(db, actor, target_id)
    if not loaded.ok:
        return loaded
    target = loaded.value
    if target.status != AdminStatus.PENDING:
        return Failure(
            ErrorCode.INVALID_STATE,
            f"Admin is already {target.status.value}",
            {"status": target.status.value},
        )

    target.approve(actor)
    await db.flush()
    logger.info("Admin %s approved by %s", target.email, actor.email)
    notifier.approved(target, actor.name)
    return Success(target)


async def reject_admin(
    db: AsyncSession,
    actor: AdminAccount,
    target_id: uuid.UUID | str,
    *,
    reason: str | None,
    notifier: AccountNotifier,
) -> Outcome[AdminAccount]:
    loaded = await _load_target(db, actor, target_id)
    if not loaded.ok:
        return loaded
    target = loaded.value
    if target.status != AdminStatus.PENDING:
        return Failure(
            ErrorCode.INVALID_STATE,
            f"Admin is already {target.status.value}",
            {"status": target.status.value},
        )

    target.reject(reason.strip() if reason else None)
    await db.flush()
    logger.info("Admin %s rejected by %s", target.email, actor.email)
    notifier.rejected(target, target.rejection_reason)
    return Success(target)


async def toggle_admin_status(
    db: AsyncSession,
    actor: AdminAccount,
    target_id: uuid.UUID | str,
) -> Outcome[AdminAccount]:
    """approved -> suspended (sessions revoked), suspended -> approved."""
    loaded = await _load_target(db, actor, target_id)
    if not loaded.ok:
        return loaded
    target = loaded.value

    if target.status == AdminStatus.APPROVED:
        revoked = target.suspend()
        logger.info("Admin %s suspended by %s (%d sessions revoked)", target.email, actor.email, revoked)
    elif target.status == AdminStatus.SUSPENDED:
        target.reactivate()
        logger.info("Admin %s reactivated by %s", target.email, actor.email)
    else:
        return Failure(
            ErrorCode.INVALID_STATE,
            f"Cannot toggle an admin who is {target.status.value}",
            {"status": target.status.value},
        )
    await db.flush()
    return Success(target)


async def delete_admin(
    db: AsyncSession,
    actor: AdminAccount,
    target_id: uuid.UUID | str,
) -> Outcome[None]:
    loaded = await _load_target(db, actor, target_id)
    if not loaded.ok:
        return loaded
    target = loaded.value
    revoked = target.soft_delete(actor)
    await db.flush()
    logger.info("Admin %s deleted by %s (%d sessions revoked)", target.email, actor.email, revoked)
    return Success(None)


async def unlock_admin(
    db: AsyncSession,
    actor: AdminAccount,
    target_id: uuid.UUID | str,
) -> Outcome[AdminAccount]:
    loaded = await _load_target(db, actor, target_id, allow_principal=True)
    if not loaded.ok:
        return loaded
    target = loaded.value
    target.reset_failed_logins()
    await db.flush()
    logger.info("Admin %s unlocked by %s", target.email, actor.email)
    return Success(target)
