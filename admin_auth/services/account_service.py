"""
Account service: persistence helpers for the AdminAccount aggregate.

Every per-account mutation loads the row with `for_update=True` so that
concurrent requests for the same admin serialise on the row lock while
the aggregate (sessions, history) is read, changed and flushed.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.models.admin import AdminAccount, AdminRole, AdminStatus, normalize_email
from admin_auth.models.base import utcnow


def _parse_id(account_id: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(account_id, uuid.UUID):
        return account_id
    try:
        return uuid.UUID(str(account_id))
    except ValueError:
        return None


def _locked(stmt: Select, for_update: bool) -> Select:
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


async def get_account_by_email(
    email: str,
    db: AsyncSession,
    *,
    for_update: bool = False,
) -> AdminAccount | None:
    stmt = select(AdminAccount).where(AdminAccount.email == normalize_email(email))
    result = await db.execute(_locked(stmt, for_update))
    return result.scalar_one_or_none()


async def get_account_by_id(
    account_id: uuid.UUID | str,
    db: AsyncSession,
    *,
    for_update: bool = False,
) -> AdminAccount | None:
    parsed = _parse_id(account_id)
    if parsed is None:
        return None
    stmt = select(AdminAccount).where(AdminAccount.id == parsed)
    result = await db.execute(_locked(stmt, for_update))
    return result.scalar_one_or_none()


async def email_taken(email: str, db: AsyncSession) -> bool:
    stmt = select(func.count()).select_from(AdminAccount).where(
        AdminAccount.email == normalize_email(email)
    )
    return (await db.scalar(stmt) or 0) > 0


async def save_account(account: AdminAccount, db: AsyncSession) -> AdminAccount:
    db.add(account)
    await db.flush()
    return account


@dataclass
class AccountFilter:
    status: AdminStatus | None = None
    role: AdminRole | None = None
    is_deleted: bool | None = False
    exclude_role: AdminRole | None = None
    locked_at: datetime | None = None  # only accounts whose lockout is still running at this time


async def find_accounts(
    db: AsyncSession,
    filters: AccountFilter | None = None,
    *,
    skip: int = 0,
    limit: int | None = None,
) -> list[AdminAccount]:
    filters = filters or AccountFilter()
    stmt = select(AdminAccount)
    if filters.status is not None:
        stmt = stmt.where(AdminAccount.status == filters.status)
    if filters.role is not None:
        stmt = stmt.where(AdminAccount.role == filters.role)
    if filters.exclude_role is not None:
        stmt = stmt.where(AdminAccount.role != filters.exclude_role)
    if filters.is_deleted is not None:
        stmt = stmt.where(AdminAccount.is_deleted == filters.is_deleted)
    if filters.locked_at is not None:
        stmt = stmt.where(AdminAccount.lockout_until > filters.locked_at)

    stmt = stmt.order_by(AdminAccount.created_at.desc()).offset(skip)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_notification_recipients(db: AsyncSession) -> list[AdminAccount]:
    """Approved principals who opted in to new-registration alerts."""
    principals = await find_accounts(
        db, AccountFilter(status=AdminStatus.APPROVED, role=AdminRole.PRINCIPAL)
    )
    return [p for p in principals if p.notify_new_registration]


# ── Own-account views ────────────────────────────────────────────────


def build_profile(account: AdminAccount) -> dict:
    return {
        "id": str(account.id),
        "name": account.name,
        "email": account.email,
        "role": account.role.value,
        "status": account.status.value,
        "last_login": account.last_login,
        "last_password_change": account.last_password_change,
        "created_at": account.created_at,
        "email_notifications": account.email_notifications,
    }


def update_notifications(account: AdminAccount, changes: dict[str, bool | None]) -> dict[str, bool]:
    return account.update_email_notifications(
        {key: value for key, value in changes.items() if value is not None}
    )


def build_security_report(account: AdminAccount, now: datetime | None = None, days: int = 30) -> dict:
    """Login analytics for the trailing `days` window."""
    now = now or utcnow()
    since = now - timedelta(days=days)
    recent = [r for r in account.login_history if r.login_time >= since]
    successful = [r for r in recent if r.success]
    failed = [r for r in recent if not r.success]
    unique_ips = {r.ip for r in recent if r.ip}
    unique_locations = {r.location for r in recent if r.location}
    active = account.active_sessions(now)

    return {
        "period_days": days,
        "total_logins": len(recent),
        "successful_logins": len(successful),
        "failed_logins": len(failed),
        "unique_ips": len(unique_ips),
        "unique_locations": len(unique_locations),
        "failure_rate": round(len(failed) / len(recent) * 100, 2) if recent else 0.0,
        "active_sessions": len(active),
        "total_sessions": len(account.sessions),
        "last_login": account.last_login,
        "flags": {
            "has_recent_failures": len(failed) > 0,
            "multiple_locations": len(unique_locations) > 2,
            "multiple_ips": len(unique_ips) > 3,
            "is_locked": account.is_locked(now),
        },
    }
