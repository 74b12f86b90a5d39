"""
Session service: listing, termination & fleet-wide maintenance.

Handles:
- Listing an admin's live sessions (current one flagged)
- Terminating one of the caller's own sessions
- The scheduled sweep that deactivates expired/idle sessions across
  every account; deactivated rows are kept for forensic review

The sweep locks accounts with `SKIP LOCKED`, so an account that is busy
logging in is simply picked up on the next run instead of blocking it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.core.errors import ErrorCode, Failure, Outcome, Success
from admin_auth.models.admin import AdminAccount
from admin_auth.models.base import utcnow
from admin_auth.models.session import AdminSession

logger = logging.getLogger(__name__)


def serialize_session(session: AdminSession, current_session_id: str | None) -> dict:
    return {
        "session_id": session.session_id,
        "device_info": session.device_info.as_dict(),
        "login_time": session.login_time,
        "last_activity": session.last_activity,
        "expires_at": session.expires_at,
        "is_current": session.session_id == current_session_id,
    }


def list_active_sessions(
    account: AdminAccount,
    current_session_id: str | None,
    now: datetime | None = None,
) -> list[dict]:
    """Usable sessions, newest first."""
    sessions = sorted(account.active_sessions(now), key=lambda s: s.login_time, reverse=True)
    return [serialize_session(s, current_session_id) for s in sessions]


def terminate_session(
    account: AdminAccount,
    session_id: str,
    now: datetime | None = None,
) -> Outcome[None]:
    session = account.find_session(session_id)
    if session is None or not session.is_active:
        return Failure(ErrorCode.SESSION_NOT_FOUND, "Session not found or already inactive")
    session.deactivate(now or utcnow())
    logger.info("Session terminated for %s", account.email)
    return Success(None)


@dataclass
class SweepResult:
    accounts_scanned: int = 0
    sessions_deactivated: int = 0


async def cleanup_inactive_sessions(
    db: AsyncSession,
    now: datetime | None = None,
) -> SweepResult:
    """Deactivate stale sessions on every account.  Rows are kept for review."""
    now = now or utcnow()
    result = SweepResult()

    stmt = (
        select(AdminAccount)
        .where(AdminAccount.sessions.any(AdminSession.is_active == True))  # noqa: E712
        .with_for_update(skip_locked=True)
    )
    accounts = (await db.execute(stmt)).scalars().all()
    for account in accounts:
        result.accounts_scanned += 1
        result.sessions_deactivated += account.clean_expired_sessions(now)
    await db.flush()

    logger.info(
        "Session sweep: %d accounts scanned, %d sessions deactivated",
        result.accounts_scanned,
        result.sessions_deactivated,
    )
    return result
