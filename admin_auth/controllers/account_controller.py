"""
Account controller: the signed-in admin's own profile, sessions,
notification preferences, password and security report.

Every route requires a valid session; none needs the principal role.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.core.database import get_db
from admin_auth.core.http import unwrap
from admin_auth.rbac.dependencies import get_auth_context, get_notifier
from admin_auth.schemas import (
    ChangePasswordRequest,
    MessageResponse,
    NotificationPreferences,
    NotificationPreferencesUpdate,
    ProfileOut,
    SecurityReport,
    SessionOut,
    SessionsRevokedResponse,
)
from admin_auth.services import account_service, password_service, session_service
from admin_auth.services.auth_service import AuthContext
from admin_auth.services.notification_service import AccountNotifier

router = APIRouter(prefix="/api/admin", tags=["Account"])


@router.get("/profile", response_model=ProfileOut)
async def get_profile(context: AuthContext = Depends(get_auth_context)):
    return account_service.build_profile(context.account)


@router.patch("/notifications", response_model=NotificationPreferences)
async def update_notifications(
    body: NotificationPreferencesUpdate,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Merge partial toggles into the caller's email preferences."""
    preferences = account_service.update_notifications(context.account, body.model_dump())
    await db.flush()
    return preferences


@router.get("/sessions", response_model=list[SessionOut])
async def list_sessions(context: AuthContext = Depends(get_auth_context)):
    return session_service.list_active_sessions(context.account, context.session_id)


@router.delete("/sessions/{session_id}", response_model=MessageResponse)
async def terminate_session(
    session_id: str,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    unwrap(session_service.terminate_session(context.account, session_id))
    await db.flush()
    return MessageResponse(message="Session terminated")


@router.post("/password/change", response_model=SessionsRevokedResponse)
async def change_password(
    body: ChangePasswordRequest,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    notifier: AccountNotifier = Depends(get_notifier),
):
    """Change password; every other session is signed out, this one stays."""
    revoked = unwrap(
        await password_service.change_password(
            db,
            context.account,
            current_password=body.current_password,
            new_password=body.new_password,
            current_session_id=context.session_id,
            notifier=notifier,
        )
    )
    return SessionsRevokedResponse(message="Password changed successfully", sessions_revoked=revoked)


@router.get("/security/report", response_model=SecurityReport)
async def security_report(context: AuthContext = Depends(get_auth_context)):
    return account_service.build_security_report(context.account)
