"""
Auth controller: registration, login, logout & password reset.

Register, login and the reset routes are PUBLIC (rate limited per
client address).  Logout routes require a valid session.
"""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.core.database import get_db
from admin_auth.core.http import unwrap
from admin_auth.core.rate_limit import rate_limited
from admin_auth.models.admin import AdminAccount
from admin_auth.rbac.dependencies import get_auth_context, get_auth_service, get_notifier
from admin_auth.schemas import (
    AdminSummary,
    LoginRequest,
    LoginResponse,
    LogoutAllResponse,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    ResetRequest,
    SessionsRevokedResponse,
    VerifyCodeRequest,
)
from admin_auth.services import approval_service, password_service
from admin_auth.services.auth_service import AuthContext, AuthService
from admin_auth.services.notification_service import AccountNotifier

router = APIRouter(prefix="/api/admin", tags=["Auth"])


def admin_summary(account: AdminAccount) -> AdminSummary:
    return AdminSummary(
        id=str(account.id),
        name=account.name,
        email=account.email,
        role=account.role.value,
        status=account.status.value,
    )


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=201,
    dependencies=[Depends(rate_limited("registration"))],
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    notifier: AccountNotifier = Depends(get_notifier),
):
    """Self-registration; the account waits for principal approval."""
    message = unwrap(
        await approval_service.register_admin(
            db, name=body.name, email=body.email, password=body.password, notifier=notifier
        )
    )
    return MessageResponse(message=message)


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limited("login"))],
)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Authenticate with email + password → session-bound JWT (also set as a cookie)."""
    device = await request.app.state.device_resolver.from_request(request)
    result = unwrap(await auth.login(db, email=body.email, password=body.password, device=device))

    settings = request.app.state.settings
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=result.token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )
    return LoginResponse(
        access_token=result.token,
        session_id=result.session_id,
        expires_at=result.expires_at,
        admin=admin_summary(result.account),
        security_warnings=result.threats,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Deactivate the current session (server-side logout)."""
    await auth.logout(db, context)
    response.delete_cookie(request.app.state.settings.AUTH_COOKIE_NAME)
    return MessageResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    request: Request,
    response: Response,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Deactivate every session on the caller's account, this one included."""
    count = await auth.logout_all(db, context)
    response.delete_cookie(request.app.state.settings.AUTH_COOKIE_NAME)
    return LogoutAllResponse(message="Logged out from all devices", sessions_revoked=count)


# ── Password reset (public) ──────────────────────────────────────────


@router.post(
    "/password/reset-request",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limited("password_reset"))],
)
async def request_password_reset(
    body: ResetRequest,
    db: AsyncSession = Depends(get_db),
    notifier: AccountNotifier = Depends(get_notifier),
):
    """Always answers the same way, whether or not the email is registered."""
    message = unwrap(await password_service.request_reset(db, email=body.email, notifier=notifier))
    return MessageResponse(message=message)


@router.post(
    "/password/verify-code",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limited("password_reset"))],
)
async def verify_reset_code(body: VerifyCodeRequest, db: AsyncSession = Depends(get_db)):
    unwrap(await password_service.verify_reset_code(db, email=body.email, code=body.code))
    return MessageResponse(message="Reset code verified")


@router.post(
    "/password/reset",
    response_model=SessionsRevokedResponse,
    dependencies=[Depends(rate_limited("password_reset"))],
)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    notifier: AccountNotifier = Depends(get_notifier),
):
    revoked = unwrap(
        await password_service.reset_password(
            db,
            email=body.email,
            code=body.code,
            new_password=body.new_password,
            notifier=notifier,
        )
    )
    return SessionsRevokedResponse(
        message="Password reset successfully. Please log in with your new password",
        sessions_revoked=revoked,
    )
