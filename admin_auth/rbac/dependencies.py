"""
Auth dependencies: the heart of access enforcement.

`get_auth_context` runs the authentication engine on every protected
request:
1. Pull the token from the `adminToken` cookie or the Authorization header.
2. Verify it and re-check the embedded session against the account.
3. Touch the session's last activity.
4. Return the resolved account + session id.

`require_role` is a *dependency factory* layered on top:

    @router.get("/admins", dependencies=[Depends(require_role(AdminRole.PRINCIPAL))])
    async def list_admins(...): ...

Or inject the account:

    async def approve(actor: AdminAccount = Depends(require_role(AdminRole.PRINCIPAL))): ...
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.core.database import get_db
from admin_auth.core.errors import ErrorCode, Failure
from admin_auth.core.http import raise_for_failure
from admin_auth.core.security import extract_token
from admin_auth.models.admin import AdminAccount, AdminRole
from admin_auth.services.auth_service import AuthContext, AuthService
from admin_auth.services.notification_service import AccountNotifier

logger = logging.getLogger("rbac")


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_notifier(request: Request) -> AccountNotifier:
    return request.app.state.notifier


async def get_auth_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
) -> AuthContext:
    token = extract_token(request, request.app.state.settings.AUTH_COOKIE_NAME)
    outcome = await auth.authenticate_token(db, token)
    if not outcome.ok:
        if outcome.code is not ErrorCode.NO_TOKEN:
            logger.warning("Authentication rejected: %s", outcome.code.value)
        raise_for_failure(outcome)
    return outcome.value


async def get_current_admin(context: AuthContext = Depends(get_auth_context)) -> AdminAccount:
    return context.account


class require_role:
    """
    Dependency factory.

    Can be used as:
        Depends(require_role(AdminRole.PRINCIPAL))
        Depends(require_role(AdminRole.PRINCIPAL, AdminRole.ADMIN))
    """

    def __init__(self, *roles: AdminRole):
        self.roles = set(roles)

    async def __call__(self, context: AuthContext = Depends(get_auth_context)) -> AdminAccount:
        account = context.account
        if account.role not in self.roles:
            logger.warning(
                "Role denied for %s: required %s, has %s",
                account.email,
                sorted(r.value for r in self.roles),
                account.role.value,
            )
            raise_for_failure(
                Failure(ErrorCode.INSUFFICIENT_PRIVILEGES, "Insufficient privileges")
            )
        return account


require_principal = require_role(AdminRole.PRINCIPAL)
