"""
Admin controller: principal-only management of other admin accounts.

Every route requires the principal role (`require_principal`); the
service layer additionally refuses self-targeting and any change to a
principal account.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from admin_auth.controllers.auth_controller import admin_summary
from admin_auth.core.database import get_db
from admin_auth.core.http import unwrap
from admin_auth.models.admin import AdminAccount, AdminStatus
from admin_auth.rbac.dependencies import get_notifier, require_principal
from admin_auth.schemas import (
    AdminDetail,
    AdminListItem,
    AdminListResponse,
    AdminStatusResponse,
    MessageResponse,
    RejectRequest,
)
from admin_auth.services import approval_service
from admin_auth.services.notification_service import AccountNotifier

router = APIRouter(prefix="/api/admin/admins", tags=["Admin"])


@router.get("/pending", response_model=list[AdminListItem])
async def list_pending(
    _: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    return await approval_service.list_pending(db)


@router.get("", response_model=AdminListResponse)
async def list_admins(
    _: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    return await approval_service.list_admins(db)


@router.get("/{admin_id}", response_model=AdminDetail)
async def get_admin(
    admin_id: str,
    _: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    return unwrap(await approval_service.get_admin_details(db, admin_id))


@router.patch("/{admin_id}/approve", response_model=AdminStatusResponse)
async def approve_admin(
    admin_id: str,
    actor: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    notifier: AccountNotifier = Depends(get_notifier),
):
    target = unwrap(await approval_service.approve_admin(db, actor, admin_id, notifier=notifier))
    return AdminStatusResponse(message="Admin approved", admin=admin_summary(target))


@router.patch("/{admin_id}/reject", response_model=AdminStatusResponse)
async def reject_admin(
    admin_id: str,
    body: RejectRequest | None = None,
    actor: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
    notifier: AccountNotifier = Depends(get_notifier),
):
    reason = body.reason if body else None
    target = unwrap(
        await approval_service.reject_admin(db, actor, admin_id, reason=reason, notifier=notifier)
    )
    return AdminStatusResponse(message="Admin rejected", admin=admin_summary(target))


@router.patch("/{admin_id}/toggle-status", response_model=AdminStatusResponse)
async def toggle_admin_status(
    admin_id: str,
    actor: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    target = unwrap(await approval_service.toggle_admin_status(db, actor, admin_id))
    return AdminStatusResponse(
        message=f"Admin {'reactivated' if target.status is AdminStatus.APPROVED else 'suspended'}",
        admin=admin_summary(target),
    )


@router.patch("/{admin_id}/unlock", response_model=AdminStatusResponse)
async def unlock_admin(
    admin_id: str,
    actor: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    target = unwrap(await approval_service.unlock_admin(db, actor, admin_id))
    return AdminStatusResponse(message="Admin unlocked", admin=admin_summary(target))


@router.delete("/{admin_id}", response_model=MessageResponse)
async def delete_admin(
    admin_id: str,
    actor: AdminAccount = Depends(require_principal),
    db: AsyncSession = Depends(get_db),
):
    unwrap(await approval_service.delete_admin(db, actor, admin_id))
    return MessageResponse(message="Admin deleted")
