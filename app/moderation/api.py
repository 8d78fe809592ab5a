from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from app.auth.dependencies import get_current_user
from app.auth.models import User
from app.auth.permissions import require_admin
from app.auth.schemas import UserOut
from app.db.session import get_db
from app.groupes.schemas import GroupeOut
from app.moderation.models import ReportStatus
from app.moderation.schemas import ReportCreate, ReportOut, ReportStatusUpdate, VerificationUpdate, VisibilityUpdate
from app.moderation.services import ModerationService
from app.utils.audit import AuditAction, log_audit
from app.utils.errors import ServiceError, to_http_exception
from app.utils.rate_limit import get_client_ip

logger = logging.getLogger(__name__)
router = APIRouter(tags=["moderation"])


@router.post("/api/reports", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def create_report(
    data: ReportCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ModerationService(db).create_report(user, data)
    except ServiceError as e:
        raise to_http_exception(e)


# ===============================
# ADMIN
# ===============================
@router.get("/api/admin/reports", response_model=List[ReportOut])
async def list_reports(
    statut: Optional[ReportStatus] = Query(None),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ModerationService(db).list_reports(statut)


@router.patch("/api/admin/reports/{report_id}", response_model=ReportOut)
async def update_report(
    report_id: int,
    data: ReportStatusUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        report = await ModerationService(db).update_report(report_id, data.status)
    except ServiceError as e:
        raise to_http_exception(e)
    await log_audit(
        AuditAction.ADMIN_ACTION, admin.id,
        {"action": "report_status", "report_id": report_id, "status": data.status.value},
        get_client_ip(request),
    )
    return report


@router.get("/api/admin/users", response_model=List[UserOut])
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ModerationService(db).list_users(limit, offset)


@router.patch("/api/admin/groupes/{groupe_id}/visibility", response_model=GroupeOut)
async def set_groupe_visibility(
    groupe_id: int,
    data: VisibilityUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        groupe = await ModerationService(db).set_groupe_visibility(groupe_id, data.is_visible)
    except ServiceError as e:
        raise to_http_exception(e)
    await log_audit(
        AuditAction.ADMIN_ACTION, admin.id,
        {"action": "groupe_visibility", "groupe_id": groupe_id, "is_visible": data.is_visible},
        get_client_ip(request),
    )
    return groupe


@router.patch("/api/admin/groupes/{groupe_id}/verify", response_model=GroupeOut)
async def verify_groupe(
    groupe_id: int,
    data: VerificationUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        groupe = await ModerationService(db).set_groupe_verified(groupe_id, data.is_verified)
    except ServiceError as e:
        raise to_http_exception(e)
    await log_audit(
        AuditAction.ADMIN_ACTION, admin.id,
        {"action": "groupe_verify", "groupe_id": groupe_id, "is_verified": data.is_verified},
        get_client_ip(request),
    )
    return groupe
