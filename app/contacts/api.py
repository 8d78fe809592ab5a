from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Literal, Optional
import logging

from app.auth.permissions import get_current_organisateur
from app.config import settings
from app.contacts import parsers
from app.contacts.models import ContactSource
from app.contacts.schemas import (
    BulkImportRequest, ContactCreate, ContactOut, ImportResult, ShareImportResult,
    SharePreview, ShareTokenCreate, ShareTokenCreated, ShareTokenOut, TextImportRequest,
)
from app.contacts.services import ContactService, ShareTokenService
from app.db.session import get_db
from app.organisateurs.models import Organisateur
from app.utils.audit import AuditAction, log_audit
from app.utils.errors import ServiceError, to_http_exception
from app.utils.rate_limit import get_client_ip

logger = logging.getLogger(__name__)
router = APIRouter(tags=["contacts"])

MAX_IMPORT_FILE_SIZE = 2 * 1024 * 1024  # 2MB


# ===============================
# CARNET D'ADRESSES
# ===============================
@router.get("/api/organisateur/contacts", response_model=List[ContactOut])
async def list_contacts(
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    return await ContactService(db).list_contacts(organisateur.id)


@router.post("/api/organisateur/contacts", response_model=ContactOut, status_code=status.HTTP_201_CREATED)
async def add_contact(
    data: ContactCreate,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ContactService(db).add(organisateur.id, data.email, data.name, data.phone, data.tags)
    except ServiceError as e:
        raise to_http_exception(e)


@router.delete("/api/organisateur/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: int,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        await ContactService(db).delete(organisateur.id, contact_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/api/organisateur/contacts/import", response_model=ImportResult)
async def import_contacts(
    data: BulkImportRequest,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    rows = ((row.email, row.name, row.phone) for row in data.contacts)
    return await ContactService(db).bulk_import(
        organisateur.id, rows, data.source, data.source_label, data.on_duplicate
    )


@router.post("/api/organisateur/contacts/import/file", response_model=ImportResult)
async def import_contacts_file(
    file: UploadFile = File(...),
    source_label: Optional[str] = Form(None),
    on_duplicate: Literal["ignore", "update"] = Form("ignore"),
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    """Import d'un export CSV (Google, Outlook, tableur) ou d'un fichier vCard"""
    content = await file.read()
    if len(content) > MAX_IMPORT_FILE_SIZE:
        raise HTTPException(status_code=413, detail="Fichier trop volumineux")
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    parsed = parsers.parse_file(file.filename or "", text)
    is_vcf = (file.filename or "").lower().endswith((".vcf", ".vcard"))
    source = ContactSource.IMPORT_VCF if is_vcf else ContactSource.IMPORT_CSV
    try:
        return await ContactService(db).import_parsed(
            organisateur.id, parsed, source, source_label or file.filename, on_duplicate
        )
    except ServiceError as e:
        raise to_http_exception(e)


@router.post("/api/organisateur/contacts/import/text", response_model=ImportResult)
async def import_contacts_text(
    data: TextImportRequest,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    parsed = parsers.extract_emails(data.text)
    try:
        return await ContactService(db).import_parsed(
            organisateur.id, parsed, ContactSource.IMPORT_TEXT, data.source_label, data.on_duplicate
        )
    except ServiceError as e:
        raise to_http_exception(e)


@router.get("/api/organisateur/contacts/export")
async def export_contacts(
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    filename, content = await ContactService(db).export_csv(organisateur)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ===============================
# PARTAGE DE CONTACTS
# ===============================
@router.get("/api/organisateur/contacts/share", response_model=List[ShareTokenOut])
async def list_share_tokens(
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    return await ShareTokenService(db).list_active(organisateur.id)


@router.post("/api/organisateur/contacts/share", response_model=ShareTokenCreated, status_code=status.HTTP_201_CREATED)
async def create_share_token(
    data: ShareTokenCreate,
    request: Request,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    share = await ShareTokenService(db).create(organisateur, data.expires_in_days, data.max_uses)
    await log_audit(
        AuditAction.SHARE_TOKEN_CREATED, organisateur.user_id,
        {"share_token_id": share.id, "max_uses": share.max_uses}, get_client_ip(request),
    )
    return {
        "id": share.id,
        "token": share.token,
        "url": f"{settings.APP_URL}/import-contacts/{share.token}",
        "expires_at": share.expires_at,
    }


@router.delete("/api/organisateur/contacts/share/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_share_token(
    token_id: int,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        await ShareTokenService(db).revoke(organisateur.id, token_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/contacts/share/{token}", response_model=SharePreview)
async def preview_shared_contacts(
    token: str,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ShareTokenService(db).preview(token)
    except ServiceError as e:
        raise to_http_exception(e)


@router.post("/api/contacts/share/{token}/import", response_model=ShareImportResult)
async def import_shared_contacts(
    token: str,
    request: Request,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await ShareTokenService(db).import_from(token, organisateur)
    except ServiceError as e:
        raise to_http_exception(e)

    await log_audit(AuditAction.SHARE_TOKEN_USED, organisateur.user_id, result, get_client_ip(request))
    return result
