from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from app.auth.permissions import get_current_organisateur
from app.db.session import get_db
from app.messages.schemas import RenderedMessage, RenderRequest, TemplateCreate, TemplateOut, TemplateUpdate
from app.messages.services import TemplateService
from app.organisateurs.models import Organisateur
from app.utils.errors import ServiceError, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/organisateur/templates", tags=["messages"])


@router.get("", response_model=List[TemplateOut])
async def list_templates(
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    return await TemplateService(db).list_templates(organisateur.id)


@router.post("", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
async def create_template(
    data: TemplateCreate,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await TemplateService(db).create(organisateur, organisateur.user.is_premium, data)
    except ServiceError as e:
        raise to_http_exception(e)


@router.post("/render", response_model=RenderedMessage)
async def render_template(
    data: RenderRequest,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    """Génère le message d'invitation et les liens Gmail / SMS / WhatsApp"""
    try:
        return await TemplateService(db).render(organisateur, data)
    except ServiceError as e:
        raise to_http_exception(e)


@router.put("/{template_id}", response_model=TemplateOut)
async def update_template(
    template_id: int,
    data: TemplateUpdate,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = TemplateService(db)
    try:
        template = await service.get_own(template_id, organisateur.id)
        return await service.update(template, data)
    except ServiceError as e:
        raise to_http_exception(e)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: int,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = TemplateService(db)
    try:
        template = await service.get_own(template_id, organisateur.id)
        await service.delete(template)
    except ServiceError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
