from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.auth.permissions import get_current_organisateur
from app.avis.models import Avis
from app.avis.schemas import (
    AvisOut, GroupeAvisList, OrganisateurAvisCreate, PublicAvisCreate, ReviewContext, TokenAvisCreate,
)
from app.avis.services import AvisService
from app.db.session import get_db
from app.groupes.services import GroupeService
from app.organisateurs.models import Organisateur
from app.utils.email import notify_avis
from app.utils.errors import ServiceError, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter(tags=["avis"])


async def _notify_groupe(db: AsyncSession, background_tasks: BackgroundTasks, avis: Avis):
    email = await GroupeService(db).notification_email(avis.groupe_id)
    if email:
        background_tasks.add_task(notify_avis, email, avis.author_name or "Un invité", avis.note)


@router.post("/api/avis", response_model=AvisOut, status_code=status.HTTP_201_CREATED)
async def create_organisateur_avis(
    data: OrganisateurAvisCreate,
    background_tasks: BackgroundTasks,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        avis = await AvisService(db).create_by_organisateur(organisateur, data)
    except ServiceError as e:
        raise to_http_exception(e)
    await _notify_groupe(db, background_tasks, avis)
    return avis


@router.get("/api/avis/token/{review_token}", response_model=ReviewContext)
async def get_review_context(review_token: str, db: AsyncSession = Depends(get_db)):
    try:
        return await AvisService(db).review_context(review_token)
    except ServiceError as e:
        raise to_http_exception(e)


@router.post("/api/avis/token/{review_token}", response_model=AvisOut, status_code=status.HTTP_201_CREATED)
async def create_token_avis(
    review_token: str,
    data: TokenAvisCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    try:
        avis = await AvisService(db).create_by_token(review_token, data)
    except ServiceError as e:
        raise to_http_exception(e)
    await _notify_groupe(db, background_tasks, avis)
    return avis


@router.post("/api/concerts/{concert_id}/avis", response_model=AvisOut, status_code=status.HTTP_201_CREATED)
async def create_public_avis(
    concert_id: int,
    data: PublicAvisCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    try:
        avis = await AvisService(db).create_public(concert_id, data)
    except ServiceError as e:
        raise to_http_exception(e)
    await _notify_groupe(db, background_tasks, avis)
    return avis


@router.get("/api/groupes/{groupe_id}/avis", response_model=GroupeAvisList)
async def list_groupe_avis(groupe_id: int, db: AsyncSession = Depends(get_db)):
    return await AvisService(db).list_for_groupe(groupe_id)
