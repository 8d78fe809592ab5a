from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from app.auth.permissions import get_current_groupe
from app.db.session import get_db
from app.devis.models import DevisStatus
from app.devis.schemas import DevisCreate, DevisCreated, DevisOut, DevisStatusUpdate
from app.devis.services import DevisService, devis_summary
from app.groupes.models import Groupe
from app.groupes.services import GroupeService
from app.utils.email import notify_devis
from app.utils.errors import ServiceError, to_http_exception
from app.utils.rate_limit import inscription_rate_limiter

logger = logging.getLogger(__name__)
router = APIRouter(tags=["devis"])


@router.post(
    "/api/devis",
    response_model=DevisCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(inscription_rate_limiter)],
)
async def create_devis(
    data: DevisCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    try:
        demande = await DevisService(db).create(data)
    except ServiceError as e:
        raise to_http_exception(e)

    email = await GroupeService(db).notification_email(demande.groupe_id)
    if email:
        background_tasks.add_task(notify_devis, email, demande.name, devis_summary(demande))
    return {"id": demande.id}


@router.get("/api/groupe/devis", response_model=List[DevisOut])
async def list_my_devis(
    statut: Optional[DevisStatus] = Query(None),
    groupe: Groupe = Depends(get_current_groupe),
    db: AsyncSession = Depends(get_db),
):
    return await DevisService(db).list_for_groupe(groupe.id, statut)


@router.patch("/api/groupe/devis/{devis_id}", response_model=DevisOut)
async def update_devis_status(
    devis_id: int,
    data: DevisStatusUpdate,
    groupe: Groupe = Depends(get_current_groupe),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await DevisService(db).update_status(groupe.id, devis_id, data.status)
    except ServiceError as e:
        raise to_http_exception(e)
