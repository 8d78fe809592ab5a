from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from app.auth.permissions import get_current_organisateur
from app.concerts.models import Concert
from app.db.session import get_db
from app.inscriptions.models import Inscription, InscriptionStatus, STATUS_LABELS
from app.inscriptions.schemas import (
    InscriptionCreate, InscriptionCreated, InscriptionList, InscriptionLookup, InscriptionManualCreate,
    InscriptionOrganisateurUpdate, InscriptionOut, InscriptionSelfUpdate, InscriptionSelfView, LookupResponse,
)
from app.inscriptions.services import InscriptionService, management_url
from app.organisateurs.models import Organisateur
from app.utils.email import notify_inscription_invite, notify_inscription_organisateur, notify_promotion
from app.utils.errors import ServiceError, to_http_exception
from app.utils.rate_limit import inscription_rate_limiter

logger = logging.getLogger(__name__)
router = APIRouter(tags=["inscriptions"])


def _queue_promotions(background_tasks: BackgroundTasks, promoted: List[Inscription], concert_title: str):
    for inscription in promoted:
        background_tasks.add_task(
            notify_promotion,
            inscription.email,
            inscription.first_name,
            concert_title,
            management_url(inscription),
        )


def _concert_for_guest(concert: Concert) -> dict:
    groupe = concert.groupe if concert.show_groupe else None
    return {
        "id": concert.id,
        "title": concert.title,
        "date": concert.date,
        "public_address": concert.public_address,
        "city": concert.city,
        "slug": concert.slug,
        "status": concert.status,
        "groupe_name": groupe.name if groupe else None,
        "groupe_thumbnail_url": groupe.thumbnail_url if groupe else None,
        "organisateur_name": concert.organisateur.name if concert.organisateur else None,
    }


# ===============================
# INSCRIPTION PUBLIQUE
# ===============================
@router.post(
    "/api/inscriptions",
    response_model=InscriptionCreated,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(inscription_rate_limiter)],
)
async def register(
    data: InscriptionCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    service = InscriptionService(db)
    try:
        inscription, concert = await service.register(data)
    except ServiceError as e:
        raise to_http_exception(e)

    url = management_url(inscription)
    label = STATUS_LABELS[inscription.status]
    background_tasks.add_task(
        notify_inscription_invite, inscription.email, inscription.first_name, concert.title, label, url
    )
    organisateur_email = await service.organisateur_email(concert)
    if organisateur_email:
        background_tasks.add_task(
            notify_inscription_organisateur,
            organisateur_email,
            concert.title,
            inscription.full_name,
            inscription.party_size,
            label,
        )

    return {"inscription": inscription, "management_token": inscription.management_token, "management_url": url}


@router.post("/api/inscriptions/lookup", response_model=LookupResponse)
async def lookup_inscription(data: InscriptionLookup, db: AsyncSession = Depends(get_db)):
    """Retrouve le lien de gestion d'une inscription à partir de l'email"""
    try:
        inscription = await InscriptionService(db).lookup(data)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"found": True, "inscription": inscription, "management_url": management_url(inscription)}


# ===============================
# GESTION PAR L'INVITÉ (TOKEN)
# ===============================
@router.get("/api/inscriptions/{inscription_id}", response_model=InscriptionSelfView)
async def get_my_inscription(
    inscription_id: int,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    try:
        inscription = await InscriptionService(db).get_by_token(inscription_id, token)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"inscription": inscription, "concert": _concert_for_guest(inscription.concert)}


@router.put("/api/inscriptions/{inscription_id}", response_model=InscriptionOut)
async def update_my_inscription(
    inscription_id: int,
    data: InscriptionSelfUpdate,
    background_tasks: BackgroundTasks,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    try:
        inscription, promoted = await InscriptionService(db).self_update(inscription_id, token, data)
    except ServiceError as e:
        raise to_http_exception(e)
    _queue_promotions(background_tasks, promoted, inscription.concert.title)
    return inscription


@router.delete("/api/inscriptions/{inscription_id}", response_model=InscriptionOut)
async def cancel_my_inscription(
    inscription_id: int,
    background_tasks: BackgroundTasks,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    try:
        inscription, promoted = await InscriptionService(db).self_cancel(inscription_id, token)
    except ServiceError as e:
        raise to_http_exception(e)
    _queue_promotions(background_tasks, promoted, inscription.concert.title)
    return inscription


# ===============================
# GESTION ORGANISATEUR
# ===============================
@router.get("/api/organisateur/concerts/{concert_id}/inscriptions", response_model=InscriptionList)
async def list_concert_inscriptions(
    concert_id: int,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = InscriptionService(db)
    try:
        concert = await service.get_owned_concert(concert_id, organisateur.id)
    except ServiceError as e:
        raise to_http_exception(e)

    inscriptions = await service.list_for_concert(concert)
    return {
        "inscriptions": inscriptions,
        "confirmed_count": sum(
            i.party_size for i in inscriptions if i.status == InscriptionStatus.CONFIRMED.value
        ),
        "waitlisted_count": sum(
            i.party_size for i in inscriptions if i.status == InscriptionStatus.WAITLISTED.value
        ),
        "max_invites": concert.max_invites,
    }


@router.post(
    "/api/organisateur/concerts/{concert_id}/inscriptions",
    response_model=InscriptionOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_guest(
    concert_id: int,
    data: InscriptionManualCreate,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = InscriptionService(db)
    try:
        concert = await service.get_owned_concert(concert_id, organisateur.id)
        return await service.add_manual(concert, data)
    except ServiceError as e:
        raise to_http_exception(e)


@router.put("/api/organisateur/inscriptions/{inscription_id}", response_model=InscriptionOut)
async def update_guest(
    inscription_id: int,
    data: InscriptionOrganisateurUpdate,
    background_tasks: BackgroundTasks,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = InscriptionService(db)
    try:
        inscription = await service.get_owned(inscription_id, organisateur.id)
        inscription, promoted = await service.organiser_update(inscription, data)
    except ServiceError as e:
        raise to_http_exception(e)
    _queue_promotions(background_tasks, promoted, inscription.concert.title)
    return inscription


@router.delete("/api/organisateur/inscriptions/{inscription_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_guest(
    inscription_id: int,
    background_tasks: BackgroundTasks,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = InscriptionService(db)
    try:
        inscription = await service.get_owned(inscription_id, organisateur.id)
        concert_title = inscription.concert.title
        promoted = await service.organiser_delete(inscription)
    except ServiceError as e:
        raise to_http_exception(e)
    _queue_promotions(background_tasks, promoted, concert_title)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/api/organisateur/inscriptions/{inscription_id}/promouvoir", response_model=InscriptionOut)
async def promote_guest(
    inscription_id: int,
    background_tasks: BackgroundTasks,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = InscriptionService(db)
    try:
        inscription = await service.get_owned(inscription_id, organisateur.id)
        concert_title = inscription.concert.title
        inscription = await service.promote(inscription)
    except ServiceError as e:
        raise to_http_exception(e)
    _queue_promotions(background_tasks, [inscription], concert_title)
    return inscription
