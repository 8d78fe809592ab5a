from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import logging

from app.auth.permissions import get_current_organisateur
from app.concerts.schemas import (
    ConcertCreate, ConcertOut, ConcertUpdate, ConcertWithCounts, MarkPastResult, PublicConcert,
)
from app.concerts.services import ConcertService
from app.db.session import get_db
from app.organisateurs.models import Organisateur
from app.utils.errors import ServiceError, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter(tags=["concerts"])


# ===============================
# ESPACE ORGANISATEUR
# ===============================
@router.get("/api/organisateur/concerts", response_model=List[ConcertWithCounts])
async def list_my_concerts(
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    rows = await ConcertService(db).list_for_organisateur(organisateur.id)
    return [
        ConcertWithCounts(
            **ConcertOut.model_validate(concert).model_dump(),
            confirmed_count=confirmed,
            waitlisted_count=waitlisted,
        )
        for concert, confirmed, waitlisted in rows
    ]


@router.post("/api/organisateur/concerts", response_model=ConcertOut, status_code=status.HTTP_201_CREATED)
async def create_concert(
    data: ConcertCreate,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ConcertService(db).create(organisateur, organisateur.user.is_premium, data)
    except ServiceError as e:
        raise to_http_exception(e)


@router.get("/api/organisateur/concerts/{concert_id}", response_model=ConcertOut)
async def get_my_concert(
    concert_id: int,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await ConcertService(db).get_owned(concert_id, organisateur.id)
    except ServiceError as e:
        raise to_http_exception(e)


@router.put("/api/organisateur/concerts/{concert_id}", response_model=ConcertOut)
async def update_concert(
    concert_id: int,
    data: ConcertUpdate,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = ConcertService(db)
    try:
        concert = await service.get_owned(concert_id, organisateur.id)
        return await service.update(concert, data)
    except ServiceError as e:
        raise to_http_exception(e)


@router.delete("/api/organisateur/concerts/{concert_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_concert(
    concert_id: int,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    service = ConcertService(db)
    try:
        concert = await service.get_owned(concert_id, organisateur.id)
        await service.delete(concert)
    except ServiceError as e:
        raise to_http_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/api/organisateur/concerts/{concert_id}/terminer", response_model=MarkPastResult)
async def finish_concert(
    concert_id: int,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    """Clôture le concert et génère les liens d'avis pour les invités confirmés"""
    service = ConcertService(db)
    try:
        concert = await service.get_owned(concert_id, organisateur.id)
        concert, created = await service.mark_past(concert)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"concert": concert, "review_tokens_created": created}


# ===============================
# PAGE PUBLIQUE
# ===============================
@router.get("/api/concerts/public/{slug}", response_model=PublicConcert)
async def get_public_concert(slug: str, db: AsyncSession = Depends(get_db)):
    try:
        return await ConcertService(db).get_public(slug)
    except ServiceError as e:
        raise to_http_exception(e)
