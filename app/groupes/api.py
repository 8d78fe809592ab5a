from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from app.auth.permissions import get_current_groupe
from app.db.session import get_db
from app.groupes.models import Groupe
from app.groupes.schemas import (
    GenreOut, GroupeOut, GroupeProfileUpdate, GroupeSearchFilters, GroupeSearchItem,
    GroupeSearchResponse, PhotoUploadResponse,
)
from app.groupes.services import GroupeService
from app.utils.errors import ServiceError, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter(tags=["groupes"])


def _parse_genre_ids(raw: Optional[str]) -> List[int]:
    if not raw:
        return []
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit():
            ids.append(int(part))
    return ids


# ===============================
# RECHERCHE PUBLIQUE
# ===============================
@router.get("/api/groupes", response_model=GroupeSearchResponse)
async def search_groupes(
    q: Optional[str] = None,
    ville: Optional[str] = None,
    departement: Optional[str] = None,
    region: Optional[str] = None,
    genres: Optional[str] = Query(None, description="Identifiants de genres séparés par des virgules"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[float] = Query(None, gt=0, le=1000, description="Rayon en km"),
    db: AsyncSession = Depends(get_db),
):
    filters = GroupeSearchFilters(
        q=q, ville=ville, departement=departement, region=region,
        genres=_parse_genre_ids(genres), lat=lat, lng=lng, radius=radius,
    )
    results = await GroupeService(db).search(filters)
    items = [
        GroupeSearchItem.model_validate(groupe).model_copy(update={"distance_km": distance})
        for groupe, distance in results
    ]
    return {"groupes": items, "total": len(items)}


@router.get("/api/genres", response_model=List[GenreOut])
async def list_genres(db: AsyncSession = Depends(get_db)):
    return await GroupeService(db).list_genres()


@router.get("/api/groupes/{groupe_id}", response_model=GroupeOut)
async def get_groupe(groupe_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await GroupeService(db).get_by_id(groupe_id)
    except ServiceError as e:
        raise to_http_exception(e)


# ===============================
# PROFIL DU GROUPE CONNECTÉ
# ===============================
@router.get("/api/groupe/profile", response_model=GroupeOut)
async def get_own_profile(groupe: Groupe = Depends(get_current_groupe)):
    return groupe


@router.put("/api/groupe/profile", response_model=GroupeOut)
async def update_own_profile(
    data: GroupeProfileUpdate,
    groupe: Groupe = Depends(get_current_groupe),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await GroupeService(db).update_profile(groupe, data)
    except ServiceError as e:
        raise to_http_exception(e)


@router.post("/api/groupe/photos", response_model=PhotoUploadResponse)
async def upload_photo(
    file: UploadFile = File(...),
    groupe: Groupe = Depends(get_current_groupe),
    db: AsyncSession = Depends(get_db),
):
    try:
        url = await GroupeService(db).add_photo(groupe, file)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"url": url, "photos": groupe.photos}
