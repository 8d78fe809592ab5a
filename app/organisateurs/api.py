from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import get_current_organisateur
from app.db.session import get_db
from app.organisateurs.models import Organisateur
from app.organisateurs.schemas import DashboardStats, OrganisateurOut, OrganisateurProfileUpdate
from app.organisateurs.services import OrganisateurService

router = APIRouter(prefix="/api/organisateur", tags=["organisateurs"])


@router.get("/profile", response_model=OrganisateurOut)
async def get_profile(organisateur: Organisateur = Depends(get_current_organisateur)):
    return organisateur


@router.put("/profile", response_model=OrganisateurOut)
async def update_profile(
    data: OrganisateurProfileUpdate,
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    return await OrganisateurService(db).update_profile(organisateur, data)


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    organisateur: Organisateur = Depends(get_current_organisateur),
    db: AsyncSession = Depends(get_db),
):
    return await OrganisateurService(db).dashboard(organisateur, organisateur.user.is_premium)
