from fastapi import APIRouter, Depends
import logging

from app.analytics import services
from app.analytics.schemas import GroupeStats, TrackEvent, TrackResponse
from app.auth.permissions import get_current_groupe
from app.groupes.models import Groupe
from app.utils.errors import ServiceError, to_http_exception

logger = logging.getLogger(__name__)
router = APIRouter(tags=["analytics"])


@router.post("/api/analytics/track", response_model=TrackResponse)
async def track(data: TrackEvent):
    try:
        await services.track_event(data.type, data.target_id, data.metadata)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"success": True}


@router.get("/api/groupe/stats", response_model=GroupeStats)
async def my_stats(groupe: Groupe = Depends(get_current_groupe)):
    return await services.groupe_stats(groupe.id)
