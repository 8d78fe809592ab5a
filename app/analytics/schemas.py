from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, Optional


class EventType(str, Enum):
    PROFILE_VIEW = "PROFILE_VIEW"
    CONCERT_VIEW = "CONCERT_VIEW"
    INSCRIPTION = "INSCRIPTION"


class TrackEvent(BaseModel):
    # Type et cible validés par le service (400)
    type: Optional[str] = None
    target_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class TrackResponse(BaseModel):
    success: bool = True


class GroupeStats(BaseModel):
    profile_views_total: int
    profile_views_30_days: int
