import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from app.analytics.schemas import EventType
from app.db.mongo import analytics_collection
from app.utils.dates import utcnow
from app.utils.errors import ServiceError
from app.utils.mongodb_utils import convert_for_mongodb

logger = logging.getLogger(__name__)

STATS_WINDOW_DAYS = 30


async def track_event(event_type: Optional[str], target_id: Optional[int],
                      metadata: Optional[Dict[str, Any]] = None) -> None:
    if not event_type or target_id is None:
        raise ServiceError("Paramètres manquants")
    try:
        event = EventType(event_type)
    except ValueError:
        raise ServiceError("Type invalide")

    await analytics_collection.insert_one({
        "type": event.value,
        "target_id": target_id,
        "metadata": convert_for_mongodb(metadata) if metadata else None,
        "created_at": utcnow(),
    })
    logger.debug(f"Évènement {event.value} enregistré pour {target_id}")


async def groupe_stats(groupe_id: int) -> dict:
    base = {"type": EventType.PROFILE_VIEW.value, "target_id": groupe_id}
    total = await analytics_collection.count_documents(base)
    since = utcnow() - timedelta(days=STATS_WINDOW_DAYS)
    recent = await analytics_collection.count_documents({**base, "created_at": {"$gte": since}})
    return {"profile_views_total": total, "profile_views_30_days": recent}
