import logging
import math
from typing import Optional, Tuple

import requests

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
ADRESSE_API_URL = "https://api-adresse.data.gouv.fr/search/"


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance orthodromique en kilomètres entre deux points (degrés décimaux)"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def geocode_city(city: str, postal_code: Optional[str] = None, timeout: float = 10) -> Optional[Tuple[float, float]]:
    """
    Géocode une commune française via l'API Adresse.
    Retourne (latitude, longitude) ou None si rien n'est trouvé.
    """
    query = " ".join(part for part in (postal_code, city) if part)
    try:
        response = requests.get(
            ADRESSE_API_URL,
            params={"q": query, "limit": 1, "type": "municipality"},
            timeout=timeout,
        )
        response.raise_for_status()
        features = response.json().get("features") or []
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"⚠️ Géocodage impossible pour '{query}' : {e}")
        return None

    if not features:
        return None
    lng, lat = features[0]["geometry"]["coordinates"][:2]
    return float(lat), float(lng)
