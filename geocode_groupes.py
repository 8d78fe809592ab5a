"""
Script one-shot : géocode tous les groupes qui ont une ville mais pas de coordonnées.
Usage : python geocode_groupes.py
"""
import asyncio
import logging

from sqlalchemy import select

from app.db.session import AsyncSessionLocal
from app.groupes.models import Groupe
import app.db.all_models  # noqa: F401
from app.utils.geo import geocode_city

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("geocode_groupes")

# 1 requête / 100ms
REQUEST_DELAY_SECONDS = 0.1


async def main():
    async with AsyncSessionLocal() as db:
        result = await db.execute(
            select(Groupe).where(Groupe.city.isnot(None), Groupe.latitude.is_(None))
        )
        groupes = list(result.scalars().all())
        logger.info(f"{len(groupes)} groupes à géocoder...")

        success = 0
        for groupe in groupes:
            coords = await asyncio.to_thread(geocode_city, groupe.city, groupe.postal_code)
            if coords:
                groupe.latitude, groupe.longitude = coords
                await db.commit()
                logger.info(f"✓ {groupe.name} ({groupe.city}) → {coords[0]}, {coords[1]}")
                success += 1
            else:
                logger.info(f"✗ {groupe.name} ({groupe.city}) : non trouvé")
            await asyncio.sleep(REQUEST_DELAY_SECONDS)

        logger.info(f"Terminé : {success}/{len(groupes)} géocodés.")


if __name__ == "__main__":
    asyncio.run(main())
