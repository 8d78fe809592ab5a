import logging
from typing import List, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import select, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.config import settings
from app.groupes.models import Genre, Groupe
from app.groupes.schemas import GroupeProfileUpdate, GroupeSearchFilters, MAX_PHOTOS
from app.utils.errors import NotFoundError, ServiceError
from app.utils.geo import haversine_km
from app.utils.sanitize import sanitize_text, sanitize_multiline, sanitize_email, sanitize_phone
from app.utils.uploads import GROUPE_PHOTO_DIR, save_image

logger = logging.getLogger(__name__)


class GroupeNotFoundError(NotFoundError):
    default_message = "Groupe non trouvé"


class GroupeService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, groupe_id: int, visible_only: bool = True) -> Groupe:
        query = select(Groupe).where(Groupe.id == groupe_id)
        if visible_only:
            query = query.where(Groupe.is_visible.is_(True))
        result = await self.db.execute(query)
        groupe = result.scalars().first()
        if not groupe:
            raise GroupeNotFoundError()
        return groupe

    async def notification_email(self, groupe_id: int) -> Optional[str]:
        """Email de contact du groupe, sinon email du compte"""
        result = await self.db.execute(
            select(Groupe.contact_email, User.email)
            .join(User, User.id == Groupe.user_id)
            .where(Groupe.id == groupe_id)
        )
        row = result.first()
        if not row:
            return None
        return row[0] or row[1]

    async def list_genres(self) -> List[Genre]:
        result = await self.db.execute(select(Genre).order_by(Genre.name))
        return list(result.scalars().all())

    async def update_profile(self, groupe: Groupe, data: GroupeProfileUpdate) -> Groupe:
        try:
            groupe.name = sanitize_text(data.name)
            groupe.bio = sanitize_multiline(data.bio) or None
            groupe.city = sanitize_text(data.city) or None
            groupe.postal_code = data.postal_code
            groupe.department = sanitize_text(data.department) or None
            groupe.region = sanitize_text(data.region) or None
            groupe.latitude = data.latitude
            groupe.longitude = data.longitude
            groupe.contact_email = sanitize_email(data.contact_email) or None
            groupe.contact_phone = sanitize_phone(data.contact_phone) or None
            groupe.website = data.website
            groupe.photos = list(data.photos)
            groupe.thumbnail_url = data.thumbnail_url
            groupe.youtube_videos = list(data.youtube_videos)

            # Les genres sont remplacés en bloc
            genres: List[Genre] = []
            if data.genres:
                result = await self.db.execute(select(Genre).where(Genre.id.in_(set(data.genres))))
                genres = list(result.scalars().all())
                if len(genres) != len(set(data.genres)):
                    raise ServiceError("Genre inconnu")
            groupe.genres = genres

            await self.db.commit()
            await self.db.refresh(groupe)
            logger.info(f"Profil groupe mis à jour : id={groupe.id}")
            return groupe
        except ServiceError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur mise à jour profil groupe {groupe.id} : {e}")
            raise

    async def add_photo(self, groupe: Groupe, file: UploadFile) -> str:
        photos = list(groupe.photos or [])
        if len(photos) >= MAX_PHOTOS:
            raise ServiceError(f"Maximum {MAX_PHOTOS} photos")

        url = await save_image(file, GROUPE_PHOTO_DIR, f"groupe_{groupe.id}")
        photos.append(url)
        groupe.photos = photos
        if not groupe.thumbnail_url:
            groupe.thumbnail_url = url
        await self.db.commit()
        await self.db.refresh(groupe)
        return url

    async def search(self, filters: GroupeSearchFilters) -> List[Tuple[Groupe, Optional[float]]]:
        """
        Recherche des groupes visibles.

        Avec un point (lat, lng), les groupes sans coordonnées sont écartés, ceux au-delà
        du rayon aussi, et le résultat est trié par distance croissante.
        Sinon, les groupes boostés passent en premier puis l'ordre alphabétique.
        """
        query = select(Groupe).where(Groupe.is_visible.is_(True))
        if filters.q:
            query = query.where(Groupe.name.ilike(f"%{filters.q}%"))
        if filters.ville:
            query = query.where(Groupe.city.ilike(f"%{filters.ville}%"))
        if filters.departement:
            query = query.where(Groupe.department.ilike(f"%{filters.departement}%"))
        if filters.region:
            query = query.where(Groupe.region.ilike(f"%{filters.region}%"))
        query = query.order_by(desc(Groupe.is_boosted), asc(Groupe.name))

        result = await self.db.execute(query)
        groupes = list(result.scalars().all())

        if filters.genres:
            wanted = set(filters.genres)
            groupes = [g for g in groupes if any(genre.id in wanted for genre in g.genres)]

        if filters.lat is None or filters.lng is None:
            return [(g, None) for g in groupes]

        radius = filters.radius or settings.DEFAULT_SEARCH_RADIUS_KM
        located = []
        for g in groupes:
            if not g.has_location:
                continue
            distance = haversine_km(filters.lat, filters.lng, g.latitude, g.longitude)
            if distance <= radius:
                located.append((g, round(distance, 1)))
        located.sort(key=lambda item: item[1])
        return located
