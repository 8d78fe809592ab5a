import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.avis.models import AuthorType, Avis
from app.avis.schemas import OrganisateurAvisCreate, PublicAvisCreate, TokenAvisCreate
from app.concerts.models import Concert, ConcertStatus
from app.inscriptions.models import Inscription
from app.organisateurs.models import Organisateur
from app.utils.dates import utcnow
from app.utils.errors import ConflictError, NotFoundError, ServiceError
from app.utils.sanitize import sanitize_multiline, sanitize_text

logger = logging.getLogger(__name__)

LATEST_AVIS_LIMIT = 20


class AlreadyReviewedError(ConflictError):
    default_message = "Vous avez déjà laissé un avis pour ce concert"


class ReviewTokenNotFoundError(NotFoundError):
    default_message = "Lien d'avis invalide"


class AvisService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _exists(self, concert_id: int, email: str) -> bool:
        result = await self.db.execute(
            select(Avis.id).where(Avis.concert_id == concert_id, Avis.author_email == email.lower())
        )
        return result.scalar() is not None

    async def _save(self, avis: Avis) -> Avis:
        self.db.add(avis)
        try:
            await self.db.commit()
        except IntegrityError:
            # Deux soumissions concurrentes pour le même (concert, email)
            await self.db.rollback()
            raise AlreadyReviewedError()
        await self.db.refresh(avis)
        logger.info(f"Avis {avis.id} ({avis.note}/5) publié pour le groupe {avis.groupe_id}")
        return avis

    # ===============================
    # AVIS ORGANISATEUR
    # ===============================
    async def create_by_organisateur(self, organisateur: Organisateur, data: OrganisateurAvisCreate) -> Avis:
        result = await self.db.execute(
            select(Concert).where(Concert.id == data.concert_id, Concert.organisateur_id == organisateur.id)
        )
        concert = result.scalars().first()
        if not concert:
            raise NotFoundError("Concert non trouvé")
        if concert.status != ConcertStatus.PAST.value:
            raise ServiceError("Vous ne pouvez laisser un avis qu'après le concert")
        if concert.groupe_id != data.groupe_id:
            raise ServiceError("Ce groupe n'a pas joué à ce concert")

        email = organisateur.user.email
        if await self._exists(concert.id, email):
            raise AlreadyReviewedError()

        return await self._save(Avis(
            groupe_id=data.groupe_id,
            concert_id=concert.id,
            author_type=AuthorType.ORGANISATEUR.value,
            author_email=email.lower(),
            author_name=organisateur.name,
            note=data.note,
            comment=sanitize_multiline(data.comment) or None,
        ))

    # ===============================
    # AVIS INVITÉ PAR TOKEN
    # ===============================
    async def _get_by_review_token(self, token: str) -> Inscription:
        result = await self.db.execute(
            select(Inscription)
            .options(selectinload(Inscription.concert).selectinload(Concert.groupe))
            .where(Inscription.review_token == token)
        )
        inscription = result.scalars().first()
        if not inscription:
            raise ReviewTokenNotFoundError()
        return inscription

    async def review_context(self, token: str) -> dict:
        inscription = await self._get_by_review_token(token)
        if inscription.reviewed_at is not None:
            raise AlreadyReviewedError()
        concert = inscription.concert
        if concert.groupe is None:
            raise ServiceError("Aucun groupe associé à ce concert")
        return {
            "first_name": inscription.first_name,
            "concert_title": concert.title,
            "concert_date": concert.date,
            "groupe_id": concert.groupe.id,
            "groupe_name": concert.groupe.name,
            "groupe_thumbnail_url": concert.groupe.thumbnail_url,
        }

    async def create_by_token(self, token: str, data: TokenAvisCreate) -> Avis:
        inscription = await self._get_by_review_token(token)
        if inscription.reviewed_at is not None:
            raise AlreadyReviewedError()
        concert = inscription.concert
        if concert.groupe_id is None:
            raise ServiceError("Aucun groupe associé à ce concert")
        if await self._exists(concert.id, inscription.email):
            raise AlreadyReviewedError()

        inscription.reviewed_at = utcnow()
        return await self._save(Avis(
            groupe_id=concert.groupe_id,
            concert_id=concert.id,
            author_type=AuthorType.INVITE.value,
            author_email=inscription.email.lower(),
            author_name=inscription.full_name,
            note=data.note,
            comment=sanitize_multiline(data.comment) or None,
        ))

    # ===============================
    # AVIS PUBLIC PAR EMAIL
    # ===============================
    async def create_public(self, concert_id: int, data: PublicAvisCreate) -> Avis:
        result = await self.db.execute(select(Concert).where(Concert.id == concert_id))
        concert = result.scalars().first()
        if not concert:
            raise NotFoundError("Concert non trouvé")
        if concert.groupe_id is None:
            raise NotFoundError("Aucun groupe associé à ce concert")
        if await self._exists(concert.id, data.email):
            raise AlreadyReviewedError()

        return await self._save(Avis(
            groupe_id=concert.groupe_id,
            concert_id=concert.id,
            author_type=AuthorType.INVITE.value,
            author_email=data.email,
            author_name=sanitize_text(data.name),
            note=data.note,
            comment=sanitize_multiline(data.comment) or None,
        ))

    # ===============================
    # LECTURE
    # ===============================
    async def list_for_groupe(self, groupe_id: int) -> dict:
        stats = await self.db.execute(
            select(func.avg(Avis.note), func.count(Avis.id)).where(
                Avis.groupe_id == groupe_id, Avis.is_visible.is_(True)
            )
        )
        average, count = stats.one()

        result = await self.db.execute(
            select(Avis)
            .where(Avis.groupe_id == groupe_id, Avis.is_visible.is_(True))
            .order_by(Avis.created_at.desc(), Avis.id.desc())
            .limit(LATEST_AVIS_LIMIT)
        )
        return {
            "average": round(float(average), 1) if average is not None else None,
            "count": count or 0,
            "avis": list(result.scalars().all()),
        }
