import logging
import secrets
from typing import List, Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.concerts.models import Concert, ConcertStatus
from app.concerts.schemas import ConcertCreate, ConcertUpdate
from app.config import settings
from app.groupes.models import Groupe
from app.inscriptions.models import Inscription, InscriptionStatus
from app.inscriptions.services import InscriptionService
from app.organisateurs.models import Organisateur
from app.organisateurs.services import OrganisateurService
from app.utils.dates import utcnow
from app.utils.errors import ForbiddenError, NotFoundError, ServiceError
from app.utils.sanitize import sanitize_multiline, sanitize_text, slugify

logger = logging.getLogger(__name__)

SLUG_SUFFIX_BYTES = 4
PUBLIC_STATUSES = (ConcertStatus.PUBLISHED.value, ConcertStatus.PAST.value)


class ConcertNotFoundError(NotFoundError):
    default_message = "Concert non trouvé"


class QuotaExceededError(ForbiddenError):
    pass


def generate_slug(title: str) -> str:
    base = slugify(title) or "concert"
    return f"{base}-{secrets.token_hex(SLUG_SUFFIX_BYTES)}"


class ConcertService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _check_groupe(self, groupe_id: Optional[int]) -> None:
        if groupe_id is None:
            return
        result = await self.db.execute(select(Groupe.id).where(Groupe.id == groupe_id))
        if result.scalar() is None:
            raise NotFoundError("Groupe non trouvé")

    async def create(self, organisateur: Organisateur, is_premium: bool, data: ConcertCreate) -> Concert:
        if not is_premium:
            count = await OrganisateurService(self.db).count_concerts_this_year(organisateur.id)
            if count >= settings.FREE_CONCERTS_PER_YEAR:
                raise QuotaExceededError(
                    f"Limite de {settings.FREE_CONCERTS_PER_YEAR} concerts/an atteinte. "
                    "Passez en Premium pour créer plus de concerts."
                )

        await self._check_groupe(data.groupe_id)

        concert = Concert(
            organisateur_id=organisateur.id,
            groupe_id=data.groupe_id,
            title=sanitize_text(data.title),
            description=sanitize_multiline(data.description) or None,
            date=data.date,
            full_address=sanitize_text(data.full_address) or None,
            public_address=sanitize_text(data.public_address) or None,
            city=sanitize_text(data.city) or None,
            show_groupe=data.show_groupe,
            max_invites=data.max_invites,
            status=data.status.value,
            slug=generate_slug(data.title),
        )
        try:
            self.db.add(concert)
            await self.db.commit()
            await self.db.refresh(concert)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur création concert pour l'organisateur {organisateur.id} : {e}")
            raise

        logger.info(f"Concert créé : id={concert.id}, slug={concert.slug}, status={concert.status}")
        return concert

    async def get_owned(self, concert_id: int, organisateur_id: int) -> Concert:
        result = await self.db.execute(
            select(Concert).where(Concert.id == concert_id, Concert.organisateur_id == organisateur_id)
        )
        concert = result.scalars().first()
        if not concert:
            raise ConcertNotFoundError()
        return concert

    async def list_for_organisateur(self, organisateur_id: int) -> List[Tuple[Concert, int, int]]:
        """Concerts de l'organisateur avec le nombre de personnes confirmées / en attente"""
        confirmed = func.coalesce(func.sum(case(
            (Inscription.status == InscriptionStatus.CONFIRMED.value, Inscription.party_size), else_=0
        )), 0)
        waitlisted = func.coalesce(func.sum(case(
            (Inscription.status == InscriptionStatus.WAITLISTED.value, Inscription.party_size), else_=0
        )), 0)
        result = await self.db.execute(
            select(Concert, confirmed, waitlisted)
            .outerjoin(Inscription, Inscription.concert_id == Concert.id)
            .where(Concert.organisateur_id == organisateur_id)
            .group_by(Concert.id)
            .order_by(Concert.date.desc())
        )
        return [(row[0], int(row[1]), int(row[2])) for row in result.all()]

    async def update(self, concert: Concert, data: ConcertUpdate) -> Concert:
        changes = data.model_dump(exclude_unset=True)
        inscriptions = InscriptionService(self.db)

        if concert.status == ConcertStatus.PAST.value and "status" in changes:
            raise ServiceError("Un concert passé ne peut plus changer de statut")

        if "groupe_id" in changes:
            await self._check_groupe(changes["groupe_id"])

        capacity_grew = False
        if "max_invites" in changes:
            # Même verrou que les inscriptions avant de recompter les confirmés
            await inscriptions.lock_concert(concert.id)
            new_capacity = changes["max_invites"]
            taken = await inscriptions.confirmed_total(concert.id)
            if new_capacity is not None and new_capacity < taken:
                raise ServiceError(
                    f"Impossible de réduire la capacité sous le nombre de confirmés ({taken})"
                )
            capacity_grew = new_capacity is None or (
                concert.max_invites is not None and new_capacity > concert.max_invites
            )

        if changes.get("title"):
            concert.title = sanitize_text(changes["title"]) or concert.title
        for field in ("full_address", "public_address", "city"):
            if field in changes:
                setattr(concert, field, sanitize_text(changes[field]) or None)
        if "description" in changes:
            concert.description = sanitize_multiline(changes["description"]) or None
        for field in ("groupe_id", "max_invites", "custom_branding"):
            if field in changes:
                setattr(concert, field, changes[field])
        if changes.get("date") is not None:
            concert.date = changes["date"]
        if changes.get("show_groupe") is not None:
            concert.show_groupe = changes["show_groupe"]
        if changes.get("status") is not None:
            concert.status = changes["status"].value

        try:
            promoted = []
            if capacity_grew:
                promoted = await inscriptions.fill_from_waitlist(concert)
            await self.db.commit()
            await self.db.refresh(concert)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur mise à jour concert {concert.id} : {e}")
            raise

        if promoted:
            logger.info(f"Capacité du concert {concert.id} augmentée : {len(promoted)} promotion(s)")
        logger.info(f"Concert mis à jour : id={concert.id}, champs={sorted(changes)}")
        return concert

    async def delete(self, concert: Concert) -> None:
        await self.db.delete(concert)
        await self.db.commit()
        logger.info(f"Concert supprimé : id={concert.id}")

    async def get_public(self, slug: str) -> dict:
        result = await self.db.execute(
            select(Concert)
            .options(selectinload(Concert.groupe), selectinload(Concert.organisateur))
            .where(Concert.slug == slug, Concert.status.in_(PUBLIC_STATUSES))
        )
        concert = result.scalars().first()
        if not concert:
            raise ConcertNotFoundError()

        guests = await self.db.execute(
            select(Inscription)
            .where(
                Inscription.concert_id == concert.id,
                Inscription.status == InscriptionStatus.CONFIRMED.value,
            )
            .order_by(Inscription.created_at, Inscription.id)
        )
        confirmed = list(guests.scalars().all())
        taken = sum(i.party_size for i in confirmed)

        remaining = None
        if concert.max_invites is not None:
            remaining = max(concert.max_invites - taken, 0)

        return {
            "id": concert.id,
            "title": concert.title,
            "description": concert.description,
            "date": concert.date,
            "public_address": concert.public_address,
            "city": concert.city,
            "slug": concert.slug,
            "status": concert.status,
            "max_invites": concert.max_invites,
            "remaining_seats": remaining,
            "is_full": remaining == 0,
            "organisateur_name": concert.organisateur.name if concert.organisateur else None,
            "groupe": concert.groupe if concert.show_groupe else None,
            "custom_branding": concert.custom_branding,
            "guest_list": [
                {
                    "first_name": i.first_name,
                    "last_initial": f"{i.last_name[0].upper()}." if i.last_name else None,
                    "party_size": i.party_size,
                }
                for i in confirmed if i.show_in_guest_list
            ],
        }

    async def mark_past(self, concert: Concert) -> Tuple[Concert, int]:
        """Passe un concert publié et terminé en PASSE et génère les tokens d'avis des confirmés"""
        if concert.status != ConcertStatus.PUBLISHED.value:
            raise ServiceError("Seul un concert publié peut être clôturé")
        if concert.date > utcnow():
            raise ServiceError("Le concert n'a pas encore eu lieu")

        concert.status = ConcertStatus.PAST.value
        result = await self.db.execute(
            select(Inscription).where(
                Inscription.concert_id == concert.id,
                Inscription.status == InscriptionStatus.CONFIRMED.value,
                Inscription.review_token.is_(None),
            )
        )
        created = 0
        for inscription in result.scalars().all():
            inscription.review_token = secrets.token_hex(32)
            created += 1

        await self.db.commit()
        await self.db.refresh(concert)
        logger.info(f"Concert {concert.id} clôturé, {created} token(s) d'avis générés")
        return concert, created

    async def mark_past_due(self) -> int:
        """Clôture tous les concerts publiés dont la date est dépassée. Retourne le nombre traité."""
        result = await self.db.execute(
            select(Concert).where(
                Concert.status == ConcertStatus.PUBLISHED.value,
                Concert.date <= utcnow(),
            )
        )
        concerts = list(result.scalars().all())
        for concert in concerts:
            await self.mark_past(concert)
        return len(concerts)
