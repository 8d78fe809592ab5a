import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.concerts.models import Concert, ConcertStatus
from app.config import settings
from app.contacts.models import Contact
from app.inscriptions.models import Inscription, InscriptionStatus
from app.organisateurs.models import Organisateur
from app.organisateurs.schemas import OrganisateurProfileUpdate
from app.utils.dates import utcnow
from app.utils.sanitize import sanitize_text, sanitize_multiline, sanitize_url

logger = logging.getLogger(__name__)


class OrganisateurService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_profile(self, organisateur: Organisateur, data: OrganisateurProfileUpdate) -> Organisateur:
        organisateur.name = sanitize_text(data.name)
        organisateur.bio = sanitize_multiline(data.bio) or None
        organisateur.thumbnail_url = sanitize_url(data.thumbnail_url) or None
        organisateur.city = sanitize_text(data.city) or None
        organisateur.postal_code = data.postal_code
        organisateur.department = sanitize_text(data.department) or None
        organisateur.region = sanitize_text(data.region) or None
        organisateur.latitude = data.latitude
        organisateur.longitude = data.longitude
        if data.custom_branding is not None:
            organisateur.custom_branding = {
                key: sanitize_text(value) for key, value in data.custom_branding.items()
            }
        try:
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur mise à jour profil organisateur {organisateur.id} : {e}")
            raise
        await self.db.refresh(organisateur)
        return organisateur

    async def count_concerts_this_year(self, organisateur_id: int) -> int:
        """Concerts dont la date tombe dans l'année civile en cours"""
        year = utcnow().year
        result = await self.db.execute(
            select(func.count(Concert.id)).where(
                Concert.organisateur_id == organisateur_id,
                Concert.date >= datetime(year, 1, 1),
                Concert.date < datetime(year + 1, 1, 1),
            )
        )
        return result.scalar() or 0

    async def dashboard(self, organisateur: Organisateur, is_premium: bool) -> dict:
        rows = await self.db.execute(
            select(Concert.status, func.count(Concert.id))
            .where(Concert.organisateur_id == organisateur.id)
            .group_by(Concert.status)
        )
        by_status = {status.value: 0 for status in ConcertStatus}
        for status, count in rows.all():
            by_status[status] = count

        upcoming = await self.db.execute(
            select(func.count(Concert.id)).where(
                Concert.organisateur_id == organisateur.id,
                Concert.status == ConcertStatus.PUBLISHED.value,
                Concert.date >= utcnow(),
            )
        )

        guests = await self.db.execute(
            select(Inscription.status, func.coalesce(func.sum(Inscription.party_size), 0))
            .join(Concert, Concert.id == Inscription.concert_id)
            .where(Concert.organisateur_id == organisateur.id)
            .group_by(Inscription.status)
        )
        guests_by_status = {status: total for status, total in guests.all()}

        contacts = await self.db.execute(
            select(func.count(Contact.id)).where(Contact.organisateur_id == organisateur.id)
        )

        return {
            "concerts_total": sum(by_status.values()),
            "concerts_by_status": by_status,
            "upcoming_concerts": upcoming.scalar() or 0,
            "confirmed_guests": int(guests_by_status.get(InscriptionStatus.CONFIRMED.value, 0)),
            "waitlisted_guests": int(guests_by_status.get(InscriptionStatus.WAITLISTED.value, 0)),
            "contacts_count": contacts.scalar() or 0,
            "is_premium": is_premium,
            "concerts_this_year": await self.count_concerts_this_year(organisateur.id),
            "concerts_limit": None if is_premium else settings.FREE_CONCERTS_PER_YEAR,
        }
