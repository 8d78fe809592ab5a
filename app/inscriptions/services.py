import logging
import secrets
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.auth.models import User
from app.concerts.models import Concert, ConcertStatus
from app.config import settings
from app.contacts.models import ContactSource
from app.contacts.services import ContactService
from app.inscriptions.models import Inscription, InscriptionStatus
from app.inscriptions.schemas import (
    InscriptionCreate,
    InscriptionLookup,
    InscriptionManualCreate,
    InscriptionOrganisateurUpdate,
    InscriptionSelfUpdate,
)
from app.organisateurs.models import Organisateur
from app.utils.dates import utcnow
from app.utils.errors import NotFoundError, ServiceError
from app.utils.sanitize import sanitize_phone, sanitize_text

logger = logging.getLogger(__name__)


class InscriptionNotFoundError(NotFoundError):
    default_message = "Inscription non trouvée"


class ConcertUnavailableError(NotFoundError):
    default_message = "Concert non trouvé ou non publié"


class InscriptionClosedError(ServiceError):
    default_message = "Cette inscription ne peut plus être modifiée"


class CapacityExceededError(ServiceError):
    default_message = "Plus assez de places disponibles"


def generate_token() -> str:
    return secrets.token_hex(32)


def management_url(inscription: Inscription) -> str:
    return f"{settings.APP_URL}/inscription/{inscription.id}?token={inscription.management_token}"


class InscriptionService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ===============================
    # CAPACITÉ
    # ===============================

    async def confirmed_total(self, concert_id: int, exclude_id: Optional[int] = None) -> int:
        """Somme des party_size des inscriptions CONFIRMÉES du concert"""
        query = select(func.coalesce(func.sum(Inscription.party_size), 0)).where(
            Inscription.concert_id == concert_id,
            Inscription.status == InscriptionStatus.CONFIRMED.value,
        )
        if exclude_id is not None:
            query = query.where(Inscription.id != exclude_id)
        result = await self.db.execute(query)
        return int(result.scalar() or 0)

    async def lock_concert(self, concert_id: int) -> Optional[Concert]:
        # Sérialise les décisions de capacité pour un même concert (ignoré par SQLite)
        result = await self.db.execute(
            select(Concert).where(Concert.id == concert_id).with_for_update()
        )
        return result.scalars().first()

    async def _fits(self, concert: Concert, party_size: int, exclude_id: Optional[int] = None) -> bool:
        if concert.max_invites is None:
            return True
        taken = await self.confirmed_total(concert.id, exclude_id=exclude_id)
        return taken + party_size <= concert.max_invites

    async def fill_from_waitlist(self, concert: Concert, exclude_id: Optional[int] = None) -> List[Inscription]:
        """
        Confirme les inscriptions en liste d'attente dans l'ordre d'arrivée tant qu'elles
        rentrent dans la capacité libérée. S'arrête à la première qui ne rentre pas.
        exclude_id écarte l'inscription en cours de modification. Ne commit pas.
        """
        await self.db.flush()
        query = select(Inscription).where(
            Inscription.concert_id == concert.id,
            Inscription.status == InscriptionStatus.WAITLISTED.value,
        )
        if exclude_id is not None:
            query = query.where(Inscription.id != exclude_id)
        result = await self.db.execute(query.order_by(Inscription.created_at, Inscription.id))
        waiting = list(result.scalars().all())
        if not waiting:
            return []

        if concert.max_invites is None:
            remaining = None
        else:
            remaining = concert.max_invites - await self.confirmed_total(concert.id)

        promoted = []
        for inscription in waiting:
            if remaining is not None and inscription.party_size > remaining:
                break
            inscription.status = InscriptionStatus.CONFIRMED.value
            if remaining is not None:
                remaining -= inscription.party_size
            promoted.append(inscription)

        if promoted:
            logger.info(
                f"Concert {concert.id} : {len(promoted)} inscription(s) promue(s) depuis la liste d'attente"
            )
        return promoted

    # ===============================
    # INSCRIPTION PUBLIQUE
    # ===============================

    async def register(self, data: InscriptionCreate) -> Tuple[Inscription, Concert]:
        try:
            concert = await self.lock_concert(data.concert_id)
            if not concert or concert.status != ConcertStatus.PUBLISHED.value:
                raise ConcertUnavailableError()

            fits = await self._fits(concert, data.party_size)
            first_name = sanitize_text(data.first_name)
            last_name = sanitize_text(data.last_name)
            phone = sanitize_phone(data.phone) or None

            inscription = Inscription(
                concert_id=concert.id,
                first_name=first_name,
                last_name=last_name,
                email=data.email,
                phone=phone,
                party_size=data.party_size,
                status=(InscriptionStatus.CONFIRMED if fits else InscriptionStatus.WAITLISTED).value,
                show_in_guest_list=data.show_in_guest_list,
                management_token=generate_token(),
            )
            self.db.add(inscription)

            await ContactService(self.db).record_participation(
                organisateur_id=concert.organisateur_id,
                email=data.email,
                name=f"{first_name} {last_name}".strip(),
                phone=phone,
                concert_id=concert.id,
            )

            await self.db.commit()
            await self.db.refresh(inscription)
        except ServiceError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur lors de l'inscription au concert {data.concert_id} : {e}")
            raise

        logger.info(
            f"Inscription {inscription.id} au concert {concert.id} : {inscription.status} "
            f"({inscription.party_size} pers.)"
        )
        return inscription, concert

    # ===============================
    # LIBRE-SERVICE PAR TOKEN
    # ===============================

    async def get_by_token(self, inscription_id: int, token: Optional[str]) -> Inscription:
        if not token:
            raise InscriptionNotFoundError()
        result = await self.db.execute(
            select(Inscription)
            .options(
                selectinload(Inscription.concert).selectinload(Concert.groupe),
                selectinload(Inscription.concert).selectinload(Concert.organisateur),
            )
            .where(Inscription.id == inscription_id, Inscription.management_token == token)
        )
        inscription = result.scalars().first()
        if not inscription:
            raise InscriptionNotFoundError()
        return inscription

    def _ensure_editable(self, inscription: Inscription, cancelling: bool = False) -> None:
        if inscription.concert.date < utcnow():
            raise InscriptionClosedError("Ce concert est déjà passé")
        if inscription.status == InscriptionStatus.CANCELLED.value:
            if cancelling:
                raise InscriptionClosedError("Cette inscription est déjà annulée")
            raise InscriptionClosedError("Cette inscription a été annulée")

    async def self_update(
        self, inscription_id: int, token: Optional[str], data: InscriptionSelfUpdate
    ) -> Tuple[Inscription, List[Inscription]]:
        inscription = await self.get_by_token(inscription_id, token)
        self._ensure_editable(inscription)

        concert = await self.lock_concert(inscription.concert_id)
        try:
            if data.party_size is not None and data.party_size != inscription.party_size:
                if (
                    inscription.status == InscriptionStatus.CONFIRMED.value
                    and data.party_size > inscription.party_size
                    and concert.max_invites is not None
                ):
                    others = await self.confirmed_total(concert.id, exclude_id=inscription.id)
                    if others + data.party_size > concert.max_invites:
                        remaining = max(concert.max_invites - others, 0)
                        raise CapacityExceededError(f"Il ne reste que {remaining} place(s) disponible(s)")
                inscription.party_size = data.party_size

            if data.first_name is not None:
                inscription.first_name = sanitize_text(data.first_name)
            if data.last_name is not None:
                inscription.last_name = sanitize_text(data.last_name)
            if "phone" in data.model_fields_set:
                inscription.phone = sanitize_phone(data.phone) or None
            if data.show_in_guest_list is not None:
                inscription.show_in_guest_list = data.show_in_guest_list

            # Une réduction libère peut-être des places
            promoted = []
            if inscription.status == InscriptionStatus.CONFIRMED.value:
                promoted = await self.fill_from_waitlist(concert)

            await self.db.commit()
        except ServiceError:
            await self.db.rollback()
            raise

        if promoted:
            logger.info(f"Inscription {inscription.id} modifiée, {len(promoted)} promotion(s)")
        return inscription, promoted

    async def self_cancel(self, inscription_id: int, token: Optional[str]) -> Tuple[Inscription, List[Inscription]]:
        inscription = await self.get_by_token(inscription_id, token)
        self._ensure_editable(inscription, cancelling=True)
        return inscription, await self._cancel(inscription)

    async def _cancel(self, inscription: Inscription) -> List[Inscription]:
        concert = await self.lock_concert(inscription.concert_id)
        was_confirmed = inscription.status == InscriptionStatus.CONFIRMED.value
        inscription.status = InscriptionStatus.CANCELLED.value

        promoted = await self.fill_from_waitlist(concert) if was_confirmed else []
        await self.db.commit()
        logger.info(f"Inscription {inscription.id} annulée (concert {concert.id})")
        return promoted

    async def lookup(self, data: InscriptionLookup) -> Inscription:
        result = await self.db.execute(
            select(Inscription)
            .where(Inscription.email == data.email, Inscription.concert_id == data.concert_id)
            .order_by(Inscription.created_at.desc(), Inscription.id.desc())
        )
        candidates = list(result.scalars().all())
        if not candidates:
            raise InscriptionNotFoundError("Aucune inscription trouvée avec cet email pour ce concert")

        active = [i for i in candidates if i.status != InscriptionStatus.CANCELLED.value]
        if not active:
            raise InscriptionClosedError("Cette inscription a été annulée")

        inscription = active[0]
        if not inscription.management_token:
            inscription.management_token = generate_token()
            await self.db.commit()
            await self.db.refresh(inscription)
        return inscription

    # ===============================
    # GESTION ORGANISATEUR
    # ===============================

    async def get_owned_concert(self, concert_id: int, organisateur_id: int) -> Concert:
        result = await self.db.execute(
            select(Concert).where(Concert.id == concert_id, Concert.organisateur_id == organisateur_id)
        )
        concert = result.scalars().first()
        if not concert:
            raise NotFoundError("Concert non trouvé")
        return concert

    async def get_owned(self, inscription_id: int, organisateur_id: int) -> Inscription:
        result = await self.db.execute(
            select(Inscription)
            .join(Concert, Concert.id == Inscription.concert_id)
            .options(selectinload(Inscription.concert))
            .where(Inscription.id == inscription_id, Concert.organisateur_id == organisateur_id)
        )
        inscription = result.scalars().first()
        if not inscription:
            raise InscriptionNotFoundError()
        return inscription

    async def list_for_concert(self, concert: Concert) -> List[Inscription]:
        result = await self.db.execute(
            select(Inscription)
            .where(Inscription.concert_id == concert.id)
            .order_by(Inscription.created_at, Inscription.id)
        )
        return list(result.scalars().all())

    async def add_manual(self, concert: Concert, data: InscriptionManualCreate) -> Inscription:
        concert = await self.lock_concert(concert.id)
        try:
            if data.status == InscriptionStatus.CONFIRMED and not await self._fits(concert, data.party_size):
                raise CapacityExceededError()

            inscription = Inscription(
                concert_id=concert.id,
                first_name=sanitize_text(data.first_name),
                last_name=sanitize_text(data.last_name) or None,
                email=data.email,
                phone=sanitize_phone(data.phone) or None,
                party_size=data.party_size,
                status=data.status.value,
                management_token=generate_token(),
            )
            self.db.add(inscription)
            await ContactService(self.db).record_participation(
                organisateur_id=concert.organisateur_id,
                email=data.email,
                name=inscription.full_name,
                phone=inscription.phone,
                concert_id=concert.id,
                source=ContactSource.MANUAL,
            )
            await self.db.commit()
            await self.db.refresh(inscription)
        except ServiceError:
            await self.db.rollback()
            raise
        logger.info(f"Invité ajouté manuellement au concert {concert.id} : inscription {inscription.id}")
        return inscription

    async def organiser_update(
        self, inscription: Inscription, data: InscriptionOrganisateurUpdate
    ) -> Tuple[Inscription, List[Inscription]]:
        concert = await self.lock_concert(inscription.concert_id)
        was_confirmed = inscription.status == InscriptionStatus.CONFIRMED.value
        new_status = data.status.value if data.status is not None else inscription.status
        new_size = data.party_size if data.party_size is not None else inscription.party_size

        try:
            if new_status == InscriptionStatus.CONFIRMED.value:
                growing = (not was_confirmed) or new_size > inscription.party_size
                if growing and not await self._fits(concert, new_size, exclude_id=inscription.id):
                    raise CapacityExceededError()

            inscription.status = new_status
            inscription.party_size = new_size
            if data.first_name is not None:
                inscription.first_name = sanitize_text(data.first_name)
            if "last_name" in data.model_fields_set:
                inscription.last_name = sanitize_text(data.last_name) or None
            if "phone" in data.model_fields_set:
                inscription.phone = sanitize_phone(data.phone) or None
            if data.show_in_guest_list is not None:
                inscription.show_in_guest_list = data.show_in_guest_list

            promoted = []
            if was_confirmed:
                promoted = await self.fill_from_waitlist(concert, exclude_id=inscription.id)

            await self.db.commit()
        except ServiceError:
            await self.db.rollback()
            raise
        return inscription, promoted

    async def organiser_delete(self, inscription: Inscription) -> List[Inscription]:
        concert = await self.lock_concert(inscription.concert_id)
        was_confirmed = inscription.status == InscriptionStatus.CONFIRMED.value
        await self.db.delete(inscription)

        promoted = await self.fill_from_waitlist(concert) if was_confirmed else []
        await self.db.commit()
        logger.info(f"Inscription {inscription.id} supprimée par l'organisateur (concert {concert.id})")
        return promoted

    async def promote(self, inscription: Inscription) -> Inscription:
        if inscription.status != InscriptionStatus.WAITLISTED.value:
            raise ServiceError("Seule une inscription en liste d'attente peut être promue")
        concert = await self.lock_concert(inscription.concert_id)
        if not await self._fits(concert, inscription.party_size):
            raise CapacityExceededError()
        inscription.status = InscriptionStatus.CONFIRMED.value
        await self.db.commit()
        logger.info(f"Inscription {inscription.id} promue manuellement")
        return inscription

    async def organisateur_email(self, concert: Concert) -> Optional[str]:
        result = await self.db.execute(
            select(User.email)
            .join(Organisateur, Organisateur.user_id == User.id)
            .where(Organisateur.id == concert.organisateur_id)
        )
        return result.scalar()
