import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.devis.models import DemandeDevis, DevisStatus
from app.devis.schemas import DevisCreate
from app.groupes.models import Groupe
from app.utils.dates import format_date_fr
from app.utils.errors import NotFoundError
from app.utils.sanitize import sanitize_multiline, sanitize_phone, sanitize_text

logger = logging.getLogger(__name__)


class DevisNotFoundError(NotFoundError):
    default_message = "Demande de devis non trouvée"


def devis_summary(demande: DemandeDevis) -> str:
    """Texte de la notification envoyée au groupe"""
    lines = [
        f"De : {demande.name} <{demande.email}>",
        f"Téléphone : {demande.phone or 'non renseigné'}",
        f"Date souhaitée : {format_date_fr(demande.desired_date)}",
        f"Lieu : {demande.place}",
    ]
    if demande.guests_count:
        lines.append(f"Nombre d'invités : {demande.guests_count}")
    if demande.event_type:
        lines.append(f"Type d'événement : {demande.event_type}")
    if demande.message:
        lines.extend(["", demande.message])
    return "\n".join(lines)


class DevisService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: DevisCreate) -> DemandeDevis:
        result = await self.db.execute(select(Groupe.id).where(Groupe.id == data.groupe_id))
        if result.scalar() is None:
            raise NotFoundError("Groupe non trouvé")

        demande = DemandeDevis(
            groupe_id=data.groupe_id,
            name=sanitize_text(data.name),
            email=data.email,
            phone=sanitize_phone(data.phone) or None,
            desired_date=data.desired_date,
            guests_count=data.guests_count,
            place=sanitize_text(data.place),
            event_type=sanitize_text(data.event_type) or None,
            message=sanitize_multiline(data.message) or None,
            status=DevisStatus.NEW.value,
        )
        self.db.add(demande)
        await self.db.commit()
        await self.db.refresh(demande)
        logger.info(f"Demande de devis {demande.id} reçue pour le groupe {demande.groupe_id}")
        return demande

    async def list_for_groupe(self, groupe_id: int, status: Optional[DevisStatus] = None) -> List[DemandeDevis]:
        query = select(DemandeDevis).where(DemandeDevis.groupe_id == groupe_id)
        if status is not None:
            query = query.where(DemandeDevis.status == status.value)
        result = await self.db.execute(query.order_by(DemandeDevis.created_at.desc()))
        return list(result.scalars().all())

    async def update_status(self, groupe_id: int, devis_id: int, status: DevisStatus) -> DemandeDevis:
        result = await self.db.execute(
            select(DemandeDevis).where(DemandeDevis.id == devis_id, DemandeDevis.groupe_id == groupe_id)
        )
        demande = result.scalars().first()
        if not demande:
            raise DevisNotFoundError()
        demande.status = status.value
        await self.db.commit()
        await self.db.refresh(demande)
        return demande
