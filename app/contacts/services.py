import csv
import io
import logging
import secrets
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.contacts.models import Contact, ContactShareToken, ContactSource
from app.contacts.parsers import ParseResult
from app.organisateurs.models import Organisateur
from app.utils.dates import utcnow
from app.utils.errors import ConflictError, GoneError, NotFoundError, ServiceError
from app.utils.sanitize import mask_email, sanitize_phone, sanitize_text, slugify

logger = logging.getLogger(__name__)

SHARE_PREVIEW_SIZE = 5
EXPORT_HEADER = ["nom", "email", "telephone", "tags", "nombre_participations"]
# Préfixes interprétés comme formules par les tableurs
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


class ContactNotFoundError(NotFoundError):
    default_message = "Contact non trouvé"


class ContactExistsError(ConflictError):
    default_message = "Ce contact existe déjà"


class NoValidContactError(ServiceError):
    default_message = "Aucun contact valide trouvé"


class ShareTokenInvalidError(NotFoundError):
    default_message = "Lien de partage invalide ou expiré"


class ShareTokenExhaustedError(GoneError):
    default_message = "Ce lien de partage a atteint son nombre maximal d'utilisations"


def _csv_cell(value: Optional[str]) -> str:
    if not value:
        return ""
    if value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


class ContactService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, organisateur_id: int, email: str) -> Optional[Contact]:
        result = await self.db.execute(
            select(Contact).where(Contact.organisateur_id == organisateur_id, Contact.email == email.lower())
        )
        return result.scalars().first()

    async def list_contacts(self, organisateur_id: int) -> List[Contact]:
        result = await self.db.execute(
            select(Contact)
            .where(Contact.organisateur_id == organisateur_id)
            .order_by(Contact.name, Contact.email)
        )
        return list(result.scalars().all())

    async def count(self, organisateur_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Contact.id)).where(Contact.organisateur_id == organisateur_id)
        )
        return result.scalar() or 0

    async def add(self, organisateur_id: int, email: str, name: Optional[str] = None,
                  phone: Optional[str] = None, tags: Optional[List[str]] = None) -> Contact:
        if await self._find(organisateur_id, email):
            raise ContactExistsError()
        contact = Contact(
            organisateur_id=organisateur_id,
            email=email.lower(),
            name=sanitize_text(name) or None,
            phone=sanitize_phone(phone) or None,
            tags=[sanitize_text(t) for t in (tags or []) if sanitize_text(t)],
            source_type=ContactSource.MANUAL.value,
        )
        self.db.add(contact)
        await self.db.commit()
        await self.db.refresh(contact)
        logger.info(f"Contact {contact.id} ajouté pour l'organisateur {organisateur_id}")
        return contact

    async def delete(self, organisateur_id: int, contact_id: int) -> None:
        result = await self.db.execute(
            select(Contact).where(Contact.id == contact_id, Contact.organisateur_id == organisateur_id)
        )
        contact = result.scalars().first()
        if not contact:
            raise ContactNotFoundError()
        await self.db.delete(contact)
        await self.db.commit()

    async def record_participation(
        self,
        organisateur_id: int,
        email: str,
        name: Optional[str],
        phone: Optional[str],
        concert_id: int,
        source: ContactSource = ContactSource.INSCRIPTION,
    ) -> Contact:
        """Ajoute ou met à jour l'invité dans le carnet de l'organisateur. Ne commit pas."""
        contact = await self._find(organisateur_id, email)
        if contact:
            contact.name = name or contact.name
            contact.phone = phone or contact.phone
            contact.participation_count = (contact.participation_count or 0) + 1
            contact.last_concert_id = concert_id
        else:
            contact = Contact(
                organisateur_id=organisateur_id,
                email=email.lower(),
                name=name or None,
                phone=phone,
                tags=[],
                participation_count=1,
                last_concert_id=concert_id,
                source_type=source.value,
            )
            self.db.add(contact)
        await self.db.flush()
        return contact

    async def bulk_import(
        self,
        organisateur_id: int,
        rows: Iterable[Tuple[str, Optional[str], Optional[str]]],
        source: ContactSource,
        source_label: Optional[str] = None,
        on_duplicate: str = "ignore",
    ) -> dict:
        """Importe des lignes (email, nom, téléphone). Les doublons sont ignorés ou mis à jour."""
        imported = updated = skipped = 0
        seen = set()
        label = sanitize_text(source_label) or None
        try:
            for email, name, phone in rows:
                email = email.strip().lower()
                if email in seen:
                    skipped += 1
                    continue
                seen.add(email)

                existing = await self._find(organisateur_id, email)
                if existing:
                    if on_duplicate == "update":
                        existing.name = sanitize_text(name) or existing.name
                        existing.phone = sanitize_phone(phone) or existing.phone
                        updated += 1
                    else:
                        skipped += 1
                    continue

                self.db.add(Contact(
                    organisateur_id=organisateur_id,
                    email=email,
                    name=sanitize_text(name) or None,
                    phone=sanitize_phone(phone) or None,
                    tags=[],
                    source_type=source.value,
                    source_label=label,
                ))
                imported += 1
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur import de contacts pour l'organisateur {organisateur_id} : {e}")
            raise

        logger.info(
            f"Import contacts organisateur {organisateur_id} : "
            f"{imported} importé(s), {updated} mis à jour, {skipped} ignoré(s)"
        )
        return {"imported": imported, "updated": updated, "skipped": skipped}

    async def import_parsed(
        self,
        organisateur_id: int,
        parsed: ParseResult,
        source: ContactSource,
        source_label: Optional[str] = None,
        on_duplicate: str = "ignore",
    ) -> dict:
        if not parsed.contacts:
            if parsed.email_column is None and parsed.skipped:
                raise NoValidContactError("Impossible de détecter la colonne email dans ce fichier")
            raise NoValidContactError()
        result = await self.bulk_import(
            organisateur_id,
            ((c.email, c.name, c.phone) for c in parsed.contacts),
            source,
            source_label,
            on_duplicate,
        )
        result["skipped"] += parsed.skipped
        return result

    async def export_csv(self, organisateur: Organisateur) -> Tuple[str, str]:
        """Retourne (nom de fichier, contenu CSV)"""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPORT_HEADER)
        for contact in await self.list_contacts(organisateur.id):
            writer.writerow([
                _csv_cell(contact.name),
                _csv_cell(contact.email),
                _csv_cell(contact.phone),
                _csv_cell("|".join(contact.tags or [])),
                contact.participation_count or 0,
            ])
        filename = f"contacts-{slugify(organisateur.name)}-{utcnow().strftime('%Y-%m-%d')}.csv"
        return filename, buffer.getvalue()


class ShareTokenService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, organisateur: Organisateur, expires_in_days: int, max_uses: int) -> ContactShareToken:
        share = ContactShareToken(
            organisateur_id=organisateur.id,
            token=secrets.token_hex(32),
            label=organisateur.name,
            expires_at=utcnow() + timedelta(days=expires_in_days),
            max_uses=max_uses,
            used_count=0,
            is_revoked=False,
        )
        self.db.add(share)
        await self.db.commit()
        await self.db.refresh(share)
        logger.info(f"Lien de partage {share.id} créé par l'organisateur {organisateur.id}")
        return share

    async def list_active(self, organisateur_id: int) -> List[ContactShareToken]:
        result = await self.db.execute(
            select(ContactShareToken)
            .where(
                ContactShareToken.organisateur_id == organisateur_id,
                ContactShareToken.is_revoked.is_(False),
                ContactShareToken.expires_at > utcnow(),
                or_(
                    ContactShareToken.max_uses.is_(None),
                    ContactShareToken.used_count < ContactShareToken.max_uses,
                ),
            )
            .order_by(ContactShareToken.created_at)
        )
        return list(result.scalars().all())

    async def revoke(self, organisateur_id: int, token_id: int) -> None:
        result = await self.db.execute(
            select(ContactShareToken).where(
                ContactShareToken.id == token_id,
                ContactShareToken.organisateur_id == organisateur_id,
            )
        )
        share = result.scalars().first()
        if not share:
            raise ShareTokenInvalidError("Lien de partage non trouvé")
        share.is_revoked = True
        await self.db.commit()
        logger.info(f"Lien de partage {token_id} révoqué")

    async def get_usable(self, token: str, lock: bool = False) -> ContactShareToken:
        """Token inconnu, révoqué ou expiré: 404. Token épuisé: 410."""
        query = select(ContactShareToken).where(ContactShareToken.token == token)
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        share = result.scalars().first()
        if not share or share.is_revoked or share.is_expired(utcnow()):
            raise ShareTokenInvalidError()
        if share.is_exhausted:
            raise ShareTokenExhaustedError()
        return share

    async def preview(self, token: str) -> dict:
        share = await self.get_usable(token)
        contacts = await ContactService(self.db).list_contacts(share.organisateur_id)
        return {
            "label": share.label,
            "contacts_count": len(contacts),
            "preview": [
                {"name": c.name, "email_masked": mask_email(c.email)}
                for c in contacts[:SHARE_PREVIEW_SIZE]
            ],
            "expires_at": share.expires_at,
        }

    async def import_from(self, token: str, organisateur: Organisateur) -> dict:
        share = await self.get_usable(token, lock=True)
        if share.organisateur_id == organisateur.id:
            raise ServiceError("Vous ne pouvez pas importer vos propres contacts")

        source_contacts = await ContactService(self.db).list_contacts(share.organisateur_id)
        imported = skipped = 0
        try:
            for source in source_contacts:
                existing = await self.db.execute(
                    select(Contact.id).where(
                        Contact.organisateur_id == organisateur.id,
                        Contact.email == source.email,
                    )
                )
                if existing.scalar() is not None:
                    skipped += 1
                    continue
                self.db.add(Contact(
                    organisateur_id=organisateur.id,
                    email=source.email,
                    name=source.name,
                    phone=source.phone,
                    tags=list(source.tags or []),
                    source_type=ContactSource.SHARE.value,
                    source_label=share.label,
                ))
                imported += 1

            share.used_count = (share.used_count or 0) + 1
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur import via lien de partage {share.id} : {e}")
            raise

        logger.info(
            f"Lien de partage {share.id} utilisé par l'organisateur {organisateur.id} : "
            f"{imported} importé(s), {skipped} ignoré(s)"
        )
        return {"imported": imported, "skipped": skipped, "total": len(source_contacts)}
