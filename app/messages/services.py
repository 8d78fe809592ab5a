import logging
from typing import List

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.concerts.models import Concert
from app.config import settings
from app.messages import rendering
from app.messages.models import MessageTemplate
from app.messages.schemas import RenderRequest, TemplateCreate, TemplateUpdate
from app.organisateurs.models import Organisateur
from app.utils.errors import ForbiddenError, NotFoundError
from app.utils.sanitize import sanitize_multiline, sanitize_text

logger = logging.getLogger(__name__)


class TemplateNotFoundError(NotFoundError):
    default_message = "Template non trouvé"


class TemplateService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_templates(self, organisateur_id: int) -> List[MessageTemplate]:
        """Templates personnels + templates par défaut (défauts en premier)"""
        result = await self.db.execute(
            select(MessageTemplate)
            .where(or_(
                MessageTemplate.organisateur_id == organisateur_id,
                MessageTemplate.is_default.is_(True),
            ))
            .order_by(MessageTemplate.is_default.desc(), MessageTemplate.name)
        )
        return list(result.scalars().all())

    async def count_own(self, organisateur_id: int) -> int:
        result = await self.db.execute(
            select(func.count(MessageTemplate.id)).where(MessageTemplate.organisateur_id == organisateur_id)
        )
        return result.scalar() or 0

    async def create(self, organisateur: Organisateur, is_premium: bool, data: TemplateCreate) -> MessageTemplate:
        if not is_premium and await self.count_own(organisateur.id) >= settings.FREE_TEMPLATES_LIMIT:
            raise ForbiddenError(
                f"Limite de {settings.FREE_TEMPLATES_LIMIT} templates atteinte. "
                "Passez en Premium pour en créer plus."
            )
        template = MessageTemplate(
            organisateur_id=organisateur.id,
            name=sanitize_text(data.name),
            subject=sanitize_text(data.subject) or None,
            content=sanitize_multiline(data.content),
            type=data.type.value,
            is_default=False,
        )
        self.db.add(template)
        await self.db.commit()
        await self.db.refresh(template)
        logger.info(f"Template {template.id} créé par l'organisateur {organisateur.id}")
        return template

    async def get_visible(self, template_id: int, organisateur_id: int) -> MessageTemplate:
        result = await self.db.execute(
            select(MessageTemplate).where(
                MessageTemplate.id == template_id,
                or_(
                    MessageTemplate.organisateur_id == organisateur_id,
                    MessageTemplate.is_default.is_(True),
                ),
            )
        )
        template = result.scalars().first()
        if not template:
            raise TemplateNotFoundError()
        return template

    async def get_own(self, template_id: int, organisateur_id: int) -> MessageTemplate:
        template = await self.get_visible(template_id, organisateur_id)
        if template.is_default or template.organisateur_id != organisateur_id:
            raise ForbiddenError("Les templates par défaut ne peuvent pas être modifiés")
        return template

    async def update(self, template: MessageTemplate, data: TemplateUpdate) -> MessageTemplate:
        if data.name is not None:
            template.name = sanitize_text(data.name)
        if "subject" in data.model_fields_set:
            template.subject = sanitize_text(data.subject) or None
        if data.content is not None:
            template.content = sanitize_multiline(data.content)
        if data.type is not None:
            template.type = data.type.value
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def delete(self, template: MessageTemplate) -> None:
        await self.db.delete(template)
        await self.db.commit()
        logger.info(f"Template {template.id} supprimé")

    async def render(self, organisateur: Organisateur, data: RenderRequest) -> dict:
        template = await self.get_visible(data.template_id, organisateur.id)
        result = await self.db.execute(
            select(Concert).where(Concert.id == data.concert_id, Concert.organisateur_id == organisateur.id)
        )
        concert = result.scalars().first()
        if not concert:
            raise NotFoundError("Concert non trouvé")

        context = rendering.build_context(concert, organisateur.name, settings.APP_URL, data.first_name)
        subject = rendering.render(template.subject, context)
        message = rendering.render(template.content, context)
        return {
            "subject": subject,
            "message": message,
            "links": rendering.share_links(subject, message, data.phone, data.recipients),
        }
