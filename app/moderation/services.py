import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.concerts.models import Concert
from app.groupes.models import Groupe
from app.moderation.models import Report, ReportStatus, ReportTarget
from app.moderation.schemas import ReportCreate
from app.utils.dates import utcnow
from app.utils.errors import NotFoundError
from app.utils.sanitize import sanitize_multiline

logger = logging.getLogger(__name__)

TARGET_MODELS = {
    ReportTarget.GROUPE: Groupe,
    ReportTarget.CONCERT: Concert,
}


class ModerationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ===============================
    # SIGNALEMENTS
    # ===============================
    async def create_report(self, reporter: User, data: ReportCreate) -> Report:
        model = TARGET_MODELS[data.target_type]
        result = await self.db.execute(select(model.id).where(model.id == data.target_id))
        if result.scalar() is None:
            raise NotFoundError("Élément signalé introuvable")

        report = Report(
            reporter_id=reporter.id,
            target_type=data.target_type.value,
            target_id=data.target_id,
            reason=sanitize_multiline(data.reason),
            status=ReportStatus.PENDING.value,
        )
        self.db.add(report)
        await self.db.commit()
        await self.db.refresh(report)
        logger.info(f"Signalement {report.id} créé : {report.target_type} {report.target_id}")
        return report

    async def list_reports(self, status: Optional[ReportStatus] = None) -> List[Report]:
        query = select(Report)
        if status is not None:
            query = query.where(Report.status == status.value)
        result = await self.db.execute(query.order_by(Report.created_at.desc()))
        return list(result.scalars().all())

    async def update_report(self, report_id: int, status: ReportStatus) -> Report:
        result = await self.db.execute(select(Report).where(Report.id == report_id))
        report = result.scalars().first()
        if not report:
            raise NotFoundError("Signalement non trouvé")
        report.status = status.value
        report.reviewed_at = None if status == ReportStatus.PENDING else utcnow()
        await self.db.commit()
        await self.db.refresh(report)
        return report

    # ===============================
    # ADMINISTRATION
    # ===============================
    async def list_users(self, limit: int = 100, offset: int = 0) -> List[User]:
        result = await self.db.execute(
            select(User).order_by(User.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def _get_groupe(self, groupe_id: int) -> Groupe:
        result = await self.db.execute(select(Groupe).where(Groupe.id == groupe_id))
        groupe = result.scalars().first()
        if not groupe:
            raise NotFoundError("Groupe non trouvé")
        return groupe

    async def set_groupe_visibility(self, groupe_id: int, is_visible: bool) -> Groupe:
        groupe = await self._get_groupe(groupe_id)
        groupe.is_visible = is_visible
        await self.db.commit()
        await self.db.refresh(groupe)
        logger.info(f"Groupe {groupe_id} {'affiché' if is_visible else 'masqué'} par un admin")
        return groupe

    async def set_groupe_verified(self, groupe_id: int, is_verified: bool) -> Groupe:
        groupe = await self._get_groupe(groupe_id)
        groupe.is_verified = is_verified
        await self.db.commit()
        await self.db.refresh(groupe)
        logger.info(f"Groupe {groupe_id} vérifié={is_verified}")
        return groupe
