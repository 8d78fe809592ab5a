from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey

from app.db.session import Base
from app.utils.dates import utcnow


class ReportTarget(str, Enum):
    GROUPE = "groupe"
    CONCERT = "concert"


class ReportStatus(str, Enum):
    PENDING = "PENDING"
    REVIEWED = "REVIEWED"
    DISMISSED = "DISMISSED"


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    reporter_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    target_type = Column(String(20), nullable=False)
    target_id = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
