from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime

from app.moderation.models import ReportStatus, ReportTarget


class ReportCreate(BaseModel):
    target_type: ReportTarget
    target_id: int
    reason: str = Field(..., min_length=10, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v):
        if len(v.strip()) < 10:
            raise ValueError("La raison doit contenir au moins 10 caractères")
        return v.strip()


class ReportStatusUpdate(BaseModel):
    status: ReportStatus


class ReportOut(BaseModel):
    id: int
    reporter_id: Optional[int] = None
    target_type: ReportTarget
    target_id: int
    reason: str
    status: ReportStatus
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class VisibilityUpdate(BaseModel):
    is_visible: bool


class VerificationUpdate(BaseModel):
    is_verified: bool = True
