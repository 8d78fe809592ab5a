from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from app.devis.models import DevisStatus
from app.utils.dates import to_naive_utc


class DevisCreate(BaseModel):
    groupe_id: int
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    desired_date: datetime
    guests_count: Optional[int] = Field(None, ge=1, le=1000)
    place: str = Field(..., min_length=1, max_length=255)
    event_type: Optional[str] = Field(None, max_length=50)
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()

    @field_validator("desired_date")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)


class DevisCreated(BaseModel):
    id: int


class DevisStatusUpdate(BaseModel):
    status: DevisStatus


class DevisOut(BaseModel):
    id: int
    groupe_id: int
    name: str
    email: str
    phone: Optional[str] = None
    desired_date: Optional[datetime] = None
    guests_count: Optional[int] = None
    place: str
    event_type: Optional[str] = None
    message: Optional[str] = None
    status: DevisStatus
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
