from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime

from app.concerts.models import ConcertStatus
from app.utils.dates import to_naive_utc, utcnow

MAX_INVITES_LIMIT = 500


# ===========================
# ENTRÉES
# ===========================
class ConcertCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    date: datetime
    full_address: Optional[str] = Field(None, max_length=500)
    public_address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    groupe_id: Optional[int] = None
    show_groupe: bool = True
    max_invites: Optional[int] = Field(None, ge=1, le=MAX_INVITES_LIMIT)
    status: ConcertStatus = ConcertStatus.DRAFT

    @field_validator("date")
    @classmethod
    def date_in_future(cls, v):
        v = to_naive_utc(v)
        if v <= utcnow():
            raise ValueError("La date doit être dans le futur")
        return v

    @field_validator("status")
    @classmethod
    def initial_status(cls, v):
        if v not in (ConcertStatus.DRAFT, ConcertStatus.PUBLISHED):
            raise ValueError("Statut initial invalide")
        return v


class ConcertUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    date: Optional[datetime] = None
    full_address: Optional[str] = Field(None, max_length=500)
    public_address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    groupe_id: Optional[int] = None
    show_groupe: Optional[bool] = None
    max_invites: Optional[int] = Field(None, ge=1, le=MAX_INVITES_LIMIT)
    status: Optional[ConcertStatus] = None
    custom_branding: Optional[Dict[str, str]] = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v) if v is not None else None

    @field_validator("status")
    @classmethod
    def editable_status(cls, v):
        if v == ConcertStatus.PAST:
            raise ValueError("Utilisez la clôture du concert pour le passer en PASSE")
        return v


# ===========================
# SORTIES
# ===========================
class GroupeSummary(BaseModel):
    id: int
    name: str
    thumbnail_url: Optional[str] = None
    city: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ConcertOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    date: datetime
    full_address: Optional[str] = None
    public_address: Optional[str] = None
    city: Optional[str] = None
    groupe_id: Optional[int] = None
    show_groupe: bool
    max_invites: Optional[int] = None
    status: ConcertStatus
    slug: str
    custom_branding: Optional[Dict[str, str]] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ConcertWithCounts(ConcertOut):
    confirmed_count: int = 0
    waitlisted_count: int = 0


class GuestListEntry(BaseModel):
    first_name: str
    last_initial: Optional[str] = None
    party_size: int


class PublicConcert(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    date: datetime
    public_address: Optional[str] = None
    city: Optional[str] = None
    slug: str
    status: ConcertStatus
    max_invites: Optional[int] = None
    remaining_seats: Optional[int] = None
    is_full: bool
    organisateur_name: Optional[str] = None
    groupe: Optional[GroupeSummary] = None
    custom_branding: Optional[Dict[str, str]] = None
    guest_list: List[GuestListEntry] = []


class MarkPastResult(BaseModel):
    concert: ConcertOut
    review_tokens_created: int
