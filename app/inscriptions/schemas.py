from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.inscriptions.models import InscriptionStatus

MIN_PARTY_SIZE = 1
MAX_PARTY_SIZE = 10


class InscriptionCreate(BaseModel):
    concert_id: int
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    party_size: int = Field(1, ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE)
    show_in_guest_list: bool = True

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()


class InscriptionSelfUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    party_size: Optional[int] = Field(None, ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE)
    show_in_guest_list: Optional[bool] = None


class InscriptionManualCreate(BaseModel):
    """Ajout d'un invité par l'organisateur"""
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    party_size: int = Field(1, ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE)
    status: InscriptionStatus = InscriptionStatus.CONFIRMED

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()

    @field_validator("status")
    @classmethod
    def not_cancelled(cls, v):
        if v == InscriptionStatus.CANCELLED:
            raise ValueError("Statut invalide pour un ajout")
        return v


class InscriptionOrganisateurUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    party_size: Optional[int] = Field(None, ge=MIN_PARTY_SIZE, le=MAX_PARTY_SIZE)
    status: Optional[InscriptionStatus] = None
    show_in_guest_list: Optional[bool] = None


class InscriptionLookup(BaseModel):
    email: EmailStr
    concert_id: int

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()


class InscriptionOut(BaseModel):
    id: int
    concert_id: int
    first_name: str
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    party_size: int
    status: InscriptionStatus
    show_in_guest_list: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class InscriptionCreated(BaseModel):
    inscription: InscriptionOut
    management_token: str
    management_url: str


class ConcertForGuest(BaseModel):
    id: int
    title: str
    date: datetime
    public_address: Optional[str] = None
    city: Optional[str] = None
    slug: str
    status: str
    groupe_name: Optional[str] = None
    groupe_thumbnail_url: Optional[str] = None
    organisateur_name: Optional[str] = None


class InscriptionSelfView(BaseModel):
    inscription: InscriptionOut
    concert: ConcertForGuest


class LookupResponse(BaseModel):
    found: bool = True
    inscription: InscriptionOut
    management_url: str


class InscriptionList(BaseModel):
    inscriptions: List[InscriptionOut]
    confirmed_count: int
    waitlisted_count: int
    max_invites: Optional[int] = None
