from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.avis.models import AuthorType


class AvisBase(BaseModel):
    note: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class OrganisateurAvisCreate(AvisBase):
    concert_id: int
    groupe_id: int


class TokenAvisCreate(AvisBase):
    pass


class PublicAvisCreate(AvisBase):
    """Avis laissé depuis la page publique d'un concert"""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()


class AvisOut(BaseModel):
    id: int
    groupe_id: int
    concert_id: Optional[int] = None
    author_type: AuthorType
    author_name: Optional[str] = None
    note: int
    comment: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ReviewContext(BaseModel):
    first_name: str
    concert_title: str
    concert_date: datetime
    groupe_id: int
    groupe_name: str
    groupe_thumbnail_url: Optional[str] = None


class GroupeAvisList(BaseModel):
    average: Optional[float] = None
    count: int
    avis: List[AvisOut]
