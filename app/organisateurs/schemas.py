from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, Optional


class OrganisateurProfileUpdate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=2000)
    thumbnail_url: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    custom_branding: Optional[Dict[str, str]] = None

    @field_validator("postal_code")
    @classmethod
    def french_postal_code(cls, v):
        if v in (None, ""):
            return None
        v = v.strip()
        if not (len(v) == 5 and v.isdigit()):
            raise ValueError("Code postal invalide (5 chiffres)")
        return v


class OrganisateurOut(BaseModel):
    id: int
    name: str
    bio: Optional[str] = None
    thumbnail_url: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    department: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    custom_branding: Optional[Dict[str, str]] = None
    model_config = ConfigDict(from_attributes=True)


class DashboardStats(BaseModel):
    concerts_total: int
    concerts_by_status: Dict[str, int]
    upcoming_concerts: int
    confirmed_guests: int
    waitlisted_guests: int
    contacts_count: int
    is_premium: bool
    concerts_this_year: int
    concerts_limit: Optional[int] = None
