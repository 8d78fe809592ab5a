from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional

from app.utils.sanitize import sanitize_youtube_url, sanitize_url

MAX_GENRES = 10
MAX_PHOTOS = 10
MAX_VIDEOS = 5


class GenreOut(BaseModel):
    id: int
    name: str
    model_config = ConfigDict(from_attributes=True)


class GroupeProfileUpdate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    bio: Optional[str] = Field(None, max_length=2000)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=30)
    website: Optional[str] = Field(None, max_length=500)
    photos: List[str] = Field(default_factory=list, max_length=MAX_PHOTOS)
    thumbnail_url: Optional[str] = None
    youtube_videos: List[str] = Field(default_factory=list, max_length=MAX_VIDEOS)
    genres: List[int] = Field(default_factory=list, max_length=MAX_GENRES)

    @field_validator("postal_code")
    @classmethod
    def french_postal_code(cls, v):
        if v in (None, ""):
            return None
        v = v.strip()
        if not (len(v) == 5 and v.isdigit()):
            raise ValueError("Code postal invalide (5 chiffres)")
        return v

    @field_validator("youtube_videos")
    @classmethod
    def normalize_videos(cls, v):
        # Les liens non reconnus sont ignorés
        return [url for url in (sanitize_youtube_url(item) for item in v) if url]

    @field_validator("photos")
    @classmethod
    def safe_photos(cls, v):
        return [url for url in (sanitize_url(item) for item in v) if url]

    @field_validator("thumbnail_url", "website")
    @classmethod
    def safe_url(cls, v):
        if v is None:
            return None
        return sanitize_url(v) or None


class GroupeOut(BaseModel):
    id: int
    name: str
    bio: Optional[str] = None
    photos: List[str] = []
    thumbnail_url: Optional[str] = None
    youtube_videos: List[str] = []
    city: Optional[str] = None
    postal_code: Optional[str] = None
    department: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    is_verified: bool = False
    is_boosted: bool = False
    is_visible: bool = True
    genres: List[GenreOut] = []
    model_config = ConfigDict(from_attributes=True)


class GroupeSearchItem(GroupeOut):
    distance_km: Optional[float] = None


class GroupeSearchResponse(BaseModel):
    groupes: List[GroupeSearchItem]
    total: int


class GroupeSearchFilters(BaseModel):
    q: Optional[str] = None
    ville: Optional[str] = None
    departement: Optional[str] = None
    region: Optional[str] = None
    genres: List[int] = []
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    radius: Optional[float] = Field(None, gt=0, le=1000)


class PhotoUploadResponse(BaseModel):
    url: str
    photos: List[str]
