from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime

from app.contacts.models import ContactSource


class ContactCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    tags: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.strip().lower()


class ContactOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    tags: List[str] = []
    participation_count: int
    last_concert_id: Optional[int] = None
    source_type: str
    source_label: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ImportRow(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)


class BulkImportRequest(BaseModel):
    contacts: List[ImportRow] = Field(..., min_length=1, max_length=5000)
    source: ContactSource = ContactSource.IMPORT_CSV
    source_label: Optional[str] = Field(None, max_length=200)
    on_duplicate: Literal["ignore", "update"] = "ignore"


class TextImportRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=200_000)
    source_label: Optional[str] = Field(None, max_length=200)
    on_duplicate: Literal["ignore", "update"] = "ignore"


class ImportResult(BaseModel):
    imported: int
    updated: int = 0
    skipped: int


class ShareTokenCreate(BaseModel):
    expires_in_days: int = Field(7, ge=1, le=30)
    max_uses: int = Field(10, ge=1, le=100)


class ShareTokenOut(BaseModel):
    id: int
    token: str
    label: Optional[str] = None
    expires_at: datetime
    max_uses: Optional[int] = None
    used_count: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ShareTokenCreated(BaseModel):
    id: int
    token: str
    url: str
    expires_at: datetime


class SharePreviewContact(BaseModel):
    name: Optional[str] = None
    email_masked: str


class SharePreview(BaseModel):
    label: Optional[str] = None
    contacts_count: int
    preview: List[SharePreviewContact]
    expires_at: datetime


class ShareImportResult(BaseModel):
    imported: int
    skipped: int
    total: int
