from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional
from datetime import datetime

from app.messages.models import TemplateType


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    subject: Optional[str] = Field(None, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    type: TemplateType = TemplateType.EMAIL


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    subject: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    type: Optional[TemplateType] = None


class TemplateOut(BaseModel):
    id: int
    organisateur_id: Optional[int] = None
    name: str
    subject: Optional[str] = None
    content: str
    type: TemplateType
    is_default: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RenderRequest(BaseModel):
    template_id: int
    concert_id: int
    first_name: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=30)
    recipients: List[EmailStr] = Field(default_factory=list, max_length=100)


class ShareLinks(BaseModel):
    gmail: str
    sms: str
    whatsapp: str


class RenderedMessage(BaseModel):
    subject: str
    message: str
    links: ShareLinks
