from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey

from app.db.session import Base
from app.utils.dates import utcnow


class TemplateType(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"


class MessageTemplate(Base):
    __tablename__ = "message_templates"

    id = Column(Integer, primary_key=True, index=True)
    # None pour les modèles par défaut partagés par tous les organisateurs
    organisateur_id = Column(Integer, ForeignKey("organisateurs.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(100), nullable=False)
    subject = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default=TemplateType.EMAIL.value)
    is_default = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
