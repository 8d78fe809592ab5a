from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey

from app.db.session import Base
from app.utils.dates import utcnow


class DevisStatus(str, Enum):
    NEW = "NOUVEAU"
    READ = "LU"
    ANSWERED = "REPONDU"
    ARCHIVED = "ARCHIVE"


class DemandeDevis(Base):
    __tablename__ = "demandes_devis"

    id = Column(Integer, primary_key=True, index=True)
    groupe_id = Column(Integer, ForeignKey("groupes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    desired_date = Column(DateTime, nullable=True)
    guests_count = Column(Integer, nullable=True)
    place = Column(String(255), nullable=False)
    event_type = Column(String(100), nullable=True)
    message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=DevisStatus.NEW.value)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
