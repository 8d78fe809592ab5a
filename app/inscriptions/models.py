from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.utils.dates import utcnow


class InscriptionStatus(str, Enum):
    CONFIRMED = "CONFIRME"
    WAITLISTED = "LISTE_ATTENTE"
    CANCELLED = "ANNULE"


STATUS_LABELS = {
    InscriptionStatus.CONFIRMED.value: "Confirmée",
    InscriptionStatus.WAITLISTED.value: "Liste d'attente",
    InscriptionStatus.CANCELLED.value: "Annulée",
}


class Inscription(Base):
    __tablename__ = "inscriptions"

    id = Column(Integer, primary_key=True, index=True)
    concert_id = Column(Integer, ForeignKey("concerts.id", ondelete="CASCADE"), nullable=False, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    party_size = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=InscriptionStatus.CONFIRMED.value, index=True)
    show_in_guest_list = Column(Boolean, default=True, nullable=False)

    management_token = Column(String(128), unique=True, nullable=True, index=True)
    review_token = Column(String(128), unique=True, nullable=True, index=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    concert = relationship("Concert", back_populates="inscriptions")

    def __repr__(self):
        return f"<Inscription(id={self.id}, concert_id={self.concert_id}, status='{self.status}')>"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name or ''}".strip()
