from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.utils.dates import utcnow


class ConcertStatus(str, Enum):
    DRAFT = "BROUILLON"
    PUBLISHED = "PUBLIE"
    CANCELLED = "ANNULE"
    PAST = "PASSE"


class Concert(Base):
    __tablename__ = "concerts"

    id = Column(Integer, primary_key=True, index=True)
    organisateur_id = Column(Integer, ForeignKey("organisateurs.id", ondelete="CASCADE"), nullable=False, index=True)
    groupe_id = Column(Integer, ForeignKey("groupes.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False, index=True)
    full_address = Column(String(500), nullable=True)   # communiquée aux invités confirmés
    public_address = Column(String(500), nullable=True)  # affichée sur la page publique
    city = Column(String(100), nullable=True)

    max_invites = Column(Integer, nullable=True)  # None = pas de limite
    status = Column(String(20), nullable=False, default=ConcertStatus.DRAFT.value, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    show_groupe = Column(Boolean, default=True, nullable=False)
    custom_branding = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    organisateur = relationship("Organisateur", back_populates="concerts")
    groupe = relationship("Groupe")
    inscriptions = relationship("Inscription", back_populates="concert", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Concert(id={self.id}, slug='{self.slug}', status='{self.status}')>"
