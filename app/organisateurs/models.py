from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.utils.dates import utcnow


class Organisateur(Base):
    __tablename__ = "organisateurs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    bio = Column(Text, nullable=True)
    thumbnail_url = Column(String(500), nullable=True)

    city = Column(String(100), nullable=True)
    postal_code = Column(String(10), nullable=True)
    department = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Couleurs / logo appliqués aux pages publiques des concerts
    custom_branding = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="organisateur")
    concerts = relationship("Concert", back_populates="organisateur", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Organisateur(id={self.id}, name='{self.name}')>"
