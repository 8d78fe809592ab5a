from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, Float, ForeignKey, Table, JSON
)
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.utils.dates import utcnow

# Table d'association groupes <-> genres
groupe_genres = Table(
    "groupe_genres",
    Base.metadata,
    Column("groupe_id", Integer, ForeignKey("groupes.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)


class Genre(Base):
    __tablename__ = "genres"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    is_custom = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Genre(id={self.id}, name='{self.name}')>"


class Groupe(Base):
    __tablename__ = "groupes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(100), nullable=False, index=True)
    bio = Column(Text, nullable=True)
    photos = Column(JSON, default=list, nullable=False)
    thumbnail_url = Column(String(500), nullable=True)
    youtube_videos = Column(JSON, default=list, nullable=False)

    city = Column(String(100), nullable=True, index=True)
    postal_code = Column(String(10), nullable=True)
    department = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(30), nullable=True)
    website = Column(String(500), nullable=True)

    is_verified = Column(Boolean, default=False, nullable=False)
    is_boosted = Column(Boolean, default=False, nullable=False)
    boost_expires_at = Column(DateTime, nullable=True)
    is_visible = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="groupe")
    genres = relationship("Genre", secondary=groupe_genres, lazy="selectin", order_by="Genre.name")

    def __repr__(self):
        return f"<Groupe(id={self.id}, name='{self.name}')>"

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
