from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.utils.dates import utcnow


class AuthorType(str, Enum):
    ORGANISATEUR = "ORGANISATEUR"
    INVITE = "INVITE"


class Avis(Base):
    __tablename__ = "avis"
    __table_args__ = (
        UniqueConstraint("concert_id", "author_email", name="uq_avis_concert_author"),
    )

    id = Column(Integer, primary_key=True, index=True)
    groupe_id = Column(Integer, ForeignKey("groupes.id", ondelete="CASCADE"), nullable=False, index=True)
    concert_id = Column(Integer, ForeignKey("concerts.id", ondelete="SET NULL"), nullable=True)
    author_type = Column(String(20), nullable=False)
    author_email = Column(String(255), nullable=False)
    author_name = Column(String(200), nullable=True)
    note = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    is_visible = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    groupe = relationship("Groupe")
    concert = relationship("Concert")
