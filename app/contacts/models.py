from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.utils.dates import utcnow


class ContactSource(str, Enum):
    MANUAL = "manuel"
    INSCRIPTION = "inscription"
    IMPORT_CSV = "import_csv"
    IMPORT_VCF = "import_vcf"
    IMPORT_TEXT = "import_text"
    SHARE = "partage"


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint("organisateur_id", "email", name="uq_contact_organisateur_email"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organisateur_id = Column(Integer, ForeignKey("organisateurs.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)  # toujours en minuscules
    name = Column(String(200), nullable=True)
    phone = Column(String(30), nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    participation_count = Column(Integer, default=0, nullable=False)
    last_concert_id = Column(Integer, ForeignKey("concerts.id", ondelete="SET NULL"), nullable=True)
    source_type = Column(String(20), default=ContactSource.MANUAL.value, nullable=False)
    source_label = Column(String(200), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Contact(id={self.id}, email='{self.email}')>"


class ContactShareToken(Base):
    __tablename__ = "contact_share_tokens"

    id = Column(Integer, primary_key=True, index=True)
    organisateur_id = Column(Integer, ForeignKey("organisateurs.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    label = Column(String(200), nullable=True)
    expires_at = Column(DateTime, nullable=False)
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, default=0, nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    organisateur = relationship("Organisateur")

    def is_expired(self, now) -> bool:
        return now >= self.expires_at

    @property
    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.used_count >= self.max_uses
