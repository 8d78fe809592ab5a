# app/auth/models.py
from enum import Enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.db.session import Base
from app.utils.dates import utcnow


class UserRole(str, Enum):
    GROUPE = "GROUPE"
    ORGANISATEUR = "ORGANISATEUR"
    ADMIN = "ADMIN"


class Plan(str, Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"
    PAST_DUE = "PAST_DUE"


class TokenPurpose(str, Enum):
    VERIFY_EMAIL = "verify_email"
    RESET_PASSWORD = "reset_password"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.ORGANISATEUR.value)
    email_verified_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    subscription = relationship(
        "Subscription", back_populates="user", uselist=False, lazy="selectin", cascade="all, delete-orphan"
    )
    groupe = relationship("Groupe", back_populates="user", uselist=False, cascade="all, delete-orphan")
    organisateur = relationship("Organisateur", back_populates="user", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def display_name(self):
        """Nom d'affichage pour l'interface utilisateur"""
        return self.name or self.email

    @property
    def is_premium(self) -> bool:
        sub = self.subscription
        return bool(sub and sub.plan == Plan.PREMIUM.value and sub.status == SubscriptionStatus.ACTIVE.value)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    plan = Column(String(20), nullable=False, default=Plan.FREE.value)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value)
    current_period_end = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User", back_populates="subscription")


class VerificationToken(Base):
    __tablename__ = "verification_tokens"

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(255), nullable=False, index=True)  # email
    token = Column(String(128), unique=True, nullable=False, index=True)
    purpose = Column(String(30), nullable=False)
    expires_at = Column(DateTime, nullable=False)
