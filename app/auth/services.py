import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import password
from app.auth.models import (
    User, UserRole, Subscription, Plan, SubscriptionStatus, VerificationToken, TokenPurpose
)
from app.auth.schemas import UserRegister
from app.groupes.models import Groupe
from app.organisateurs.models import Organisateur
from app.utils.dates import utcnow
from app.utils.errors import ServiceError, ConflictError
from fastapi import status

logger = logging.getLogger(__name__)

VERIFY_EMAIL_TTL = timedelta(hours=24)
RESET_PASSWORD_TTL = timedelta(hours=1)


class EmailAlreadyUsedError(ConflictError):
    default_message = "Email déjà enregistré"


class InvalidCredentialsError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Email ou mot de passe incorrect"


class InvalidTokenError(ServiceError):
    default_message = "Lien invalide ou expiré"


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalars().first()

    async def register(self, data: UserRegister) -> tuple[User, str]:
        """Crée le compte, l'abonnement gratuit et le profil du rôle choisi.

        Retourne l'utilisateur et le token de vérification d'email.
        """
        if await self.get_user_by_email(data.email):
            raise EmailAlreadyUsedError()

        try:
            user = User(
                email=data.email,
                hashed_password=password.hash_password(data.password),
                name=data.name.strip(),
                role=data.role.value,
            )
            self.db.add(user)
            await self.db.flush()

            self.db.add(Subscription(user_id=user.id, plan=Plan.FREE.value, status=SubscriptionStatus.ACTIVE.value))
            await self._ensure_profile(user, data.role)
            token = await self._create_token(user.email, TokenPurpose.VERIFY_EMAIL, VERIFY_EMAIL_TTL)

            await self.db.commit()
            await self.db.refresh(user)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Erreur lors de l'inscription de {data.email} : {e}")
            raise

        logger.info(f"Utilisateur créé : id={user.id}, role={user.role}")
        return user, token

    async def authenticate(self, email: str, plain_password: str) -> User:
        user = await self.get_user_by_email(email)
        if not user or not password.verify_password(plain_password, user.hashed_password):
            logger.warning(f"Échec de connexion pour {email}")
            raise InvalidCredentialsError()
        return user

    async def verify_email(self, token: str) -> User:
        record = await self._consume_token(token, TokenPurpose.VERIFY_EMAIL)
        user = await self.get_user_by_email(record.identifier)
        if not user:
            raise InvalidTokenError()
        if user.email_verified_at is None:
            user.email_verified_at = utcnow()
        await self.db.commit()
        logger.info(f"Email vérifié pour user_id={user.id}")
        return user

    async def resend_verification(self, email: str) -> Optional[str]:
        """Retourne un nouveau token, ou None si le compte n'existe pas ou est déjà vérifié"""
        user = await self.get_user_by_email(email)
        if not user or user.email_verified_at is not None:
            return None
        token = await self._create_token(user.email, TokenPurpose.VERIFY_EMAIL, VERIFY_EMAIL_TTL)
        await self.db.commit()
        return token

    async def request_password_reset(self, email: str) -> Optional[str]:
        user = await self.get_user_by_email(email)
        if not user:
            return None
        token = await self._create_token(user.email, TokenPurpose.RESET_PASSWORD, RESET_PASSWORD_TTL)
        await self.db.commit()
        return token

    async def reset_password(self, token: str, new_password: str) -> User:
        record = await self._consume_token(token, TokenPurpose.RESET_PASSWORD)
        user = await self.get_user_by_email(record.identifier)
        if not user:
            raise InvalidTokenError()
        user.hashed_password = password.hash_password(new_password)
        await self.db.commit()
        logger.info(f"Mot de passe réinitialisé pour user_id={user.id}")
        return user

    async def change_role(self, user: User, role: UserRole) -> User:
        if role == UserRole.ADMIN:
            raise ServiceError("Rôle invalide")
        previous = user.role
        user.role = role.value
        await self._ensure_profile(user, role)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"Rôle de user_id={user.id} changé : {previous} -> {user.role}")
        return user

    async def _ensure_profile(self, user: User, role: UserRole) -> None:
        display = user.name or user.email.split("@")[0]
        if role == UserRole.GROUPE:
            result = await self.db.execute(select(Groupe.id).where(Groupe.user_id == user.id))
            if result.scalar() is None:
                self.db.add(Groupe(user_id=user.id, name=display, photos=[], youtube_videos=[]))
        elif role == UserRole.ORGANISATEUR:
            result = await self.db.execute(select(Organisateur.id).where(Organisateur.user_id == user.id))
            if result.scalar() is None:
                self.db.add(Organisateur(user_id=user.id, name=display))

    async def _create_token(self, identifier: str, purpose: TokenPurpose, ttl: timedelta) -> str:
        # Un seul token actif par (email, usage)
        await self.db.execute(
            delete(VerificationToken).where(
                VerificationToken.identifier == identifier,
                VerificationToken.purpose == purpose.value,
            )
        )
        token = secrets.token_hex(32)
        self.db.add(VerificationToken(
            identifier=identifier,
            token=token,
            purpose=purpose.value,
            expires_at=utcnow() + ttl,
        ))
        await self.db.flush()
        return token

    async def _consume_token(self, token: str, purpose: TokenPurpose) -> VerificationToken:
        result = await self.db.execute(
            select(VerificationToken).where(
                VerificationToken.token == token,
                VerificationToken.purpose == purpose.value,
            )
        )
        record = result.scalars().first()
        if not record:
            raise InvalidTokenError()
        await self.db.delete(record)
        if record.expires_at < utcnow():
            await self.db.commit()
            raise InvalidTokenError("Lien expiré")
        return record
