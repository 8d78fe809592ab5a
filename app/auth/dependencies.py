from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import logging

from app.db.session import get_db
from app.auth.models import User
from app.auth.jwt_handler import decode_access_token

logger = logging.getLogger(__name__)

# Utilisé pour extraire le token depuis le header Authorization
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _user_from_token(token: str, db: AsyncSession) -> Optional[User]:
    payload = decode_access_token(token)
    if payload is None:
        return None

    try:
        user_id_int = int(payload.get("user_id"))
    except (ValueError, TypeError) as e:
        logger.warning(f"⚠️ Champ 'user_id' mal formé dans token : {payload.get('user_id')} ({e})")
        return None

    result = await db.execute(select(User).where(User.id == user_id_int))
    return result.scalars().first()


# 🔒 Récupération obligatoire de l'utilisateur
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    🔐 Récupère l'utilisateur courant à partir du token JWT.
    """
    if not token:
        logger.warning("⛔ Accès refusé : token manquant")
        raise _unauthorized("Token d'authentification manquant")

    user = await _user_from_token(token, db)
    if not user:
        raise _unauthorized("Token invalide ou expiré")

    logger.debug(f"✅ Utilisateur authentifié : id={user.id}, role={user.role}")
    return user


# 🔓 Version non bloquante
async def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Retourne l'utilisateur si le token est valide, sinon None."""
    if not token:
        return None
    return await _user_from_token(token, db)
