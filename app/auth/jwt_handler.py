from datetime import timedelta
from jose import jwt, JWTError
from typing import Optional
from app.config import settings
from app.utils.dates import utcnow
import logging

logger = logging.getLogger(__name__)


def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Crée le JWT d'accès d'un utilisateur.

    Le rôle est embarqué pour le front; côté API il est relu en base à chaque requête.

    :param user_id: Identifiant de l'utilisateur (repris dans 'sub')
    :param role: GROUPE, ORGANISATEUR ou ADMIN
    :param expires_delta: Durée de validité, ACCESS_TOKEN_EXPIRE_MINUTES par défaut
    """
    issued_at = utcnow()
    expire = issued_at + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(user_id),
        "user_id": user_id,
        "role": role,
        "iat": issued_at,
        "exp": expire,
    }
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.ALGORITHM)
    logger.info(f"✅ Token généré pour user_id={user_id} ({role}), expire à {expire}")
    return token


def decode_access_token(token: str) -> Optional[dict]:
    """
    🔐 Décode et vérifie un token JWT.

    Retourne le payload si la signature et l'expiration sont valides et si 'sub' est présent.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"❌ Échec de décodage du token : {e}")
        return None

    if not payload.get("sub"):
        logger.warning("⚠️ Token valide mais champ 'sub' manquant dans le payload.")
        return None
    return payload
