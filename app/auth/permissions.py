from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from app.auth.dependencies import get_current_user
from app.auth.models import User, UserRole
from app.db.session import get_db
from app.groupes.models import Groupe
from app.organisateurs.models import Organisateur


def require_role(*roles: str):
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}

    def wrapper(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Accès interdit (rôle requis)"
            )
        return user
    return wrapper


require_admin = require_role(UserRole.ADMIN)


async def get_current_organisateur(
    user: User = Depends(require_role(UserRole.ORGANISATEUR)),
    db: AsyncSession = Depends(get_db),
) -> Organisateur:
    result = await db.execute(select(Organisateur).options(selectinload(Organisateur.user)).where(Organisateur.user_id == user.id))
    organisateur = result.scalars().first()
    if not organisateur:
        raise HTTPException(status_code=404, detail="Profil organisateur non trouvé")
    return organisateur


async def get_current_groupe(
    user: User = Depends(require_role(UserRole.GROUPE)),
    db: AsyncSession = Depends(get_db),
) -> Groupe:
    result = await db.execute(select(Groupe).options(selectinload(Groupe.user)).where(Groupe.user_id == user.id))
    groupe = result.scalars().first()
    if not groupe:
        raise HTTPException(status_code=404, detail="Profil groupe non trouvé")
    return groupe
