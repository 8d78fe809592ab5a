import logging
from typing import Optional

from app.db.mongo import audit_logs_collection
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


class AuditAction:
    REGISTER = "register"
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFIED = "email_verified"
    ROLE_CHANGE = "role_change"
    SHARE_TOKEN_CREATED = "share_token_created"
    SHARE_TOKEN_USED = "share_token_used"
    ADMIN_ACTION = "admin_action"


async def log_audit(
    action: str,
    user_id: Optional[int] = None,
    details: Optional[dict] = None,
    ip: Optional[str] = None,
) -> None:
    """Écrit un évènement d'audit dans MongoDB. Une erreur ici ne bloque jamais la requête."""
    doc = {
        "action": action,
        "user_id": user_id,
        "details": details or {},
        "ip": ip,
        "created_at": utcnow(),
    }
    try:
        await audit_logs_collection.insert_one(doc)
    except Exception as e:
        logger.error(f"⚠️ Impossible d'écrire le log d'audit {action} : {e}")
