import re

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def check_password_strength(password: str) -> str:
    """Lève ValueError si le mot de passe ne respecte pas les règles minimales"""
    if len(password) < 8:
        raise ValueError("Le mot de passe doit contenir au moins 8 caractères")
    if len(password) > 128:
        raise ValueError("Le mot de passe ne doit pas dépasser 128 caractères")
    if not re.search(r"[a-z]", password):
        raise ValueError("Le mot de passe doit contenir au moins une minuscule")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Le mot de passe doit contenir au moins une majuscule")
    if not re.search(r"\d", password):
        raise ValueError("Le mot de passe doit contenir au moins un chiffre")
    return password
