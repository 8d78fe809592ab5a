# app/utils/uploads.py - Gestion des images uploadées (photos de groupes)
import logging
import secrets
from pathlib import Path

import aiofiles
from fastapi import UploadFile

from app.utils.errors import ServiceError

logger = logging.getLogger(__name__)

BASE_UPLOAD_DIR = Path("static/upload")
GROUPE_PHOTO_DIR = BASE_UPLOAD_DIR / "groupes"

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB


class InvalidUploadError(ServiceError):
    default_message = "Fichier invalide"


class FileTooLargeError(ServiceError):
    status_code = 413
    default_message = "Fichier trop volumineux (5 Mo maximum)"


def validate_image_file(file: UploadFile) -> str:
    """Valide le fichier image uploadé et retourne son extension"""
    if not file.filename:
        raise InvalidUploadError("Nom de fichier manquant")

    ext = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
    if ext not in ALLOWED_EXTENSIONS:
        raise InvalidUploadError(
            f"Extension non autorisée. Extensions autorisées: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    if not file.content_type or not file.content_type.startswith("image/"):
        raise InvalidUploadError("Le fichier doit être une image")
    return ext


async def save_image(file: UploadFile, directory: Path, prefix: str) -> str:
    """Écrit l'image sur disque et retourne son URL publique sous /static"""
    ext = validate_image_file(file)
    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise FileTooLargeError()

    directory.mkdir(parents=True, exist_ok=True)
    filename = f"{prefix}_{secrets.token_hex(8)}.{ext}"
    filepath = directory / filename

    async with aiofiles.open(filepath, "wb") as f:
        await f.write(content)

    logger.info(f"📸 Image enregistrée : {filepath}")
    return "/" + filepath.as_posix()


def delete_local_upload(url: str) -> None:
    if not url or not url.startswith("/static/upload/"):
        return
    path = Path(url.lstrip("/"))
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Impossible de supprimer {path} : {e}")
