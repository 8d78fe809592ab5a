# app/utils/sanitize.py - Nettoyage des entrées utilisateur
import re
import unicodedata
from typing import Optional
from urllib.parse import urlparse

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
_YOUTUBE_RE = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"
)
_YOUTUBE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")

DANGEROUS_PROTOCOLS = ("javascript:", "data:", "vbscript:", "file:")


def strip_html(value: str) -> str:
    """Supprime les balises HTML, les scripts et les handlers d'événements"""
    value = _SCRIPT_RE.sub("", value)
    value = _STYLE_RE.sub("", value)
    value = _TAG_RE.sub("", value)
    value = _JS_PROTOCOL_RE.sub("", value)
    value = _EVENT_HANDLER_RE.sub("", value)
    return value.strip()


def sanitize_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", strip_html(value)).strip()


def sanitize_multiline(value: Optional[str]) -> str:
    """Comme sanitize_text mais conserve les retours à la ligne (descriptions, messages)"""
    if not value:
        return ""
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in strip_html(value).splitlines()]
    return "\n".join(lines).strip()


def sanitize_email(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.strip().lower()


def sanitize_phone(value: Optional[str]) -> str:
    """Garde uniquement les chiffres, +, espaces et tirets"""
    if not value:
        return ""
    return re.sub(r"[^\d+\s-]", "", value).strip()


def sanitize_url(value: Optional[str]) -> str:
    if not value:
        return ""
    trimmed = value.strip()
    if trimmed.lower().startswith(DANGEROUS_PROTOCOLS):
        return ""
    if trimmed.startswith(("http://", "https://")):
        parsed = urlparse(trimmed)
        return trimmed if parsed.netloc else ""
    if trimmed.startswith(("/", "./")):
        return trimmed
    if ":" not in trimmed:
        return trimmed
    return ""


def sanitize_youtube_url(value: Optional[str]) -> str:
    """Normalise un lien YouTube en URL d'intégration, ou renvoie une chaîne vide"""
    if not value:
        return ""
    trimmed = value.strip()
    match = _YOUTUBE_RE.search(trimmed)
    if match:
        return f"https://www.youtube.com/embed/{match.group(1)}"
    if _YOUTUBE_ID_RE.match(trimmed):
        return f"https://www.youtube.com/embed/{trimmed}"
    return ""


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if len(local) <= 2:
        return f"{local[:1]}***@{domain}"
    return f"{local[:2]}***@{domain}"


def slugify(value: str) -> str:
    """Slug ASCII minuscule, utilisé pour les concerts et les noms de fichiers d'export"""
    normalized = unicodedata.normalize("NFKD", sanitize_text(value))
    ascii_value = normalized.encode("ascii", "ignore").decode("ascii").lower()
    ascii_value = re.sub(r"[^a-z0-9\s-]", "", ascii_value)
    return re.sub(r"[\s-]+", "-", ascii_value).strip("-")
