"""
Rendu des templates de messages et construction des liens de partage.

Fonctions pures: aucune dépendance à la base ni à FastAPI.
"""
import re
from typing import Iterable, Optional
from urllib.parse import quote

from app.utils.dates import format_date_fr, format_heure

TO_DEFINE = "À définir"
FIRST_NAME_PLACEHOLDER = "[Prénom]"

PHONE_CLEAN_RE = re.compile(r"[\s+\-()]")


def _encode(value: str) -> str:
    # Même jeu de caractères non échappés que encodeURIComponent
    return quote(value, safe="!~*'()")


def build_context(
    concert,
    organisateur_name: Optional[str],
    app_url: str,
    first_name: Optional[str] = None,
) -> dict:
    """Valeurs des placeholders pour un concert donné"""
    return {
        "titre_concert": concert.title,
        "date_concert": format_date_fr(concert.date),
        "heure_concert": format_heure(concert.date),
        "ville_concert": concert.city or TO_DEFINE,
        "adresse_complete": concert.full_address or concert.public_address or TO_DEFINE,
        "description_concert": concert.description or "",
        "lien_inscription": f"{app_url}/concert/{concert.slug}",
        "nom_organisateur": organisateur_name or "",
        "prenom": first_name or FIRST_NAME_PLACEHOLDER,
    }


def render(text: Optional[str], context: dict) -> str:
    """Remplace les {{placeholders}} connus. Les inconnus restent tels quels."""
    if not text:
        return ""
    for key, value in context.items():
        text = text.replace("{{" + key + "}}", value)
    return text


def gmail_url(subject: str, body: str, recipients: Iterable[str] = ()) -> str:
    to = ",".join(recipients)
    return (
        "https://mail.google.com/mail/u/0/?view=cm&fs=1&tf=1"
        f"&to={to}&su={_encode(subject)}&body={_encode(body)}"
    )


def sms_url(body: str, phone: Optional[str] = None) -> str:
    return f"sms:{phone or ''}?body={_encode(body)}"


def whatsapp_url(body: str, phone: Optional[str] = None) -> str:
    if phone:
        return f"https://wa.me/{PHONE_CLEAN_RE.sub('', phone)}?text={_encode(body)}"
    return f"https://wa.me/?text={_encode(body)}"


def share_links(subject: str, body: str, phone: Optional[str] = None,
                recipients: Iterable[str] = ()) -> dict:
    return {
        "gmail": gmail_url(subject, body, recipients),
        "sms": sms_url(body, phone),
        "whatsapp": whatsapp_url(body, phone),
    }
