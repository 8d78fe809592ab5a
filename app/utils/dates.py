from datetime import datetime, timezone

JOURS = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]
MOIS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


def utcnow() -> datetime:
    """Datetime UTC naïf, format de stockage de toutes les colonnes DateTime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def format_date_fr(value: datetime) -> str:
    # ex: "samedi 14 mars 2026"
    return f"{JOURS[value.weekday()]} {value.day} {MOIS[value.month - 1]} {value.year}"


def format_heure(value: datetime) -> str:
    return value.strftime("%H:%M")
