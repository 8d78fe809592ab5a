"""
Lecture des carnets d'adresses importés (CSV, vCard, texte libre).

Fonctions pures: elles ne touchent pas à la base et retournent des ParseResult
(contacts valides + nombre de lignes ignorées).
"""
import csv
import io
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}")

EXACT_EMAIL_HEADERS = ("email", "e-mail", "mail", "courriel")
NAME_HINTS = ("nom", "name", "prenom", "prénom", "contact")

# Largeurs des colonnes de la table contacts
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 200
MAX_PHONE_LENGTH = 30
# Google Contacts regroupe plusieurs valeurs dans une cellule: "a ::: b"
MULTI_VALUE_SEPARATOR = ":::"


@dataclass
class ParsedContact:
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class ParseResult:
    contacts: List[ParsedContact] = field(default_factory=list)
    skipped: int = 0
    email_column: Optional[str] = None


def is_valid_email(value: str) -> bool:
    return len(value) <= MAX_EMAIL_LENGTH and bool(EMAIL_RE.fullmatch(value))


def first_value(value: Optional[str]) -> str:
    if not value:
        return ""
    return value.split(MULTI_VALUE_SEPARATOR, 1)[0].strip()


def clean_name(value: Optional[str]) -> Optional[str]:
    value = first_value(value)
    return value[:MAX_NAME_LENGTH].strip() or None


def clean_phone(value: Optional[str]) -> Optional[str]:
    """Premier numéro de la cellule, ignoré s'il dépasse la largeur de la colonne"""
    value = first_value(value)
    if not value or len(value) > MAX_PHONE_LENGTH:
        return None
    return value


def detect_email_column(headers: List[str]) -> Optional[str]:
    for h in headers:
        if h.lower() in EXACT_EMAIL_HEADERS:
            return h
    # Google Contacts: "E-mail 1 - Value"
    for h in headers:
        lower = h.lower()
        if ("e-mail" in lower or "email" in lower) and "value" in lower:
            return h
    for h in headers:
        lower = h.lower()
        if ("email" in lower or "e-mail" in lower or "mail" in lower) and "label" not in lower:
            return h
    return None


def detect_phone_column(headers: List[str]) -> Optional[str]:
    for h in headers:
        lower = h.lower()
        if ("phone" in lower or "tel" in lower or "mobile" in lower) and "value" in lower:
            return h
    for h in headers:
        lower = h.lower()
        if any(hint in lower for hint in ("tel", "phone", "mobile", "portable")) \
                and "label" not in lower and "type" not in lower:
            return h
    return None


def build_full_name(row: Dict[str, str], headers: List[str]) -> Optional[str]:
    first_col = next((h for h in headers if h.lower() == "first name"), None)
    last_col = next((h for h in headers if h.lower() == "last name"), None)
    if first_col or last_col:
        parts = [
            (row.get(first_col) or "").strip() if first_col else "",
            (row.get(last_col) or "").strip() if last_col else "",
        ]
        return " ".join(p for p in parts if p) or None

    name_col = next((h for h in headers if any(hint in h.lower() for hint in NAME_HINTS)), None)
    if name_col:
        return (row.get(name_col) or "").strip() or None
    return None


def _detect_delimiter(header_line: str) -> str:
    # Le séparateur le plus fréquent sur la ligne d'en-tête
    counts = {d: header_line.count(d) for d in (",", ";", "\t")}
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


def parse_csv(text: str) -> ParseResult:
    text = text.lstrip("\ufeff")
    first_line = text.split("\n", 1)[0]
    reader = csv.DictReader(io.StringIO(text), delimiter=_detect_delimiter(first_line))
    headers = [h for h in (reader.fieldnames or []) if h is not None]
    rows = list(reader)

    email_col = detect_email_column(headers)
    if not email_col:
        # Colonne email introuvable: aucune ligne exploitable
        return ParseResult(contacts=[], skipped=len(rows), email_column=None)

    phone_col = detect_phone_column(headers)
    result = ParseResult(email_column=email_col)
    for row in rows:
        email = first_value(row.get(email_col)).lower()
        if not is_valid_email(email):
            result.skipped += 1
            continue
        result.contacts.append(ParsedContact(
            email=email,
            name=clean_name(build_full_name(row, headers)),
            phone=clean_phone(row.get(phone_col)) if phone_col else None,
        ))
    return result


_VCARD_SPLIT_RE = re.compile(r"BEGIN:VCARD", re.IGNORECASE)
_VCARD_EMAIL_RE = re.compile(r"^EMAIL[^:\n]*:(.+)$", re.IGNORECASE | re.MULTILINE)
_VCARD_FN_RE = re.compile(r"^FN[^:\n]*:(.+)$", re.IGNORECASE | re.MULTILINE)
_VCARD_TEL_RE = re.compile(r"^TEL[^:\n]*:(.+)$", re.IGNORECASE | re.MULTILINE)


def parse_vcf(text: str) -> ParseResult:
    result = ParseResult(email_column="EMAIL")
    for card in _VCARD_SPLIT_RE.split(text.replace("\r\n", "\n"))[1:]:
        email_match = _VCARD_EMAIL_RE.search(card)
        email = email_match.group(1).strip().lower() if email_match else ""
        if not is_valid_email(email):
            result.skipped += 1
            continue
        fn_match = _VCARD_FN_RE.search(card)
        tel_match = _VCARD_TEL_RE.search(card)
        result.contacts.append(ParsedContact(
            email=email,
            name=clean_name(fn_match.group(1)) if fn_match else None,
            phone=clean_phone(tel_match.group(1)) if tel_match else None,
        ))
    return result


def extract_emails(text: str) -> ParseResult:
    seen = []
    for match in EMAIL_RE.findall(text):
        email = match.lower()
        if email not in seen:
            seen.append(email)
    return ParseResult(contacts=[ParsedContact(email=e) for e in seen])


def parse_file(filename: str, text: str) -> ParseResult:
    lower = (filename or "").lower()
    if lower.endswith(".vcf") or lower.endswith(".vcard"):
        return parse_vcf(text)
    return parse_csv(text)
