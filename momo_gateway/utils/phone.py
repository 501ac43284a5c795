import re
from typing import Iterable, Optional

_NOT_DIALABLE = re.compile(r"[^\d+]")

# Calling code -> ISO country, for the West/Central African markets served
CALLING_CODES = {
    "+225": "CI",  # Côte d'Ivoire
    "+221": "SN",  # Sénégal
    "+237": "CM",  # Cameroun
    "+223": "ML",  # Mali
    "+226": "BF",  # Burkina Faso
    "+224": "GN",  # Guinée
    "+233": "GH",  # Ghana
}


def format_phone_number(phone_number: Optional[str], default_code: str = "+225") -> str:
    """
    Normalise to a calling-code-prefixed form, e.g. "07 00 00 00" -> "+22507000000".
    Idempotent: an already formatted number is returned unchanged.
    """
    cleaned = _NOT_DIALABLE.sub("", phone_number or "")
    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    if cleaned.startswith("0"):
        cleaned = default_code + cleaned[1:]
    if not cleaned.startswith("+"):
        cleaned = default_code + cleaned
    return cleaned


def detect_country(phone_number: Optional[str], known: Optional[Iterable[str]] = None,
                   default_code: str = "+225", default: str = "CI") -> str:
    formatted = format_phone_number(phone_number, default_code)
    allowed = set(known) if known is not None else None
    for code, country in CALLING_CODES.items():
        if allowed is not None and country not in allowed:
            continue
        if formatted.startswith(code):
            return country
    return default
