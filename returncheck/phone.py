# returncheck/phone.py
import re

# Local Algerian mobile format: 0 + (5|6|7) + 8 digits
MOBILE_PHONE_RE = re.compile(r"^0[567][0-9]{8}$")

_STRIP_RE = re.compile(r"[\s\-()]")
_BARE_SUBSCRIBER_RE = re.compile(r"^[567][0-9]{8}$")

# Checked in order; the first match wins.
INTERNATIONAL_PREFIXES = ("+213", "00213", "213")

class InvalidPhone(ValueError):
    def __init__(self, raw: str, normalized: str):
        self.raw = raw
        self.normalized = normalized
        super().__init__(f"Invalid Algerian mobile number: {raw!r} -> {normalized!r}")

def clean_phone(raw: str) -> str:
    return _STRIP_RE.sub("", raw or "")

def canonicalize(raw: str) -> str:
    """
    Rewrite any accepted input shape to local format without validating:
      +213XXXXXXXXX / 00213XXXXXXXXX / 213XXXXXXXXX -> 0XXXXXXXXX
      [567]XXXXXXXX -> 0[567]XXXXXXXX
    """
    cleaned = clean_phone(raw)
    for prefix in INTERNATIONAL_PREFIXES:
        if cleaned.startswith(prefix):
            return "0" + cleaned[len(prefix):]
    if _BARE_SUBSCRIBER_RE.fullmatch(cleaned):
        return "0" + cleaned
    return cleaned

def is_valid_phone(value: str) -> bool:
    return bool(MOBILE_PHONE_RE.fullmatch(value or ""))

def normalize_phone(raw: str) -> str:
    normalized = canonicalize(raw)
    if not is_valid_phone(normalized):
        raise InvalidPhone(raw, normalized)
    return normalized
