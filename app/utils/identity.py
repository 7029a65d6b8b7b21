"""Identity normalization for ad-platform matching.

Emails and phones are normalized and SHA-256 hashed before they leave the
process. Empty input hashes to "" so callers can simply skip the field.
"""

from __future__ import annotations

import hashlib
import re
import secrets
import time

_NON_DIGITS = re.compile(r"\D")

EGYPT_COUNTRY_CODE = "20"


def hash_value(raw: str | None) -> str:
    value = (raw or "").strip().lower()
    if not value:
        return ""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def normalize_phone(phone: str | None) -> str:
    """Digits only, with the Egyptian country code added to local numbers.

    01xxxxxxxxx -> 201xxxxxxxxx; numbers already starting with 201 are kept;
    an 11-digit number starting with 1 also gets the 20 prefix.
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        return ""
    if digits.startswith("01"):
        return EGYPT_COUNTRY_CODE + digits[1:]
    if digits.startswith("201"):
        return digits
    if len(digits) == 11 and digits.startswith("1"):
        return EGYPT_COUNTRY_CODE + digits
    return digits


def hash_email(email: str | None) -> str:
    return hash_value(normalize_email(email))


def hash_phone(phone: str | None) -> str:
    return hash_value(normalize_phone(phone))


def generate_event_id(event_name: str, identity: str | None = None, *, timestamp_ms: int | None = None) -> str:
    ts = int(timestamp_ms) if timestamp_ms is not None else int(time.time() * 1000)
    salt = secrets.token_hex(8)
    base = f"{event_name}_{identity or 'anonymous'}_{ts}_{salt}"
    return hashlib.sha256(base.encode("utf-8")).hexdigest()[:32]
