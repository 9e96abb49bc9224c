"""
Phone number helpers.

Canonical form is `+<country code><number>`. Dutch local numbers with a
leading 0 get the 31 country code. WhatsApp addresses are the digits only;
inbound ids may also carry an `@c.us` suffix, which is stripped.
"""
from __future__ import annotations

import re
from typing import Optional

DEFAULT_COUNTRY_CODE = "31"
MIN_DIGITS = 10
_WA_SUFFIX = "@c.us"


def normalize_phone(raw: str, country_code: str = DEFAULT_COUNTRY_CODE) -> Optional[str]:
    """Return the canonical `+` form, or None when too short to be valid."""
    if not raw:
        return None
    digits = re.sub(r"\D", "", raw)
    if digits.startswith("00"):
        digits = digits[2:]
    elif digits.startswith("0"):
        digits = country_code + digits[1:]
    if len(digits) < MIN_DIGITS:
        return None
    return f"+{digits}"


def to_wa_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone)


def from_whatsapp_id(wa_id: str) -> str:
    """31612345678@c.us (or bare digits) → +31612345678"""
    digits = wa_id.replace(_WA_SUFFIX, "").strip()
    return digits if digits.startswith("+") else f"+{digits}"
