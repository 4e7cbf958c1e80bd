"""Human-readable Edunity IDs and contact-key normalization.

IDs look like ``<PREFIX><5-digit serial>``, e.g. ``EDU-ON-T-00101``.  The
prefix match is case-insensitive and legacy prefixes are recognised on
read, but every ID is written with the current prefix.
"""

import re
from functools import lru_cache
from typing import Any, Optional, Pattern

from edunity_intake.core.constants import SERIAL_DIGITS
from edunity_intake.core.lead_types import LeadTypeConfig

_NON_DIGITS = re.compile(r"\D")


@lru_cache(maxsize=None)
def _id_pattern(lead_type: LeadTypeConfig) -> Pattern[str]:
    prefixes = "|".join(re.escape(p) for p in lead_type.accepted_prefixes)
    return re.compile(rf"^(?:{prefixes})(\d{{{SERIAL_DIGITS}}})$", re.IGNORECASE)


def parse_serial(lead_type: LeadTypeConfig, value: Any) -> Optional[int]:
    """Return the integer serial of *value*, or ``None`` if it is not an ID."""
    if not isinstance(value, str):
        return None
    match = _id_pattern(lead_type).match(value.strip())
    if not match:
        return None
    return int(match.group(1))


def format_id(lead_type: LeadTypeConfig, serial: int) -> str:
    return f"{lead_type.id_prefix}{serial:0{SERIAL_DIGITS}d}"


def normalize_id(lead_type: LeadTypeConfig, value: Any) -> str:
    """Rewrite a valid (possibly legacy or lower-case) ID with the current prefix.

    Returns an empty string for anything that does not parse.
    """
    serial = parse_serial(lead_type, value)
    if serial is None:
        return ""
    return format_id(lead_type, serial)


def normalize_email(value: Any) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def normalize_phone(value: Any) -> str:
    return _NON_DIGITS.sub("", value) if isinstance(value, str) else ""


def contact_key(key_type: str, normalized_value: str) -> str:
    """Uniqueness Index key, e.g. ``email:t@x.com``."""
    return f"{key_type}:{normalized_value}"
