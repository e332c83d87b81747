"""Masking of personal data in debug logs.

Directory records and service requests carry phone numbers, emails and
addresses; login calls carry the shared secret. :func:`redact_for_log`
returns a copy of a payload that is safe to log at DEBUG level while still
letting an operator tell two records apart (last digits of a phone number,
the domain of an email).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

_HIDDEN = "<redacted>"

# Keys are compared after _normalize_key, so contactNumber, contact_number
# and contact-number all match.
_SECRET_KEYS = frozenset({"password", "secret", "sharedsecret"})
_NUMBER_KEYS = frozenset({"phone", "contactnumber", "licensenumber"})
_EMAIL_KEYS = frozenset({"email"})
_ADDRESS_KEYS = frozenset({"address", "pickuplocation", "destination"})


def _normalize_key(key: object) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def mask_number(value: str, *, visible: int = 4) -> str:
    """Keep the last *visible* characters of a phone or licence number."""
    compact = value.replace(" ", "")
    if len(compact) <= visible:
        return "*" * len(compact)
    return "*" * (len(compact) - visible) + compact[-visible:]


def mask_email(value: str) -> str:
    local, sep, domain = value.partition("@")
    if not sep:
        return _HIDDEN
    return f"{local[:1]}***@{domain}"


def _mask_field(key: str, value: Any) -> Any:
    if not isinstance(value, str):
        return _HIDDEN
    if key in _NUMBER_KEYS:
        return mask_number(value)
    if key in _EMAIL_KEYS:
        return mask_email(value)
    return _HIDDEN


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with personal fields masked.

    Accepts mappings, lists/tuples, pydantic models (via their storage
    form) and scalars. Long strings are truncated to *max_string*.
    """
    if _depth > 20:
        return "<max-depth>"

    to_storage = getattr(value, "to_storage", None)
    if callable(to_storage):
        value = to_storage()

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for raw_key, item in value.items():
            key = _normalize_key(raw_key)
            if key in _SECRET_KEYS:
                redacted[str(raw_key)] = _HIDDEN
            elif key in _NUMBER_KEYS | _EMAIL_KEYS | _ADDRESS_KEYS:
                redacted[str(raw_key)] = _mask_field(key, item)
            else:
                redacted[str(raw_key)] = redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return repr(value)
