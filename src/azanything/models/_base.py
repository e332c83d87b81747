"""Base model and enum for persisted records.

Every record inherits from :class:`AzBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys of the web client
  storage format map automatically to snake_case fields.
* A ``model_validator(mode="before")`` that renames legacy keys
  (``userId`` → ``requesterId``, ...) and drops empty optional values so
  the field default is used.
* ``frozen=True``: records are snapshots, every change produces a copy.

Enums inherit from :class:`AzEnum`, a ``StrEnum`` whose ``_missing_`` hook
accepts case variants and legacy spellings.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, ClassVar

from pydantic import AfterValidator, BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Values the web client writes for "not set".
_EMPTY_VALUES = frozenset({"", "undefined", "null"})


def utcnow() -> datetime:
    return datetime.now(UTC)


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]
"""Datetime coerced to timezone-aware UTC (naive values are assumed UTC)."""


class AzEnum(StrEnum):
    """Base for record enums.

    Lookup is case-insensitive and subclasses may map legacy spellings
    through :meth:`_legacy_aliases`.
    """

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def _missing_(cls, value: object) -> AzEnum | None:
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        target = cls._legacy_aliases().get(normalized)
        if target is not None:
            return cls(target)
        return None


class AzBaseModel(BaseModel):
    """Base for persisted records.

    Handles:
    * camelCase ↔ snake_case via ``alias_generator=to_camel``
    * legacy key renames declared in ``_KEY_ALIASES``
    * empty placeholders (``""``, ``"undefined"``) → dropped so the field
      default is used instead
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}
    """Legacy key → current alias, applied before validation."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        working = dict(values)
        if aliases:
            for old_key, new_key in aliases.items():
                if old_key in working and new_key not in working:
                    working[new_key] = working.pop(old_key)

        cleaned: dict[str, Any] = {}
        for key, value in working.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _EMPTY_VALUES:
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Apply key aliases and strip empty placeholders."""
        if not isinstance(values, dict):
            return values
        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        return AzBaseModel._clean_dict(values, aliases)

    def to_storage(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON-compatible storage form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
