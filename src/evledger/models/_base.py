"""Base model and timestamp helpers for ledger records.

Every ledger record inherits from :class:`LedgerBaseModel` which
provides:

* ``alias_generator=to_camel`` so the snapshot's camelCase keys map
  automatically to snake_case fields.
* ``frozen=True``: records are immutable values; edits go through
  ``model_copy``.
* A ``model_validator(mode="before")`` that drops blank form values
  (``None``, ``""``, whitespace-only strings) so the field default is
  used, or a required field is reported missing.

:data:`LedgerTimestamp` coerces ISO strings, date-only strings, ``date``
objects and epoch numbers (seconds or milliseconds) to timezone-aware
datetimes. Naive values are interpreted as UTC.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from evledger._normalize import is_meaningful

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


def parse_timestamp(value: Any) -> Any:
    """Coerce loosely-typed timestamp input to a ``datetime``.

    Values that cannot be interpreted are returned unchanged so pydantic
    reports the validation error.
    """
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return value
    return value


def _ensure_tz_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def parse_date(value: Any) -> Any:
    """Accept ``YYYY-MM-DD`` strings, full ISO timestamps and datetimes."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.strip()[:10]
    return value


LedgerTimestamp = Annotated[datetime, BeforeValidator(parse_timestamp), AfterValidator(_ensure_tz_aware)]
"""Annotated type for canonical event timestamps (always tz-aware)."""

LedgerDate = Annotated[date, BeforeValidator(parse_date)]
"""Annotated calendar date (vehicle purchase date)."""


class LedgerBaseModel(BaseModel):
    """Base for vehicle, media and event records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if isinstance(value, str) and not value.strip():
                continue
            if value is None or (isinstance(value, dict) and not is_meaningful(value)):
                continue
            cleaned[key] = value
        return cleaned

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
