"""Normalization helpers.

Centralizes lenient handling of form/CLI input before it reaches the models.
"""

from __future__ import annotations

from typing import Any


def safe_str(value: Any) -> str | None:
    """Return stripped text, or ``None`` for missing/blank input."""
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def is_meaningful(value: Any) -> bool:
    """Return True if the value carries information worth keeping."""

    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if value == {}:
        return False
    return bool(value != [])


def prune_blank(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose values are not meaningful (empty form fields)."""
    return {key: value for key, value in data.items() if is_meaningful(value)}
