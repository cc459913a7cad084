"""Field-level rules shared by the validator and the task setters.

Each ``check_*`` returns ``(sanitized_value, error_message_or_None)`` and never raises.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from typing import Any, Literal, cast

from pydantic.alias_generators import to_snake

Priority = Literal["high", "medium", "low"]

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
PRIORITIES: tuple[Priority, ...] = ("high", "medium", "low")
DEFAULT_PRIORITY: Priority = "medium"
PRIORITY_WEIGHTS: dict[str, int] = {"high": 3, "medium": 2, "low": 1}

# Fields a caller may change through update(partial)
UPDATABLE_FIELDS: tuple[str, ...] = ("title", "description", "priority", "due_date")


def normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with camelCase keys converted to snake_case."""
    return {to_snake(str(k)): v for k, v in data.items()}


def parse_date(value: Any) -> dt.date | None:
    """Parse a calendar date. Empty values give None; unparseable values raise ValueError."""
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            return dt.datetime.fromisoformat(text).date()
    raise ValueError(f"not a date: {value!r}")


def check_title(value: Any) -> tuple[str, str | None]:
    if value is None:
        return "", "Title is required"
    if not isinstance(value, str):
        return "", "Title must be a string"
    title = value.strip()
    if not title:
        return "", "Title is required"
    if len(title) > MAX_TITLE_LENGTH:
        return title, f"Title must be {MAX_TITLE_LENGTH} characters or less"
    return title, None


def check_description(value: Any) -> tuple[str, str | None]:
    if value is None:
        return "", None
    if not isinstance(value, str):
        return "", "Description must be a string"
    description = value.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return description, f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less"
    return description, None


def check_priority(value: Any, *, default: Priority | None = None) -> tuple[Priority, str | None]:
    if default is not None and (value is None or value == ""):
        return default, None
    candidate = value.strip().lower() if isinstance(value, str) else value
    if candidate not in PRIORITIES:
        return DEFAULT_PRIORITY, "Priority must be one of: " + ", ".join(PRIORITIES)
    return cast(Priority, candidate), None


def check_due_date(value: Any, *, today: dt.date) -> tuple[dt.date | None, str | None]:
    try:
        due = parse_date(value)
    except ValueError:
        return None, "Due date must be a valid date"
    if due is not None and due < today:
        return due, "Due date cannot be in the past"
    return due, None


__all__ = [
    "DEFAULT_PRIORITY",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_TITLE_LENGTH",
    "PRIORITIES",
    "PRIORITY_WEIGHTS",
    "Priority",
    "UPDATABLE_FIELDS",
    "check_description",
    "check_due_date",
    "check_priority",
    "check_title",
    "normalize_keys",
    "parse_date",
]
