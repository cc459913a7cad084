from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from taskdeck.clock import SYSTEM_CLOCK, Clock

from .rules import (
    DEFAULT_PRIORITY,
    UPDATABLE_FIELDS,
    check_description,
    check_due_date,
    check_priority,
    check_title,
    normalize_keys,
)


@dataclass(slots=True)
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    sanitized_data: dict[str, Any] = field(default_factory=dict)


def validate_task(data: Mapping[str, Any], *, clock: Clock | None = None) -> ValidationResult:
    """Validate a full task payload.

    Title is required; description, priority and due date fall back to their
    defaults when absent. Keys may be camelCase or snake_case.
    """
    today = (clock or SYSTEM_CLOCK).today()
    raw = normalize_keys(data)
    errors: list[str] = []

    title, err = check_title(raw.get("title"))
    if err:
        errors.append(err)
    description, err = check_description(raw.get("description"))
    if err:
        errors.append(err)
    priority, err = check_priority(raw.get("priority"), default=DEFAULT_PRIORITY)
    if err:
        errors.append(err)
    due_date, err = check_due_date(raw.get("due_date"), today=today)
    if err:
        errors.append(err)

    sanitized = {
        "title": title,
        "description": description,
        "priority": priority,
        "due_date": due_date,
    }
    return ValidationResult(is_valid=not errors, errors=errors, sanitized_data=sanitized)


def validate_task_update(
    partial: Mapping[str, Any], *, clock: Clock | None = None
) -> ValidationResult:
    """Validate only the updatable fields present in ``partial``.

    Absent fields are left out of ``sanitized_data``; unknown keys are ignored.
    An explicit ``None`` due date clears it.
    """
    today = (clock or SYSTEM_CLOCK).today()
    raw = normalize_keys(partial)
    errors: list[str] = []
    sanitized: dict[str, Any] = {}

    for name in UPDATABLE_FIELDS:
        if name not in raw:
            continue
        value = raw[name]
        if name == "title":
            clean, err = check_title(value)
        elif name == "description":
            clean, err = check_description(value)
        elif name == "priority":
            clean, err = check_priority(value)
        else:
            clean, err = check_due_date(value, today=today)
        if err:
            errors.append(err)
        else:
            sanitized[name] = clean

    return ValidationResult(is_valid=not errors, errors=errors, sanitized_data=sanitized)


__all__ = ["ValidationResult", "validate_task", "validate_task_update"]
