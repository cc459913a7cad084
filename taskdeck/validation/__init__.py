from __future__ import annotations

from .rules import (
    DEFAULT_PRIORITY,
    MAX_DESCRIPTION_LENGTH,
    MAX_TITLE_LENGTH,
    PRIORITIES,
    PRIORITY_WEIGHTS,
    Priority,
    normalize_keys,
    parse_date,
)
from .validator import ValidationResult, validate_task, validate_task_update

__all__ = [
    "DEFAULT_PRIORITY",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_TITLE_LENGTH",
    "PRIORITIES",
    "PRIORITY_WEIGHTS",
    "Priority",
    "ValidationResult",
    "normalize_keys",
    "parse_date",
    "validate_task",
    "validate_task_update",
]
