from __future__ import annotations

from .query import SORT_KEYS, SortKey, TaskFilter, TaskStats
from .task import RECURRENCE_PATTERNS, VARIANT_FIELDS, RecurrencePattern, Task, new_task_id

__all__ = [
    "RECURRENCE_PATTERNS",
    "RecurrencePattern",
    "SORT_KEYS",
    "SortKey",
    "Task",
    "TaskFilter",
    "TaskStats",
    "VARIANT_FIELDS",
    "new_task_id",
]
