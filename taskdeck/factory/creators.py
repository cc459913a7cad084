from __future__ import annotations

import calendar
import datetime as dt
from collections.abc import Mapping
from typing import Any, Protocol

from taskdeck.clock import SYSTEM_CLOCK, Clock
from taskdeck.errors import ValidationError, VariantValidationError
from taskdeck.models.task import RECURRENCE_PATTERNS, Task
from taskdeck.validation import normalize_keys, validate_task


class TaskCreator(Protocol):
    """Builds tasks of one type: fill type defaults, then validate and construct."""

    def apply_defaults(self, data: Mapping[str, Any]) -> dict[str, Any]: ...

    def create_task(self, data: Mapping[str, Any]) -> Task: ...


def base_defaults(data: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {"title": "", "description": "", "priority": "medium", "due_date": None}
    for key, value in normalize_keys(data).items():
        if value is not None or key not in out:
            out[key] = value
    return out


def build_core_task(
    data: Mapping[str, Any],
    *,
    task_type: str,
    category: str,
    clock: Clock,
    **variant_fields: Any,
) -> Task:
    """Validate the core fields of fully defaulted ``data`` and construct the task."""
    result = validate_task(data, clock=clock)
    if not result.is_valid:
        raise ValidationError(result.errors)
    clean = result.sanitized_data
    metadata = data.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        raise ValidationError("Metadata must be an object", "metadata")
    return Task.create(
        clean["title"],
        clean["description"],
        clean["priority"],
        clean["due_date"],
        clock=clock,
        type=task_type,
        category=category,
        metadata=dict(metadata),
        **variant_fields,
    )


def add_months(day: dt.date, months: int) -> dt.date:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last))


def next_due_date(due: dt.date | None, pattern: str, interval: int) -> dt.date | None:
    if due is None:
        return None
    if pattern == "daily":
        return due + dt.timedelta(days=interval)
    if pattern == "weekly":
        return due + dt.timedelta(days=7 * interval)
    if pattern == "monthly":
        return add_months(due, interval)
    if pattern == "yearly":
        return add_months(due, 12 * interval)
    raise VariantValidationError(f"Invalid recurrence pattern: {pattern}", "recurrence_pattern")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


class BasicTaskCreator:
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SYSTEM_CLOCK

    def apply_defaults(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return base_defaults(data)

    def create_task(self, data: Mapping[str, Any]) -> Task:
        defaults = self.apply_defaults(data)
        return build_core_task(defaults, task_type="basic", category="general", clock=self._clock)


class UrgentTaskCreator:
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SYSTEM_CLOCK

    def apply_defaults(self, data: Mapping[str, Any]) -> dict[str, Any]:
        defaults = base_defaults(data)
        defaults["priority"] = "high"
        if not defaults.get("due_date"):
            defaults["due_date"] = self._clock.today() + dt.timedelta(days=1)
        return defaults

    def create_task(self, data: Mapping[str, Any]) -> Task:
        defaults = self.apply_defaults(data)
        return build_core_task(
            defaults,
            task_type="urgent",
            category="urgent",
            clock=self._clock,
            is_urgent=True,
            escalation_level=1,
        )


class RecurringTaskCreator:
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SYSTEM_CLOCK

    def apply_defaults(self, data: Mapping[str, Any]) -> dict[str, Any]:
        defaults = base_defaults(data)
        defaults["recurrence_pattern"] = defaults.get("recurrence_pattern") or "weekly"
        if defaults.get("recurrence_interval") is None:
            defaults["recurrence_interval"] = 1
        defaults.setdefault("max_occurrences", None)
        return defaults

    def validate_recurrence(self, data: Mapping[str, Any]) -> None:
        pattern = data.get("recurrence_pattern")
        if pattern not in RECURRENCE_PATTERNS:
            raise VariantValidationError(
                f"Invalid recurrence pattern: {pattern}", "recurrence_pattern"
            )
        interval = data.get("recurrence_interval")
        if not _is_int(interval) or interval < 1:
            raise VariantValidationError(
                "Recurrence interval must be at least 1", "recurrence_interval"
            )
        max_occurrences = data.get("max_occurrences")
        if max_occurrences is not None and (not _is_int(max_occurrences) or max_occurrences < 1):
            raise VariantValidationError(
                "Max occurrences must be at least 1 or null", "max_occurrences"
            )

    def create_task(self, data: Mapping[str, Any]) -> Task:
        defaults = self.apply_defaults(data)
        task = build_core_task(
            defaults, task_type="recurring", category="recurring", clock=self._clock
        )
        self.validate_recurrence(defaults)
        pattern = defaults["recurrence_pattern"]
        interval = defaults["recurrence_interval"]
        task.recurrence_pattern = pattern
        task.recurrence_interval = interval
        task.max_occurrences = defaults["max_occurrences"]
        task.current_occurrence = 1
        task.next_due_date = next_due_date(task.due_date, pattern, interval)
        return task


class ProjectTaskCreator:
    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SYSTEM_CLOCK

    def apply_defaults(self, data: Mapping[str, Any]) -> dict[str, Any]:
        defaults = base_defaults(data)
        project_name = defaults.get("project_name")
        defaults["project_name"] = "Unnamed Project" if project_name is None else project_name
        defaults.setdefault("milestone", None)
        defaults.setdefault("estimated_hours", None)
        if defaults.get("dependencies") is None:
            defaults["dependencies"] = []
        return defaults

    def validate_project(self, data: Mapping[str, Any]) -> None:
        project_name = data.get("project_name")
        if not isinstance(project_name, str) or not project_name.strip():
            raise VariantValidationError("Project name cannot be empty", "project_name")
        hours = data.get("estimated_hours")
        if hours is not None and (not _is_number(hours) or hours < 0):
            raise VariantValidationError("Estimated hours cannot be negative", "estimated_hours")
        dependencies = data.get("dependencies")
        if not isinstance(dependencies, list) or not all(isinstance(d, str) for d in dependencies):
            raise VariantValidationError("Dependencies must be a list of task ids", "dependencies")

    def create_task(self, data: Mapping[str, Any]) -> Task:
        defaults = self.apply_defaults(data)
        task = build_core_task(
            defaults, task_type="project", category="project", clock=self._clock
        )
        self.validate_project(defaults)
        milestone = defaults["milestone"]
        task.project_name = defaults["project_name"].strip()
        task.milestone = milestone.strip() if isinstance(milestone, str) else milestone
        task.estimated_hours = defaults["estimated_hours"]
        task.dependencies = list(defaults["dependencies"])
        task.actual_hours = 0
        task.progress = 0
        return task


__all__ = [
    "BasicTaskCreator",
    "ProjectTaskCreator",
    "RecurringTaskCreator",
    "TaskCreator",
    "UrgentTaskCreator",
    "add_months",
    "base_defaults",
    "build_core_task",
    "next_due_date",
]
