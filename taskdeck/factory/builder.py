from __future__ import annotations

import datetime as dt
from typing import Any

from taskdeck.models.task import Task

from .factory import TaskFactory


class TaskBuilder:
    """Fluent accumulator over the factory inputs.

    ``build()`` hands the accumulated data to the factory and resets, so the same
    builder can be reused right away (also when the build failed).
    """

    def __init__(self, factory: TaskFactory) -> None:
        self._factory = factory
        self._type = "basic"
        self._data: dict[str, Any] = {}
        self.reset()

    def reset(self) -> TaskBuilder:
        self._type = "basic"
        self._data = {"title": "", "description": "", "priority": "medium", "due_date": None}
        return self

    def set_type(self, task_type: str) -> TaskBuilder:
        self._type = task_type
        return self

    def set_title(self, title: str) -> TaskBuilder:
        self._data["title"] = title
        return self

    def set_description(self, description: str) -> TaskBuilder:
        self._data["description"] = description
        return self

    def set_priority(self, priority: str) -> TaskBuilder:
        self._data["priority"] = priority
        return self

    def set_due_date(self, due_date: dt.date | str | None) -> TaskBuilder:
        self._data["due_date"] = due_date
        return self

    # project
    def set_project(self, project_name: str) -> TaskBuilder:
        self._data["project_name"] = project_name
        return self

    def set_milestone(self, milestone: str) -> TaskBuilder:
        self._data["milestone"] = milestone
        return self

    def set_estimated_hours(self, hours: float) -> TaskBuilder:
        self._data["estimated_hours"] = hours
        return self

    def set_dependencies(self, task_ids: list[str]) -> TaskBuilder:
        self._data["dependencies"] = list(task_ids)
        return self

    # recurring
    def set_recurrence(self, pattern: str, interval: int = 1) -> TaskBuilder:
        self._data["recurrence_pattern"] = pattern
        self._data["recurrence_interval"] = interval
        return self

    def set_max_occurrences(self, max_occurrences: int | None) -> TaskBuilder:
        self._data["max_occurrences"] = max_occurrences
        return self

    def set_metadata(self, key: str, value: Any) -> TaskBuilder:
        self._data.setdefault("metadata", {})[key] = value
        return self

    def build(self) -> Task:
        task_type, data = self._type, dict(self._data)
        try:
            return self._factory.create_task(task_type, data)
        finally:
            self.reset()


__all__ = ["TaskBuilder"]
