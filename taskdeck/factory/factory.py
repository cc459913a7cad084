from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from taskdeck.clock import SYSTEM_CLOCK, Clock
from taskdeck.errors import UnknownTaskType
from taskdeck.models.task import Task
from taskdeck.observability import get_json_logger

from .creators import (
    BasicTaskCreator,
    ProjectTaskCreator,
    RecurringTaskCreator,
    TaskCreator,
    UrgentTaskCreator,
)


class TaskFactory:
    """Dispatch table from a type tag to the creator that builds that variant.

    The four built-in types are registered on construction; callers may register
    more with ``register_task_type`` without touching this class.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SYSTEM_CLOCK
        self._creators: dict[str, TaskCreator] = {}
        self._logger = get_json_logger("taskdeck.factory")
        self.register_task_type("basic", BasicTaskCreator(self._clock))
        self.register_task_type("urgent", UrgentTaskCreator(self._clock))
        self.register_task_type("recurring", RecurringTaskCreator(self._clock))
        self.register_task_type("project", ProjectTaskCreator(self._clock))

    @property
    def clock(self) -> Clock:
        return self._clock

    def register_task_type(self, task_type: str, creator: TaskCreator) -> None:
        key = (task_type or "").strip()
        if not key:
            raise ValueError("task_type must be non-empty")
        self._creators[key] = creator

    def create_task(self, task_type: str = "basic", data: Mapping[str, Any] | None = None) -> Task:
        creator = self._creators.get(task_type)
        if creator is None:
            raise UnknownTaskType(task_type)
        task = creator.create_task(data or {})
        self._logger.debug(
            "task built",
            extra={"event": "task_built", "task_id": task.id, "task_type": task.type},
        )
        return task

    def available_types(self) -> list[str]:
        return list(self._creators.keys())


__all__ = ["TaskFactory"]
