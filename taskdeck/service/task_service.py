from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from taskdeck.errors import TaskdeckError, ValidationError
from taskdeck.events import EventBus, names
from taskdeck.factory import TaskFactory
from taskdeck.models import Task, TaskFilter, TaskStats
from taskdeck.observability import get_json_logger
from taskdeck.repository import TaskRepository
from taskdeck.validation import ValidationResult, validate_task_update

UpdateValidator = Callable[..., ValidationResult]


class TaskService:
    """Use-case layer over the repository.

    Creation is validated by the factory's creators; updates are validated here
    before the repository sees them. Every failure is reported on the bus as
    ``service:error(message, operation)`` and then re-raised to the caller.
    """

    def __init__(
        self,
        repository: TaskRepository,
        bus: EventBus,
        *,
        factory: TaskFactory | None = None,
        validate_update: UpdateValidator = validate_task_update,
    ) -> None:
        self._repository = repository
        self._bus = bus
        self._factory = factory or TaskFactory(clock=repository.clock)
        self._validate_update = validate_update
        self._logger = get_json_logger("taskdeck.service")

    @property
    def factory(self) -> TaskFactory:
        return self._factory

    async def initialize(self) -> list[Task]:
        return await self._repository.load_tasks()

    async def shutdown(self) -> None:
        await self._repository.close()

    # ----------------------------
    # Commands
    # ----------------------------
    def create_task(self, data: Mapping[str, Any], task_type: str = "basic") -> Task:
        try:
            task = self._factory.create_task(task_type, data)
            self._repository.add_task(task)
        except ValidationError as exc:
            self._bus.emit(names.VALIDATION_ERROR, exc.errors, "create")
            self._report(exc, "create")
            raise
        except TaskdeckError as exc:
            self._report(exc, "create")
            raise
        self._logger.info(
            "task created",
            extra={"event": "task_created", "task_id": task.id, "task_type": task.type},
        )
        return task

    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        try:
            result = self._validate_update(updates, clock=self._repository.clock)
            if not result.is_valid:
                self._bus.emit(names.VALIDATION_ERROR, result.errors, "update")
                raise ValidationError(result.errors)
            task = self._repository.update_task(task_id, result.sanitized_data)
        except TaskdeckError as exc:
            self._report(exc, "update")
            raise
        return task

    def delete_task(self, task_id: str) -> Task:
        try:
            return self._repository.delete_task(task_id)
        except TaskdeckError as exc:
            self._report(exc, "delete")
            raise

    def toggle_task_completion(self, task_id: str) -> Task:
        try:
            return self._repository.toggle_task_completion(task_id)
        except TaskdeckError as exc:
            self._report(exc, "toggle")
            raise

    def clear_all_tasks(self) -> int:
        count = self._repository.clear()
        self._bus.emit(names.TASKS_CLEARED)
        return count

    def delete_completed_tasks(self) -> int:
        removed = self._repository.delete_completed()
        self._bus.emit(names.TASKS_COMPLETED_CLEARED, len(removed))
        return len(removed)

    async def backup(self) -> str | None:
        try:
            return await self._repository.backup()
        except TaskdeckError as exc:
            self._report(exc, "backup")
            raise

    async def restore(self, snapshot: str | bytes) -> list[Task]:
        try:
            tasks = await self._repository.restore(snapshot)
        except TaskdeckError as exc:
            self._report(exc, "restore")
            raise
        self._bus.emit(names.TASKS_RESTORED, tasks)
        return tasks

    # ----------------------------
    # Queries
    # ----------------------------
    def get_task(self, task_id: str) -> Task | None:
        return self._repository.get_task(task_id)

    def get_all_tasks(self) -> list[Task]:
        return self._repository.get_all_tasks()

    def get_filtered_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        flt = task_filter or TaskFilter()
        tasks = self._repository.get_tasks_by_filter(flt)
        self._bus.emit(names.TASKS_FILTERED, tasks, flt)
        return tasks

    def get_stats(self) -> TaskStats:
        return self._repository.get_stats()

    def _report(self, exc: Exception, operation: str) -> None:
        self._logger.warning(
            "task operation failed",
            extra={
                "event": "service_error",
                "operation": operation,
                "attributes": {"error": str(exc), "error_type": type(exc).__name__},
            },
        )
        self._bus.emit(names.SERVICE_ERROR, str(exc), operation)


__all__ = ["TaskService", "UpdateValidator"]
