from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from taskdeck.errors import TaskdeckError
from taskdeck.events import EventBus, Unsubscribe, names
from taskdeck.models import Task, TaskFilter, TaskStats
from taskdeck.observability import get_json_logger

from .task_service import TaskService


def _describe_filter_error(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid filter: " + "; ".join(parts)


class TaskController:
    """Translates ``ui:*`` intents on the bus into service calls.

    Results go back out as ``controller:*`` events followed by a
    ``controller:ui-refresh(tasks, stats, filter)``. Failures become
    ``controller:error(message, operation)`` and are never raised out of a
    handler. The active filter lives here and is merged shallowly on each
    ``ui:filter-change``.
    """

    def __init__(
        self,
        service: TaskService,
        bus: EventBus,
        *,
        initial_filter: TaskFilter | None = None,
    ) -> None:
        self._service = service
        self._bus = bus
        self._filter = initial_filter or TaskFilter()
        self._unsubscribers: list[Unsubscribe] = []
        self._logger = get_json_logger("taskdeck.controller")

    @property
    def started(self) -> bool:
        return bool(self._unsubscribers)

    @property
    def current_filter(self) -> TaskFilter:
        return self._filter

    def start(self) -> None:
        if self.started:
            return
        handlers = {
            names.UI_TASK_CREATE: self.handle_task_create,
            names.UI_TASK_UPDATE: self.handle_task_update,
            names.UI_TASK_DELETE: self.handle_task_delete,
            names.UI_TASK_TOGGLE: self.handle_task_toggle,
            names.UI_FILTER_CHANGE: self.handle_filter_change,
            names.UI_BACKUP_REQUEST: self.handle_backup_request,
            names.UI_RESTORE_REQUEST: self.handle_restore_request,
            names.UI_CLEAR_COMPLETED_REQUEST: self.handle_clear_completed,
        }
        for event, handler in handlers.items():
            self._unsubscribers.append(self._bus.on(event, handler))
        self._logger.debug("controller started", extra={"event": "controller_started"})

    def stop(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()
        self._logger.debug("controller stopped", extra={"event": "controller_stopped"})

    # ----------------------------
    # Views
    # ----------------------------
    def current_tasks(self) -> list[Task]:
        return self._service.get_filtered_tasks(self._filter)

    def stats(self) -> TaskStats:
        return self._service.get_stats()

    def refresh_ui(self) -> None:
        self._bus.emit(
            names.CONTROLLER_UI_REFRESH, self.current_tasks(), self.stats(), self._filter
        )

    # ----------------------------
    # Intent handlers
    # ----------------------------
    def handle_task_create(
        self, data: Mapping[str, Any] | None = None, task_type: str | None = None
    ) -> Task | None:
        try:
            task = self._service.create_task(data or {}, task_type or "basic")
        except TaskdeckError as exc:
            self._fail(exc, "create")
            return None
        self._succeed(names.CONTROLLER_TASK_CREATED, task)
        return task

    def handle_task_update(
        self, task_id: str, updates: Mapping[str, Any] | None = None
    ) -> Task | None:
        try:
            task = self._service.update_task(task_id, updates or {})
        except TaskdeckError as exc:
            self._fail(exc, "update")
            return None
        self._succeed(names.CONTROLLER_TASK_UPDATED, task)
        return task

    def handle_task_delete(self, task_id: str) -> Task | None:
        try:
            task = self._service.delete_task(task_id)
        except TaskdeckError as exc:
            self._fail(exc, "delete")
            return None
        self._succeed(names.CONTROLLER_TASK_DELETED, task)
        return task

    def handle_task_toggle(self, task_id: str) -> Task | None:
        try:
            task = self._service.toggle_task_completion(task_id)
        except TaskdeckError as exc:
            self._fail(exc, "toggle")
            return None
        self._succeed(names.CONTROLLER_TASK_TOGGLED, task)
        return task

    def handle_filter_change(self, partial: Mapping[str, Any] | None = None) -> None:
        if partial is not None and not isinstance(partial, Mapping):
            self._bus.emit(names.CONTROLLER_ERROR, "Invalid filter: expected an object", "filter")
            return
        try:
            self._filter = self._filter.merged(partial)
        except PydanticValidationError as exc:
            self._bus.emit(names.CONTROLLER_ERROR, _describe_filter_error(exc), "filter")
            return
        self.refresh_ui()

    async def handle_backup_request(self) -> str | None:
        try:
            snapshot = await self._service.backup()
        except TaskdeckError as exc:
            self._fail(exc, "backup")
            return None
        self._succeed(names.CONTROLLER_BACKUP_READY, snapshot)
        return snapshot

    async def handle_restore_request(self, snapshot: str | bytes) -> bool:
        try:
            await self._service.restore(snapshot)
        except TaskdeckError as exc:
            self._fail(exc, "restore")
            return False
        self._succeed(names.CONTROLLER_RESTORE_COMPLETE)
        return True

    def handle_clear_completed(self) -> int:
        count = self._service.delete_completed_tasks()
        self._succeed(names.CONTROLLER_COMPLETED_CLEARED, count)
        return count

    def _succeed(self, event: str, *payload: Any) -> None:
        self._bus.emit(event, *payload)
        self.refresh_ui()

    def _fail(self, exc: TaskdeckError, operation: str) -> None:
        self._logger.debug(
            "intent failed",
            extra={"event": "controller_error", "operation": operation},
        )
        self._bus.emit(names.CONTROLLER_ERROR, str(exc), operation)


__all__ = ["TaskController"]
