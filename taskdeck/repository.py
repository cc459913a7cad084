from __future__ import annotations

import asyncio
import datetime as dt
import enum
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from pyuca import Collator

from taskdeck.clock import SYSTEM_CLOCK, Clock
from taskdeck.errors import (
    DuplicateTask,
    InvalidBackupFormat,
    SerializationError,
    StorageError,
    TaskNotFound,
)
from taskdeck.events import EventBus, names
from taskdeck.models import Task, TaskFilter, TaskStats
from taskdeck.observability import get_json_logger, get_metrics
from taskdeck.storage import StorageService
from taskdeck.validation.rules import PRIORITIES, PRIORITY_WEIGHTS

DEFAULT_AUTO_SAVE_DELAY = 1.0


@lru_cache(maxsize=1)
def _collator() -> Collator:
    # the collation table is large; load it on first use
    return Collator()


class SaveState(enum.Enum):
    CLEAN = "clean"
    DIRTY = "dirty"  # unsaved changes, no flush scheduled
    SCHEDULED = "scheduled"  # unsaved changes, flush timer armed


def _sort_tasks(tasks: list[Task], sort_by: str) -> list[Task]:
    # sorted() stays stable with reverse=True, so ties keep insertion order
    if sort_by == "priority":
        return sorted(
            tasks, key=lambda t: (PRIORITY_WEIGHTS[t.priority], t.created_at), reverse=True
        )
    if sort_by == "dueDate":
        return sorted(tasks, key=lambda t: (t.due_date is None, t.due_date or dt.date.min))
    if sort_by == "created":
        return sorted(tasks, key=lambda t: t.created_at, reverse=True)
    if sort_by == "updated":
        return sorted(tasks, key=lambda t: t.updated_at, reverse=True)
    if sort_by == "title":
        collator = _collator()
        return sorted(tasks, key=lambda t: collator.sort_key(t.title))
    return list(tasks)


class TaskRepository:
    """Authoritative in-memory map of tasks, persisted through a StorageService.

    Every mutation is applied synchronously, arms the debounced auto-save and then
    emits its domain event. The auto-save is a small state machine (see
    ``SaveState``): a mutation re-arms the timer, a successful flush returns to
    CLEAN unless newer mutations arrived meanwhile, a failed flush leaves the
    repository DIRTY until the next mutation or an explicit ``flush()``.
    """

    def __init__(
        self,
        storage: StorageService,
        bus: EventBus,
        *,
        clock: Clock | None = None,
        auto_save_delay: float = DEFAULT_AUTO_SAVE_DELAY,
    ) -> None:
        self._storage = storage
        self._bus = bus
        self._clock = clock or SYSTEM_CLOCK
        self._auto_save_delay = max(0.0, auto_save_delay)
        self._tasks: dict[str, Task] = {}
        self._state = SaveState.CLEAN
        self._timer: asyncio.TimerHandle | None = None
        self._save_task: asyncio.Task[None] | None = None
        self._generation = 0
        self._logger = get_json_logger("taskdeck.repository")

    @property
    def save_state(self) -> SaveState:
        return self._state

    @property
    def clock(self) -> Clock:
        return self._clock

    def __len__(self) -> int:
        return len(self._tasks)

    # ----------------------------
    # Persistence
    # ----------------------------
    async def load_tasks(self) -> list[Task]:
        try:
            data = await self._storage.load()
            tasks = self._decode(data if data is not None else [])
        except StorageError as exc:
            self._report_storage_error(exc, "load")
            raise
        self._tasks = {task.id: task for task in tasks}
        self._cancel_timer()
        self._state = SaveState.CLEAN
        self._logger.info(
            "tasks loaded",
            extra={"event": "tasks_loaded", "count": len(self._tasks)},
        )
        loaded = self.get_all_tasks()
        self._bus.emit(names.TASKS_LOADED, loaded)
        return loaded

    async def save_tasks(self) -> int:
        try:
            records = [task.to_record() for task in self._tasks.values()]
            await self._storage.save(records)
        except StorageError as exc:
            self._report_storage_error(exc, "save")
            raise
        count = len(records)
        get_metrics().increment("tasks_saved", amount=count)
        self._logger.debug("tasks saved", extra={"event": "tasks_saved", "count": count})
        self._bus.emit(names.TASKS_SAVED, count)
        return count

    async def flush(self) -> None:
        """Write pending changes now instead of waiting for the auto-save timer."""
        self._cancel_timer()
        await self._wait_for_auto_save()
        if self._state is SaveState.CLEAN:
            return
        generation = self._generation
        try:
            await self.save_tasks()
        except StorageError:
            self._state = SaveState.DIRTY
            raise
        if generation == self._generation:
            self._state = SaveState.CLEAN

    async def close(self) -> None:
        await self.flush()

    async def _wait_for_auto_save(self) -> None:
        if self._save_task is not None and not self._save_task.done():
            await self._save_task

    def _decode(self, data: Any) -> list[Task]:
        if not isinstance(data, list):
            raise SerializationError(
                f"stored tasks must be a list, got {type(data).__name__}"
            )
        tasks = [Task.from_record(record, clock=self._clock) for record in data]
        seen: set[str] = set()
        for task in tasks:
            if task.id in seen:
                raise SerializationError(f"duplicate task id in stored data: {task.id}")
            seen.add(task.id)
        return tasks

    # ----------------------------
    # Auto-save state machine
    # ----------------------------
    def _mark_dirty(self) -> None:
        self._generation += 1
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to run the timer on; the change waits for flush()
            self._state = SaveState.DIRTY
            return
        self._timer = loop.call_later(self._auto_save_delay, self._on_timer)
        self._state = SaveState.SCHEDULED

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self._save_task = asyncio.get_running_loop().create_task(self._auto_save())

    async def _auto_save(self) -> None:
        generation = self._generation
        try:
            await self.save_tasks()
        except StorageError as exc:
            self._logger.warning(
                "auto-save failed",
                extra={
                    "event": "auto_save_failed",
                    "operation": "save",
                    "attributes": {"error": str(exc), "error_type": type(exc).__name__},
                },
            )
            if generation == self._generation:
                self._state = SaveState.DIRTY
            return
        if generation == self._generation:
            self._state = SaveState.CLEAN

    # ----------------------------
    # Mutations
    # ----------------------------
    def add_task(self, task: Task) -> Task:
        if task.id in self._tasks:
            raise DuplicateTask(task.id)
        self._tasks[task.id] = task
        self._after_mutation("add", task.id)
        self._bus.emit(names.TASK_ADDED, task)
        return task

    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        task = self._require(task_id)
        old_record = task.to_record()
        task.update(updates)
        self._after_mutation("update", task_id)
        self._bus.emit(names.TASK_UPDATED, task, old_record)
        return task

    def delete_task(self, task_id: str) -> Task:
        task = self._require(task_id)
        del self._tasks[task_id]
        self._after_mutation("delete", task_id)
        self._bus.emit(names.TASK_DELETED, task_id, task)
        return task

    def toggle_task_completion(self, task_id: str) -> Task:
        task = self._require(task_id)
        task.toggle_complete()
        self._after_mutation("toggle", task_id)
        self._bus.emit(names.TASK_COMPLETED if task.completed else names.TASK_UNCOMPLETED, task)
        return task

    def clear(self) -> int:
        """Remove every task. Returns how many were removed."""
        count = len(self._tasks)
        self._tasks.clear()
        self._after_mutation("clear", None)
        return count

    def delete_completed(self) -> list[Task]:
        removed = [task for task in self._tasks.values() if task.completed]
        if not removed:
            return []
        for task in removed:
            del self._tasks[task.id]
        self._after_mutation("delete_completed", None)
        for task in removed:
            self._bus.emit(names.TASK_DELETED, task.id, task)
        return removed

    def _after_mutation(self, operation: str, task_id: str | None) -> None:
        self._mark_dirty()
        get_metrics().increment("tasks_mutated", {"operation": operation})
        self._logger.debug(
            "task mutated",
            extra={"event": "task_mutated", "operation": operation, "task_id": task_id},
        )

    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    # ----------------------------
    # Queries
    # ----------------------------
    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def get_all_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get_tasks_by_filter(self, task_filter: TaskFilter | None = None) -> list[Task]:
        flt = task_filter or TaskFilter()
        tasks = self.get_all_tasks()
        if flt.status == "completed":
            tasks = [t for t in tasks if t.completed]
        elif flt.status == "incomplete":
            tasks = [t for t in tasks if not t.completed]
        if flt.priority != "all":
            tasks = [t for t in tasks if t.priority == flt.priority]
        if flt.search:
            needle = flt.search.casefold()
            tasks = [
                t
                for t in tasks
                if needle in t.title.casefold() or needle in t.description.casefold()
            ]
        if flt.overdue:
            today = self._clock.today()
            tasks = [t for t in tasks if t.is_overdue(today)]
        return _sort_tasks(tasks, flt.sort_by)

    def get_stats(self) -> TaskStats:
        today = self._clock.today()
        tasks = self.get_all_tasks()
        completed = sum(1 for t in tasks if t.completed)
        by_priority = {p: 0 for p in PRIORITIES}
        for t in tasks:
            by_priority[t.priority] += 1
        return TaskStats(
            total=len(tasks),
            completed=completed,
            incomplete=len(tasks) - completed,
            overdue=sum(1 for t in tasks if t.is_overdue(today)),
            by_priority=by_priority,
        )

    # ----------------------------
    # Backup / restore
    # ----------------------------
    async def backup(self) -> str | None:
        """Snapshot of the persisted collection, after writing any pending changes."""
        await self.flush()
        try:
            return await self._storage.backup()
        except StorageError as exc:
            self._report_storage_error(exc, "backup")
            raise

    async def restore(self, snapshot: str | bytes) -> list[Task]:
        """Replace the collection with the one in ``snapshot``.

        The snapshot and every record in it are checked before anything is written,
        so a rejected snapshot leaves both memory and storage untouched.
        """
        await self._wait_for_auto_save()
        if self._state is SaveState.SCHEDULED:
            # The armed timer would write the old map over the restored one
            self._cancel_timer()
            self._state = SaveState.DIRTY
        try:
            data = StorageService.parse_backup(snapshot)
            try:
                tasks = self._decode(data)
            except SerializationError as exc:
                raise InvalidBackupFormat(f"Invalid backup format: {exc}") from exc
            await self._storage.save([task.to_record() for task in tasks])
        except StorageError as exc:
            self._report_storage_error(exc, "restore")
            raise
        self._cancel_timer()
        self._generation += 1
        self._tasks = {task.id: task for task in tasks}
        self._state = SaveState.CLEAN
        self._logger.info(
            "tasks restored",
            extra={"event": "tasks_restored", "count": len(self._tasks)},
        )
        restored = self.get_all_tasks()
        self._bus.emit(names.TASKS_LOADED, restored)
        return restored

    def _report_storage_error(self, exc: StorageError, operation: str) -> None:
        get_metrics().increment("storage_errors", {"operation": operation})
        self._logger.error(
            "storage operation failed",
            extra={
                "event": "storage_error",
                "operation": operation,
                "storage_key": self._storage.storage_key,
                "attributes": {"error": str(exc), "error_type": type(exc).__name__},
            },
        )
        self._bus.emit(names.STORAGE_ERROR, exc, operation)


__all__ = ["DEFAULT_AUTO_SAVE_DELAY", "SaveState", "TaskRepository"]
