from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from taskdeck.events import EventBus, names
from taskdeck.service import TaskController, TaskService

Recorder = Callable[..., list[tuple[Any, ...]]]


def test_create_intent_emits_created_then_refresh(
    bus: EventBus, controller: TaskController, events: Recorder
) -> None:
    seen = events(names.CONTROLLER_TASK_CREATED, names.CONTROLLER_UI_REFRESH)

    bus.emit(names.UI_TASK_CREATE, {"title": "Buy milk", "priority": "low"}, "basic")

    assert [name for name, *_ in seen] == [
        names.CONTROLLER_TASK_CREATED,
        names.CONTROLLER_UI_REFRESH,
    ]
    task = seen[0][1]
    _, tasks, stats, flt = seen[1]
    assert tasks == [task]
    assert stats.total == 1
    assert flt is controller.current_filter


def test_create_intent_defaults_to_basic_type(
    bus: EventBus, controller: TaskController, service: TaskService
) -> None:
    bus.emit(names.UI_TASK_CREATE, {"title": "No type"})

    [task] = service.get_all_tasks()
    assert task.type == "basic"


def test_failures_become_controller_errors_and_never_raise(
    bus: EventBus, controller: TaskController, events: Recorder
) -> None:
    seen = events(names.CONTROLLER_ERROR, names.CONTROLLER_UI_REFRESH)

    bus.emit(names.UI_TASK_CREATE, {"title": ""}, "basic")
    bus.emit(names.UI_TASK_DELETE, "task_missing")
    bus.emit(names.UI_TASK_TOGGLE, "task_missing")
    bus.emit(names.UI_TASK_UPDATE, "task_missing", {"title": "x"})

    assert seen == [
        (names.CONTROLLER_ERROR, "Validation failed: Title is required", "create"),
        (names.CONTROLLER_ERROR, "Task not found: task_missing", "delete"),
        (names.CONTROLLER_ERROR, "Task not found: task_missing", "toggle"),
        (names.CONTROLLER_ERROR, "Task not found: task_missing", "update"),
    ]


def test_update_toggle_and_delete_intents(
    bus: EventBus, controller: TaskController, service: TaskService, events: Recorder
) -> None:
    task = service.create_task({"title": "Flow"})
    seen = events(
        names.CONTROLLER_TASK_UPDATED,
        names.CONTROLLER_TASK_TOGGLED,
        names.CONTROLLER_TASK_DELETED,
    )

    bus.emit(names.UI_TASK_UPDATE, task.id, {"priority": "high"})
    bus.emit(names.UI_TASK_TOGGLE, task.id)
    bus.emit(names.UI_TASK_DELETE, task.id)

    assert seen == [
        (names.CONTROLLER_TASK_UPDATED, task),
        (names.CONTROLLER_TASK_TOGGLED, task),
        (names.CONTROLLER_TASK_DELETED, task),
    ]
    assert task.priority == "high"
    assert task.completed is True
    assert service.get_all_tasks() == []


def test_filter_change_merges_shallowly(
    bus: EventBus, controller: TaskController, service: TaskService, events: Recorder
) -> None:
    service.create_task({"title": "Done", "priority": "high"})
    open_task = service.create_task({"title": "Open", "priority": "low"})
    service.toggle_task_completion(service.get_all_tasks()[0].id)
    seen = events(names.CONTROLLER_UI_REFRESH)

    bus.emit(names.UI_FILTER_CHANGE, {"status": "incomplete"})
    bus.emit(names.UI_FILTER_CHANGE, {"sortBy": "title"})

    flt = controller.current_filter
    assert flt.status == "incomplete"
    assert flt.sort_by == "title"
    assert seen[-1][1] == [open_task]
    assert controller.current_tasks() == [open_task]


def test_invalid_filter_is_reported_and_state_kept(
    bus: EventBus, controller: TaskController, events: Recorder
) -> None:
    bus.emit(names.UI_FILTER_CHANGE, {"priority": "high"})
    seen = events(names.CONTROLLER_ERROR, names.CONTROLLER_UI_REFRESH)

    bus.emit(names.UI_FILTER_CHANGE, {"status": "sideways"})
    bus.emit(names.UI_FILTER_CHANGE, "not a mapping")

    assert [(name, op) for name, _msg, op in seen] == [
        (names.CONTROLLER_ERROR, "filter"),
        (names.CONTROLLER_ERROR, "filter"),
    ]
    assert seen[0][1].startswith("Invalid filter: status")
    assert controller.current_filter.priority == "high"
    assert controller.current_filter.status == "all"


def test_clear_completed_intent(
    bus: EventBus, controller: TaskController, service: TaskService, events: Recorder
) -> None:
    done = service.create_task({"title": "Done"})
    service.create_task({"title": "Open"})
    service.toggle_task_completion(done.id)
    seen = events(names.CONTROLLER_COMPLETED_CLEARED)

    bus.emit(names.UI_CLEAR_COMPLETED_REQUEST)

    assert seen == [(names.CONTROLLER_COMPLETED_CLEARED, 1)]
    assert [t.title for t in controller.current_tasks()] == ["Open"]


@pytest.mark.asyncio
async def test_backup_and_restore_intents(
    bus: EventBus, controller: TaskController, service: TaskService, events: Recorder
) -> None:
    task = service.create_task({"title": "Snapshot me"})
    seen = events(
        names.CONTROLLER_BACKUP_READY, names.CONTROLLER_RESTORE_COMPLETE, names.CONTROLLER_ERROR
    )

    bus.emit(names.UI_BACKUP_REQUEST)
    await bus.drain()
    [(_, snapshot)] = seen
    assert json.loads(snapshot)["data"][0]["id"] == task.id

    service.delete_task(task.id)
    bus.emit(names.UI_RESTORE_REQUEST, snapshot)
    await bus.drain()
    bus.emit(names.UI_RESTORE_REQUEST, "garbage")
    await bus.drain()

    assert [name for name, *_ in seen[1:]] == [
        names.CONTROLLER_RESTORE_COMPLETE,
        names.CONTROLLER_ERROR,
    ]
    assert seen[2][2] == "restore"
    assert [t.id for t in service.get_all_tasks()] == [task.id]


def test_stop_unsubscribes_from_intents(
    bus: EventBus, controller: TaskController, service: TaskService
) -> None:
    controller.stop()

    bus.emit(names.UI_TASK_CREATE, {"title": "Ignored"}, "basic")

    assert service.get_all_tasks() == []
    assert not controller.started
    assert bus.listener_count(names.UI_TASK_CREATE) == 0
