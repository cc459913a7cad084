from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

from taskdeck.app import App, build_app
from taskdeck.config import STORAGE_BACKENDS, load_config
from taskdeck.errors import TaskdeckError
from taskdeck.events import names
from taskdeck.models import RECURRENCE_PATTERNS, SORT_KEYS, Task, TaskStats
from taskdeck.validation import PRIORITIES


def _format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    due = task.due_date.isoformat() if task.due_date else "-"
    return f"{task.id}  [{mark}] {task.priority:<6} {due:<10} {task.type:<9} {task.title}"


def _format_stats(stats: TaskStats) -> str:
    by_priority = ", ".join(f"{k}={v}" for k, v in stats.by_priority.items())
    return (
        f"total={stats.total} completed={stats.completed} incomplete={stats.incomplete} "
        f"overdue={stats.overdue} ({by_priority})"
    )


class _Outcome:
    """Collects what the controller reported for one command."""

    def __init__(self, app: App) -> None:
        self.errors: list[tuple[str, str]] = []
        self.tasks: list[Task] = []
        self.task: Task | None = None
        self.snapshot: str | None = None
        self.cleared: int | None = None
        bus = app.bus
        bus.on(names.CONTROLLER_ERROR, lambda message, op: self.errors.append((message, op)))
        bus.on(names.CONTROLLER_UI_REFRESH, self._on_refresh)
        for event in (
            names.CONTROLLER_TASK_CREATED,
            names.CONTROLLER_TASK_UPDATED,
            names.CONTROLLER_TASK_DELETED,
            names.CONTROLLER_TASK_TOGGLED,
        ):
            bus.on(event, self._on_task)
        bus.on(names.CONTROLLER_BACKUP_READY, self._on_snapshot)
        bus.on(names.CONTROLLER_COMPLETED_CLEARED, self._on_cleared)

    def _on_refresh(self, tasks: list[Task], _stats: TaskStats, _flt: Any) -> None:
        self.tasks = tasks

    def _on_task(self, task: Task) -> None:
        self.task = task

    def _on_snapshot(self, snapshot: str | None) -> None:
        self.snapshot = snapshot

    def _on_cleared(self, count: int) -> None:
        self.cleared = count


def _create_payload(args: argparse.Namespace) -> dict[str, Any]:
    data: dict[str, Any] = {"title": args.title}
    optional = {
        "description": args.description,
        "priority": args.priority,
        "dueDate": args.due,
        "projectName": args.project,
        "milestone": args.milestone,
        "estimatedHours": args.hours,
        "recurrencePattern": args.recurrence,
        "recurrenceInterval": args.interval,
        "maxOccurrences": args.max_occurrences,
    }
    data.update({k: v for k, v in optional.items() if v is not None})
    return data


def _update_payload(args: argparse.Namespace) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    for key, value in (
        ("title", args.title),
        ("description", args.description),
        ("priority", args.priority),
        ("dueDate", args.due),
    ):
        if value is not None:
            updates[key] = value
    return updates


async def _dispatch(app: App, args: argparse.Namespace, outcome: _Outcome) -> int:
    bus = app.bus
    out = sys.stdout
    cmd = args.cmd

    if cmd == "add":
        bus.emit(names.UI_TASK_CREATE, _create_payload(args), args.type)
        if outcome.task is not None:
            out.write(f"created {_format_task(outcome.task)}\n")
    elif cmd == "list":
        partial: dict[str, Any] = {}
        for key in ("status", "priority", "search", "sort"):
            value = getattr(args, key)
            if value is not None:
                partial["sortBy" if key == "sort" else key] = value
        if args.overdue:
            partial["overdue"] = True
        bus.emit(names.UI_FILTER_CHANGE, partial)
        if not outcome.errors:
            if args.json:
                out.write(json.dumps([t.to_record() for t in outcome.tasks], indent=2) + "\n")
            else:
                for task in outcome.tasks:
                    out.write(_format_task(task) + "\n")
    elif cmd == "done":
        task = app.service.get_task(args.id)
        if task is not None and task.completed:
            out.write(f"already completed {_format_task(task)}\n")
        else:
            bus.emit(names.UI_TASK_TOGGLE, args.id)
            if outcome.task is not None:
                out.write(f"completed {_format_task(outcome.task)}\n")
    elif cmd == "update":
        bus.emit(names.UI_TASK_UPDATE, args.id, _update_payload(args))
        if outcome.task is not None:
            out.write(f"updated {_format_task(outcome.task)}\n")
    elif cmd == "delete":
        bus.emit(names.UI_TASK_DELETE, args.id)
        if outcome.task is not None:
            out.write(f"deleted {outcome.task.id}\n")
    elif cmd == "stats":
        out.write(_format_stats(app.controller.stats()) + "\n")
    elif cmd == "backup":
        bus.emit(names.UI_BACKUP_REQUEST)
        await bus.drain()
        if not outcome.errors:
            if outcome.snapshot is None:
                out.write("nothing to back up\n")
            elif args.output:
                Path(args.output).write_text(outcome.snapshot, encoding="utf-8")
                out.write(f"backup written to {args.output}\n")
            else:
                out.write(outcome.snapshot + "\n")
    elif cmd == "restore":
        try:
            snapshot = Path(args.file).read_text(encoding="utf-8")
        except OSError as exc:
            sys.stderr.write(f"error: cannot read {args.file}: {exc}\n")
            return 1
        bus.emit(names.UI_RESTORE_REQUEST, snapshot)
        await bus.drain()
        if not outcome.errors:
            out.write(f"restored {len(app.repository)} tasks\n")
    elif cmd == "clear-completed":
        bus.emit(names.UI_CLEAR_COMPLETED_REQUEST)
        out.write(f"cleared {outcome.cleared or 0} completed tasks\n")
    elif cmd == "types":
        for task_type in app.service.factory.available_types():
            out.write(task_type + "\n")

    for message, op in outcome.errors:
        sys.stderr.write(f"error: {op}: {message}\n")
    return 1 if outcome.errors else 0


async def _run(args: argparse.Namespace) -> int:
    # Keep routine log lines out of the way of command output unless asked for
    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level.upper()
    else:
        os.environ.setdefault("LOG_LEVEL", "WARNING")
    overrides: dict[str, str] = {}
    if args.backend:
        overrides["TASKDECK_STORAGE_BACKEND"] = args.backend
    if args.data_dir:
        overrides["TASKDECK_DATA_DIR"] = args.data_dir
    if args.storage_key:
        overrides["TASKDECK_STORAGE_KEY"] = args.storage_key
    app = build_app(load_config(overrides))
    outcome = _Outcome(app)
    try:
        await app.start()
    except TaskdeckError as exc:
        sys.stderr.write(f"error: failed to load tasks: {exc}\n")
        return 1
    code = 1
    try:
        code = await _dispatch(app, args, outcome)
    finally:
        try:
            await app.stop()
        except TaskdeckError as exc:
            sys.stderr.write(f"error: failed to save tasks: {exc}\n")
            code = 1
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser("taskdeck")
    parser.add_argument("--backend", choices=list(STORAGE_BACKENDS))
    parser.add_argument("--data-dir")
    parser.add_argument("--storage-key")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_add = sub.add_parser("add", help="Create a task")
    p_add.add_argument("title")
    p_add.add_argument("--description")
    p_add.add_argument("--priority", choices=list(PRIORITIES))
    p_add.add_argument("--due", help="Due date (YYYY-MM-DD)")
    p_add.add_argument("--type", default="basic")
    p_add.add_argument("--project")
    p_add.add_argument("--milestone")
    p_add.add_argument("--hours", type=float)
    p_add.add_argument("--recurrence", choices=list(RECURRENCE_PATTERNS))
    p_add.add_argument("--interval", type=int)
    p_add.add_argument("--max-occurrences", type=int)

    p_list = sub.add_parser("list", help="List tasks")
    p_list.add_argument("--status", choices=["all", "completed", "incomplete"])
    p_list.add_argument("--priority", choices=["all", *PRIORITIES])
    p_list.add_argument("--search")
    p_list.add_argument("--overdue", action="store_true")
    p_list.add_argument("--sort", choices=list(SORT_KEYS))
    p_list.add_argument("--json", action="store_true")

    p_done = sub.add_parser("done", help="Mark a task completed")
    p_done.add_argument("id")

    p_update = sub.add_parser("update", help="Change task fields")
    p_update.add_argument("id")
    p_update.add_argument("--title")
    p_update.add_argument("--description")
    p_update.add_argument("--priority", choices=list(PRIORITIES))
    p_update.add_argument("--due")

    p_delete = sub.add_parser("delete", help="Delete a task")
    p_delete.add_argument("id")

    sub.add_parser("stats", help="Show task counts")

    p_backup = sub.add_parser("backup", help="Write a backup snapshot")
    p_backup.add_argument("--output")

    p_restore = sub.add_parser("restore", help="Replace all tasks from a backup snapshot")
    p_restore.add_argument("file")

    sub.add_parser("clear-completed", help="Delete every completed task")
    sub.add_parser("types", help="List task types")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    raise SystemExit(asyncio.run(_run(args)))


__all__ = ["build_parser", "main"]
