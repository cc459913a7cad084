from __future__ import annotations

import json
import logging
from typing import Any

import pytest

from taskdeck.observability import (
    Metrics,
    get_json_logger,
    get_metrics,
    reset_metrics,
    use_session_context,
)


def _parse_json_lines(output: str) -> list[dict[str, Any]]:
    return [json.loads(line) for line in output.strip().splitlines() if line.strip()]


@pytest.fixture(autouse=True)
def _json_format(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_FORMAT", "json")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_MODULE_LEVELS", raising=False)


def test_json_logger_redacts_and_formats(capsys: Any) -> None:
    logger = get_json_logger("obs-test.redact")
    logger.info(
        "hello",
        extra={
            "event": "task_created",
            "task_id": "task_1",
            "attributes": {"password": "pw", "token": "XYZ", "safe": "ok"},
        },
    )

    lines = _parse_json_lines(capsys.readouterr().err)
    assert len(lines) == 1
    rec = lines[0]
    assert rec["msg"] == "hello"
    assert rec["level"] == "info"
    assert rec["service"] == "taskdeck"
    assert rec["event"] == "task_created"
    assert rec["task_id"] == "task_1"
    assert rec["attributes"] == {"password": "[REDACTED]", "token": "[REDACTED]", "safe": "ok"}


def test_exceptions_are_flattened_into_fields(capsys: Any) -> None:
    logger = get_json_logger("obs-test.exc")
    try:
        raise RuntimeError("disk full")
    except RuntimeError:
        logger.exception("save failed", extra={"operation": "save"})

    [rec] = _parse_json_lines(capsys.readouterr().err)
    assert rec["err_type"] == "RuntimeError"
    assert rec["err"] == "disk full"
    assert "Traceback" in rec["stack"]
    assert rec["operation"] == "save"


def test_session_context_adds_user(capsys: Any) -> None:
    logger = get_json_logger("obs-test.session")
    with use_session_context("alice"):
        logger.info("inside")
    logger.info("outside")

    inside, outside = _parse_json_lines(capsys.readouterr().err)
    assert inside["user"] == "alice"
    assert "user" not in outside


def test_module_level_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LOG_MODULE_LEVELS", "obs-test.levels.storage=DEBUG, bogus")

    assert get_json_logger("obs-test.levels.storage.file").level == logging.DEBUG
    assert get_json_logger("obs-test.levels.other").level == logging.WARNING


def test_console_format(monkeypatch: pytest.MonkeyPatch, capsys: Any) -> None:
    monkeypatch.setenv("LOG_FORMAT", "console")
    logger = get_json_logger("obs-test.console")
    logger.info("saved", extra={"event": "tasks_saved", "operation": "save"})

    line = capsys.readouterr().err.strip()
    assert "INFO obs-test.console tasks_saved op=save - saved" in line


def test_metrics_counters_and_labels() -> None:
    metrics = Metrics()
    metrics.increment("tasks_mutated", {"operation": "add"})
    metrics.increment("tasks_mutated", {"operation": "add"})
    metrics.increment("tasks_saved", amount=3)

    assert metrics.value("tasks_mutated", {"operation": "add"}) == 2
    assert metrics.value("tasks_mutated", {"operation": "delete"}) == 0
    assert metrics.snapshot() == [
        {"name": "tasks_mutated", "labels": {"operation": "add"}, "value": 2},
        {"name": "tasks_saved", "labels": {}, "value": 3},
    ]


def test_metrics_singleton_reset() -> None:
    get_metrics().increment("storage_errors")
    assert get_metrics().value("storage_errors") == 1

    reset_metrics()

    assert get_metrics().value("storage_errors") == 0
