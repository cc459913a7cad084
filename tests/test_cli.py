from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from taskdeck.cli import main


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("TASKDECK_STORAGE_KEY", raising=False)


def _run(tmp_path: Path, capsys: Any, *argv: str) -> tuple[int, str, str]:
    with pytest.raises(SystemExit) as info:
        main(["--backend", "file", "--data-dir", str(tmp_path), *argv])
    captured = capsys.readouterr()
    return int(info.value.code or 0), captured.out, captured.err


def _ids(tmp_path: Path, capsys: Any) -> list[str]:
    code, out, _ = _run(tmp_path, capsys, "list", "--json")
    assert code == 0
    return [record["id"] for record in json.loads(out)]


def test_add_list_done_delete_flow(tmp_path: Path, capsys: Any) -> None:
    code, out, _ = _run(tmp_path, capsys, "add", "Buy milk", "--priority", "low")
    assert code == 0
    assert out.startswith("created task_")
    assert "Buy milk" in out

    code, out, _ = _run(
        tmp_path, capsys, "add", "Ship release", "--type", "urgent", "--description", "v2"
    )
    assert code == 0

    code, out, _ = _run(tmp_path, capsys, "list")
    lines = out.strip().splitlines()
    assert "Ship release" in lines[0]
    assert "Buy milk" in lines[1]

    milk_id = _ids(tmp_path, capsys)[1]
    code, out, _ = _run(tmp_path, capsys, "done", milk_id)
    assert code == 0
    assert out.startswith("completed")

    code, out, _ = _run(tmp_path, capsys, "done", milk_id)
    assert out.startswith("already completed")

    code, out, _ = _run(tmp_path, capsys, "list", "--status", "completed", "--json")
    assert [r["title"] for r in json.loads(out)] == ["Buy milk"]

    code, out, _ = _run(tmp_path, capsys, "delete", milk_id)
    assert code == 0
    assert out.strip() == f"deleted {milk_id}"
    assert len(_ids(tmp_path, capsys)) == 1


def test_variant_options_reach_the_factory(tmp_path: Path, capsys: Any) -> None:
    _run(
        tmp_path,
        capsys,
        "add",
        "Standup",
        "--type",
        "recurring",
        "--due",
        "2999-01-01",
        "--recurrence",
        "weekly",
        "--interval",
        "2",
    )
    _run(tmp_path, capsys, "add", "Site", "--type", "project", "--project", "Web", "--hours", "4")

    code, out, _ = _run(tmp_path, capsys, "list", "--json", "--sort", "title")
    site, standup = json.loads(out)
    assert standup["nextDueDate"] == "2999-01-15"
    assert site["projectName"] == "Web"
    assert site["estimatedHours"] == 4.0


def test_errors_exit_non_zero(tmp_path: Path, capsys: Any) -> None:
    code, _, err = _run(tmp_path, capsys, "add", "Late", "--due", "2000-01-01")
    assert code == 1
    assert "error: create: Validation failed: Due date cannot be in the past" in err

    code, _, err = _run(tmp_path, capsys, "delete", "task_missing")
    assert code == 1
    assert "Task not found: task_missing" in err

    code, _, err = _run(tmp_path, capsys, "add", "Odd", "--type", "epic")
    assert code == 1
    assert "Unknown task type: epic" in err


def test_update_and_stats(tmp_path: Path, capsys: Any) -> None:
    _run(tmp_path, capsys, "add", "Report", "--priority", "low")
    [task_id] = _ids(tmp_path, capsys)

    code, out, _ = _run(
        tmp_path, capsys, "update", task_id, "--priority", "high", "--title", "Final"
    )
    assert code == 0
    assert "Final" in out

    code, out, _ = _run(tmp_path, capsys, "stats")
    assert out.strip().startswith("total=1 completed=0 incomplete=1 overdue=0")
    assert "high=1" in out


def test_backup_restore_and_clear_completed(tmp_path: Path, capsys: Any) -> None:
    data_dir = tmp_path / "data"
    backup_file = tmp_path / "backup.json"
    _run(data_dir, capsys, "add", "Keep")
    _run(data_dir, capsys, "add", "Finish")
    finish_id = _ids(data_dir, capsys)[1]
    _run(data_dir, capsys, "done", finish_id)

    code, out, _ = _run(data_dir, capsys, "backup", "--output", str(backup_file))
    assert code == 0
    assert json.loads(backup_file.read_text())["version"] == "2.0"

    code, out, _ = _run(data_dir, capsys, "clear-completed")
    assert out.strip() == "cleared 1 completed tasks"
    assert len(_ids(data_dir, capsys)) == 1

    code, out, _ = _run(data_dir, capsys, "restore", str(backup_file))
    assert code == 0
    assert out.strip() == "restored 2 tasks"
    assert len(_ids(data_dir, capsys)) == 2

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"version": "2.0"}))
    code, _, err = _run(data_dir, capsys, "restore", str(bad))
    assert code == 1
    assert "error: restore:" in err
    assert len(_ids(data_dir, capsys)) == 2


def test_backup_with_nothing_stored(tmp_path: Path, capsys: Any) -> None:
    code, out, _ = _run(tmp_path, capsys, "backup")
    assert code == 0
    assert out.strip() == "nothing to back up"


def test_types(tmp_path: Path, capsys: Any) -> None:
    code, out, _ = _run(tmp_path, capsys, "types")
    assert code == 0
    assert out.split() == ["basic", "urgent", "recurring", "project"]
