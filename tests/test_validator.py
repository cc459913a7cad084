from __future__ import annotations

import datetime as dt

from taskdeck.validation import validate_task, validate_task_update
from tests.helpers.clock import FixedClock


def test_valid_task_is_sanitized_with_defaults() -> None:
    result = validate_task({"title": "  Buy milk  "}, clock=FixedClock())

    assert result.is_valid
    assert result.errors == []
    assert result.sanitized_data == {
        "title": "Buy milk",
        "description": "",
        "priority": "medium",
        "due_date": None,
    }


def test_accepts_camel_case_keys_and_iso_dates() -> None:
    result = validate_task(
        {"title": "Plan", "priority": "HIGH", "dueDate": "2024-01-01"}, clock=FixedClock()
    )

    assert result.is_valid
    assert result.sanitized_data["priority"] == "high"
    assert result.sanitized_data["due_date"] == dt.date(2024, 1, 1)


def test_collects_every_error_in_field_order() -> None:
    result = validate_task(
        {
            "title": "",
            "description": "d" * 501,
            "priority": "urgent",
            "due_date": "not-a-date",
        },
        clock=FixedClock(),
    )

    assert not result.is_valid
    assert result.errors == [
        "Title is required",
        "Description must be 500 characters or less",
        "Priority must be one of: high, medium, low",
        "Due date must be a valid date",
    ]


def test_title_length_limit() -> None:
    assert validate_task({"title": "t" * 100}, clock=FixedClock()).is_valid
    result = validate_task({"title": "t" * 101}, clock=FixedClock())
    assert result.errors == ["Title must be 100 characters or less"]


def test_due_date_in_the_past_is_rejected_but_today_is_fine() -> None:
    clock = FixedClock()
    assert validate_task({"title": "x", "dueDate": clock.today()}, clock=clock).is_valid
    result = validate_task({"title": "x", "dueDate": "2023-11-30"}, clock=clock)
    assert result.errors == ["Due date cannot be in the past"]


def test_update_only_checks_present_fields() -> None:
    result = validate_task_update({"priority": "low"}, clock=FixedClock())

    assert result.is_valid
    assert result.sanitized_data == {"priority": "low"}


def test_update_ignores_unknown_keys_and_allows_clearing_due_date() -> None:
    result = validate_task_update({"dueDate": None, "completed": True}, clock=FixedClock())

    assert result.is_valid
    assert result.sanitized_data == {"due_date": None}


def test_update_rejects_invalid_values() -> None:
    result = validate_task_update({"title": "   ", "priority": "invalid"}, clock=FixedClock())

    assert not result.is_valid
    assert result.errors == ["Title is required", "Priority must be one of: high, medium, low"]
