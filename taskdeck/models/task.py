from __future__ import annotations

import datetime as _dt
import uuid
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticSerializationError

from taskdeck.clock import SYSTEM_CLOCK, Clock
from taskdeck.errors import SerializationError, ValidationError
from taskdeck.validation.rules import (
    DEFAULT_PRIORITY,
    UPDATABLE_FIELDS,
    Priority,
    check_description,
    check_due_date,
    check_priority,
    check_title,
    normalize_keys,
)

RecurrencePattern = Literal["daily", "weekly", "monthly", "yearly"]
RECURRENCE_PATTERNS: tuple[RecurrencePattern, ...] = ("daily", "weekly", "monthly", "yearly")

# Extra flat attributes carried by each built-in variant; a record only includes
# the attributes of its own type.
VARIANT_FIELDS: dict[str, tuple[str, ...]] = {
    "basic": (),
    "urgent": ("is_urgent", "escalation_level"),
    "recurring": (
        "recurrence_pattern",
        "recurrence_interval",
        "max_occurrences",
        "current_occurrence",
        "next_due_date",
    ),
    "project": (
        "project_name",
        "milestone",
        "estimated_hours",
        "dependencies",
        "actual_hours",
        "progress",
    ),
}
_ALL_VARIANT_FIELDS = frozenset(name for names in VARIANT_FIELDS.values() for name in names)


def new_task_id() -> str:
    return f"task_{uuid.uuid4().hex}"


class Task(BaseModel):
    """A tracked unit of work.

    One flat record for every variant: the ``type`` tag says which of the variant
    attributes are meaningful. Mutate through the ``set_*``/``mark_*``/``update``
    methods so rules are checked and ``updated_at`` is touched.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str = Field(default_factory=new_task_id)
    title: str
    description: str = ""
    priority: Priority = DEFAULT_PRIORITY
    due_date: _dt.date | None = None
    completed: bool = False
    created_at: _dt.datetime = Field(default_factory=lambda: _dt.datetime.now(_dt.UTC))
    updated_at: _dt.datetime = Field(default_factory=lambda: _dt.datetime.now(_dt.UTC))
    completed_at: _dt.datetime | None = None
    type: str = "basic"
    category: str = "general"
    metadata: dict[str, Any] = Field(default_factory=dict)

    # urgent
    is_urgent: bool | None = None
    escalation_level: int | None = None

    # recurring
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_interval: int | None = None
    max_occurrences: int | None = None
    current_occurrence: int | None = None
    next_due_date: _dt.date | None = None

    # project
    project_name: str | None = None
    milestone: str | None = None
    estimated_hours: float | None = None
    dependencies: list[str] | None = None
    actual_hours: float | None = None
    progress: int | None = Field(default=None, ge=0, le=100)

    _clock: Clock = PrivateAttr(default=SYSTEM_CLOCK)

    @classmethod
    def create(
        cls,
        title: str,
        description: str = "",
        priority: str = DEFAULT_PRIORITY,
        due_date: _dt.date | str | None = None,
        *,
        clock: Clock | None = None,
        **fields: Any,
    ) -> Task:
        """Build a new task, checking the core field rules.

        Raises ValidationError listing every rejected field.
        """
        clock = clock or SYSTEM_CLOCK
        errors: list[str] = []
        clean_title, err = check_title(title)
        if err:
            errors.append(err)
        clean_description, err = check_description(description)
        if err:
            errors.append(err)
        clean_priority, err = check_priority(priority, default=DEFAULT_PRIORITY)
        if err:
            errors.append(err)
        clean_due, err = check_due_date(due_date, today=clock.today())
        if err:
            errors.append(err)
        if errors:
            raise ValidationError(errors)

        now = clock.now()
        task = cls(
            title=clean_title,
            description=clean_description,
            priority=clean_priority,
            due_date=clean_due,
            created_at=now,
            updated_at=now,
            **fields,
        )
        task._clock = clock
        return task

    def bind_clock(self, clock: Clock) -> Task:
        self._clock = clock
        return self

    # ----------------------------
    # Validated setters
    # ----------------------------
    def set_title(self, value: str) -> None:
        title, err = check_title(value)
        if err:
            raise ValidationError(err, "title")
        self.title = title
        self._touch()

    def set_description(self, value: str | None) -> None:
        description, err = check_description(value)
        if err:
            raise ValidationError(err, "description")
        self.description = description
        self._touch()

    def set_priority(self, value: str) -> None:
        priority, err = check_priority(value)
        if err:
            raise ValidationError(err, "priority")
        self.priority = priority
        self._touch()

    def set_due_date(self, value: _dt.date | str | None) -> None:
        due, err = check_due_date(value, today=self._clock.today())
        if err:
            raise ValidationError(err, "due_date")
        self.due_date = due
        self._touch()

    # ----------------------------
    # Completion
    # ----------------------------
    def mark_complete(self) -> None:
        if self.completed:
            return
        self.completed = True
        self.completed_at = self._clock.now()
        self._touch()

    def mark_incomplete(self) -> None:
        if not self.completed:
            return
        self.completed = False
        self.completed_at = None
        self._touch()

    def toggle_complete(self) -> None:
        if self.completed:
            self.mark_incomplete()
        else:
            self.mark_complete()

    def is_overdue(self, today: _dt.date | None = None) -> bool:
        if self.due_date is None or self.completed:
            return False
        return self.due_date < (today or self._clock.today())

    def update(self, partial: Mapping[str, Any]) -> None:
        """Apply the updatable fields present in ``partial``.

        Every value is checked before any is applied, so a rejected update leaves
        the task untouched.
        """
        raw = normalize_keys(partial)
        today = self._clock.today()
        errors: list[str] = []
        changes: dict[str, Any] = {}
        for name in UPDATABLE_FIELDS:
            if name not in raw:
                continue
            value = raw[name]
            if name == "title":
                clean, err = check_title(value)
            elif name == "description":
                clean, err = check_description(value)
            elif name == "priority":
                clean, err = check_priority(value)
            else:
                clean, err = check_due_date(value, today=today)
            if err:
                errors.append(err)
            else:
                changes[name] = clean
        if errors:
            raise ValidationError(errors)
        if not changes:
            return
        for name, value in changes.items():
            setattr(self, name, value)
        self._touch()

    # ----------------------------
    # Metadata
    # ----------------------------
    def set_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value
        self._touch()

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    # ----------------------------
    # Persistence
    # ----------------------------
    def to_record(self) -> dict[str, Any]:
        """Flat JSON-compatible record with camelCase keys."""
        try:
            record = self.model_dump(mode="json", by_alias=True)
        except PydanticSerializationError as exc:
            raise SerializationError(f"task {self.id} is not serializable: {exc}") from exc
        own = set(VARIANT_FIELDS.get(self.type, ()))
        for name in _ALL_VARIANT_FIELDS - own:
            record.pop(to_camel(name), None)
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any], *, clock: Clock | None = None) -> Task:
        """Rebuild a task from ``to_record`` output. Raises SerializationError if malformed.

        Past due dates are accepted here: a stored task may have become overdue.
        """
        if not isinstance(record, Mapping):
            raise SerializationError(f"task record must be an object, got {type(record).__name__}")
        try:
            task = cls.model_validate(dict(record))
        except PydanticValidationError as exc:
            raise SerializationError(f"invalid task record: {exc}") from exc
        if not task.title.strip():
            raise SerializationError("invalid task record: empty title")
        # Records written by older clients may carry naive timestamps; treat them as UTC
        for name in ("created_at", "updated_at", "completed_at"):
            value = getattr(task, name)
            if value is not None and value.tzinfo is None:
                setattr(task, name, value.replace(tzinfo=_dt.UTC))
        if task.completed and task.completed_at is None:
            task.completed_at = task.updated_at
        elif not task.completed:
            task.completed_at = None
        if clock is not None:
            task._clock = clock
        return task

    def _touch(self) -> None:
        now = self._clock.now()
        if now > self.updated_at:
            self.updated_at = now


__all__ = [
    "RECURRENCE_PATTERNS",
    "RecurrencePattern",
    "Task",
    "VARIANT_FIELDS",
    "new_task_id",
]
