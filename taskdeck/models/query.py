from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskdeck.validation.rules import normalize_keys

StatusFilter = Literal["all", "completed", "incomplete"]
PriorityFilter = Literal["all", "high", "medium", "low"]
SortKey = Literal["priority", "dueDate", "created", "updated", "title"]

SORT_KEYS: tuple[SortKey, ...] = ("priority", "dueDate", "created", "updated", "title")


class TaskFilter(BaseModel):
    """Query applied by the repository: status, priority, search, overdue, then sort."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    status: StatusFilter = "all"
    priority: PriorityFilter = "all"
    search: str = ""
    overdue: bool = False
    sort_by: SortKey = "priority"

    @field_validator("search", mode="before")
    @classmethod
    def _strip_search(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("sort_by", mode="before")
    @classmethod
    def _normalize_sort(cls, value: Any) -> Any:
        if value == "due_date":
            return "dueDate"
        return value

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> TaskFilter:
        return cls.model_validate(normalize_keys(data or {}))

    def merged(self, partial: Mapping[str, Any] | None) -> TaskFilter:
        """Return a new filter with the fields of ``partial`` overwriting this one's."""
        current = self.model_dump()
        current.update(normalize_keys(partial or {}))
        return TaskFilter.model_validate(current)


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    incomplete: int = 0
    overdue: int = 0
    by_priority: dict[str, int] = Field(
        default_factory=lambda: {"high": 0, "medium": 0, "low": 0}
    )


__all__ = [
    "PriorityFilter",
    "SORT_KEYS",
    "SortKey",
    "StatusFilter",
    "TaskFilter",
    "TaskStats",
]
