from __future__ import annotations

from .builder import TaskBuilder
from .creators import (
    BasicTaskCreator,
    ProjectTaskCreator,
    RecurringTaskCreator,
    TaskCreator,
    UrgentTaskCreator,
    next_due_date,
)
from .factory import TaskFactory

__all__ = [
    "BasicTaskCreator",
    "ProjectTaskCreator",
    "RecurringTaskCreator",
    "TaskBuilder",
    "TaskCreator",
    "TaskFactory",
    "UrgentTaskCreator",
    "next_due_date",
]
