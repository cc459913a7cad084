from __future__ import annotations

from .controller import TaskController
from .task_service import TaskService

__all__ = ["TaskController", "TaskService"]
