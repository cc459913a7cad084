from __future__ import annotations

from collections.abc import Iterable


class TaskdeckError(Exception):
    """Base class for every error raised by the task engine."""


class ValidationError(TaskdeckError, ValueError):
    """A field value was rejected. Carries the ordered list of messages."""

    def __init__(self, errors: str | Iterable[str], field: str | None = None) -> None:
        self.errors: list[str] = [errors] if isinstance(errors, str) else list(errors)
        self.field = field
        super().__init__("Validation failed: " + ", ".join(self.errors))


class VariantValidationError(ValidationError):
    """Variant-specific structural check failed after core validation passed."""


class TaskNotFound(TaskdeckError, LookupError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class DuplicateTask(TaskdeckError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task already exists: {task_id}")


class UnknownTaskType(TaskdeckError, ValueError):
    def __init__(self, task_type: str) -> None:
        self.task_type = task_type
        super().__init__(f"Unknown task type: {task_type}")


class StorageError(TaskdeckError):
    """Persistence-layer failure."""


class StorageUnavailable(StorageError):
    pass


class QuotaExceeded(StorageError):
    pass


class SerializationError(StorageError):
    pass


class InvalidBackupFormat(StorageError):
    pass


class AuthenticationFailed(TaskdeckError):
    pass


__all__ = [
    "AuthenticationFailed",
    "DuplicateTask",
    "InvalidBackupFormat",
    "QuotaExceeded",
    "SerializationError",
    "StorageError",
    "StorageUnavailable",
    "TaskNotFound",
    "TaskdeckError",
    "UnknownTaskType",
    "ValidationError",
    "VariantValidationError",
]
