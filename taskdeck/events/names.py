"""Event names published and consumed on the EventBus.

Domain events are emitted by the repository and service, ``ui:*`` intents are
consumed by the controller, ``controller:*`` events are observed by presentation.
"""

from __future__ import annotations

# Domain
TASK_ADDED = "task:added"
TASK_UPDATED = "task:updated"
TASK_DELETED = "task:deleted"
TASK_COMPLETED = "task:completed"
TASK_UNCOMPLETED = "task:uncompleted"
TASKS_LOADED = "tasks:loaded"
TASKS_SAVED = "tasks:saved"
TASKS_FILTERED = "tasks:filtered"
TASKS_RESTORED = "tasks:restored"
TASKS_CLEARED = "tasks:cleared"
TASKS_COMPLETED_CLEARED = "tasks:completed-cleared"
STORAGE_ERROR = "storage:error"
VALIDATION_ERROR = "validation:error"
SERVICE_ERROR = "service:error"

# UI intents
UI_TASK_CREATE = "ui:task-create"
UI_TASK_UPDATE = "ui:task-update"
UI_TASK_DELETE = "ui:task-delete"
UI_TASK_TOGGLE = "ui:task-toggle"
UI_FILTER_CHANGE = "ui:filter-change"
UI_BACKUP_REQUEST = "ui:backup-request"
UI_RESTORE_REQUEST = "ui:restore-request"
UI_CLEAR_COMPLETED_REQUEST = "ui:clear-completed-request"

# Controller
CONTROLLER_TASK_CREATED = "controller:task-created"
CONTROLLER_TASK_UPDATED = "controller:task-updated"
CONTROLLER_TASK_DELETED = "controller:task-deleted"
CONTROLLER_TASK_TOGGLED = "controller:task-toggled"
CONTROLLER_BACKUP_READY = "controller:backup-ready"
CONTROLLER_RESTORE_COMPLETE = "controller:restore-complete"
CONTROLLER_COMPLETED_CLEARED = "controller:completed-cleared"
CONTROLLER_UI_REFRESH = "controller:ui-refresh"
CONTROLLER_ERROR = "controller:error"

# Auth
AUTH_LOGIN_SUCCESS = "auth:login-success"
AUTH_REGISTRATION_SUCCESS = "auth:registration-success"
AUTH_LOGOUT = "auth:logout"
AUTH_ERROR = "auth:error"
