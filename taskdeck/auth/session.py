from __future__ import annotations

import re

from pydantic import SecretStr

from taskdeck.clock import SYSTEM_CLOCK, Clock
from taskdeck.errors import AuthenticationFailed, ValidationError
from taskdeck.events import EventBus, names
from taskdeck.observability import clear_session_context, get_json_logger, set_session_context

from .models import User, UserRepository

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AuthSession:
    """Login, registration and logout against a ``UserRepository``.

    Outcomes are published on the bus (``auth:*``); failures are also raised.
    A successful login binds the username to the logging context until logout.
    """

    def __init__(self, users: UserRepository, bus: EventBus, *, clock: Clock | None = None) -> None:
        self._users = users
        self._bus = bus
        self._clock = clock or SYSTEM_CLOCK
        self._current_user: User | None = None
        self._logger = get_json_logger("taskdeck.auth")

    @property
    def current_user(self) -> User | None:
        return self._current_user

    @property
    def is_authenticated(self) -> bool:
        return self._current_user is not None

    async def login(self, username: str, password: str) -> User:
        username = (username or "").strip()
        try:
            if not username or not password:
                raise ValidationError("Please enter both username and password")
            user = await self._users.authenticate(username, password)
            if user is None:
                raise AuthenticationFailed("Invalid username or password")
        except Exception as exc:
            self._report(exc, "login", username)
            raise
        self._current_user = user
        set_session_context(user.username)
        self._logger.info("login succeeded", extra={"event": "auth_login", "user": user.username})
        self._bus.emit(names.AUTH_LOGIN_SUCCESS, user)
        return user

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str = "",
    ) -> User:
        username = (username or "").strip()
        email = (email or "").strip()
        try:
            self._check_registration(username, email, password, confirm_password)
            user = User(
                username=username,
                email=email,
                full_name=(full_name or "").strip(),
                created_at=self._clock.now(),
                password=SecretStr(password),
            )
            created = await self._users.create(user)
        except Exception as exc:
            self._report(exc, "register", username)
            raise
        self._logger.info(
            "registration succeeded", extra={"event": "auth_register", "user": created.username}
        )
        if created.password is not None:
            created = created.model_copy(update={"password": None})
        self._bus.emit(names.AUTH_REGISTRATION_SUCCESS, created)
        return created

    def logout(self) -> User | None:
        user = self._current_user
        if user is None:
            return None
        self._current_user = None
        clear_session_context()
        self._logger.info("logged out", extra={"event": "auth_logout", "user": user.username})
        self._bus.emit(names.AUTH_LOGOUT, user)
        return user

    @staticmethod
    def _check_registration(username: str, email: str, password: str, confirm: str) -> None:
        if not username or not email or not password:
            raise ValidationError("Please fill in all required fields")
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be at least {MIN_USERNAME_LENGTH} characters", "username"
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", "password"
            )
        if password != confirm:
            raise ValidationError("Passwords do not match", "confirm_password")
        if not _EMAIL_RE.match(email):
            raise ValidationError("Please enter a valid email address", "email")

    def _report(self, exc: Exception, operation: str, username: str) -> None:
        message = exc.errors[0] if isinstance(exc, ValidationError) else str(exc)
        self._logger.warning(
            "auth operation failed",
            extra={
                "event": "auth_error",
                "operation": operation,
                "attributes": {"username": username, "error_type": type(exc).__name__},
            },
        )
        self._bus.emit(names.AUTH_ERROR, message, operation)


__all__ = ["AuthSession", "MIN_PASSWORD_LENGTH", "MIN_USERNAME_LENGTH"]
