from __future__ import annotations

import datetime as _dt
import uuid
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel


class User(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: f"user_{uuid.uuid4().hex}")
    username: str
    email: str
    full_name: str = ""
    created_at: _dt.datetime = Field(default_factory=lambda: _dt.datetime.now(_dt.UTC))
    # Only set on the payload handed to UserRepository.create; never serialized
    password: SecretStr | None = Field(default=None, exclude=True)


class UserRepository(Protocol):
    """Account store the auth session talks to. Both calls may raise on backend failure."""

    async def authenticate(self, username: str, password: str) -> User | None:
        """Return the matching user, or None when the credentials do not match."""

    async def create(self, user: User) -> User:
        """Persist a new account from ``user`` (credential in ``user.password``)."""


__all__ = ["User", "UserRepository"]
