from __future__ import annotations

from .models import User, UserRepository
from .session import AuthSession

__all__ = ["AuthSession", "User", "UserRepository"]
