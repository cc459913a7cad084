from __future__ import annotations

from . import names
from .bus import EventBus, Listener, Unsubscribe

__all__ = ["EventBus", "Listener", "Unsubscribe", "names"]
