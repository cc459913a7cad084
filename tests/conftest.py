from __future__ import annotations

import os
import time
from collections.abc import Callable, Generator
from typing import Any

import pytest

from taskdeck.events import EventBus
from taskdeck.observability import clear_session_context, reset_metrics
from taskdeck.repository import TaskRepository
from taskdeck.service import TaskController, TaskService
from taskdeck.storage import InMemoryKeyValueStore, StorageService
from tests.helpers.clock import FixedClock


def _redis_ping(url: str) -> bool:
    try:
        import redis

        r = redis.Redis.from_url(url)
        return bool(r.ping())
    except Exception:
        return False


def _wait_until(timeout_s: float, pause_s: float, check: Callable[[], bool]) -> bool:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        if check():
            return True
        time.sleep(pause_s)
    return False


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Provide a reachable Redis URL (REDIS_URL first, then localhost) or skip."""
    env_url = os.getenv("REDIS_URL")
    if env_url and _wait_until(3.0, 0.2, lambda: _redis_ping(env_url)):
        return env_url
    local_url = "redis://localhost:6379/0"
    if _redis_ping(local_url):
        return local_url
    pytest.skip("Redis not available; set REDIS_URL or start local Redis")


@pytest.fixture()
def unique_prefix() -> str:
    # millisecond prefix to avoid collisions
    return f"test:{int(time.time() * 1000)}"


@pytest.fixture(autouse=True)
def _fresh_observability() -> Generator[None, None, None]:
    reset_metrics()
    clear_session_context()
    yield
    clear_session_context()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def events(bus: EventBus) -> Callable[..., list[tuple[Any, ...]]]:
    """Record payloads of the given event names: ``seen = events("task:added")``."""

    def _record(*event_names: str) -> list[tuple[Any, ...]]:
        seen: list[tuple[Any, ...]] = []
        for name in event_names:
            bus.on(name, lambda *args, _n=name: seen.append((_n, *args)))
        return seen

    return _record


@pytest.fixture()
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def storage(kv_store: InMemoryKeyValueStore, clock: FixedClock) -> StorageService:
    return StorageService(kv_store, "tasks_test", clock=clock)


@pytest.fixture()
def repository(storage: StorageService, bus: EventBus, clock: FixedClock) -> TaskRepository:
    return TaskRepository(storage, bus, clock=clock, auto_save_delay=0.05)


@pytest.fixture()
def service(repository: TaskRepository, bus: EventBus) -> TaskService:
    return TaskService(repository, bus)


@pytest.fixture()
def controller(service: TaskService, bus: EventBus) -> Generator[TaskController, None, None]:
    ctl = TaskController(service, bus)
    ctl.start()
    yield ctl
    ctl.stop()
