from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType

from taskdeck.clock import SYSTEM_CLOCK, Clock
from taskdeck.config import AppConfig, load_config
from taskdeck.events import EventBus
from taskdeck.factory import TaskFactory
from taskdeck.models import TaskFilter
from taskdeck.observability import get_json_logger
from taskdeck.repository import TaskRepository
from taskdeck.service import TaskController, TaskService
from taskdeck.storage import (
    FileKeyValueStore,
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    StorageService,
)


def build_store(config: AppConfig) -> KeyValueStore:
    if config.storage_backend == "memory":
        return InMemoryKeyValueStore(max_bytes=config.max_storage_bytes)
    if config.storage_backend == "redis":
        return RedisKeyValueStore(url=config.redis_url, key_prefix=config.key_prefix)
    return FileKeyValueStore(config.data_dir)


@dataclass(slots=True)
class App:
    config: AppConfig
    bus: EventBus
    storage: StorageService
    repository: TaskRepository
    service: TaskService
    controller: TaskController

    async def start(self) -> None:
        await self.service.initialize()
        self.controller.start()

    async def stop(self) -> None:
        self.controller.stop()
        try:
            await self.service.shutdown()
        finally:
            await self.bus.drain()

    async def __aenter__(self) -> App:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()


def build_app(
    config: AppConfig | None = None,
    *,
    store: KeyValueStore | None = None,
    clock: Clock | None = None,
    bus: EventBus | None = None,
) -> App:
    """Wire storage, repository, service and controller around one bus and clock."""
    cfg = config or load_config()
    clock = clock or SYSTEM_CLOCK
    bus = bus or EventBus()
    storage = StorageService(
        store if store is not None else build_store(cfg),
        cfg.storage_key,
        max_bytes=cfg.max_storage_bytes,
        clock=clock,
    )
    repository = TaskRepository(storage, bus, clock=clock, auto_save_delay=cfg.auto_save_delay)
    service = TaskService(repository, bus, factory=TaskFactory(clock=clock))
    controller = TaskController(
        service, bus, initial_filter=TaskFilter(sort_by=cfg.default_sort)
    )
    get_json_logger("taskdeck.app").debug(
        "app built",
        extra={
            "event": "app_built",
            "storage_key": cfg.storage_key,
            "attributes": {"backend": cfg.storage_backend},
        },
    )
    return App(
        config=cfg,
        bus=bus,
        storage=storage,
        repository=repository,
        service=service,
        controller=controller,
    )


__all__ = ["App", "build_app", "build_store"]
