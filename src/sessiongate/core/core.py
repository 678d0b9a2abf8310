from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING, cast

from sessiongate.config import Config
from sessiongate.core.locks import KeyedLock
from sessiongate.core.modules.user.store import UserStore, create_user_store
from sessiongate.utils import now

if TYPE_CHECKING:
    from sessiongate.core.modules.access.service import AccessService
    from sessiongate.core.modules.session.service import SessionService
    from sessiongate.core.modules.user.service import UserService


class Service:
    """Base class for services with direct access to the user store."""

    def __init__(self, store: UserStore) -> None:
        self.store = store
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    user: UserService
    session: SessionService
    access: AccessService

    def __init__(self, store: UserStore) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        # Order matters for initialization - user must be first
        service_configs = [
            ("user", "sessiongate.core.modules.user.service", "UserService"),
            ("session", "sessiongate.core.modules.session.service", "SessionService"),
            ("access", "sessiongate.core.modules.access.service", "AccessService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(store)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, the user store, the clock, per-user locks, and all service instances."""

    config: Config
    store: UserStore
    clock: Callable[[], datetime]
    locks: KeyedLock
    services: Services

    def __init__(self, config: Config, store: UserStore | None = None, clock: Callable[[], datetime] = now) -> None:
        """Initialize core with config and a user store, and auto-register services."""
        self.config = config
        self.store = store if store is not None else create_user_store(config.database_url)
        self.clock = clock
        self.locks = KeyedLock()  # per-user critical sections for record writes
        self.services = Services(self.store)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Prepare the store, then start all services."""
        await self.store.on_start()
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close the store on shutdown."""
        await self.services.stop_all()
        await self.store.close()
