from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from spacehub.config import Config

if TYPE_CHECKING:
    from spacehub.core.modules.access.service import AccessService
    from spacehub.core.modules.lesson.service import LessonService
    from spacehub.core.modules.message.service import MessageService
    from spacehub.core.modules.note.service import NoteService
    from spacehub.core.modules.otp.service import OtpService
    from spacehub.core.modules.session.service import SessionService
    from spacehub.core.modules.space.service import SpaceService
    from spacehub.core.modules.user.service import UserService


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
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
        self._core = core


class Services:
    """Service registry that imports and initializes every service module."""

    user: UserService
    otp: OtpService
    session: SessionService
    space: SpaceService
    access: AccessService
    message: MessageService
    note: NoteService
    lesson: LessonService

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._services: list[Service] = []
        self._database = database

        # (attribute_name, module_path, class_name); start order follows this list
        service_configs = [
            ("user", "spacehub.core.modules.user.service", "UserService"),
            ("otp", "spacehub.core.modules.otp.service", "OtpService"),
            ("session", "spacehub.core.modules.session.service", "SessionService"),
            ("space", "spacehub.core.modules.space.service", "SpaceService"),
            ("access", "spacehub.core.modules.access.service", "AccessService"),
            ("message", "spacehub.core.modules.message.service", "MessageService"),
            ("note", "spacehub.core.modules.note.service", "NoteService"),
            ("lesson", "spacehub.core.modules.lesson.service", "LessonService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, database, and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]] | None
    database: AsyncDatabase[dict[str, Any]]
    services: Services

    def __init__(self, config: Config, database: AsyncDatabase[dict[str, Any]] | None = None) -> None:
        """Initialize core with config and MongoDB (or a pre-built database handle)."""
        self.config = config
        if database is None:
            self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard", tz_aware=True)
            database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        else:
            self.mongo_client = None
        self.database = database
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close MongoDB connection on shutdown."""
        await self.services.stop_all()
        if self.mongo_client is not None:
            await self.mongo_client.aclose()
