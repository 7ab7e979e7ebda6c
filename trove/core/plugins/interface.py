"""Plugin interfaces: the plugin entity, its config, and the storage roles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from trove.core.hooks import Hook, HookHandler
from trove.core.types import Event, EventFile, EventId, EventLink, EventQuery
from trove.utils.logging_config import get_logger

if TYPE_CHECKING:
    from trove.core.trove import Trove


@runtime_checkable
class EventStorage(Protocol):
    async def initialize(self, options: dict[str, Any]) -> None: ...

    async def save_event(self, event: Event) -> Event: ...

    async def get_event(self, event_id: EventId) -> Event | None: ...

    async def query_events(self, query: EventQuery) -> list[Event]: ...


@runtime_checkable
class FileStorage(Protocol):
    async def initialize(self, options: dict[str, Any]) -> None: ...

    async def save_file(self, file: EventFile) -> str: ...

    async def get_file(self, file_id: str) -> EventFile | None: ...

    async def get_file_data(self, file_id: str) -> bytes | str: ...


@runtime_checkable
class LinkStorage(Protocol):
    async def initialize(self, options: dict[str, Any]) -> None: ...

    async def save_link(self, event_id: EventId, link: EventLink) -> None: ...

    async def get_links(
        self, event_id: EventId, type: str | None = None
    ) -> list[EventLink]: ...


@runtime_checkable
class Plugin(Protocol):
    """Structural plugin contract.

    ``hooks``, ``initialize``, ``shutdown`` and the storage role attributes
    (``event_storage``, ``file_storage``, ``link_storage``) are optional and
    looked up with ``getattr``.
    """

    name: str
    version: str
    capabilities: frozenset[str] | set[str] | list[str]


class PluginConfig(BaseModel):
    """Plugin configuration, as read from ``plugin.yaml``"""

    name: str
    version: str
    enabled: bool = True
    capabilities: list[str] = Field(default_factory=list)
    config: dict[str, Any] | None = None


class PluginBase:
    """Base class for plugins.

    Subclasses set ``hooks`` and the storage role attributes they provide and
    override ``_initialize``/``_shutdown`` when they hold resources.
    """

    hooks: dict[str, HookHandler | Hook] = {}
    event_storage: EventStorage | None = None
    file_storage: FileStorage | None = None
    link_storage: LinkStorage | None = None

    def __init__(self, config: PluginConfig) -> None:
        self.config = config
        self.version = config.version
        self.capabilities = frozenset(config.capabilities)
        self.logger = get_logger(f"plugin.{config.name}")
        self.core: Trove | None = None
        self._initialized = False

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self, core: Trove) -> None:
        """Initialize the plugin"""
        if self._initialized:
            self.logger.debug("Plugin already initialized", extra={"plugin_name": self.name})
            return

        self.logger.info(
            "Initializing plugin",
            extra={"plugin_name": self.name, "plugin_version": self.version},
        )
        self.core = core
        await self._initialize()
        self._initialized = True

    async def shutdown(self) -> None:
        """Shutdown the plugin"""
        self.logger.info("Shutting down plugin", extra={"plugin_name": self.name})
        await self._shutdown()
        self._initialized = False
        self.core = None

    def get_config(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        if self.config.config is None:
            return default
        return self.config.config.get(key, default)

    async def _initialize(self) -> None:
        """Plugin-specific initialization"""

    async def _shutdown(self) -> None:
        """Plugin-specific shutdown"""
