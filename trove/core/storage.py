"""Capability-gated delegation of persistence to storage plugins."""

from typing import Any

from trove.core.errors import (
    ConfigurationError,
    MissingEventStorageConfig,
    PluginResolutionFailed,
)
from trove.core.plugins.interface import EventStorage, FileStorage, LinkStorage
from trove.core.plugins.manager import PluginSystem
from trove.core.types import (
    STORAGE_EVENTS,
    STORAGE_FILES,
    STORAGE_LINKS,
    USE_EVENT_STORAGE,
    Event,
    EventFile,
    EventId,
    EventQuery,
    StorageConfig,
    StoragePluginConfig,
)
from trove.utils.logging_config import get_logger

logger = get_logger(__name__)

# capability -> (plugin attribute holding the role implementation, role protocol)
_ROLES: dict[str, tuple[str, type]] = {
    STORAGE_EVENTS: ("event_storage", EventStorage),
    STORAGE_FILES: ("file_storage", FileStorage),
    STORAGE_LINKS: ("link_storage", LinkStorage),
}


class StorageManager:
    """Resolves storage roles to plugins and runs the multi-store protocol.

    Files are written before the event record and links after it. Nothing
    is compensated when a later write fails.
    """

    def __init__(self, plugins: PluginSystem) -> None:
        self.plugins = plugins
        self.event_storage: EventStorage | None = None
        self.file_storage: FileStorage | None = None
        self.link_storage: LinkStorage | None = None

    async def initialize(self, config: StorageConfig) -> None:
        self.event_storage = None
        self.file_storage = None
        self.link_storage = None

        if config.events is None:
            logger.error("Event storage configuration is missing")
            raise MissingEventStorageConfig()

        self.event_storage = await self._resolve(config.events, STORAGE_EVENTS)

        if config.files is not None:
            self.file_storage = await self._resolve(config.files, STORAGE_FILES)

        if config.links is not None and config.links != USE_EVENT_STORAGE:
            self.link_storage = await self._resolve(config.links, STORAGE_LINKS)

        logger.info(
            "Storage initialized",
            extra={
                "event_plugin": config.events.plugin,
                "file_plugin": config.files.plugin if config.files else None,
                "link_plugin": (
                    config.links.plugin
                    if isinstance(config.links, StoragePluginConfig)
                    else config.links
                ),
            },
        )

    async def _resolve(self, entry: StoragePluginConfig, capability: str) -> Any:
        plugin = self.plugins.get_plugin(entry.plugin, [capability])
        role = None
        if plugin is not None:
            attr, protocol = _ROLES[capability]
            role = getattr(plugin, attr, None)
            # Plugins may implement a role directly instead of composing it
            if role is None and isinstance(plugin, protocol):
                role = plugin

        if role is None:
            logger.error(
                "Storage plugin could not be resolved",
                extra={"plugin_name": entry.plugin, "capability": capability},
            )
            raise PluginResolutionFailed(entry.plugin, [capability])

        await role.initialize(entry.options)
        logger.debug(
            "Storage role initialized",
            extra={"plugin_name": entry.plugin, "capability": capability},
        )
        return role

    def _require_events(self) -> EventStorage:
        if self.event_storage is None:
            raise ConfigurationError("Storage has not been initialized")
        return self.event_storage

    async def save_event(self, event: Event) -> Event:
        event_storage = self._require_events()
        try:
            if self.file_storage is not None and event.files:
                for file in event.files:
                    if not file.id:
                        file.id = await self.file_storage.save_file(file)

            saved = await event_storage.save_event(event)

            if self.link_storage is not None and event.links:
                for link in event.links:
                    await self.link_storage.save_link(event.id, link)

            return saved
        except Exception as e:
            logger.error(
                "Error saving event",
                extra={"event_id": event.id.id, "error": str(e), "error_type": type(e).__name__},
            )
            raise

    async def get_event(self, event_id: EventId) -> Event | None:
        event_storage = self._require_events()
        try:
            event = await event_storage.get_event(event_id)
            if event is None:
                return None

            # Link storage is authoritative over links embedded at save time
            if self.link_storage is not None:
                event.links = await self.link_storage.get_links(event_id)

            return event
        except Exception as e:
            logger.error(
                "Error getting event",
                extra={"event_id": event_id.id, "error": str(e), "error_type": type(e).__name__},
            )
            raise

    async def query_events(self, query: EventQuery) -> list[Event]:
        event_storage = self._require_events()
        try:
            return await event_storage.query_events(query)
        except Exception as e:
            logger.error(
                "Error querying events",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise

    def _require_files(self) -> FileStorage:
        if self.file_storage is None:
            raise ConfigurationError("No file storage is configured")
        return self.file_storage

    async def get_file(self, file_id: str) -> EventFile | None:
        file_storage = self._require_files()
        try:
            return await file_storage.get_file(file_id)
        except Exception as e:
            logger.error(
                "Error getting file",
                extra={"file_id": file_id, "error": str(e), "error_type": type(e).__name__},
            )
            raise

    async def get_file_data(self, file_id: str) -> bytes | str:
        file_storage = self._require_files()
        try:
            return await file_storage.get_file_data(file_id)
        except Exception as e:
            logger.error(
                "Error getting file data",
                extra={"file_id": file_id, "error": str(e), "error_type": type(e).__name__},
            )
            raise
