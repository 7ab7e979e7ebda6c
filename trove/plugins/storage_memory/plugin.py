"""In-memory storage plugin providing all three storage roles."""

from trove.core.plugins.interface import PluginBase, PluginConfig
from trove.core.types import STORAGE_EVENTS, STORAGE_FILES, STORAGE_LINKS

from .event_storage import MemoryEventStorage
from .file_storage import MemoryFileStorage
from .link_storage import MemoryLinkStorage

PLUGIN_NAME = "memory-storage"
PLUGIN_VERSION = "1.0.0"


class MemoryStoragePlugin(PluginBase):
    """Reference storage backend that keeps everything in process memory.

    Offers no isolation between concurrent writers and loses all data when
    the process exits.
    """

    def __init__(self, config: PluginConfig | None = None) -> None:
        super().__init__(
            config
            or PluginConfig(
                name=PLUGIN_NAME,
                version=PLUGIN_VERSION,
                capabilities=[STORAGE_EVENTS, STORAGE_FILES, STORAGE_LINKS],
            )
        )
        self.event_storage = MemoryEventStorage()
        self.file_storage = MemoryFileStorage()
        self.link_storage = MemoryLinkStorage()

    async def _initialize(self) -> None:
        self.logger.debug(
            "Memory storage ready",
            extra={"plugin_name": self.name, "capabilities": sorted(self.capabilities)},
        )
