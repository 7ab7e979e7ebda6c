"""In-memory storage plugin."""

from .plugin import MemoryStoragePlugin


def create_plugin() -> MemoryStoragePlugin:
    return MemoryStoragePlugin()


__all__ = ["MemoryStoragePlugin", "create_plugin"]
