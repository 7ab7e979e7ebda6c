"""Core plugin system interfaces and implementation."""

from trove.core.plugins.interface import (
    EventStorage,
    FileStorage,
    LinkStorage,
    Plugin,
    PluginBase,
    PluginConfig,
)
from trove.core.plugins.loader import PluginLoader
from trove.core.plugins.manager import LifecycleResult, PluginSystem

__all__ = [
    "EventStorage",
    "FileStorage",
    "LifecycleResult",
    "LinkStorage",
    "Plugin",
    "PluginBase",
    "PluginConfig",
    "PluginLoader",
    "PluginSystem",
]
