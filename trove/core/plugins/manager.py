"""Plugin registry and lifecycle management."""

from __future__ import annotations

import inspect
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from trove.core.errors import DuplicatePlugin
from trove.core.hooks import HookSystem
from trove.core.plugins.interface import Plugin
from trove.core.plugins.loader import PluginLoader
from trove.utils.logging_config import get_logger

if TYPE_CHECKING:
    from trove.core.trove import Trove

logger = get_logger(__name__)


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of a plugin ``initialize``/``shutdown`` call."""

    ok: bool
    error: BaseException | None = None


async def _run_lifecycle(plugin: Plugin, method: str, *args: Any) -> LifecycleResult:
    hook = getattr(plugin, method, None)
    if hook is None:
        return LifecycleResult(ok=True)
    try:
        result = hook(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        return LifecycleResult(ok=False, error=e)
    return LifecycleResult(ok=True)


class PluginSystem:
    """Registry of loaded plugins and owner of their hook bindings"""

    def __init__(
        self,
        core: Trove | None,
        hooks: HookSystem,
        plugin_options: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.core = core
        self.hooks = hooks
        self.plugin_options = plugin_options or {}
        self.plugins: dict[str, Plugin] = {}

    async def load_plugin(self, plugin: Plugin) -> None:
        """Register a plugin, bind its hooks and initialize it.

        Raises:
            DuplicatePlugin: If a plugin with the same name is already loaded
            Exception: Whatever the plugin's ``initialize`` raised; the plugin
                is unloaded before the error propagates
        """
        if plugin.name in self.plugins:
            logger.error("Plugin already registered", extra={"plugin_name": plugin.name})
            raise DuplicatePlugin(plugin.name)

        self.plugins[plugin.name] = plugin
        logger.info(
            "Loading plugin",
            extra={"plugin_name": plugin.name, "plugin_version": plugin.version},
        )

        for hook_name, handler in (getattr(plugin, "hooks", None) or {}).items():
            self.hooks.register_hook(plugin.name, hook_name, handler)

        result = await _run_lifecycle(plugin, "initialize", self.core)
        if not result.ok:
            logger.error(
                "Failed to initialize plugin",
                extra={
                    "plugin_name": plugin.name,
                    "error": str(result.error),
                    "error_type": type(result.error).__name__,
                },
            )
            await self.unload_plugin(plugin.name)
            raise result.error

        logger.debug("Initialized plugin", extra={"plugin_name": plugin.name})

    async def unload_plugin(self, name: str) -> None:
        """Shut a plugin down and forget it. Shutdown errors are logged, never raised."""
        plugin = self.plugins.get(name)
        if plugin is None:
            return

        result = await _run_lifecycle(plugin, "shutdown")
        if not result.ok:
            logger.error(
                "Error shutting down plugin",
                extra={
                    "plugin_name": name,
                    "error": str(result.error),
                    "error_type": type(result.error).__name__,
                },
            )

        self.hooks.unregister_plugin(name)
        del self.plugins[name]
        logger.info("Unloaded plugin", extra={"plugin_name": name})

    async def load_plugins(self, sources: Iterable[str]) -> None:
        """Load plugins from source identifiers; bad sources are skipped."""
        loader = PluginLoader(self.load_plugin, self.plugin_options)
        await loader.load_from_sources(list(sources))

    def get_plugin(
        self, name: str, required_capabilities: Iterable[str] | None = None
    ) -> Plugin | None:
        """Get a plugin by name, provided it has every required capability"""
        plugin = self.plugins.get(name)
        if plugin is None:
            logger.debug("Plugin not found", extra={"plugin_name": name})
            return None

        if required_capabilities:
            missing = set(required_capabilities) - set(plugin.capabilities)
            if missing:
                logger.debug(
                    "Plugin lacks required capabilities",
                    extra={"plugin_name": name, "missing_capabilities": sorted(missing)},
                )
                return None

        return plugin

    def get_all_plugins(self) -> list[Plugin]:
        return list(self.plugins.values())
