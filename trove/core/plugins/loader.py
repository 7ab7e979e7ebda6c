"""Plugin discovery: turns source identifiers into plugin objects."""

import importlib
import importlib.util
import re
import sys
import traceback
from collections.abc import Awaitable, Callable
from pathlib import Path
from types import ModuleType
from typing import Any

import yaml
from pydantic import ValidationError

from trove.core.plugins.interface import Plugin, PluginBase, PluginConfig
from trove.utils.logging_config import get_logger

logger = get_logger(__name__)

PLUGIN_CONFIG_FILE = "plugin.yaml"


def _module_name_for(path: Path) -> str:
    stem = path.name if path.is_dir() else path.stem
    return "trove_plugin_" + re.sub(r"\W", "_", stem)


def _import_path(module_name: str, path: Path, package: bool = False) -> ModuleType:
    """Import a module (or a package's ``__init__.py``) from a file path."""
    spec = importlib.util.spec_from_file_location(
        module_name,
        path,
        submodule_search_locations=[str(path.parent)] if package else None,
    )
    if not spec or not spec.loader:
        raise ImportError(f"Could not load plugin spec for {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        raise
    return module


class PluginLoader:
    """Discovers plugins from source identifiers and hands them to a callback.

    A source is a dotted module path, a ``*.py`` file, a plugin directory
    holding ``plugin.yaml``, or a directory of such sources. Problems with a
    source are logged and the source is skipped.
    """

    def __init__(
        self,
        load_plugin: Callable[[Plugin], Awaitable[None]],
        plugin_options: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self._load_plugin = load_plugin
        self.plugin_options = plugin_options or {}

    async def load_from_sources(self, sources: list[str]) -> None:
        for source in sources:
            await self.load_from_source(source)

    async def load_from_source(self, source: str) -> None:
        logger.debug("Processing plugin source", extra={"source": source})
        try:
            path = Path(source)
            if source.endswith(".py") or "/" in source or "\\" in source or path.exists():
                await self._load_from_path(path)
            else:
                module = importlib.import_module(source)
                await self._load_from_module(module, source)
        except Exception as e:
            logger.error(
                "Failed to process plugin source",
                extra={
                    "source": source,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "traceback": traceback.format_exc(),
                },
            )

    async def _load_from_path(self, path: Path) -> None:
        if not path.exists():
            logger.warning("Plugin source not found", extra={"source": str(path)})
            return

        if path.is_file():
            if path.suffix != ".py":
                logger.warning("Plugin source is not a Python file", extra={"source": str(path)})
                return
            module = _import_path(_module_name_for(path), path)
            await self._load_from_module(module, str(path))
            return

        if (path / PLUGIN_CONFIG_FILE).exists():
            await self._load_plugin_dir(path)
            return

        logger.info("Loading plugins from directory", extra={"plugin_dir": str(path)})
        for child in sorted(path.iterdir()):
            if child.is_dir() and (child / PLUGIN_CONFIG_FILE).exists():
                await self.load_from_source(str(child))
            elif child.is_file() and child.suffix == ".py" and not child.name.startswith("_"):
                await self.load_from_source(str(child))

    async def _load_plugin_dir(self, plugin_dir: Path) -> None:
        config_file = plugin_dir / PLUGIN_CONFIG_FILE
        with open(config_file) as f:
            try:
                config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.error(
                    "Failed to parse plugin config YAML",
                    extra={"config_file": str(config_file), "error": str(e)},
                )
                return

        try:
            config = PluginConfig(**config_data)
        except (TypeError, ValidationError) as e:
            logger.error(
                "Failed to validate plugin config",
                extra={"config_file": str(config_file), "error": str(e)},
            )
            return

        if not config.enabled:
            logger.info(
                "Plugin is disabled, skipping",
                extra={"plugin_name": config.name, "plugin_version": config.version},
            )
            return

        options = self.plugin_options.get(config.name)
        if options:
            config.config = {**(config.config or {}), **options}

        init_file = plugin_dir / "__init__.py"
        module_file = plugin_dir / "plugin.py"
        if init_file.exists():
            module = _import_path(_module_name_for(plugin_dir), init_file, package=True)
        elif module_file.exists():
            module = _import_path(_module_name_for(plugin_dir), module_file)
        else:
            logger.error(
                "Plugin module not found",
                extra={"plugin_name": config.name, "plugin_dir": str(plugin_dir)},
            )
            return

        plugin_class = None
        for attr_name in dir(module):
            attr_value = getattr(module, attr_name)
            if (
                attr_name.endswith("Plugin")
                and isinstance(attr_value, type)
                and issubclass(attr_value, PluginBase)
                and attr_value is not PluginBase
            ):
                plugin_class = attr_value
                break

        if plugin_class is None:
            logger.error(
                "No plugin class found in module",
                extra={"plugin_name": config.name, "plugin_module": module.__name__},
            )
            return

        await self._register(plugin_class(config), str(plugin_dir))

    async def _load_from_module(self, module: ModuleType, source: str) -> None:
        factory = getattr(module, "create_plugin", None)
        if callable(factory):
            plugin = factory()
        else:
            plugin = getattr(module, "plugin", None)

        if plugin is None:
            logger.warning(
                "Skipping source: no create_plugin() or plugin attribute",
                extra={"source": source},
            )
            return

        if isinstance(plugin, PluginBase):
            options = self.plugin_options.get(plugin.name)
            if options:
                plugin.config.config = {**(plugin.config.config or {}), **options}

        await self._register(plugin, source)

    async def _register(self, plugin: Any, source: str) -> None:
        name = getattr(plugin, "name", None)
        version = getattr(plugin, "version", None)
        if not name or not version or not hasattr(plugin, "capabilities"):
            logger.warning(
                "Skipping source: invalid plugin structure",
                extra={"source": source, "plugin_type": type(plugin).__name__},
            )
            return

        try:
            await self._load_plugin(plugin)
            logger.info(
                "Plugin loaded successfully",
                extra={"plugin_name": name, "plugin_version": version, "source": source},
            )
        except Exception as e:
            logger.error(
                "Error loading plugin",
                extra={
                    "plugin_name": name,
                    "source": source,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
