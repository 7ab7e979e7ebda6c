"""Common test fixtures and configuration."""

from unittest.mock import AsyncMock

import pytest

from trove.core import CoreConfig, Trove
from trove.core.types import StorageConfig, StoragePluginConfig
from trove.plugins.storage_memory import MemoryStoragePlugin

MEMORY_PLUGIN = "memory-storage"

PERSON_SCHEMA = {
    "$id": "https://example.com/person.json",
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer", "minimum": 0},
    },
    "required": ["name"],
}


class StubPlugin:
    """Structural plugin double with mocked lifecycle methods."""

    def __init__(self, name="stub", capabilities=(), hooks=None, version="1.0.0"):
        self.name = name
        self.version = version
        self.capabilities = frozenset(capabilities)
        self.hooks = hooks or {}
        self.initialize = AsyncMock()
        self.shutdown = AsyncMock()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the tests"""
    for name in ("API_KEY", "TROVE_CONFIG", "LOG_LEVEL", "LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def person_schema():
    return dict(PERSON_SCHEMA)


@pytest.fixture
def memory_config():
    storage = StoragePluginConfig(plugin=MEMORY_PLUGIN)
    return CoreConfig(storage=StorageConfig(events=storage, files=storage, links=storage))


@pytest.fixture
async def core(memory_config):
    trove = Trove(memory_config)
    await trove.register_plugin(MemoryStoragePlugin())
    await trove.initialize()
    yield trove
    await trove.shutdown()


@pytest.fixture
def plugin_dir_factory(tmp_path):
    """Write a plugin directory holding plugin.yaml and plugin.py"""

    def make(name: str, enabled: bool = True, class_name: str = "GreeterPlugin"):
        plugin_dir = tmp_path / name
        plugin_dir.mkdir()
        (plugin_dir / "plugin.yaml").write_text(
            f"name: {name}\n"
            "version: 1.2.0\n"
            f"enabled: {'true' if enabled else 'false'}\n"
            "capabilities: [greeting]\n"
            "config:\n"
            "  greeting: hello\n"
        )
        (plugin_dir / "plugin.py").write_text(
            "from trove.core.plugins import PluginBase\n"
            "\n"
            "\n"
            f"class {class_name}(PluginBase):\n"
            "    async def _initialize(self):\n"
            "        self.greeting = self.get_config('greeting')\n"
        )
        return plugin_dir

    return make


