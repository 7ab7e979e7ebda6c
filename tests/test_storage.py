"""Tests for storage role resolution and the multi-store save protocol."""

import logging
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from tests.conftest import StubPlugin
from trove.core.errors import (
    ConfigurationError,
    MissingEventStorageConfig,
    PluginResolutionFailed,
)
from trove.core.hooks import HookSystem
from trove.core.plugins import PluginSystem
from trove.core.storage import StorageManager
from trove.core.types import (
    STORAGE_EVENTS,
    STORAGE_FILES,
    STORAGE_LINKS,
    Event,
    EventFile,
    EventId,
    EventLink,
    EventQuery,
    StorageConfig,
    StoragePluginConfig,
)


def storage_plugin(name="store", capabilities=(STORAGE_EVENTS, STORAGE_FILES, STORAGE_LINKS)):
    plugin = StubPlugin(name, capabilities=capabilities)
    plugin.event_storage = AsyncMock()
    plugin.file_storage = AsyncMock()
    plugin.link_storage = AsyncMock()
    return plugin


def make_event(**kwargs):
    defaults = {
        "id": EventId(id="evt-1"),
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
        "producer": "test",
        "event_schema": {"type": "object"},
        "payload": {"n": 1},
    }
    return Event(**(defaults | kwargs))


@pytest.fixture
def plugin_system():
    return PluginSystem(None, HookSystem())


@pytest.fixture
def manager(plugin_system):
    return StorageManager(plugin_system)


@pytest.fixture
async def plugin(plugin_system):
    plugin = storage_plugin()
    await plugin_system.load_plugin(plugin)
    return plugin


def full_config(name="store", links=None):
    entry = StoragePluginConfig(plugin=name, options={"path": "/tmp/x"})
    return StorageConfig(events=entry, files=entry, links=links or entry)


@pytest.mark.asyncio
async def test_initialize_requires_event_storage(manager):
    with pytest.raises(MissingEventStorageConfig, match="Event storage configuration is required"):
        await manager.initialize(StorageConfig())


@pytest.mark.asyncio
async def test_initialize_unknown_plugin(manager):
    config = StorageConfig(events=StoragePluginConfig(plugin="nowhere"))

    with pytest.raises(PluginResolutionFailed) as exc_info:
        await manager.initialize(config)

    assert exc_info.value.plugin_name == "nowhere"
    assert exc_info.value.required_capabilities == [STORAGE_EVENTS]


@pytest.mark.asyncio
async def test_initialize_missing_capability(manager, plugin_system):
    await plugin_system.load_plugin(storage_plugin("events-only", capabilities=[STORAGE_EVENTS]))
    entry = StoragePluginConfig(plugin="events-only")

    with pytest.raises(PluginResolutionFailed) as exc_info:
        await manager.initialize(StorageConfig(events=entry, files=entry))

    assert exc_info.value.required_capabilities == [STORAGE_FILES]


@pytest.mark.asyncio
async def test_initialize_passes_options_to_roles(manager, plugin):
    await manager.initialize(full_config())

    plugin.event_storage.initialize.assert_awaited_once_with({"path": "/tmp/x"})
    plugin.file_storage.initialize.assert_awaited_once_with({"path": "/tmp/x"})
    plugin.link_storage.initialize.assert_awaited_once_with({"path": "/tmp/x"})
    assert manager.event_storage is plugin.event_storage
    assert manager.link_storage is plugin.link_storage


@pytest.mark.asyncio
async def test_initialize_use_event_storage_for_links(manager, plugin):
    await manager.initialize(full_config(links="use-event-storage"))

    assert manager.link_storage is None
    plugin.link_storage.initialize.assert_not_awaited()


class DirectEventStore:
    """A plugin that is its own event storage role."""

    name = "direct"
    version = "1.0.0"
    capabilities = [STORAGE_EVENTS]

    def __init__(self):
        self.options = None

    async def initialize(self, arg=None):
        if isinstance(arg, dict):
            self.options = arg

    async def save_event(self, event):
        return event

    async def get_event(self, event_id):
        return None

    async def query_events(self, query):
        return []


@pytest.mark.asyncio
async def test_initialize_plugin_implementing_role_directly(manager, plugin_system):
    plugin = DirectEventStore()
    await plugin_system.load_plugin(plugin)

    await manager.initialize(
        StorageConfig(events=StoragePluginConfig(plugin="direct", options={"a": 1}))
    )

    assert manager.event_storage is plugin
    assert plugin.options == {"a": 1}


@pytest.mark.asyncio
async def test_operations_before_initialize(manager):
    with pytest.raises(ConfigurationError):
        await manager.save_event(make_event())
    with pytest.raises(ConfigurationError):
        await manager.query_events(EventQuery())


@pytest.mark.asyncio
async def test_save_event_writes_files_then_event_then_links(manager, plugin):
    await manager.initialize(full_config())
    calls = []

    async def save_file(file):
        calls.append(("file", file.filename))
        return f"id-{file.filename}"

    async def save_event(event):
        calls.append(("event", [f.id for f in event.files]))
        return event

    async def save_link(event_id, link):
        calls.append(("link", event_id.id, link.type))

    plugin.file_storage.save_file.side_effect = save_file
    plugin.event_storage.save_event.side_effect = save_event
    plugin.link_storage.save_link.side_effect = save_link

    event = make_event(
        files=[
            EventFile(content_type="text/plain", filename="a.txt", data=b"a"),
            EventFile(id="kept", content_type="text/plain", filename="b.txt", data=b"b"),
        ],
        links=[EventLink(type="parent", target_event=EventId(id="evt-0"))],
    )

    saved = await manager.save_event(event)

    assert saved is event
    assert calls == [
        ("file", "a.txt"),
        ("event", ["id-a.txt", "kept"]),
        ("link", "evt-1", "parent"),
    ]


@pytest.mark.asyncio
async def test_save_event_without_file_storage_keeps_files(manager, plugin):
    entry = StoragePluginConfig(plugin="store")
    await manager.initialize(StorageConfig(events=entry))
    plugin.event_storage.save_event.side_effect = lambda event: event

    event = make_event(files=[EventFile(content_type="text/plain", data="x")])
    saved = await manager.save_event(event)

    assert saved.files[0].id == ""
    plugin.file_storage.save_file.assert_not_awaited()


@pytest.mark.asyncio
async def test_save_event_reraises_storage_errors(manager, plugin, caplog):
    await manager.initialize(full_config())
    plugin.event_storage.save_event.side_effect = OSError("disk full")

    with caplog.at_level(logging.ERROR):
        with pytest.raises(OSError, match="disk full"):
            await manager.save_event(make_event())

    assert any(r.message == "Error saving event" for r in caplog.records)


@pytest.mark.asyncio
async def test_get_event_link_storage_is_authoritative(manager, plugin):
    await manager.initialize(full_config())
    stored = make_event(links=[EventLink(type="stale", target_event=EventId(id="old"))])
    plugin.event_storage.get_event.return_value = stored
    plugin.link_storage.get_links.return_value = []

    event = await manager.get_event(EventId(id="evt-1"))

    assert event.links == []
    plugin.link_storage.get_links.assert_awaited_once_with(EventId(id="evt-1"))


@pytest.mark.asyncio
async def test_get_event_keeps_embedded_links_without_link_storage(manager, plugin):
    await manager.initialize(full_config(links="use-event-storage"))
    links = [EventLink(type="parent", target_event=EventId(id="evt-0"))]
    plugin.event_storage.get_event.return_value = make_event(links=links)

    event = await manager.get_event(EventId(id="evt-1"))

    assert event.links == links


@pytest.mark.asyncio
async def test_get_event_miss(manager, plugin):
    await manager.initialize(full_config())
    plugin.event_storage.get_event.return_value = None

    assert await manager.get_event(EventId(id="nope")) is None
    plugin.link_storage.get_links.assert_not_awaited()


@pytest.mark.asyncio
async def test_query_events_passthrough(manager, plugin):
    await manager.initialize(full_config())
    events = [make_event()]
    plugin.event_storage.query_events.return_value = events
    query = EventQuery(producer="test", limit=5)

    assert await manager.query_events(query) == events
    plugin.event_storage.query_events.assert_awaited_once_with(query)


@pytest.mark.asyncio
async def test_get_file_without_file_storage(manager, plugin):
    await manager.initialize(StorageConfig(events=StoragePluginConfig(plugin="store")))

    with pytest.raises(ConfigurationError, match="No file storage is configured"):
        await manager.get_file("f-1")
    with pytest.raises(ConfigurationError):
        await manager.get_file_data("f-1")
