"""Core data model: events, queries, hook contexts and configuration."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from trove.utils.logging_config import get_logger

# Storage role capability tags
STORAGE_EVENTS = "storage:events"
STORAGE_FILES = "storage:files"
STORAGE_LINKS = "storage:links"

# Link storage sentinel: links are persisted by the event storage plugin itself
USE_EVENT_STORAGE = "use-event-storage"


class TroveModel(BaseModel):
    """Base model; camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventId(TroveModel):
    model_config = ConfigDict(frozen=True)

    id: str
    version: int | None = None

    def __str__(self) -> str:
        if self.version is None:
            return self.id
        return f"{self.id}@{self.version}"


class EventFile(TroveModel):
    """A file attached to an event.

    ``id`` stays empty until a file storage plugin assigns one on first save.
    """

    model_config = ConfigDict(ser_json_bytes="base64")

    id: str = ""
    content_type: str
    filename: str | None = None
    size: int = 0
    hash: str | None = None
    data: bytes | str
    is_reference: bool | None = None


class EventLink(TroveModel):
    type: str
    target_event: EventId
    metadata: dict[str, Any] | None = None


class Event(TroveModel):
    """A stored event record."""

    id: EventId
    created_at: datetime
    producer: str
    event_schema: dict[str, Any] = Field(alias="schema")
    payload: dict[str, Any]
    files: list[EventFile] = Field(default_factory=list)
    links: list[EventLink] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    @property
    def schema_id(self) -> str | None:
        """The schema's ``$id``, used to match schema filters in queries."""
        value = self.event_schema.get("$id")
        return str(value) if value is not None else None


class TimeRange(TroveModel):
    start: datetime | None = None
    end: datetime | None = None

    @field_validator("start", "end")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        """Event timestamps are UTC, so naive bounds are read as UTC."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class LinkQuery(TroveModel):
    type: str | None = None
    target_event: EventId | None = None


class SortField(TroveModel):
    field: str
    direction: Literal["asc", "desc"] = "asc"


class EventQuery(TroveModel):
    """Query understood by event storage plugins."""

    schema_id: str | list[str] | None = Field(default=None, alias="schema")
    producer: str | list[str] | None = None
    time_range: TimeRange | None = None
    links: list[LinkQuery] | None = None
    payload: dict[str, Any] | None = None
    limit: int | None = Field(default=None, ge=0)
    offset: int | None = Field(default=None, ge=0)
    sort: list[SortField] | None = None


class EventCreationOptions(TroveModel):
    producer: str | None = None
    files: list[EventFile] | None = None
    links: list[EventLink] | None = None
    metadata: dict[str, Any] | None = None


@dataclass
class HookContext:
    """Context handed to every hook handler of one dispatch.

    ``state`` is shared by all handlers of one pipeline invocation; ``event``
    is the live event object, not a copy.
    """

    core: Any
    event: Event | None = None
    request: Any = None
    response: Any = None
    schema: dict[str, Any] | None = None
    state: dict[str, Any] = field(default_factory=dict)
    logger: logging.Logger = field(default_factory=lambda: get_logger("trove.hooks"))


class StoragePluginConfig(BaseModel):
    plugin: str
    options: dict[str, Any] = Field(default_factory=dict)


class StorageConfig(BaseModel):
    events: StoragePluginConfig | None = None
    files: StoragePluginConfig | None = None
    links: StoragePluginConfig | Literal["use-event-storage"] | None = None


class PluginsConfig(BaseModel):
    sources: list[str] = Field(default_factory=list)
    config: dict[str, dict[str, Any]] = Field(default_factory=dict)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: str | None = None


class CoreConfig(BaseModel):
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
