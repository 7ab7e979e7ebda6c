from datetime import datetime
from typing import Any

from trove.core.types import Event, EventId, EventQuery
from trove.utils.logging_config import get_logger

logger = get_logger(__name__)


def _as_list(value: str | list[str] | None) -> list[str] | None:
    if value is None:
        return None
    return value if isinstance(value, list) else [value]


class MemoryEventStorage:
    """A simple in-memory store for persisting and querying events.

    Saving an id that already exists replaces the record (last write wins).
    """

    def __init__(self) -> None:
        self._events: dict[str, Event] = {}

    async def initialize(self, options: dict[str, Any] | None = None) -> None:
        self._events.clear()

    async def save_event(self, event: Event) -> Event:
        self._events[event.id.id] = event.model_copy(deep=True)
        logger.debug(
            "Stored event",
            extra={"event_id": event.id.id, "producer": event.producer},
        )
        return event.model_copy(deep=True)

    async def get_event(self, event_id: EventId) -> Event | None:
        event = self._events.get(event_id.id)
        return event.model_copy(deep=True) if event is not None else None

    async def query_events(self, query: EventQuery) -> list[Event]:
        events = list(self._events.values())

        schemas = _as_list(query.schema_id)
        if schemas is not None:
            events = [e for e in events if e.schema_id in schemas]

        producers = _as_list(query.producer)
        if producers is not None:
            events = [e for e in events if e.producer in producers]

        if query.time_range is not None:
            start, end = query.time_range.start, query.time_range.end
            if start is not None:
                events = [e for e in events if e.created_at >= start]
            if end is not None:
                events = [e for e in events if e.created_at <= end]

        if query.links:
            events = [
                e
                for e in events
                if all(
                    any(
                        (lq.type is None or link.type == lq.type)
                        and (
                            lq.target_event is None
                            or link.target_event.id == lq.target_event.id
                        )
                        for link in e.links
                    )
                    for lq in query.links
                )
            ]

        if query.payload:
            events = [
                e
                for e in events
                if all(e.payload.get(k) == v for k, v in query.payload.items())
            ]

        if query.sort:
            # Apply sort keys last-to-first so the first key wins; missing values go last
            for sort_field in reversed(query.sort):
                present = [e for e in events if _sort_value(e, sort_field.field) is not None]
                missing = [e for e in events if _sort_value(e, sort_field.field) is None]
                present.sort(
                    key=lambda e: _sort_key(_sort_value(e, sort_field.field)),
                    reverse=sort_field.direction == "desc",
                )
                events = present + missing

        if query.offset is not None:
            events = events[query.offset :]
        if query.limit is not None:
            events = events[: query.limit]

        # Callers get copies; the stored records only change through save_event
        return [e.model_copy(deep=True) for e in events]


def _sort_value(event: Event, field: str) -> Any:
    if field in ("createdAt", "created_at"):
        return event.created_at
    if field == "id":
        return event.id.id
    if field == "producer":
        return event.producer
    if field.startswith("payload."):
        return event.payload.get(field.removeprefix("payload."))
    value = getattr(event, field, None)
    return value if isinstance(value, (str, int, float, datetime)) else None


def _sort_key(value: Any) -> tuple[int, Any]:
    """Rank values by kind first so mixed payload types never compare directly."""
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    if isinstance(value, datetime):
        return (2, value)
    return (3, str(value))
