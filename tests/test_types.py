"""Tests for the core data model."""

import json
from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from trove.core.errors import EventValidationFailed
from trove.core.types import (
    Event,
    EventFile,
    EventId,
    EventQuery,
    StorageConfig,
    TimeRange,
)
from trove.core.validator import ValidationIssue, Validator


@pytest.fixture
def event():
    return Event(
        id=EventId(id="evt-1"),
        created_at=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
        producer="sensor",
        event_schema={"$id": "reading", "type": "object"},
        payload={"value": 1},
    )


def test_event_id_str():
    assert str(EventId(id="abc")) == "abc"
    assert str(EventId(id="abc", version=2)) == "abc@2"


def test_event_id_is_hashable():
    assert len({EventId(id="a"), EventId(id="a"), EventId(id="b")}) == 2


def test_event_serializes_camel_case(event):
    data = event.model_dump(mode="json", by_alias=True)

    assert data["schema"] == {"$id": "reading", "type": "object"}
    assert data["createdAt"] == "2024-01-01T12:00:00Z"
    assert data["id"] == {"id": "evt-1", "version": None}
    assert event.schema_id == "reading"


def test_event_parses_wire_format():
    event = Event.model_validate(
        {
            "id": {"id": "evt-2"},
            "createdAt": "2024-01-01T00:00:00Z",
            "producer": "core",
            "schema": {"type": "object"},
            "payload": {},
            "links": [{"type": "parent", "targetEvent": {"id": "evt-1"}}],
        }
    )

    assert event.links[0].target_event == EventId(id="evt-1")
    assert event.schema_id is None


def test_event_file_bytes_serialize_as_base64():
    file = EventFile(content_type="application/octet-stream", data=b"abc")

    data = json.loads(file.model_dump_json(by_alias=True))

    assert data["contentType"] == "application/octet-stream"
    assert data["data"] == "YWJj"
    assert data["id"] == ""


def test_event_query_aliases():
    query = EventQuery.model_validate(
        {"schema": ["a", "b"], "timeRange": {"start": "2024-01-01T00:00:00Z"}, "limit": 5}
    )

    assert query.schema_id == ["a", "b"]
    assert query.time_range.start == datetime(2024, 1, 1, tzinfo=UTC)


@pytest.mark.parametrize("field", ["limit", "offset"])
def test_event_query_rejects_negative_paging(field):
    with pytest.raises(ValidationError):
        EventQuery.model_validate({field: -1})


def test_storage_config_links_sentinel():
    config = StorageConfig.model_validate(
        {"events": {"plugin": "memory-storage"}, "links": "use-event-storage"}
    )

    assert config.links == "use-event-storage"
    assert config.events.options == {}

    with pytest.raises(ValidationError):
        StorageConfig.model_validate({"links": "something-else"})


def test_event_validation_failed_message(event):
    errors = [
        ValidationIssue(path="", message="'name' is a required property"),
        ValidationIssue(path="/age", message="-1 is less than the minimum of 0"),
    ]

    exc = EventValidationFailed(event, errors, Validator().format_errors(errors))

    assert str(exc) == (
        "Event validation failed:\n"
        "'name' is a required property\n"
        "Path /age: -1 is less than the minimum of 0"
    )
    assert str(EventValidationFailed(event, errors)) == "Event validation failed"
    assert exc.to_dict()["errors"][1]["path"] == "/age"


def test_time_range_reads_naive_bounds_as_utc():
    time_range = TimeRange.model_validate(
        {"start": "2024-01-01T00:00:00", "end": datetime(2024, 1, 2)}
    )

    assert time_range.start == datetime(2024, 1, 1, tzinfo=UTC)
    assert time_range.end == datetime(2024, 1, 2, tzinfo=UTC)


def test_time_range_keeps_explicit_offsets():
    offset = timezone(timedelta(hours=2))

    time_range = TimeRange(start=datetime(2024, 1, 1, 12, 0, tzinfo=offset))

    assert time_range.start.tzinfo == offset
    assert time_range.end is None
