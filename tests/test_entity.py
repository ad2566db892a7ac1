from datetime import datetime, timedelta, timezone

import pytest

from graphextract.entity import (
    Entity,
    GraphErrorLocation,
    GraphResponse,
    marshal_json,
    unmarshal_from_event,
    unmarshal_json,
)


def _sample():
    return Entity(
        id="0xabc",
        type="tokens",
        deployment="deployment-1",
        timestamp=datetime(2024, 1, 2, 3, 4, 5, 120000, tzinfo=timezone.utc),
        data={"id": "0xabc", "symbol": "AAA"},
    )


def test_event_round_trip():
    entity = _sample()
    assert unmarshal_from_event(entity.marshal_for_event()) == entity


def test_round_trip_with_cursor_and_meta():
    entity = _sample()
    entity.cursor = "0xabb"
    entity.meta_data = {"source": "gateway"}
    restored = Entity.from_dict(entity.to_dict())
    assert restored == entity


def test_empty_cursor_and_meta_are_omitted():
    keys = set(_sample().to_dict())
    assert keys == {"id", "type", "deployment", "timestamp", "data"}


def test_timestamp_format_trims_fraction():
    assert _sample().to_dict()["timestamp"] == "2024-01-02T03:04:05.12Z"


def test_zero_timestamp_format():
    assert Entity(id="x").to_dict()["timestamp"] == "0001-01-01T00:00:00Z"


def test_offset_timestamp_round_trip():
    tz = timezone(timedelta(hours=-3, minutes=-30))
    entity = Entity(id="x", timestamp=datetime(2023, 5, 6, 7, 8, 9, tzinfo=tz))
    text = entity.to_dict()["timestamp"]
    assert text.endswith("-03:30")
    assert Entity.from_dict(entity.to_dict()).timestamp == entity.timestamp


def test_nanosecond_timestamp_is_truncated():
    entity = Entity.from_dict({"id": "a", "timestamp": "2024-01-02T03:04:05.123456789Z"})
    assert entity.timestamp.microsecond == 123456


def test_missing_fields_take_zero_values():
    entity = Entity.from_dict({})
    assert entity.id == ""
    assert entity.data == {}
    assert entity.meta_data is None


def test_unmarshal_rejects_non_object():
    with pytest.raises(ValueError):
        unmarshal_from_event(b"[1, 2]")


def test_unmarshal_rejects_bad_json():
    with pytest.raises(ValueError):
        unmarshal_from_event(b"{not json")


def test_unmarshal_rejects_bad_timestamp():
    with pytest.raises(ValueError):
        Entity.from_dict({"id": "a", "timestamp": "yesterday"})


def test_marshal_json_is_compact():
    assert marshal_json({"a": [1, 2]}) == b'{"a":[1,2]}'


def test_marshal_unmarshal_round_trip():
    value = {"name": "ü", "values": [1, 2.5, None, True]}
    assert unmarshal_json(marshal_json(value)) == value


def test_graph_response_from_dict():
    body = {
        "data": {"tokens": [{"id": "1"}]},
        "errors": [
            {
                "message": "boom",
                "locations": [{"line": 2, "column": 3}],
                "path": ["tokens"],
            }
        ],
    }
    response = GraphResponse.from_dict(body)
    assert response.data == {"tokens": [{"id": "1"}]}
    assert response.errors[0].message == "boom"
    assert response.errors[0].locations == [GraphErrorLocation(line=2, column=3)]
    assert response.errors[0].path == ["tokens"]


def test_graph_response_without_data():
    response = GraphResponse.from_dict({})
    assert response.data is None
    assert response.errors == []