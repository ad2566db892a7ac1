"""Domain entities and the raw response shapes returned by a subgraph gateway."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


def _format_time(moment: datetime) -> str:
    """Format a datetime as RFC 3339 with trailing fractional zeros trimmed."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(text: Any) -> datetime:
    """Parse an RFC 3339 timestamp; fractions beyond microseconds are truncated."""
    if not isinstance(text, str):
        raise ValueError(f"timestamp must be a string, got {type(text).__name__}")
    match = _TIME_RE.match(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp: {text!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction or "")[:6].ljust(6, "0"))
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        hours, mins = int(zone[1:3]), int(zone[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=mins))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
    )


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"cannot decode {type(data).__name__} into {what}")
    return data


def _require_str(data: Mapping[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what}.{key} must be a string")
    return value


@dataclass
class Entity:
    """A generic extracted record with identity and provenance."""

    id: str = ""
    type: str = ""
    deployment: str = ""
    timestamp: datetime = ZERO_TIME
    cursor: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    meta_data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready representation of the entity."""
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "deployment": self.deployment,
            "timestamp": _format_time(self.timestamp),
        }
        if self.cursor:
            result["cursor"] = self.cursor
        result["data"] = self.data
        if self.meta_data:
            result["meta_data"] = self.meta_data
        return result

    @classmethod
    def from_dict(cls, data: Any) -> Entity:
        """Build an entity from its JSON representation."""
        data = _require_mapping(data, "Entity")
        raw_timestamp = data.get("timestamp")
        timestamp = ZERO_TIME if raw_timestamp is None else _parse_time(raw_timestamp)
        payload = data.get("data")
        if payload is not None and not isinstance(payload, Mapping):
            raise ValueError("Entity.data must be an object")
        meta = data.get("meta_data")
        if meta is not None and not isinstance(meta, Mapping):
            raise ValueError("Entity.meta_data must be an object")
        return cls(
            id=_require_str(data, "id", "Entity"),
            type=_require_str(data, "type", "Entity"),
            deployment=_require_str(data, "deployment", "Entity"),
            timestamp=timestamp,
            cursor=_require_str(data, "cursor", "Entity"),
            data=dict(payload or {}),
            meta_data=dict(meta) if meta is not None else None,
        )

    def marshal_for_event(self) -> bytes:
        """Serialize the entity for a message bus."""
        return marshal_json(self)


@dataclass
class GraphErrorLocation:
    """Position of an error inside a GraphQL query."""

    line: int = 0
    column: int = 0


@dataclass
class GraphError:
    """An error reported by the GraphQL server."""

    message: str = ""
    locations: list[GraphErrorLocation] = field(default_factory=list)
    path: list[Any] = field(default_factory=list)
    extensions: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> GraphError:
        data = _require_mapping(data, "GraphError")
        locations = [
            GraphErrorLocation(
                line=int(_require_mapping(loc, "GraphErrorLocation").get("line", 0)),
                column=int(loc.get("column", 0)),
            )
            for loc in data.get("locations") or []
        ]
        return cls(
            message=_require_str(data, "message", "GraphError"),
            locations=locations,
            path=list(data.get("path") or []),
            extensions=dict(data.get("extensions") or {}),
        )


@dataclass
class GraphResponse:
    """The raw body returned by a GraphQL endpoint."""

    data: dict[str, Any] | None = None
    errors: list[GraphError] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> GraphResponse:
        """Decode a response body into its data and errors."""
        data = _require_mapping(data, "GraphResponse")
        payload = data.get("data")
        if payload is not None and not isinstance(payload, Mapping):
            raise ValueError("GraphResponse.data must be an object")
        return cls(
            data=dict(payload) if payload is not None else None,
            errors=[GraphError.from_dict(item) for item in data.get("errors") or []],
        )


def _default(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, datetime):
        return _format_time(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def marshal_json(value: Any) -> bytes:
    """Encode a value as compact UTF-8 JSON."""
    return json.dumps(
        value, default=_default, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def unmarshal_json(data: bytes | str) -> Any:
    """Decode JSON bytes or text; raises ValueError on malformed input."""
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8")
    return json.loads(data)


def unmarshal_from_event(data: bytes | str) -> Entity:
    """Decode an entity from a message bus payload."""
    return Entity.from_dict(unmarshal_json(data))