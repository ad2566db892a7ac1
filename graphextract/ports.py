"""Interfaces the extraction service depends on."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from .entity import Entity


@runtime_checkable
class GraphQLClientPort(Protocol):
    """Runs GraphQL queries against a selected endpoint."""

    def query(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run a query and return its data."""
        ...

    def set_endpoint(self, endpoint: str) -> None:
        """Select the endpoint for later queries."""
        ...


@runtime_checkable
class EventPublisher(Protocol):
    """Publishes events to a message bus."""

    def publish_entity(self, entity: Entity, topic: str) -> None:
        """Publish an entity."""
        ...

    def publish_raw(self, key: str, data: bytes, topic: str) -> None:
        """Publish a raw payload."""
        ...

    def close(self) -> None:
        """Release the connection."""
        ...


@runtime_checkable
class Repository(Protocol):
    """Persists entities and extraction cursors."""

    def save_entity(self, entity: Entity) -> Any:
        """Store an entity."""
        ...

    def get_latest_cursor(self, entity_type: str, deployment: str) -> str:
        """Return the latest cursor, or an empty string."""
        ...

    def close(self) -> None:
        """Release the storage."""
        ...


@runtime_checkable
class ExtractionPort(Protocol):
    """Core extraction operations."""

    def extract_entities(self, endpoint: str, query_type: str) -> list[Entity]:
        """Extract all entities of a type from an endpoint."""
        ...

    def extract_all(self) -> None:
        """Extract every configured type from every endpoint."""
        ...

    def extract_with_delta(self, endpoint: str, query_type: str, cursor: str) -> list[Entity]:
        """Extract entities newer than a cursor."""
        ...


@runtime_checkable
class QueryGeneratorPort(Protocol):
    """Builds GraphQL queries."""

    def generate_query(self, endpoint: str, query_type: str) -> str:
        """Return the query for an endpoint and type."""
        ...

    def generate_paginated_query(
        self, endpoint: str, query_type: str, cursor: str = "", first: int = 0
    ) -> str:
        """Return a paginated query after a cursor."""
        ...


@runtime_checkable
class RateLimiterPort(Protocol):
    """Paces outgoing requests."""

    def wait(self, cancel: threading.Event | None = None) -> None:
        """Block until a request is allowed."""
        ...

    def done(self, success: bool, latency: float | timedelta) -> None:
        """Report a finished request."""
        ...

    def update_rate_limit(
        self, rate_limit: int, remaining: int, reset_at: datetime | None
    ) -> None:
        """Adapt to limits reported by the API."""
        ...


@runtime_checkable
class WorkerPoolPort(Protocol):
    """Runs tasks concurrently."""

    def submit(self, task: Callable[[], Any]) -> None:
        """Queue a task."""
        ...

    def wait(self) -> None:
        """Block until submitted tasks finish."""
        ...

    def set_pool_size(self, size: int) -> None:
        """Resize the pool."""
        ...

    def close(self) -> None:
        """Shut the pool down."""
        ...