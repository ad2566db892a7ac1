"""A GraphQL client for subgraph gateway queries with retries."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any

import httpx

log = logging.getLogger(__name__)

GATEWAY_URL = "https://gateway.thegraph.com/api/subgraphs/id/{}"


class QueryError(Exception):
    """Raised when a query fails."""


class _AttemptError(Exception):
    pass


def _seconds(value: float | timedelta | None) -> float | None:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return value


class TheGraphClient:
    """Sends authenticated GraphQL queries to one subgraph at a time."""

    def __init__(
        self,
        auth_token: str,
        max_retries: int = 3,
        retry_delay: float | timedelta = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.auth_token = auth_token
        self.max_retries = max_retries
        self.retry_delay = _seconds(retry_delay) or 0.0
        self.url: str | None = None
        self._http = httpx.Client(transport=transport)

    def __enter__(self) -> TheGraphClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()

    def set_endpoint(self, endpoint: str) -> None:
        """Point the client at a subgraph deployment id."""
        self.url = GATEWAY_URL.format(endpoint)

    def _run(self, query: str, deadline: float | None) -> dict[str, Any]:
        timeout: float | None = None
        if deadline is not None:
            timeout = deadline - time.monotonic()
            if timeout <= 0:
                raise _AttemptError("context deadline exceeded")
        try:
            response = self._http.post(
                self.url or "",
                json={"query": query, "variables": None},
                headers={
                    "Content-Type": "application/json; charset=utf-8",
                    "Accept": "application/json; charset=utf-8",
                    "Authorization": f"Bearer {self.auth_token}",
                },
                timeout=timeout,
            )
        except httpx.HTTPError as exc:
            raise _AttemptError(str(exc)) from exc
        try:
            body = response.json()
        except ValueError as exc:
            if response.status_code != 200:
                raise _AttemptError(
                    f"graphql: server returned a non-200 status code: {response.status_code}"
                ) from exc
            raise _AttemptError(f"decoding response: {exc}") from exc
        if not isinstance(body, dict):
            raise _AttemptError("decoding response: body is not an object")
        errors = body.get("errors") or []
        if errors:
            first = errors[0]
            message = first.get("message", "") if isinstance(first, dict) else str(first)
            raise _AttemptError(f"graphql: {message}")
        data = body.get("data")
        return dict(data) if isinstance(data, dict) else {}

    def query(self, query: str, timeout: float | timedelta | None = None) -> dict[str, Any]:
        """Run a query, retrying on failure, and return its ``data`` object.

        ``timeout`` bounds all attempts together, in seconds.
        """
        if self.url is None:
            raise QueryError("client endpoint not set, call set_endpoint first")
        limit = _seconds(timeout)
        deadline = time.monotonic() + limit if limit is not None else None
        error: _AttemptError | None = None
        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                log.warning(
                    "retrying query (attempt %d/%d) after error: %s",
                    attempt,
                    self.max_retries,
                    error,
                )
                time.sleep(self.retry_delay)
            try:
                return self._run(query, deadline)
            except _AttemptError as exc:
                error = exc
        raise QueryError(f"query failed after {self.max_retries} retries: {error}") from error

    def query_with_timeout(self, query: str, timeout: float | timedelta) -> dict[str, Any]:
        """Run a query bounded by ``timeout`` seconds overall."""
        return self.query(query, timeout)