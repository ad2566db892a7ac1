"""A GraphQL client for subgraph gateway endpoints with auth and extra headers."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Any, Mapping

import httpx

from .graph_client import GATEWAY_URL

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class GraphQLError(Exception):
    """Raised when a query cannot be sent or the server reports an error."""


class GraphQLClient:
    """Runs single GraphQL queries against one subgraph deployment at a time."""

    def __init__(
        self,
        auth_token: str = "",
        extra_headers: Mapping[str, str] | None = None,
        timeout: float | timedelta = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if isinstance(timeout, timedelta):
            timeout = timeout.total_seconds()
        self.timeout = timeout if timeout > 0 else DEFAULT_TIMEOUT
        self.auth_token = auth_token
        self.headers = dict(extra_headers or {})
        self.endpoint = ""
        self.url: str | None = None
        self._http = httpx.Client(timeout=self.timeout, transport=transport)

    def __enter__(self) -> GraphQLClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()

    def set_endpoint(self, endpoint: str) -> None:
        """Point the client at a subgraph deployment id."""
        self.endpoint = endpoint
        self.url = GATEWAY_URL.format(endpoint)

    def _send(self, query: str, variables: Mapping[str, Any] | None) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "Accept": "application/json; charset=utf-8",
        }
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        headers.update(self.headers)
        payload = {"query": query, "variables": dict(variables) if variables is not None else None}
        try:
            response = self._http.post(self.url or "", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise GraphQLError(str(exc)) from exc
        try:
            body = response.json()
        except ValueError as exc:
            if response.status_code != 200:
                raise GraphQLError(
                    f"graphql: server returned a non-200 status code: {response.status_code}"
                ) from exc
            raise GraphQLError(f"decoding response: {exc}") from exc
        if not isinstance(body, dict):
            raise GraphQLError("decoding response: body is not an object")
        errors = body.get("errors") or []
        if errors:
            first = errors[0]
            message = first.get("message", "") if isinstance(first, dict) else str(first)
            raise GraphQLError(f"graphql: {message}")
        data = body.get("data")
        return dict(data) if isinstance(data, dict) else {}

    def query(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run a query and return its ``data`` object."""
        if self.url is None:
            raise GraphQLError("client endpoint not set, call set_endpoint first")
        log.debug(
            "executing GraphQL query endpoint=%s query=%s variables=%s",
            self.endpoint,
            query,
            variables,
        )
        started = time.monotonic()
        try:
            data = self._send(query, variables)
        except GraphQLError as exc:
            log.error(
                "GraphQL query failed endpoint=%s duration=%.3fs: %s",
                self.endpoint,
                time.monotonic() - started,
                exc,
            )
            raise
        log.debug(
            "GraphQL query completed endpoint=%s duration=%.3fs",
            self.endpoint,
            time.monotonic() - started,
        )
        return data