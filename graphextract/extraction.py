"""Concurrent extraction of every query type from every subgraph endpoint."""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Sequence

from .publisher import Message, MessageWriter
from .queries import get_endpoint_id, get_query_for_endpoint

log = logging.getLogger(__name__)

DEFAULT_QUERY_TYPES = (
    "tokens",
    "transactions",
    "factories",
    "swaps",
    "_meta",
    "vaults",
    "withdraws",
    "burns",
    "accounts",
    "pools",
    "skimFees",
)
DEFAULT_CONCURRENCY = 11
QUERY_TIMEOUT = 30.0

DataCallback = Callable[[str, str, dict], Any]


class ExtractionFailed(Exception):
    """Raised when one or more queries failed; ``errors`` holds each failure."""

    def __init__(self, message: str, errors: Sequence[Exception] = ()) -> None:
        super().__init__(message)
        self.errors = list(errors)


class DataExtractor:
    """Runs the configured queries against every endpoint and hands on the results.

    Results are logged, published to a message writer when one is set, and passed
    to the data callback when one is set. Publishing and callback failures are
    logged but do not fail the extraction.
    """

    def __init__(
        self,
        client: Any,
        endpoints: Iterable[str],
        output_dir: str = "data",
        query_types: Iterable[str] | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        kafka_writer: MessageWriter | None = None,
        kafka_topic_prefix: str = "",
        data_callback: DataCallback | None = None,
    ) -> None:
        self.client = client
        self.endpoints = list(endpoints)
        self.output_dir = output_dir
        self.query_types = list(query_types) if query_types is not None else list(
            DEFAULT_QUERY_TYPES
        )
        self.concurrency = concurrency
        self.kafka_writer = kafka_writer
        self.kafka_topic_prefix = kafka_topic_prefix
        self.data_callback = data_callback
        # The client holds one endpoint at a time, so selecting it and querying
        # must happen together.
        self._client_lock = threading.Lock()

    def __enter__(self) -> DataExtractor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _jobs(self) -> list[tuple[str, str, str]]:
        jobs = []
        for endpoint in self.endpoints:
            for query_type in self.query_types:
                query = get_query_for_endpoint(endpoint, query_type)
                if not query:
                    log.debug(
                        "no query defined, skipping type=%s endpoint=%s", query_type, endpoint
                    )
                    continue
                jobs.append((endpoint, query_type, query))
        return jobs

    def extract_all(self, cancel: threading.Event | None = None) -> None:
        """Extract every query type from every endpoint.

        Tasks not yet started when ``cancel`` is set are skipped. Raises
        ExtractionFailed after all tasks finished if any query failed.
        """
        log.info(
            "starting data extraction endpoints=%d query_types=%d concurrency=%d",
            len(self.endpoints),
            len(self.query_types),
            self.concurrency,
        )
        jobs = self._jobs()
        with ThreadPoolExecutor(max_workers=max(1, self.concurrency)) as executor:
            futures = [
                executor.submit(self._extract_one, endpoint, query_type, query, cancel)
                for endpoint, query_type, query in jobs
            ]
        errors = [error for error in (future.result() for future in futures) if error]

        if errors:
            log.warning("completed with %d errors", len(errors))
            for index, error in enumerate(errors, start=1):
                log.error("extraction error %d: %s", index, error)
            raise ExtractionFailed(
                f"encountered {len(errors)} errors during extraction", errors
            )
        log.info("all data extracted successfully")

    def _extract_one(
        self,
        endpoint: str,
        query_type: str,
        query: str,
        cancel: threading.Event | None,
    ) -> Exception | None:
        if cancel is not None and cancel.is_set():
            log.warning("extraction cancelled, stopping")
            return None

        try:
            with self._client_lock:
                self.client.set_endpoint(endpoint)
                response = self.client.query_with_timeout(query, QUERY_TIMEOUT)
        except Exception as exc:
            log.error("query failed type=%s endpoint=%s: %s", query_type, endpoint, exc)
            return ExtractionFailed(f"error querying {query_type} from {endpoint}: {exc}")

        endpoint_id = get_endpoint_id(endpoint)
        try:
            pretty = json.dumps(response, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            log.error(
                "failed to marshal JSON data type=%s endpoint=%s: %s", query_type, endpoint, exc
            )
        else:
            log.info("extracted data type=%s endpoint_id=%s data=%s", query_type, endpoint_id, pretty)

        if self.kafka_writer is not None:
            try:
                self._publish(endpoint_id, query_type, response)
            except Exception as exc:
                log.error(
                    "failed to publish endpoint_id=%s type=%s: %s", endpoint_id, query_type, exc
                )
            else:
                log.debug("published endpoint_id=%s type=%s", endpoint_id, query_type)

        if self.data_callback is not None:
            try:
                self.data_callback(endpoint, query_type, response)
            except Exception as exc:
                log.error(
                    "data callback failed endpoint=%s type=%s: %s", endpoint, query_type, exc
                )

        log.info("successfully extracted type=%s endpoint_id=%s", query_type, endpoint_id)
        return None

    def _publish(self, endpoint_id: str, query_type: str, data: dict) -> None:
        if self.kafka_writer is None:
            raise ExtractionFailed("kafka writer not configured")
        try:
            value = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise ExtractionFailed(f"failed to marshal data to JSON: {exc}") from exc
        message = Message(
            key=f"{endpoint_id}-{query_type}".encode("utf-8"),
            value=value.encode("utf-8"),
            topic=f"{self.kafka_topic_prefix}_{endpoint_id}_{query_type}",
        )
        self.kafka_writer.write_messages(message)

    def close(self) -> None:
        """Close the message writer if one is set."""
        if self.kafka_writer is not None:
            self.kafka_writer.close()