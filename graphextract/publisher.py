"""Publishing of entities and raw payloads to per-topic message writers."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol, Sequence

from .entity import Entity

log = logging.getLogger(__name__)

DEFAULT_PRODUCER = "thegraph-extraction"


class PublishError(Exception):
    """Raised when a message cannot be encoded, written or a writer closed."""


@dataclass
class Message:
    """A message for a bus; the topic is empty when the writer fixes it."""

    key: bytes
    value: bytes
    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    topic: str = ""
    headers: list[tuple[str, bytes]] = field(default_factory=list)


class MessageWriter(Protocol):
    """A writer bound to one topic."""

    def write_messages(self, *messages: Message) -> None: ...

    def close(self) -> None: ...


WriterFactory = Callable[..., MessageWriter]


class Publisher:
    """Publishes to topics, keeping one writer per topic."""

    def __init__(
        self,
        brokers: Sequence[str] = (),
        topic_prefix: str = "",
        producer: str = DEFAULT_PRODUCER,
        flush_interval: float | timedelta = 1.0,
        batch_size: int = 100,
        async_: bool = False,
        writer_factory: WriterFactory | None = None,
    ) -> None:
        if isinstance(flush_interval, timedelta):
            flush_interval = flush_interval.total_seconds()
        self.brokers = list(brokers)
        self.topic_prefix = topic_prefix
        self.producer = producer or DEFAULT_PRODUCER
        self.flush_interval = flush_interval if flush_interval > 0 else 1.0
        self.batch_size = batch_size if batch_size > 0 else 100
        self.async_ = async_
        self._writer_factory = writer_factory
        self._writers: dict[str, MessageWriter] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> Publisher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _writer_for(self, topic: str) -> MessageWriter:
        with self._lock:
            writer = self._writers.get(topic)
            if writer is not None:
                return writer
            if self._writer_factory is None:
                raise PublishError(
                    f"no message writer configured for brokers {','.join(self.brokers)}"
                )
            full_topic = f"{self.topic_prefix}.{topic}" if self.topic_prefix else topic
            writer = self._writer_factory(
                full_topic,
                brokers=list(self.brokers),
                batch_size=self.batch_size,
                batch_timeout=self.flush_interval,
                async_=self.async_,
            )
            self._writers[topic] = writer
        log.info("created new message writer for topic %s", full_topic)
        return writer

    def publish_entity(self, entity: Entity, topic: str) -> None:
        """Publish an entity as JSON, keyed by its id."""
        try:
            data = entity.marshal_for_event()
        except (TypeError, ValueError) as exc:
            raise PublishError(f"error marshaling entity: {exc}") from exc
        self.publish_raw(entity.id, data, topic)

    def publish_raw(self, key: str, data: bytes, topic: str) -> None:
        """Publish a raw payload with producer and timestamp headers."""
        writer = self._writer_for(topic)
        message = Message(
            key=key.encode("utf-8"),
            value=bytes(data),
            headers=[
                ("producer", self.producer.encode("utf-8")),
                ("timestamp", str(int(time.time() * 1000)).encode("ascii")),
            ],
        )
        try:
            writer.write_messages(message)
        except Exception as exc:
            log.error("failed to publish message topic=%s key=%s: %s", topic, key, exc)
            raise PublishError(f"failed to write message to {topic}: {exc}") from exc
        log.debug("published message topic=%s key=%s size=%d", topic, key, len(data))

    def close(self) -> None:
        """Close every writer; raise if any failed to close."""
        with self._lock:
            writers, self._writers = self._writers, {}
        failures = 0
        for topic, writer in writers.items():
            try:
                writer.close()
            except Exception as exc:
                log.error("error closing writer for %s: %s", topic, exc)
                failures += 1
        if failures:
            raise PublishError(f"failed to close {failures} writers")