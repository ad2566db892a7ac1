from datetime import datetime, timezone

import pytest

from graphextract.entity import Entity, unmarshal_from_event
from graphextract.publisher import Message, PublishError, Publisher


class FakeWriter:
    def __init__(self, topic, fail_write=False, fail_close=False, **settings):
        self.topic = topic
        self.settings = settings
        self.messages: list[Message] = []
        self.closed = False
        self.fail_write = fail_write
        self.fail_close = fail_close

    def write_messages(self, *messages):
        if self.fail_write:
            raise RuntimeError("broker down")
        self.messages.extend(messages)

    def close(self):
        self.closed = True
        if self.fail_close:
            raise RuntimeError("close failed")


class Factory:
    def __init__(self, **flags):
        self.flags = flags
        self.writers: list[FakeWriter] = []

    def __call__(self, topic, **settings):
        writer = FakeWriter(topic, **self.flags, **settings)
        self.writers.append(writer)
        return writer


def test_topic_prefix_is_joined_with_dot():
    factory = Factory()
    publisher = Publisher(["b1:9092"], topic_prefix="thegraph", writer_factory=factory)
    publisher.publish_raw("k", b"v", "tokens")
    assert factory.writers[0].topic == "thegraph.tokens"
    assert factory.writers[0].settings["brokers"] == ["b1:9092"]
    assert factory.writers[0].settings["batch_size"] == 100


def test_topic_without_prefix_unchanged():
    factory = Factory()
    publisher = Publisher(writer_factory=factory)
    publisher.publish_raw("k", b"v", "swaps")
    assert factory.writers[0].topic == "swaps"


def test_writer_reused_per_topic():
    factory = Factory()
    publisher = Publisher(writer_factory=factory)
    publisher.publish_raw("a", b"1", "t")
    publisher.publish_raw("b", b"2", "t")
    publisher.publish_raw("c", b"3", "u")
    assert [w.topic for w in factory.writers] == ["t", "u"]
    assert [m.key for m in factory.writers[0].messages] == [b"a", b"b"]


def test_headers_carry_producer_and_timestamp():
    factory = Factory()
    publisher = Publisher(writer_factory=factory)
    publisher.publish_raw("key", b"payload", "t")
    message = factory.writers[0].messages[0]
    assert message.value == b"payload"
    headers = dict(message.headers)
    assert headers["producer"] == b"thegraph-extraction"
    assert headers["timestamp"].isdigit()


def test_empty_producer_falls_back_to_default():
    assert Publisher(producer="").producer == "thegraph-extraction"


def test_publish_entity_round_trips():
    factory = Factory()
    publisher = Publisher(writer_factory=factory)
    entity = Entity(
        id="0x1",
        type="tokens",
        deployment="dep",
        timestamp=datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
        data={"symbol": "ABC"},
    )
    publisher.publish_entity(entity, "dep.tokens")
    message = factory.writers[0].messages[0]
    assert message.key == b"0x1"
    assert unmarshal_from_event(message.value) == entity


def test_write_failure_raises():
    publisher = Publisher(writer_factory=Factory(fail_write=True))
    with pytest.raises(PublishError, match="failed to write message to t"):
        publisher.publish_raw("k", b"v", "t")


def test_missing_factory_raises():
    with pytest.raises(PublishError):
        Publisher().publish_raw("k", b"v", "t")


def test_close_closes_and_clears_writers():
    factory = Factory()
    publisher = Publisher(writer_factory=factory)
    publisher.publish_raw("k", b"v", "t")
    publisher.close()
    assert factory.writers[0].closed is True
    publisher.publish_raw("k", b"v", "t")
    assert len(factory.writers) == 2


def test_close_failures_reported():
    factory = Factory(fail_close=True)
    publisher = Publisher(writer_factory=factory)
    publisher.publish_raw("k", b"v", "a")
    publisher.publish_raw("k", b"v", "b")
    with pytest.raises(PublishError, match="failed to close 2 writers"):
        publisher.close()