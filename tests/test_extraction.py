import json
import threading

import pytest

from graphextract.extraction import DataExtractor, ExtractionFailed
from graphextract.graph_client import QueryError
from graphextract.queries import get_endpoint_id, get_query_for_endpoint

ENDPOINT = "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv"
RESPONSE = {"tokens": [{"id": "0x1", "name": "One"}]}


class FakeClient:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.endpoint = None
        self.calls = []
        self._lock = threading.Lock()

    def set_endpoint(self, endpoint):
        self.endpoint = endpoint

    def query_with_timeout(self, query, timeout):
        with self._lock:
            self.calls.append((self.endpoint, query, timeout))
        if self.endpoint in self.failing:
            raise QueryError("query failed after 3 retries: boom")
        return dict(RESPONSE)


class FakeWriter:
    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []
        self.closed = False

    def write_messages(self, *messages):
        if self.fail:
            raise RuntimeError("broker down")
        self.messages.extend(messages)

    def close(self):
        self.closed = True


def test_runs_query_for_each_type_with_endpoint_specific_text():
    client = FakeClient()
    extractor = DataExtractor(client, [ENDPOINT], query_types=["tokens", "transactions"])
    extractor.extract_all()
    sent = {(endpoint, query) for endpoint, query, _ in client.calls}
    assert sent == {
        (ENDPOINT, get_query_for_endpoint(ENDPOINT, "tokens")),
        (ENDPOINT, get_query_for_endpoint(ENDPOINT, "transactions")),
    }
    assert all(timeout == 30.0 for _, _, timeout in client.calls)


def test_types_without_query_are_skipped():
    client = FakeClient()
    extractor = DataExtractor(client, ["zzzz"], query_types=["swaps"])
    extractor.extract_all()
    assert client.calls == []


def test_callback_receives_every_result():
    received = []
    lock = threading.Lock()

    def callback(endpoint, query_type, data):
        with lock:
            received.append((endpoint, query_type, data))

    extractor = DataExtractor(
        FakeClient(), [ENDPOINT, "zzzz"], query_types=["tokens"], data_callback=callback
    )
    extractor.extract_all()
    assert sorted(received) == sorted(
        [(ENDPOINT, "tokens", RESPONSE), ("zzzz", "tokens", RESPONSE)]
    )


def test_failed_queries_raise_with_all_errors():
    client = FakeClient(failing={"zzzz", "yyyy"})
    extractor = DataExtractor(client, [ENDPOINT, "zzzz", "yyyy"], query_types=["tokens"])
    with pytest.raises(ExtractionFailed) as info:
        extractor.extract_all()
    assert str(info.value) == "encountered 2 errors during extraction"
    assert len(info.value.errors) == 2
    assert all("error querying tokens from" in str(err) for err in info.value.errors)


def test_publishes_to_prefixed_topic():
    writer = FakeWriter()
    extractor = DataExtractor(
        FakeClient(),
        [ENDPOINT],
        query_types=["tokens"],
        kafka_writer=writer,
        kafka_topic_prefix="thegraph",
    )
    extractor.extract_all()
    assert len(writer.messages) == 1
    message = writer.messages[0]
    endpoint_id = get_endpoint_id(ENDPOINT)
    assert message.topic == f"thegraph_{endpoint_id}_tokens"
    assert message.key == f"{endpoint_id}-tokens".encode()
    assert json.loads(message.value) == RESPONSE


def test_publish_and_callback_failures_are_not_fatal():
    def callback(endpoint, query_type, data):
        raise ValueError("callback broke")

    writer = FakeWriter(fail=True)
    client = FakeClient()
    extractor = DataExtractor(
        client, [ENDPOINT], query_types=["tokens"], kafka_writer=writer, data_callback=callback
    )
    extractor.extract_all()
    assert len(client.calls) == 1
    assert writer.messages == []


def test_cancelled_extraction_runs_nothing():
    cancel = threading.Event()
    cancel.set()
    client = FakeClient()
    extractor = DataExtractor(client, [ENDPOINT], query_types=["tokens", "transactions"])
    extractor.extract_all(cancel)
    assert client.calls == []


def test_close_closes_writer_and_context_manager():
    writer = FakeWriter()
    with DataExtractor(FakeClient(), [], kafka_writer=writer):
        assert writer.closed is False
    assert writer.closed is True