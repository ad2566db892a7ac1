import json

import httpx
import pytest

from graphextract.graph_client import QueryError, TheGraphClient


def _client(handler, max_retries=3):
    return TheGraphClient(
        "token", max_retries=max_retries, retry_delay=0, transport=httpx.MockTransport(handler)
    )


def test_query_returns_data_and_sends_request():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": {"tokens": [{"id": "0x1"}]}})

    client = _client(handler)
    client.set_endpoint("abc123")
    result = client.query("{ tokens { id } }")
    assert result == {"tokens": [{"id": "0x1"}]}
    request = seen[0]
    assert str(request.url) == "https://gateway.thegraph.com/api/subgraphs/id/abc123"
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Bearer token"
    assert json.loads(request.content)["query"] == "{ tokens { id } }"


def test_query_without_endpoint_raises():
    client = _client(lambda request: httpx.Response(200, json={"data": {}}))
    with pytest.raises(QueryError, match="endpoint not set"):
        client.query("{ x }")


def test_retries_until_success():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(500, text="oops")
        return httpx.Response(200, json={"data": {"ok": True}})

    client = _client(handler)
    client.set_endpoint("e")
    assert client.query("{ ok }") == {"ok": True}
    assert len(calls) == 3


def test_gives_up_after_max_retries():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, text="unavailable")

    client = _client(handler, max_retries=2)
    client.set_endpoint("e")
    with pytest.raises(QueryError, match="query failed after 2 retries"):
        client.query("{ ok }")
    assert len(calls) == 3


def test_graphql_errors_are_failures():
    def handler(request):
        return httpx.Response(200, json={"errors": [{"message": "bad field"}]})

    client = _client(handler, max_retries=0)
    client.set_endpoint("e")
    with pytest.raises(QueryError, match="graphql: bad field"):
        client.query("{ nope }")


def test_transport_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler, max_retries=1)
    client.set_endpoint("e")
    with pytest.raises(QueryError):
        client.query("{ x }")
    assert len(calls) == 2


def test_expired_timeout_sends_nothing():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"data": {}})

    client = _client(handler, max_retries=1)
    client.set_endpoint("e")
    with pytest.raises(QueryError, match="deadline"):
        client.query_with_timeout("{ x }", 0)
    assert calls == []


def test_query_with_timeout_succeeds():
    client = _client(lambda request: httpx.Response(200, json={"data": {"a": 1}}))
    client.set_endpoint("e")
    with client:
        assert client.query_with_timeout("{ a }", 30) == {"a": 1}