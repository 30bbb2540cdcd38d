"""Tests for the HTTP stream transport, using httpx's mock transport."""

import httpx
import pytest

from sentiment_stream.client.sse_client import SSETransport
from sentiment_stream.client.stream_manager import SentimentStreamManager
from sentiment_stream.shared.errors import StreamConnectionError
from sentiment_stream.shared.models import Category, ConnectionState


def make_transport(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SSETransport(base_url="http://feed.test/", api_key="secret", client=client, **kwargs)


@pytest.mark.asyncio
async def test_request_carries_stream_headers():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        return httpx.Response(200, content=b"")

    transport = make_transport(handler)
    chunks = [c async for c in transport.stream()]

    assert chunks == []
    assert seen["url"] == "http://feed.test/sentiment/stream"
    assert seen["headers"]["accept"] == "text/event-stream"
    assert seen["headers"]["cache-control"] == "no-cache"
    assert seen["headers"]["x-api-key"] == "secret"


@pytest.mark.asyncio
async def test_on_open_runs_before_first_chunk():
    order = []

    def handler(request):
        return httpx.Response(200, content=b"data: x\n")

    async def on_open():
        order.append("open")

    async for chunk in make_transport(handler).stream(on_open=on_open):
        order.append(chunk)

    assert order == ["open", b"data: x\n"]


@pytest.mark.asyncio
async def test_non_success_status_raises_without_bytes():
    opened = []

    def handler(request):
        return httpx.Response(401, content=b"data: should not be delivered\n")

    async def on_open():
        opened.append(True)

    chunks = []
    with pytest.raises(StreamConnectionError) as exc_info:
        async for chunk in make_transport(handler).stream(on_open=on_open):
            chunks.append(chunk)

    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "HTTP error: 401"
    assert chunks == []
    assert opened == []


@pytest.mark.asyncio
async def test_network_failure_becomes_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StreamConnectionError) as exc_info:
        async for _ in make_transport(handler).stream():
            pass

    assert exc_info.value.status_code is None
    assert "connection refused" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def test_read_timeout_is_disabled():
    transport = SSETransport(base_url="http://feed.test", connect_timeout_s=3.0)

    assert transport.client.timeout.read is None
    assert transport.client.timeout.connect == 3.0


@pytest.mark.asyncio
async def test_manager_end_to_end_over_http(make_record, make_frame):
    body = (
        make_frame(make_record({"connected": 20}))
        + b'data: {"type": "heartbeat"}\n\n'
        + make_frame(make_record({"connected": 100}))
    )

    def handler(request):
        return httpx.Response(200, content=body)

    manager = SentimentStreamManager(make_transport(handler))
    await manager.connect()
    await manager.wait_closed()

    assert manager.current_value(Category.CONNECTED) == 100.0
    assert manager.history(Category.CONNECTED) == [30.0, 50.0, 100.0]
    assert manager.stats["heartbeats"] == 1
    assert manager.stats["bytes_received"] == len(body)
    assert manager.state == ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_manager_surfaces_http_error():
    manager = SentimentStreamManager(make_transport(lambda request: httpx.Response(403)))

    await manager.connect()
    await manager.wait_closed()

    assert manager.last_error == "HTTP error: 403"
    assert manager.current_value(Category.CALM) == 0.0
