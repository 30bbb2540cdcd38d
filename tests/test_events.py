"""Tests for the in-memory observer bus."""

import pytest

from sentiment_stream.shared.events import InternalBus


@pytest.mark.asyncio
async def test_publish_reaches_subscribers_in_order():
    bus = InternalBus("test")
    calls = []

    async def first(message):
        calls.append(("first", message))

    async def second(message):
        calls.append(("second", message))

    bus.subscribe(first)
    bus.subscribe(second)
    await bus.publish(1)
    await bus.publish(2)

    assert calls == [("first", 1), ("second", 1), ("first", 2), ("second", 2)]


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others():
    bus = InternalBus("test")
    received = []

    async def broken(message):
        raise RuntimeError("boom")

    async def healthy(message):
        received.append(message)

    bus.subscribe(broken)
    bus.subscribe(healthy)
    await bus.publish("snapshot")

    assert received == ["snapshot"]


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery():
    bus = InternalBus("test")
    received = []

    async def on_message(message):
        received.append(message)

    unsubscribe = bus.subscribe(on_message)
    await bus.publish("a")
    unsubscribe()
    unsubscribe()
    await bus.publish("b")

    assert received == ["a"]
    assert bus.subscriber_count == 0
