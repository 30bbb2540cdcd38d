"""Shared fixtures for the sentiment stream tests."""

import asyncio

import pytest

from sentiment_stream.shared.models import Category, DeltaRecord, SentimentDeltas


class FakeTransport:
    """Stands in for SSETransport: scripted chunks, optional failure, optional hold-open."""

    def __init__(self, chunks=(), open_error=None, fail_after=None, hold_open=False):
        self.chunks = list(chunks)
        self.open_error = open_error
        self.fail_after = fail_after
        self.hold_open = hold_open
        self.attempts = 0
        self.closed_streams = 0
        self.aclosed = False

    async def stream(self, on_open=None):
        self.attempts += 1
        try:
            if self.open_error is not None:
                raise self.open_error
            if on_open is not None:
                await on_open()
            for chunk in self.chunks:
                yield chunk
            if self.fail_after is not None:
                raise self.fail_after
            if self.hold_open:
                await asyncio.Event().wait()
        finally:
            self.closed_streams += 1

    async def aclose(self):
        self.aclosed = True


def build_record(deltas=None, timestamp="2025-07-28T12:00:00Z", **lookbacks) -> DeltaRecord:
    parsed = {Category.parse(k): v for k, v in (deltas or {}).items()}
    return DeltaRecord(
        timestamp=timestamp,
        sentiment=SentimentDeltas.from_categories(parsed, **lookbacks),
    )


def build_frame(record: DeltaRecord) -> bytes:
    return f"data: {record.to_wire()}\n\n".encode()


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def eventually():
    async def _eventually(predicate, timeout=1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _eventually
