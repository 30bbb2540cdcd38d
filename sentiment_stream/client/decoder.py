"""
MODULE OVERVIEW:
The SSE frame decoder.

WHAT IS HAPPENING HERE:
We manually parse the raw `data: ` lines of the event stream, the same thing a
browser EventSource does. Bytes are decoded incrementally so a multi-byte
character split across two chunks survives, and a line cut in half by a chunk
boundary is held back until its newline arrives. Heartbeat frames and
malformed frames never leave this module: the first are counted and dropped,
the second are logged, counted and skipped so the stream keeps flowing.
"""
import codecs
import json
from typing import AsyncIterator

from loguru import logger
from pydantic import ValidationError

from sentiment_stream.shared.errors import DecodeError
from sentiment_stream.shared.models import DeltaRecord

DATA_PREFIX = "data:"
HEARTBEAT_MARKERS = ('"type": "heartbeat"', '"type":"heartbeat"')

def is_heartbeat(payload: str) -> bool:
    return any(marker in payload for marker in HEARTBEAT_MARKERS)

def decode_payload(payload: str) -> DeltaRecord:
    """Parse one `data:` payload into a DeltaRecord or raise DecodeError."""
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed JSON: {e}", payload) from e
    try:
        return DeltaRecord.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(f"Schema mismatch: {e.error_count()} error(s)", payload) from e

class SSEFrameDecoder:
    def __init__(self, stats: dict | None = None):
        self.stats = stats if stats is not None else {"heartbeats": 0, "decode_errors": 0}
        self.stats.setdefault("heartbeats", 0)
        self.stats.setdefault("decode_errors", 0)
        self.reset()

    def reset(self) -> None:
        """Drop any half-received line; called at the start of every connection."""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[DeltaRecord]:
        text = self._utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._decode_lines(lines)

    def flush(self) -> list[DeltaRecord]:
        """Decode whatever is left once the stream has ended."""
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        return self._decode_lines([tail]) if tail else []

    def _decode_lines(self, lines: list[str]) -> list[DeltaRecord]:
        records = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):]
            if payload.startswith(" "):
                payload = payload[1:]
            record = self._decode_frame(payload)
            if record is not None:
                records.append(record)
        return records

    def _decode_frame(self, payload: str) -> DeltaRecord | None:
        if is_heartbeat(payload):
            self.stats["heartbeats"] += 1
            logger.debug("protocol=sse event=heartbeat")
            return None
        try:
            return decode_payload(payload)
        except DecodeError as e:
            if self._is_json_heartbeat(payload):
                self.stats["heartbeats"] += 1
                logger.debug("protocol=sse event=heartbeat")
                return None
            self.stats["decode_errors"] += 1
            logger.warning(f"protocol=sse event=decode_error reason='{e}' payload={payload[:120]!r}")
            return None

    @staticmethod
    def _is_json_heartbeat(payload: str) -> bool:
        try:
            raw = json.loads(payload)
        except json.JSONDecodeError:
            return False
        return isinstance(raw, dict) and raw.get("type") == "heartbeat"

async def decode_stream(
    chunks: AsyncIterator[bytes], decoder: SSEFrameDecoder | None = None
) -> AsyncIterator[DeltaRecord]:
    """Lazily turn a chunk stream into DeltaRecords, in arrival order."""
    decoder = decoder or SSEFrameDecoder()
    async for chunk in chunks:
        for record in decoder.feed(chunk):
            yield record
    for record in decoder.flush():
        yield record
