"""Tests for SSE frame decoding."""

import pytest

from sentiment_stream.client.decoder import SSEFrameDecoder, decode_payload, decode_stream, is_heartbeat
from sentiment_stream.shared.errors import DecodeError
from sentiment_stream.shared.models import Category


def test_decodes_single_data_frame(make_record, make_frame):
    decoder = SSEFrameDecoder()
    records = decoder.feed(make_frame(make_record({"calm": 15})))

    assert len(records) == 1
    assert records[0].sentiment.delta_for(Category.CALM) == 15.0


@pytest.mark.parametrize("payload", ['{"type": "heartbeat"}', '{"type":"heartbeat","timestamp":"x"}'])
def test_heartbeat_frames_are_dropped_and_counted(payload):
    decoder = SSEFrameDecoder()
    records = decoder.feed(f"data: {payload}\n\n".encode())

    assert records == []
    assert decoder.stats["heartbeats"] == 1
    assert decoder.stats["decode_errors"] == 0


def test_heartbeat_detected_by_type_field_with_unusual_spacing():
    decoder = SSEFrameDecoder()
    assert decoder.feed(b'data: {  "type"  :  "heartbeat" }\n') == []
    assert decoder.stats["heartbeats"] == 1


def test_malformed_frame_is_skipped_and_stream_continues(make_record, make_frame):
    decoder = SSEFrameDecoder()
    chunk = b"data: {not json\n\n" + make_frame(make_record({"focused": -3}))

    records = decoder.feed(chunk)

    assert len(records) == 1
    assert records[0].sentiment.delta_for(Category.FOCUSED) == -3.0
    assert decoder.stats["decode_errors"] == 1


def test_missing_category_is_a_decode_error():
    payload = '{"timestamp": "t", "sentiment": {"calm": 1}}'
    with pytest.raises(DecodeError) as exc_info:
        decode_payload(payload)
    assert exc_info.value.payload == payload


@pytest.mark.parametrize("calm", ['"5"', "true"])
def test_quoted_or_boolean_delta_is_a_decode_error(make_record, calm):
    wire = make_record({"calm": 1}).to_wire().replace('"calm":1.0', f'"calm":{calm}')
    assert f'"calm":{calm}' in wire

    decoder = SSEFrameDecoder()
    assert decoder.feed(f"data: {wire}\n\n") == []
    assert decoder.stats["decode_errors"] == 1
    with pytest.raises(DecodeError):
        decode_payload(wire)


def test_line_split_across_chunks_is_reassembled(make_record, make_frame):
    frame = make_frame(make_record({"curious": 2.5}))
    decoder = SSEFrameDecoder()

    assert decoder.feed(frame[:17]) == []
    records = decoder.feed(frame[17:])

    assert len(records) == 1
    assert records[0].sentiment.delta_for(Category.CURIOUS) == 2.5
    assert decoder.stats["decode_errors"] == 0


def test_multibyte_character_split_across_chunks():
    payload = (
        '{"timestamp": "2025-07-28 12:00 ✓", "sentiment": {"calm": 1, "connected": 0, "motivated": 0,'
        ' "stimulated": 0, "focused": 0, "light-hearted": 0, "inspired": 0, "curious": 0}}'
    )
    raw = f"data: {payload}\n".encode()
    cut = raw.index("✓".encode()) + 1
    decoder = SSEFrameDecoder()

    records = decoder.feed(raw[:cut]) + decoder.feed(raw[cut:])

    assert records[0].timestamp.endswith("✓")


def test_non_data_lines_are_ignored(make_record, make_frame):
    decoder = SSEFrameDecoder()
    chunk = b": ping\r\nevent: sentiment\r\nid: 7\r\n" + make_frame(make_record())

    assert len(decoder.feed(chunk)) == 1
    assert decoder.stats["decode_errors"] == 0


def test_data_marker_without_space(make_record):
    decoder = SSEFrameDecoder()
    records = decoder.feed(f"data:{make_record({'calm': 1}).to_wire()}\n")
    assert len(records) == 1


def test_flush_decodes_unterminated_last_line(make_record):
    decoder = SSEFrameDecoder()
    assert decoder.feed(f"data: {make_record().to_wire()}") == []
    assert len(decoder.flush()) == 1
    assert decoder.flush() == []


def test_reset_drops_partial_line(make_record):
    decoder = SSEFrameDecoder()
    decoder.feed(f"data: {make_record().to_wire()}"[:20])
    decoder.reset()

    assert decoder.flush() == []
    assert decoder.stats["decode_errors"] == 0


def test_shared_stats_dict_is_updated_in_place():
    stats = {"events_received": 0}
    decoder = SSEFrameDecoder(stats)
    decoder.feed(b"data: nope\n")
    assert stats["decode_errors"] == 1
    assert stats["heartbeats"] == 0


def test_is_heartbeat_ignores_sentiment_frames(make_record):
    assert not is_heartbeat(make_record().to_wire())


@pytest.mark.asyncio
async def test_decode_stream_preserves_arrival_order(make_record, make_frame):
    frames = [make_frame(make_record({"calm": i})) for i in range(5)]
    blob = b"".join(frames) + b'data: {"type": "heartbeat"}\n\n'

    async def chunks():
        for i in range(0, len(blob), 13):
            yield blob[i:i + 13]

    deltas = [r.sentiment.delta_for(Category.CALM) async for r in decode_stream(chunks())]

    assert deltas == [0.0, 1.0, 2.0, 3.0, 4.0]
