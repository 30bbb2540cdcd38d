"""
MODULE OVERVIEW:
The `/sentiment/stream` endpoint of the development server.

WHAT IS HAPPENING HERE:
Same contract as the production feed: the `X-API-Key` header must match, then
the response is an open `text/event-stream` of `data: <json>` frames. Quiet
periods are filled with `{"type": "heartbeat"}` frames so intermediaries do
not close the idle connection.
"""
import asyncio
from fastapi import APIRouter, Header, HTTPException, Query
from sse_starlette.sse import EventSourceResponse

from sentiment_stream.server.hub import hub
from sentiment_stream.shared.config import settings
from sentiment_stream.shared.models import DeltaRecord, Heartbeat
from sentiment_stream.shared.route_utils import extract_client_id, log_connection, run_event_loop

router = APIRouter()

async def queue_generator(queue: asyncio.Queue):
    while True:
        yield await queue.get()

def to_frame(message: DeltaRecord | Heartbeat) -> dict:
    if isinstance(message, Heartbeat):
        return {"data": message.model_dump_json()}
    return {"data": message.to_wire()}

@router.get("/sentiment/stream")
async def sentiment_stream(
    client_id: str | None = Query(None),
    x_api_key: str | None = Header(None),
):
    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")

    cid = await extract_client_id(client_id)
    queue = hub.subscribe(cid)
    await log_connection("sse:connect", cid)

    out_queue: asyncio.Queue = asyncio.Queue()

    async def send_to_queue(message: DeltaRecord | Heartbeat) -> None:
        await out_queue.put(to_frame(message))

    async def event_publisher():
        try:
            await run_event_loop(send_to_queue, queue_generator(queue), settings.SSE_HEARTBEAT_INTERVAL_S)
        finally:
            hub.unsubscribe(cid)
            await log_connection("sse:disconnect", cid)

    publisher_task = asyncio.create_task(event_publisher())

    async def frames():
        try:
            while True:
                yield await out_queue.get()
        finally:
            publisher_task.cancel()

    return EventSourceResponse(frames())
