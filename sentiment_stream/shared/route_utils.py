import uuid
import asyncio
from typing import Callable, Awaitable, AsyncGenerator
from loguru import logger
from sentiment_stream.shared.models import DeltaRecord, Heartbeat

async def extract_client_id(client_id: str | None) -> str:
    """
    If the caller provided a client_id, use it.
    If not, generate a short readable one like 'client-a3f2'.
    """
    if client_id:
        return client_id
    return f"client-{str(uuid.uuid4())[:4]}"

async def log_connection(protocol: str, client_id: str, extra: dict | None = None) -> None:
    """
    Single structured log entry for a stream connect or disconnect.
    """
    log_str = f"protocol={protocol} client_id={client_id}"
    for k, v in (extra or {}).items():
        log_str += f" {k}={v}"
    logger.info(log_str)

async def run_event_loop(
    send_fn: Callable[[DeltaRecord | Heartbeat], Awaitable[None]],
    generator: AsyncGenerator[DeltaRecord, None],
    heartbeat_interval_s: float = 15.0,
) -> None:
    """
    The server-side dispatch loop for one stream.

      1. Waits on `generator` for the next record.
      2. If `heartbeat_interval_s` seconds pass with nothing, sends a Heartbeat
         and keeps waiting on the same pending read.
      3. Exits when the generator is exhausted or the task is cancelled.
    """
    # The pending read outlives a heartbeat timeout; cancelling it would close the generator.
    pending: asyncio.Future | None = None
    try:
        while True:
            if pending is None:
                pending = asyncio.ensure_future(anext(generator))
            done, _ = await asyncio.wait({pending}, timeout=heartbeat_interval_s)
            if not done:
                await send_fn(Heartbeat())
                continue
            finished, pending = pending, None
            try:
                record = finished.result()
            except StopAsyncIteration:
                break
            await send_fn(record)
    except asyncio.CancelledError:
        pass
    finally:
        if pending is not None:
            pending.cancel()
