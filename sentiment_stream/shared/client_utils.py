import asyncio
import random
from typing import Callable, Awaitable
from loguru import logger
from datetime import datetime, timezone

import httpx

def make_client_stats() -> dict:
    """
    Returns a fresh stats dictionary with zeroed counters.
    The stream manager calls this once in __init__ and shares it with its decoder.
    Keys: events_received, heartbeats, decode_errors, reconnect_count,
          bytes_received, last_event_at, connected_at.
    """
    return {
        "events_received": 0,
        "heartbeats": 0,
        "decode_errors": 0,
        "reconnect_count": 0,
        "bytes_received": 0,
        "last_event_at": None,
        "connected_at": None,
    }

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def backoff_delay(attempt: int, base_delay_s: float, max_delay_s: float) -> float:
    """Capped exponential delay with up to 10% jitter on top."""
    delay = min(base_delay_s * (2 ** attempt), max_delay_s)
    return delay + random.uniform(0, delay * 0.1)

async def with_reconnect(
    connect_fn: Callable[[], Awaitable[None]],
    stats: dict,
    duration_s: float | None = None,
    base_delay_s: float = 1.0,
    max_delay_s: float = 32.0,
    client_id: str = "unknown",
) -> None:
    """
    Keeps calling `connect_fn` until `duration_s` elapses (forever when None).

    `connect_fn` is expected to hold the stream open and raise a
    ConnectionError (or OSError / httpx.HTTPError) when it drops. Each failure
    backs off exponentially; a call that returns cleanly resets the attempt
    counter.
    """
    loop = asyncio.get_running_loop()
    attempt = 0
    start_time = loop.time()

    def remaining() -> float | None:
        if duration_s is None:
            return None
        return duration_s - (loop.time() - start_time)

    while True:
        left = remaining()
        if left is not None and left <= 0:
            break

        try:
            await asyncio.wait_for(connect_fn(), timeout=left)
            attempt = 0
        except asyncio.TimeoutError:
            # Reached max duration normally
            break
        except (ConnectionError, OSError, httpx.HTTPError) as e:
            attempt += 1
            delay = backoff_delay(attempt, base_delay_s, max_delay_s)
            stats["reconnect_count"] += 1
            logger.warning(
                f"protocol=sse client_id={client_id} attempt={attempt} "
                f"delay={delay:.2f}s error='{e}'"
            )
            left = remaining()
            if left is not None and left <= 0:
                break
            try:
                await asyncio.wait_for(asyncio.sleep(delay), timeout=left)
            except asyncio.TimeoutError:
                break
