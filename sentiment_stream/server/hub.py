"""
MODULE OVERVIEW:
The development server's fan-out registry.

WHAT IS HAPPENING HERE:
Every open `/sentiment/stream` request gets its own bounded asyncio.Queue.
When the delta generator produces a record, `push_record()` drops it into
every queue without blocking; a slow client loses records instead of holding
everybody else up. That mirrors the real feed: no sequence numbers, no replay.
"""

import asyncio
from collections import deque
from datetime import datetime, timezone
from typing import Dict
from loguru import logger

from sentiment_stream.shared.models import DeltaRecord, StreamStats

class StreamHub:
    def __init__(self, queue_size: int = 100, buffer_size: int = 200):
        self.queue_size = queue_size
        self.sse_queues: Dict[str, asyncio.Queue[DeltaRecord]] = {}
        self.recent_records: deque[DeltaRecord] = deque(maxlen=buffer_size)
        self.total_events_dispatched = 0
        self.startup_time = datetime.now(timezone.utc)

    def subscribe(self, client_id: str) -> asyncio.Queue[DeltaRecord]:
        queue: asyncio.Queue[DeltaRecord] = asyncio.Queue(maxsize=self.queue_size)
        self.sse_queues[client_id] = queue
        logger.info(f"client_id={client_id} protocol=sse event=connect reason=subscribed")
        return queue

    def unsubscribe(self, client_id: str):
        if client_id in self.sse_queues:
            del self.sse_queues[client_id]
            logger.info(f"client_id={client_id} protocol=sse event=disconnect reason=cleanup")

    def push_record(self, record: DeltaRecord):
        self.total_events_dispatched += 1
        self.recent_records.append(record)
        for client_id, queue in self.sse_queues.items():
            try:
                queue.put_nowait(record)
            except asyncio.QueueFull:
                logger.warning(f"client_id={client_id} protocol=sse event=dropped reason=queue_full")

    def get_stats(self) -> StreamStats:
        now = datetime.now(timezone.utc)
        return StreamStats(
            active_streams=len(self.sse_queues),
            total_events_dispatched=self.total_events_dispatched,
            uptime_s=(now - self.startup_time).total_seconds(),
            server_time=now,
        )

# Global singleton instance
hub = StreamHub()
