"""
MODULE OVERVIEW:
The in-memory observer bus that replaces ambient published globals.

WHAT IS HAPPENING HERE:
The stream manager owns two of these: one carrying `SentimentSnapshot`s after
every applied delta, one carrying `ConnectionStatus` changes. UI code (the
terminal dashboard, tests, anything else) subscribes with an async callback
and gets immutable objects pushed to it in publish order.
A failing subscriber is logged and skipped so one broken consumer cannot
starve the others or stall the stream.
"""

from typing import Any, Awaitable, Callable, List
from loguru import logger

Subscriber = Callable[[Any], Awaitable[None]]

class InternalBus:
    """
    A minimal pub/sub bus to decouple the stream pipeline from its observers.
    """
    def __init__(self, name: str = "bus"):
        self.name = name
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register `callback`; the returned function unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, message: Any) -> None:
        # Iterate over a copy: a subscriber may unsubscribe itself mid-publish.
        for sub in list(self._subscribers):
            try:
                await sub(message)
            except Exception as e:
                logger.error(f"bus={self.name} event=subscriber_error reason='{e}'")
