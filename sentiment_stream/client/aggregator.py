"""
MODULE OVERVIEW:
The aggregation engine: running totals and rolling history per category.

WHAT IS HAPPENING HERE:
Each incoming record carries a signed delta per category. We add it to the
running value, clamp the result into [0, 100] and append the clamped value to
that category's history, a `deque(maxlen=50)` that evicts the oldest point on
overflow. `apply_delta` contains no `await`, so on a single event loop the
eight updates land together before anyone can look. Observers only ever get
the `SentimentSnapshot` copy it returns.
"""
from collections import deque
from typing import Dict

from loguru import logger

from sentiment_stream.shared.config import settings
from sentiment_stream.shared.models import ALL_CATEGORIES, Category, DeltaRecord, SentimentSnapshot

def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)

class SentimentAggregator:
    def __init__(
        self,
        initial_value: float | None = None,
        history_capacity: int | None = None,
        low: float | None = None,
        high: float | None = None,
    ):
        self.initial_value = settings.INITIAL_VALUE if initial_value is None else initial_value
        self.history_capacity = history_capacity or settings.HISTORY_CAPACITY
        self.low = settings.VALUE_MIN if low is None else low
        self.high = settings.VALUE_MAX if high is None else high
        self.reset()

    def reset(self) -> None:
        """Back to the session baseline: every category at the initial value."""
        self._values: Dict[Category, float] = {c: self.initial_value for c in ALL_CATEGORIES}
        self._history: Dict[Category, deque[float]] = {
            c: deque([self.initial_value], maxlen=self.history_capacity) for c in ALL_CATEGORIES
        }
        self.applied_count = 0
        self.latest: DeltaRecord | None = None

    @property
    def has_data(self) -> bool:
        return self.applied_count > 0

    def apply_delta(self, record: DeltaRecord) -> SentimentSnapshot:
        for category in ALL_CATEGORIES:
            old = self._values[category]
            delta = record.sentiment.delta_for(category)
            raw = old + delta
            new = clamp(raw, self.low, self.high)
            self._values[category] = new
            self._history[category].append(new)
            if raw != new:
                logger.debug(f"category={category.value} old={old} delta={delta} raw={raw} clamped={new}")

        self.applied_count += 1
        self.latest = record
        return self.snapshot()

    def value(self, category: Category) -> float:
        return self._values[category]

    def history(self, category: Category) -> tuple[float, ...]:
        return tuple(self._history[category])

    def snapshot(self) -> SentimentSnapshot:
        return SentimentSnapshot(
            values=dict(self._values),
            history={c: tuple(h) for c, h in self._history.items()},
            applied_count=self.applied_count,
            latest=self.latest,
        )
