"""
MODULE OVERVIEW:
An infinite async generator that produces realistic fake sentiment deltas.

WHAT IS HAPPENING HERE:
The real feed derives its deltas from what the user watched. Here we run a
small random walk per category so the client has steady, bounded-looking
traffic: each tick nudges a hidden "mood" and emits the change as the delta,
with the four lookback references attached.
"""

import asyncio
import random
from datetime import datetime, timezone

from sentiment_stream.shared.models import ALL_CATEGORIES, DeltaRecord, SentimentDeltas

def make_record(deltas: dict, lookbacks: dict | None = None) -> DeltaRecord:
    return DeltaRecord(
        timestamp=datetime.now(timezone.utc).isoformat(),
        sentiment=SentimentDeltas.from_categories(deltas, **(lookbacks or {})),
    )

async def sentiment_delta_generator(interval_s: float = 1.0, max_step: float = 6.0, seed: int | None = None):
    """Emits one DeltaRecord every `interval_s` seconds, forever."""
    rng = random.Random(seed)
    mood = {c: 30.0 for c in ALL_CATEGORIES}
    history: list[float] = []

    while True:
        deltas = {}
        for category in ALL_CATEGORIES:
            # Drift back toward the middle so the walk does not pin at a bound
            pull = (50.0 - mood[category]) * 0.05
            step = round(rng.uniform(-max_step, max_step) + pull, 2)
            mood[category] = min(max(mood[category] + step, 0.0), 100.0)
            deltas[category] = step

        overall = sum(mood.values()) / len(mood)
        history.append(overall)
        lookbacks = {
            "onehourbefore": round(history[max(0, len(history) - 60)], 2),
            "sixhoursbefore": round(history[max(0, len(history) - 360)], 2),
            "onedaybefore": round(history[max(0, len(history) - 1440)], 2),
            "oneweekbefore": round(history[0], 2),
        }
        del history[:-1440]

        yield make_record(deltas, lookbacks)
        await asyncio.sleep(interval_s)
