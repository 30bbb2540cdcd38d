"""
MODULE OVERVIEW:
The snapshot publisher: the read side of the aggregation engine.

WHAT IS HAPPENING HERE:
Charts ask for a category's current value and its recent history; before the
first record of the session arrives both answers are "nothing yet" (0.0 and an
empty list), which is different from a flat line at the 30.0 baseline.
After every applied delta the publisher fans the snapshot out on the bus and,
if the user has a category focused, pushes that category to the widget.
"""
from loguru import logger

from sentiment_stream.client.aggregator import SentimentAggregator
from sentiment_stream.client.widgets import NullWidgetTarget, WidgetTarget
from sentiment_stream.shared.config import settings
from sentiment_stream.shared.events import InternalBus
from sentiment_stream.shared.models import Category, DeltaRecord, Lookbacks, SentimentSnapshot, WidgetContent

class SnapshotPublisher:
    def __init__(
        self,
        aggregator: SentimentAggregator,
        bus: InternalBus | None = None,
        widget: WidgetTarget | None = None,
    ):
        self.aggregator = aggregator
        self.bus = bus or InternalBus("snapshots")
        self.widget = widget or NullWidgetTarget()
        self.focused: Category | None = None

    def current_value(self, category: Category | str) -> float:
        if not self.aggregator.has_data:
            return 0.0
        return self.aggregator.value(Category.parse(category))

    def history(self, category: Category | str, limit: int | None = None) -> list[float]:
        if not self.aggregator.has_data:
            return []
        limit = settings.HISTORY_DEFAULT_LIMIT if limit is None else limit
        if limit <= 0:
            return []
        return list(self.aggregator.history(Category.parse(category))[-limit:])

    def snapshot(self) -> SentimentSnapshot:
        return self.aggregator.snapshot()

    async def publish(self, record: DeltaRecord, snapshot: SentimentSnapshot) -> None:
        # Built before the fan-out so observers cannot change what the widget shows.
        content = self._widget_content(record, snapshot)
        await self.bus.publish(snapshot)
        if content is None or self.focused != content.selected_category:
            return
        try:
            await self.widget.update(content)
        except Exception as e:
            logger.error(f"widget={self.widget.name} event=update_failed reason='{e}'")

    def _widget_content(self, record: DeltaRecord, snapshot: SentimentSnapshot) -> WidgetContent | None:
        if self.focused is None:
            return None
        category = self.focused
        return WidgetContent(
            selected_category=category,
            current_value=snapshot.values[category],
            delta_value=record.sentiment.delta_for(category),
            data_points=snapshot.history[category],
            lookbacks=record.sentiment.lookbacks,
        )

    async def focus(self, category: Category | str) -> None:
        """Remember `category` as focused and start its widget."""
        category = Category.parse(category)
        self.focused = category
        latest = self.aggregator.latest
        content = WidgetContent(
            selected_category=category,
            current_value=self.current_value(category),
            delta_value=0.0,
            data_points=self.aggregator.history(category),
            lookbacks=latest.sentiment.lookbacks if latest else Lookbacks(),
        )
        logger.info(f"event=focus category={category.value} value={content.current_value:.1f}")
        try:
            await self.widget.start(content)
        except Exception as e:
            logger.error(f"widget={self.widget.name} event=start_failed reason='{e}'")

    def clear_focus(self) -> None:
        if self.focused is not None:
            logger.info(f"event=focus_cleared category={self.focused.value}")
        self.focused = None

    async def stop_widgets(self) -> None:
        self.clear_focus()
        try:
            await self.widget.stop_all()
        except Exception as e:
            logger.error(f"widget={self.widget.name} event=stop_failed reason='{e}'")
