"""
MODULE OVERVIEW:
The live widget capability interface.

WHAT IS HAPPENING HERE:
On a phone the focused category is mirrored into an OS-level live widget (lock
screen, dynamic island). The stream core only knows how to push content to
"something": start it, update it, stop everything. Which implementation is
behind that is chosen once at startup from config. When the platform offers
nothing, the null target swallows the calls.
"""
from abc import ABC, abstractmethod

from loguru import logger

from sentiment_stream.shared.models import WidgetContent

class WidgetTarget(ABC):
    name: str = "abstract"

    @abstractmethod
    async def start(self, content: WidgetContent) -> None:
        pass

    @abstractmethod
    async def update(self, content: WidgetContent) -> None:
        pass

    @abstractmethod
    async def stop_all(self) -> None:
        pass

class NullWidgetTarget(WidgetTarget):
    name = "none"

    async def start(self, content: WidgetContent) -> None:
        pass

    async def update(self, content: WidgetContent) -> None:
        pass

    async def stop_all(self) -> None:
        pass

class LogWidgetTarget(WidgetTarget):
    """Simulated widget: remembers what it would display and logs every push."""
    name = "log"

    def __init__(self):
        self.active = False
        self.current: WidgetContent | None = None
        self.pushes = 0

    async def start(self, content: WidgetContent) -> None:
        self.active = True
        self.current = content
        logger.info(
            f"widget=log event=start category={content.selected_category.value} "
            f"value={content.current_value:.1f}"
        )

    async def update(self, content: WidgetContent) -> None:
        if not self.active:
            logger.debug("widget=log event=update_skipped reason=not_started")
            return
        self.current = content
        self.pushes += 1
        logger.info(
            f"widget=log event=update category={content.selected_category.value} "
            f"value={content.current_value:.1f} delta={content.delta_value:+.1f}"
        )

    async def stop_all(self) -> None:
        self.active = False
        self.current = None
        logger.info("widget=log event=stop_all")

WIDGET_BACKENDS = {
    NullWidgetTarget.name: NullWidgetTarget,
    LogWidgetTarget.name: LogWidgetTarget,
}

def make_widget_target(name: str) -> WidgetTarget:
    try:
        return WIDGET_BACKENDS[name.strip().lower()]()
    except KeyError:
        raise ValueError(f"Unknown widget backend: {name!r} (expected one of {sorted(WIDGET_BACKENDS)})") from None
