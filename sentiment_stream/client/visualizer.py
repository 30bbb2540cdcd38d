"""
MODULE OVERVIEW:
The Rich Terminal Dashboard.

WHAT IS HAPPENING HERE:
We use Rich to draw every category's running value and a sparkline of its
recent history. The dashboard runs the stream manager's supervised loop in
the background and only talks to it through the read interface: it subscribes
to snapshots and status changes and keeps its own small copies for drawing.
"""

from rich.live import Live
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from collections import deque
from datetime import datetime
import asyncio

from sentiment_stream.client.stream_manager import SentimentStreamManager
from sentiment_stream.shared.models import ALL_CATEGORIES, ConnectionStatus, SentimentSnapshot

SPARK_CHARS = "▁▂▃▄▅▆▇█"

def sparkline(values, low: float = 0.0, high: float = 100.0) -> str:
    if not values:
        return ""
    span = (high - low) or 1.0
    top = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[round((min(max(v, low), high) - low) / span * top)] for v in values)

class Visualizer:
    def __init__(self, manager: SentimentStreamManager, history_limit: int = 30):
        self.manager = manager
        self.history_limit = history_limit
        self.snapshot: SentimentSnapshot | None = None
        self.status = "INITIALIZING"
        self.timeline = deque(maxlen=5)

    async def on_status_change(self, status: ConnectionStatus):
        self.status = status.state.value.upper()
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"[{ts}] State: {self.status}"
        if status.error:
            line += f" ({status.error})"
        self.timeline.appendleft(line)

    async def on_snapshot(self, snapshot: SentimentSnapshot):
        self.snapshot = snapshot

    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="stats"),
            Layout(name="timeline")
        )

        color = "green" if self.status == "CONNECTED" else "yellow" if self.status == "CONNECTING" else "red"
        focus = self.manager.focused.display_name if self.manager.focused else "none"
        layout["header"].update(Panel(f"[{color} bold]Sentiment stream | Status: {self.status} | Focus: {focus}[/]", style=color))

        table = Table(title="Sentiment Trend", expand=True)
        table.add_column("Feeling", style="cyan", no_wrap=True)
        table.add_column("Value", justify="right", style="magenta")
        table.add_column("Delta", justify="right", style="green")
        table.add_column("Trend", style="blue")

        latest = self.snapshot.latest if self.snapshot else None
        for category in ALL_CATEGORIES:
            value = self.manager.current_value(category)
            delta = f"{latest.sentiment.delta_for(category):+.1f}" if latest else "-"
            trend = sparkline(self.manager.history(category, self.history_limit))
            table.add_row(category.display_name, f"{value:.1f}", delta, trend)

        layout["left"].update(Panel(table, title="Feed"))

        stats = self.manager.stats
        stats_text = (
            f"Deltas applied: {stats['events_received']}\n"
            f"Heartbeats: {stats['heartbeats']}\n"
            f"Decode errors: {stats['decode_errors']}\n"
            f"Reconnects: {stats['reconnect_count']}\n"
            f"Bytes: {stats['bytes_received']}\n"
            f"Last error: {self.manager.last_error or '-'}"
        )
        layout["stats"].update(Panel(stats_text, title="Connection Stats"))
        layout["timeline"].update(Panel("\n".join(self.timeline), title="Timeline"))

        return layout

    async def run(self, duration_s: float | None):
        self.manager.subscribe(self.on_snapshot)
        self.manager.subscribe_status(self.on_status_change)

        client_task = asyncio.create_task(self.manager.run(duration_s))

        with Live(self.generate_layout(), refresh_per_second=4) as live:
            while not client_task.done():
                live.update(self.generate_layout())
                await asyncio.sleep(0.25)
