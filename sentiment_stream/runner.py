"""
CLI entrypoint for the sentiment stream client.
"""
import asyncio
import sys

import typer
from loguru import logger

from sentiment_stream.client.sse_client import SSETransport
from sentiment_stream.client.stream_manager import SentimentStreamManager
from sentiment_stream.client.visualizer import Visualizer
from sentiment_stream.client.widgets import make_widget_target
from sentiment_stream.shared.config import settings
from sentiment_stream.shared.models import Category
from sentiment_stream.shared.session import CookieSession

app = typer.Typer(help="Live sentiment stream client")

def local_url() -> str:
    return f"http://127.0.0.1:{settings.PORT}"

@app.command()
def server():
    """Start the development sentiment feed using Uvicorn."""
    import uvicorn
    typer.echo(f"Starting development feed on port {settings.PORT}...")
    uvicorn.run("sentiment_stream.server.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())

@app.command()
def watch(
    base_url: str = typer.Option(None, help="Feed base URL (defaults to the configured endpoint)"),
    local: bool = typer.Option(False, "--local", help="Connect to the development feed on localhost"),
    duration: float = typer.Option(None, help="Seconds to stay connected (default: until Ctrl+C)"),
    focus: str = typer.Option(None, help="Category to mirror into the widget, e.g. calm or light-hearted"),
    widget: str = typer.Option(None, help="Widget backend: none or log"),
    cookies: str = typer.Option(None, help="Session cookie string; connect is refused if incomplete"),
):
    """Connect to the feed and show the live dashboard."""
    try:
        focus_category = Category.parse(focus) if focus else None
        widget_target = make_widget_target(widget or settings.WIDGET_BACKEND)
    except ValueError as e:
        typer.echo(str(e))
        raise typer.Exit(1)

    # Keep log lines off the terminal the dashboard is drawing on
    logger.remove()
    logger.add(settings.LOG_FILE, level=settings.LOG_LEVEL)

    url = local_url() if local else base_url
    session = CookieSession.from_cookie_header(cookies) if cookies else None
    manager = SentimentStreamManager(SSETransport(base_url=url), widget=widget_target, session=session)

    async def main():
        if focus_category:
            await manager.focus(focus_category)
        try:
            await Visualizer(manager).run(duration)
        finally:
            await manager.stop_widgets()
            await manager.aclose()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass

    if manager.last_error:
        logger.add(sys.stderr, level="WARNING")
        logger.warning(f"Last connection error: {manager.last_error}")

@app.command()
def stats():
    """Query the development feed for live stream stats."""
    import httpx
    resp = httpx.get(f"{local_url()}/stats")
    typer.echo(resp.json())

if __name__ == "__main__":
    app()
