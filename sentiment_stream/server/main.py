"""
MODULE OVERVIEW:
The FastAPI application factory for the development sentiment feed.

WHAT IS HAPPENING HERE:
We use a `lifespan` context manager. When Uvicorn starts the server we spawn
the delta generator as a background task feeding the hub; on shutdown we
cancel it and wait for it to exit.
"""

from fastapi import FastAPI
import asyncio
from contextlib import asynccontextmanager
from loguru import logger

from sentiment_stream.server.dummy_data import sentiment_delta_generator
from sentiment_stream.server.hub import hub
from sentiment_stream.server.routes import sse
from sentiment_stream.shared.config import settings

background_tasks = set()

async def generator_runner(generator):
    """Consumes the delta generator and hands every record to the hub."""
    try:
        async for record in generator:
            hub.push_record(record)
    except asyncio.CancelledError:
        logger.debug("Delta generator cancelled")
    except Exception as e:
        logger.error(f"Generator error: {e}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Sentiment feed server starting up...")
    task = asyncio.create_task(generator_runner(sentiment_delta_generator(settings.SIM_EMIT_INTERVAL_S)))
    background_tasks.add(task)

    yield

    logger.info("Server shutting down. Cancelling background tasks...")
    for task in background_tasks:
        task.cancel()
    if background_tasks:
        await asyncio.gather(*background_tasks, return_exceptions=True)
    background_tasks.clear()
    logger.info("Shutdown complete.")


app = FastAPI(
    title="Sentiment Stream (development feed)",
    description="Local stand-in for the live sentiment SSE endpoint",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(sse.router, tags=["Stream"])

@app.get("/healthz", tags=["Ops"])
async def health_check():
    return {"status": "ok"}

@app.get("/stats", tags=["Ops"])
async def get_stats():
    return hub.get_stats()
