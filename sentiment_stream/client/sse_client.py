"""
MODULE OVERVIEW:
The Server-Sent Events stream transport.

WHAT IS HAPPENING HERE:
We use the HTTPX `stream()` context manager to keep the response body open for
as long as the server wants, so the read timeout is disabled; only connecting
is bounded. The transport does exactly one attempt: a non-200 status or any
network failure becomes a `StreamConnectionError` and the chunk stream ends.
Deciding whether to try again belongs to the stream manager.
"""
from typing import AsyncIterator, Awaitable, Callable

import httpx
from loguru import logger

from sentiment_stream.shared.config import settings
from sentiment_stream.shared.errors import StreamConnectionError

class SSETransport:
    protocol_name: str = "sse"

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        path: str | None = None,
        client: httpx.AsyncClient | None = None,
        connect_timeout_s: float | None = None,
    ):
        self.base_url = (base_url or settings.STREAM_BASE_URL).rstrip('/')
        self.api_key = settings.API_KEY if api_key is None else api_key
        self.path = path or settings.STREAM_PATH
        timeout = httpx.Timeout(connect_timeout_s or settings.CONNECT_TIMEOUT_S, read=None)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.path}"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
            "X-API-Key": self.api_key,
        }

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def stream(
        self, on_open: Callable[[], Awaitable[None]] | None = None
    ) -> AsyncIterator[bytes]:
        """
        Yields raw byte chunks as they arrive. `on_open` is awaited once the
        server has answered 200 and before the first chunk is delivered.
        """
        logger.info(f"protocol=sse event=connecting url={self.url}")
        try:
            async with self.client.stream("GET", self.url, headers=self.headers) as response:
                logger.info(f"protocol=sse event=response status={response.status_code}")
                if response.status_code != 200:
                    raise StreamConnectionError(
                        f"HTTP error: {response.status_code}",
                        status_code=response.status_code,
                    )
                if on_open is not None:
                    await on_open()

                async for chunk in response.aiter_bytes():
                    if chunk:
                        yield chunk
        except StreamConnectionError:
            raise
        except (httpx.HTTPError, OSError) as e:
            raise StreamConnectionError(f"Connection error: {e}") from e
