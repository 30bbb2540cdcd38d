"""
MODULE OVERVIEW:
The sentiment stream manager: connection lifecycle plus the single writer task.

WHAT IS HAPPENING HERE:
One manager owns one connection at a time. `connect()` spawns a pump task that
reads chunks from the transport, decodes them and applies each record to the
aggregator in arrival order, awaiting the publisher before touching the next
record. Nothing else ever mutates the aggregator, so there is no lock.

State moves disconnected -> connecting -> connected -> disconnected, or
through failed(reason) when the transport gives up. Failures are recorded as
`last_error` and status, never raised to the caller; `reconnect()` or the
supervised `run()` loop is how the stream comes back.
"""
import asyncio

from loguru import logger

from sentiment_stream.client.aggregator import SentimentAggregator
from sentiment_stream.client.decoder import SSEFrameDecoder
from sentiment_stream.client.publisher import SnapshotPublisher
from sentiment_stream.client.sse_client import SSETransport
from sentiment_stream.client.widgets import WidgetTarget
from sentiment_stream.shared.client_utils import make_client_stats, now_iso, with_reconnect
from sentiment_stream.shared.config import settings
from sentiment_stream.shared.errors import StreamConnectionError
from sentiment_stream.shared.events import InternalBus, Subscriber
from sentiment_stream.shared.models import Category, ConnectionState, ConnectionStatus, SentimentSnapshot
from sentiment_stream.shared.session import SessionGate

ACTIVE_STATES = (ConnectionState.CONNECTING, ConnectionState.CONNECTED)

class SentimentStreamManager:
    def __init__(
        self,
        transport: SSETransport | None = None,
        aggregator: SentimentAggregator | None = None,
        widget: WidgetTarget | None = None,
        session: SessionGate | None = None,
        client_id: str = "sentiment",
        reconnect_delay_s: float | None = None,
    ):
        self.client_id = client_id
        self.transport = transport or SSETransport()
        self.session = session
        self.reconnect_delay_s = settings.RECONNECT_DELAY_S if reconnect_delay_s is None else reconnect_delay_s

        self.stats = make_client_stats()
        self.decoder = SSEFrameDecoder(self.stats)
        self.aggregator = aggregator or SentimentAggregator()
        self.publisher = SnapshotPublisher(self.aggregator, InternalBus("snapshots"), widget)
        self.status_bus = InternalBus("status")

        self._status = ConnectionStatus()
        self._last_error: str | None = None
        self._task: asyncio.Task | None = None
        self._epoch = 0
        self._epoch_error: StreamConnectionError | None = None

    # ==========================
    # READ INTERFACE
    # ==========================
    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def state(self) -> ConnectionState:
        return self._status.state

    @property
    def is_connected(self) -> bool:
        return self._status.state == ConnectionState.CONNECTED

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def focused(self) -> Category | None:
        return self.publisher.focused

    def current_value(self, category: Category | str) -> float:
        return self.publisher.current_value(category)

    def history(self, category: Category | str, limit: int | None = None) -> list[float]:
        return self.publisher.history(category, limit)

    def snapshot(self) -> SentimentSnapshot:
        return self.publisher.snapshot()

    def subscribe(self, callback: Subscriber):
        """Receive a SentimentSnapshot after every applied delta."""
        return self.publisher.bus.subscribe(callback)

    def subscribe_status(self, callback: Subscriber):
        """Receive a ConnectionStatus on every state transition."""
        return self.status_bus.subscribe(callback)

    # ==========================
    # WIDGET FOCUS
    # ==========================
    async def focus(self, category: Category | str) -> None:
        await self.publisher.focus(category)

    async def stop_widgets(self) -> None:
        await self.publisher.stop_widgets()

    # ==========================
    # LIFECYCLE
    # ==========================
    async def _set_state(self, state: ConnectionState, error: str | None = None) -> None:
        self._status = ConnectionStatus(state=state, error=error)
        logger.info(
            f"client_id={self.client_id} protocol=sse event=state state={state.value} epoch={self._epoch}"
            + (f" reason='{error}'" if error else "")
        )
        await self.status_bus.publish(self._status)

    async def connect(self) -> None:
        if self.state in ACTIVE_STATES:
            logger.warning(f"client_id={self.client_id} protocol=sse event=connect_skipped reason=already_{self.state.value}")
            return

        if self.session is not None and not self.session.has_valid_credentials():
            self._last_error = "No valid session credentials"
            logger.warning(f"client_id={self.client_id} protocol=sse event=connect_refused reason=no_session")
            return

        await self._cancel_task()
        self.decoder.reset()
        self._epoch += 1
        self._epoch_error = None
        await self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.create_task(self._pump(self._epoch), name=f"{self.client_id}-pump-{self._epoch}")

    async def disconnect(self) -> None:
        # Retires the running epoch, including a pump that reached here through an observer.
        self._epoch += 1
        await self._cancel_task()
        self.publisher.clear_focus()
        if self.state != ConnectionState.DISCONNECTED:
            await self._set_state(ConnectionState.DISCONNECTED)
        logger.info(f"client_id={self.client_id} protocol=sse event=disconnect")

    async def reconnect(self, delay_s: float | None = None) -> None:
        delay = self.reconnect_delay_s if delay_s is None else delay_s
        logger.info(f"client_id={self.client_id} protocol=sse event=reconnect delay={delay}s")
        await self.disconnect()
        self.stats["reconnect_count"] += 1
        await asyncio.sleep(delay)
        await self.connect()

    async def wait_closed(self) -> None:
        """Wait for the current pump task to finish; never raises."""
        task = self._task
        if task is not None and task is not asyncio.current_task():
            await asyncio.wait({task})

    async def run(self, duration_s: float | None = None) -> None:
        """
        Supervised mode: keep the stream up for `duration_s` seconds (forever
        when None), reconnecting with capped exponential backoff.
        """
        try:
            await with_reconnect(
                self._run_epoch,
                self.stats,
                duration_s,
                base_delay_s=settings.RECONNECT_BASE_DELAY_S,
                max_delay_s=settings.RECONNECT_MAX_DELAY_S,
                client_id=self.client_id,
            )
        except asyncio.CancelledError:
            pass
        finally:
            await self.disconnect()

    async def aclose(self) -> None:
        await self.disconnect()
        await self.transport.aclose()

    async def _run_epoch(self) -> None:
        await self.connect()
        if self._task is None:
            raise StreamConnectionError(self._last_error or "Connect refused")
        await self.wait_closed()
        raise self._epoch_error or StreamConnectionError("Stream ended")

    async def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task() or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _on_open(self) -> None:
        self._last_error = None
        self.stats["connected_at"] = now_iso()
        await self._set_state(ConnectionState.CONNECTED)

    # ==========================
    # SINGLE WRITER
    # ==========================
    async def _pump(self, epoch: int) -> None:
        stream = self.transport.stream(on_open=self._on_open)
        try:
            async for chunk in stream:
                self.stats["bytes_received"] += len(chunk)
                for record in self.decoder.feed(chunk):
                    if not await self._apply(epoch, record):
                        return
            for record in self.decoder.flush():
                if not await self._apply(epoch, record):
                    return
        except StreamConnectionError as e:
            await self._fail(epoch, e)
        except Exception as e:
            logger.exception(f"client_id={self.client_id} protocol=sse event=pump_crashed")
            await self._fail(epoch, StreamConnectionError(f"Unexpected error: {e}"))
        else:
            if epoch == self._epoch:
                logger.info(f"client_id={self.client_id} protocol=sse event=stream_ended")
                await self._set_state(ConnectionState.DISCONNECTED)
        finally:
            await stream.aclose()

    async def _apply(self, epoch: int, record) -> bool:
        """Apply one record; False once the epoch has been retired."""
        if epoch != self._epoch:
            return False
        snapshot = self.aggregator.apply_delta(record)
        self.stats["events_received"] += 1
        self.stats["last_event_at"] = now_iso()
        await self.publisher.publish(record, snapshot)
        return epoch == self._epoch

    async def _fail(self, epoch: int, error: StreamConnectionError) -> None:
        if epoch != self._epoch:
            return
        reason = str(error)
        self._epoch_error = error
        self._last_error = reason
        logger.error(f"client_id={self.client_id} protocol=sse event=failed reason='{reason}'")
        await self._set_state(ConnectionState.FAILED, error=reason)
        await self._set_state(ConnectionState.DISCONNECTED, error=reason)
