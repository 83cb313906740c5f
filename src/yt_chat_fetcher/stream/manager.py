"""
Resilience Manager
==================

Owns the connection lifecycle of the live chat stream.

The manager opens a transport session for the current cursor, consumes
batches, records non-empty batches in the resume log, and reconnects
after a fixed wait whenever the session fails or ends.

State Machine:
    DISCONNECTED      --open ok-->          CONNECTED
    DISCONNECTED      --ConnectError-->     RECONNECT_PENDING
    CONNECTED         --batch-->            CONNECTED
    CONNECTED         --end / error-->      RECONNECT_PENDING
    RECONNECT_PENDING --wait elapsed-->     DISCONNECTED
    any               --cancellation-->     TERMINATED (absorbing)

Design Rules:
    - Log-then-advance: a non-empty batch is appended to the log BEFORE
      the cursor moves to its token (at-least-once across crashes)
    - Empty batches advance the cursor but are never logged
    - Credentials are fetched before every open, never cached
    - Cancellation is checked first on every iteration and after every
      wait; a batch that arrives together with it is dropped
    - Only IoError (and, with fail-fast, the very first ConnectError)
      escapes run(); all other stream errors end in a reconnect
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Coroutine, Optional

from yt_chat_fetcher.auth.credentials import CredentialProvider
from yt_chat_fetcher.cancellation import CancellationGate
from yt_chat_fetcher.errors import ConnectError, TransportError
from yt_chat_fetcher.models.batch import Batch
from yt_chat_fetcher.models.cursor import Cursor
from yt_chat_fetcher.models.state import SessionState
from yt_chat_fetcher.storage.resume_log import BatchLog
from yt_chat_fetcher.stream.session import SessionOpener, TransportSession


logger = logging.getLogger(__name__)


StateListener = Callable[[SessionState, SessionState], None]


# Returned by _race when the gate fired first
_CANCELLED = object()


class ManagerMetrics:
    """Metrics for ResilienceManager observability."""

    __slots__ = (
        "batches_received",
        "batches_persisted",
        "empty_batches",
        "connect_failures",
        "transport_errors",
        "end_of_stream_count",
        "reconnect_count",
        "last_page_token",
        "last_batch_time",
    )

    def __init__(self) -> None:
        self.batches_received: int = 0
        self.batches_persisted: int = 0
        self.empty_batches: int = 0
        self.connect_failures: int = 0
        self.transport_errors: int = 0
        self.end_of_stream_count: int = 0
        self.reconnect_count: int = 0
        self.last_page_token: Optional[str] = None
        self.last_batch_time: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "batches_received": self.batches_received,
            "batches_persisted": self.batches_persisted,
            "empty_batches": self.empty_batches,
            "connect_failures": self.connect_failures,
            "transport_errors": self.transport_errors,
            "end_of_stream_count": self.end_of_stream_count,
            "reconnect_count": self.reconnect_count,
            "last_page_token": self.last_page_token,
            "last_batch_time": self.last_batch_time,
        }


class ResilienceManager:
    """
    Reconnecting consumer for one live chat stream.

    Attributes:
        cursor: Current position (advanced only after logging)
        state: Current lifecycle state
        reconnect_wait: Fixed delay before each reconnect attempt (seconds)
        fail_fast: Raise the first ConnectError if no session was ever opened
        metrics: Operational metrics

    Example:
        manager = ResilienceManager(
            cursor=Cursor(stream_id="Cg0KC..."),
            log=ResumeLog("chat.jsonl"),
            opener=make_opener("https://youtube.googleapis.com"),
            credentials=ApiKeyCredentials("key.txt"),
            gate=gate,
            reconnect_wait=5.0,
        )
        final_cursor = await manager.run()
    """

    def __init__(
        self,
        cursor: Cursor,
        log: BatchLog,
        opener: SessionOpener,
        credentials: CredentialProvider,
        gate: CancellationGate,
        reconnect_wait: float = 5.0,
        fail_fast: bool = True,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        """
        Initialize resilience manager.

        Args:
            cursor: Starting cursor (fresh or recovered from the log)
            log: Where non-empty batches are appended
            opener: Opens a transport session for a cursor + credential
            credentials: Queried before every open
            gate: Cancellation gate checked on every iteration
            reconnect_wait: Seconds to wait before reconnecting
            fail_fast: Raise if the very first open fails
            on_state_change: Called with (old, new) on every transition
        """
        if reconnect_wait < 0:
            raise ValueError("reconnect_wait must be >= 0")

        self.reconnect_wait = reconnect_wait
        self.fail_fast = fail_fast
        self.metrics = ManagerMetrics()

        self._cursor = cursor
        self._log = log
        self._opener = opener
        self._credentials = credentials
        self._gate = gate
        self._on_state_change = on_state_change

        self._state = SessionState.DISCONNECTED
        self._session: Optional[TransportSession] = None
        self._ever_connected: bool = False
        self._reconnect_deadline: Optional[float] = None

    @property
    def cursor(self) -> Cursor:
        """Current cursor."""
        return self._cursor

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def reconnect_deadline(self) -> Optional[float]:
        """Event loop time of the pending reconnect, if any."""
        return self._reconnect_deadline

    async def run(self) -> Cursor:
        """
        Consume the stream until cancelled.

        Returns:
            The cursor at termination

        Raises:
            IoError: If a batch cannot be written to the log
            ConnectError: If fail-fast is on and the first open fails
        """
        logger.info(
            f"ResilienceManager starting: chat={self._cursor.stream_id}, "
            f"page_token={self._cursor.page_token}, "
            f"reconnect_wait={self.reconnect_wait}s"
        )

        try:
            while self._state is not SessionState.TERMINATED:
                if self._gate.cancelled:
                    self._terminate()
                elif self._state is SessionState.DISCONNECTED:
                    await self._connect()
                elif self._state is SessionState.CONNECTED:
                    await self._consume()
                else:
                    await self._await_reconnect()
        finally:
            await self._close_session()

        logger.info(f"ResilienceManager stopped: {self.metrics.to_dict()}")
        return self._cursor

    # =========================================================================
    # State Handlers
    # =========================================================================

    async def _connect(self) -> None:
        """DISCONNECTED: open a session for the current cursor."""
        try:
            outcome = await self._race(self._open(), discard=self._discard_session)
        except ConnectError as e:
            self.metrics.connect_failures += 1
            if self.fail_fast and not self._ever_connected:
                logger.error(f"Initial connection failed: {e}")
                raise
            logger.warning(f"Failed to connect: {e}")
            self._schedule_reconnect()
            return

        if outcome is _CANCELLED:
            self._terminate()
            return

        self._session = outcome
        self._ever_connected = True
        self._set_state(SessionState.CONNECTED)

    async def _open(self) -> TransportSession:
        credential = await self._credentials.get()
        return await self._opener(self._cursor, credential)

    async def _consume(self) -> None:
        """CONNECTED: wait for the next batch."""
        try:
            outcome = await self._race(self._session.next())
        except TransportError as e:
            self.metrics.transport_errors += 1
            logger.warning(
                f"Error receiving batch: {e}. Connection lost, "
                f"waiting {self.reconnect_wait}s before reconnecting"
            )
            await self._close_session()
            self._schedule_reconnect()
            return

        if outcome is _CANCELLED:
            self._terminate()
            return

        if outcome is None:
            self.metrics.end_of_stream_count += 1
            logger.info(
                f"Stream ended, waiting {self.reconnect_wait}s before reconnecting"
            )
            await self._close_session()
            self._schedule_reconnect()
            return

        self._handle_batch(outcome)

    def _handle_batch(self, batch: Batch) -> None:
        """Log (if non-empty), then advance the cursor."""
        self.metrics.batches_received += 1
        self.metrics.last_batch_time = time.time()

        if batch.is_empty:
            self.metrics.empty_batches += 1
            logger.debug("Received empty batch (no items)")
        else:
            self._log.append(batch)
            self.metrics.batches_persisted += 1

        if batch.next_page_token is None:
            logger.warning(
                f"Batch carried no page token, keeping {self._cursor.page_token}"
            )
            return

        self._cursor = self._cursor.advance(batch.next_page_token)
        self.metrics.last_page_token = batch.next_page_token

    async def _await_reconnect(self) -> None:
        """RECONNECT_PENDING: sleep until the deadline."""
        loop = asyncio.get_running_loop()
        delay = max(0.0, self._reconnect_deadline - loop.time())

        outcome = await self._race(asyncio.sleep(delay))
        if outcome is _CANCELLED:
            self._terminate()
            return

        self.metrics.reconnect_count += 1
        self._reconnect_deadline = None
        logger.info(
            f"Reconnecting (attempt {self.metrics.reconnect_count}) "
            f"from page token {self._cursor.page_token}"
        )
        self._set_state(SessionState.DISCONNECTED)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _race(
        self,
        coro: Coroutine[Any, Any, Any],
        discard: Optional[Callable[[Any], Awaitable[None]]] = None,
    ) -> Any:
        """
        Run ``coro`` until it finishes or the gate fires.

        Returns the coroutine's result, or _CANCELLED when the gate fired
        (even if the result was also ready). A result abandoned that way
        is passed to ``discard``.
        """
        if self._gate.cancelled:
            coro.close()
            return _CANCELLED

        task = asyncio.ensure_future(coro)
        gate_task = asyncio.ensure_future(self._gate.wait())
        try:
            await asyncio.wait({task, gate_task}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            task.cancel()
            raise
        finally:
            gate_task.cancel()

        if not self._gate.cancelled:
            return task.result()

        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        elif not task.cancelled() and task.exception() is None and discard:
            await discard(task.result())
        return _CANCELLED

    async def _discard_session(self, session: TransportSession) -> None:
        await session.aclose()

    async def _close_session(self) -> None:
        if self._session is None:
            return
        session, self._session = self._session, None
        try:
            await session.aclose()
        except Exception as e:
            logger.warning(f"Error closing session: {e}")

    def _schedule_reconnect(self) -> None:
        loop = asyncio.get_running_loop()
        self._reconnect_deadline = loop.time() + self.reconnect_wait
        if self._cursor.page_token:
            logger.info(f"Will resume from page token: {self._cursor.page_token}")
        self._set_state(SessionState.RECONNECT_PENDING)

    def _terminate(self) -> None:
        self._reconnect_deadline = None
        self._set_state(SessionState.TERMINATED)

    def _set_state(self, new_state: SessionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.info(f"State: {old_state.value} -> {new_state.value}")
        if self._on_state_change is not None:
            self._on_state_change(old_state, new_state)
