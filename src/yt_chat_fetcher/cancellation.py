"""
Cancellation Gate
=================

Turns termination signals into a one-shot stop trigger.

SIGINT and SIGTERM both trigger the gate; the resilience manager races
every suspension point against it and stops immediately.

Design Rules:
    - Triggering is idempotent (the first reason wins)
    - Safe to trigger from a signal handler or another thread
    - Signal handlers are restored by remove_signal_handlers()
"""

import asyncio
import logging
import signal
from typing import Dict, Iterable, Optional


logger = logging.getLogger(__name__)


DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancellationGate:
    """
    One-shot cancellation signal.

    Example:
        gate = CancellationGate()
        gate.install_signal_handlers()
        try:
            await manager.run()
        finally:
            gate.remove_signal_handlers()
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed: Dict[int, object] = {}

    @property
    def cancelled(self) -> bool:
        """Whether the gate has been triggered."""
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        """What triggered the gate, if anything."""
        return self._reason

    def trigger(self, reason: str = "cancelled") -> None:
        """Trigger the gate. Later calls have no effect."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        """Suspend until the gate is triggered."""
        await self._event.wait()

    # =========================================================================
    # Signal Handling
    # =========================================================================

    def install_signal_handlers(
        self,
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
    ) -> None:
        """
        Route termination signals to the gate.

        Must be called from the thread running the event loop.
        """
        self._loop = asyncio.get_running_loop()
        for sig in signals:
            try:
                self._loop.add_signal_handler(sig, self._on_signal, sig)
                self._installed[sig] = None
            except NotImplementedError:
                # Event loops without add_signal_handler (Windows)
                self._installed[sig] = signal.signal(sig, self._on_signal_threadsafe)

    def remove_signal_handlers(self) -> None:
        """Restore the handlers replaced by install_signal_handlers()."""
        for sig, previous in self._installed.items():
            if previous is None:
                self._loop.remove_signal_handler(sig)
            else:
                signal.signal(sig, previous)
        self._installed.clear()

    def _on_signal(self, sig: signal.Signals) -> None:
        name = signal.Signals(sig).name
        if not self.cancelled:
            logger.info(f"Received {name}, shutting down...")
        self.trigger(name)

    def _on_signal_threadsafe(self, signum, frame) -> None:
        self._loop.call_soon_threadsafe(self._on_signal, signum)
