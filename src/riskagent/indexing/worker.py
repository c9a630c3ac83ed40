"""Background event loop that runs chunk deliveries detached from requests."""
from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from functools import lru_cache
from typing import Any, Coroutine, Optional, Set

LOGGER = logging.getLogger(__name__)


class DeliveryWorker:
    """Run submitted coroutines on a private loop in a daemon thread.

    Jobs outlive the request that scheduled them. Their failures are logged
    here and never propagate to the submitter.
    """

    def __init__(self, name: str = "riskagent-delivery") -> None:
        self.name = name
        self._lock = threading.RLock()
        self._idle = threading.Condition(self._lock)
        self._pending: Set[concurrent.futures.Future] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def _ensure_started(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is not None and self._thread is not None and self._thread.is_alive():
                return self._loop
            loop = asyncio.new_event_loop()
            started = threading.Event()

            def _run() -> None:
                asyncio.set_event_loop(loop)
                loop.call_soon(started.set)
                try:
                    loop.run_forever()
                finally:
                    loop.close()

            thread = threading.Thread(target=_run, name=self.name, daemon=True)
            thread.start()
            started.wait()
            self._loop = loop
            self._thread = thread
            LOGGER.debug("Delivery worker %s started", self.name)
            return loop

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        """Schedule ``coro`` on the worker loop and return without waiting."""

        with self._lock:
            loop = self._ensure_started()
            future = asyncio.run_coroutine_threadsafe(coro, loop)
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: concurrent.futures.Future) -> None:
        if future.cancelled():
            LOGGER.warning("Delivery job was cancelled")
        elif future.exception() is not None:
            error = future.exception()
            LOGGER.error(
                "Delivery job failed: %s",
                error,
                exc_info=(type(error), error, error.__traceback__),
            )
        with self._lock:
            self._pending.discard(future)
            if not self._pending:
                self._idle.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no job is pending. Returns ``False`` on timeout."""

        with self._lock:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def shutdown(self, timeout: Optional[float] = 10.0) -> None:
        """Let pending jobs finish for up to ``timeout`` seconds, then stop the loop."""

        drained = self.wait_idle(timeout)
        if not drained:
            LOGGER.warning("Stopping delivery worker with %s job(s) still pending", self.pending)
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        LOGGER.debug("Delivery worker %s stopped", self.name)


@lru_cache()
def get_delivery_worker() -> DeliveryWorker:
    return DeliveryWorker()
