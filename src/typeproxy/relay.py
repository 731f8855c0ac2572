"""Fire-and-forget execution of pending sink operations.

Synchronous call sites cannot hand a pending operation back to the
caller, so the router passes it here instead.  Inside a running event
loop the awaitable becomes a task on that loop; otherwise it runs on a
background loop owned by the relay.  Either way the caller never blocks
and never sees the outcome.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Union

logger = logging.getLogger(__name__)


@dataclass
class RelayConfig:
    """Settings for detached sink operations.

    Attributes:
        thread_name: Name of the background event-loop thread.
        log_detached_failures: Log failures of detached operations at
            WARNING (``True``) or DEBUG (``False``).
    """

    thread_name: str = "typeproxy-relay"
    log_detached_failures: bool = True

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Build a config from ``TYPEPROXY_*`` environment variables."""
        return cls(
            thread_name=os.environ.get("TYPEPROXY_RELAY_THREAD", "typeproxy-relay"),
            log_detached_failures=os.environ.get("TYPEPROXY_LOG_DETACHED_FAILURES", "1") != "0",
        )


async def _await(pending: Awaitable[Any]) -> Any:
    return await pending


async def _completed(value: Any) -> Any:
    return value


def as_awaitable(pending: Any) -> Awaitable[Any]:
    """Return *pending* if awaitable, else an already-completed coroutine."""
    if inspect.isawaitable(pending):
        return pending
    return _completed(pending)


class Relay:
    """Runs pending operations whose completion nobody will observe."""

    def __init__(self, config: RelayConfig | None = None) -> None:
        self.config = config or RelayConfig.from_env()
        self._tasks: set[Union[asyncio.Future, concurrent.futures.Future]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detach(self, pending: Any) -> None:
        """Start *pending* without waiting for it.  Non-awaitables are ignored."""
        if not inspect.isawaitable(pending):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            future: Union[asyncio.Future, concurrent.futures.Future] = asyncio.ensure_future(pending)
        else:
            future = asyncio.run_coroutine_threadsafe(_await(pending), self._background_loop())

        # Tasks are only weakly referenced by the loop
        with self._lock:
            self._tasks.add(future)
        future.add_done_callback(self._on_done)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def close(self, timeout: float | None = 5.0) -> None:
        """Wait for queued background work, then stop the background loop.

        Operations still running after *timeout* seconds are abandoned
        with a warning.
        """
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
            queued = [f for f in self._tasks if isinstance(f, concurrent.futures.Future)]
        if loop is None or thread is None:
            return
        if queued and threading.current_thread() is not thread:
            _, not_done = concurrent.futures.wait(queued, timeout)
            if not_done:
                logger.warning("Relay closed with %d detached operation(s) still running", len(not_done))
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        if not loop.is_running():
            loop.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _background_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever,
                    name=self.config.thread_name,
                    daemon=True,
                )
                thread.start()
                self._loop, self._thread = loop, thread
                logger.debug("Started relay loop thread %s", thread.name)
            return self._loop

    def _on_done(self, future: Union[asyncio.Future, concurrent.futures.Future]) -> None:
        if not future.cancelled() and future.exception() is not None:
            level = logging.WARNING if self.config.log_detached_failures else logging.DEBUG
            logger.log(level, "Detached sink operation failed: %r", future.exception())
        with self._lock:
            self._tasks.discard(future)


_default_relay: Relay | None = None
_default_lock = threading.Lock()


def default_relay() -> Relay:
    """Return the process-wide relay, creating it on first use."""
    global _default_relay
    with _default_lock:
        if _default_relay is None:
            _default_relay = Relay()
        return _default_relay
