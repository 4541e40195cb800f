"""
Telemetry / behavior sink client.

The sink receives behavior events (``search``, ``property_view``, ``filters``)
and recommendation interactions.  Delivery is fire-and-forget:

  - ``TelemetryDispatcher.dispatch()`` schedules delivery as a background
    task on the running event loop.  With no running loop (CLI use) the
    event goes to a bounded queue drained by a daemon worker thread; a full
    queue drops the event with a WARNING.
  - Delivery is attempted once.  Any ``ExternalServiceError`` is logged at
    WARNING and discarded; it never reaches the caller of ``dispatch()``.
  - ``drain()`` awaits outstanding deliveries; ``flush()`` is its blocking
    counterpart for the worker queue.

Sinks:
  ``NullTelemetrySink``  — records events in memory (default, tests).
  ``HttpTelemetrySink``  — POSTs JSON to ``{base_url}/events`` via httpx.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from typing import Any, Optional, Protocol

import httpx

from property_insights.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class TelemetrySink(Protocol):
    """External collaborator receiving behavior and interaction events."""

    async def send(self, event: str, payload: dict[str, Any]) -> None: ...


class NullTelemetrySink:
    """Keeps every event in ``events``; never fails."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        self.events.append((event, payload))


class HttpTelemetrySink:
    """POSTs events as JSON to a telemetry collector.

    Args:
        base_url:        Collector root URL, e.g. ``"http://localhost:8081"``.
        timeout_seconds: Per-request timeout.
    """

    def __init__(self, base_url: str, timeout_seconds: float = 5.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver one event.

        Raises:
            ExternalServiceError: On transport failure or non-2xx response.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                resp = await client.post(
                    f"{self.base_url}/events",
                    json={"event": event, "payload": payload},
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(
                f"Telemetry sink returned {exc.response.status_code} for '{event}'.",
                service="telemetry",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(
                f"Telemetry sink unreachable: {exc}", service="telemetry"
            ) from exc


class TelemetryDispatcher:
    """Fire-and-forget wrapper around a ``TelemetrySink``.

    Args:
        sink:      Event sink; ``NullTelemetrySink`` when omitted.
        max_queue: Capacity of the worker-thread queue used when no event
                   loop is running.  Events beyond it are dropped and logged.
    """

    def __init__(self, sink: Optional[TelemetrySink] = None, max_queue: int = 1000) -> None:
        if max_queue < 1:
            raise ValueError(f"max_queue must be >= 1, got {max_queue}.")
        self.sink: TelemetrySink = sink or NullTelemetrySink()
        self._pending: set[asyncio.Task[None]] = set()
        self._queue: queue.Queue[tuple[str, dict[str, Any]]] = queue.Queue(maxsize=max_queue)
        self._worker: Optional[threading.Thread] = None
        self._worker_lock = threading.Lock()

    @property
    def pending(self) -> int:
        """Deliveries not yet finished, on the loop and in the worker queue."""
        return len(self._pending) + self._queue.unfinished_tasks

    async def _deliver(self, event: str, payload: dict[str, Any]) -> None:
        try:
            await self.sink.send(event, payload)
        except ExternalServiceError as exc:
            logger.warning(
                "Telemetry delivery failed | event=%s | status=%s | %s",
                event, exc.status_code, exc,
            )

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Telemetry task failed | %s: %s", type(exc).__name__, exc)

    # ── Worker thread (no running loop) ───────────────────────────────────────

    def _ensure_worker(self) -> None:
        with self._worker_lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run_worker, name="telemetry-dispatcher", daemon=True
                )
                self._worker.start()

    def _run_worker(self) -> None:
        while True:
            event, payload = self._queue.get()
            try:
                asyncio.run(self._deliver(event, payload))
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Telemetry delivery failed | event=%s | %s: %s",
                    event, type(exc).__name__, exc,
                )
            finally:
                self._queue.task_done()

    def _enqueue(self, event: str, payload: dict[str, Any]) -> None:
        self._ensure_worker()
        try:
            self._queue.put_nowait((event, payload))
        except queue.Full:
            logger.warning(
                "Telemetry queue full, event dropped | event=%s | capacity=%d",
                event, self._queue.maxsize,
            )

    # ── Public API ────────────────────────────────────────────────────────────

    def dispatch(self, event: str, payload: dict[str, Any]) -> None:
        """Send ``event`` without blocking the caller; never raises."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._enqueue(event, payload)
            return

        task = loop.create_task(self._deliver(event, payload))
        self._pending.add(task)
        task.add_done_callback(self._on_done)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker queue is empty.

        Returns:
            ``False`` if ``timeout`` seconds elapsed first, else ``True``.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    async def drain(self) -> None:
        """Await every outstanding delivery, including queued ones."""
        while self._pending:
            batch = list(self._pending)
            await asyncio.gather(*batch, return_exceptions=True)
            self._pending.difference_update(batch)
        if self._queue.unfinished_tasks:
            await asyncio.to_thread(self.flush)
