"""A worker thread that owns a pool of sessions and runs actions on them."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from loadshear.actions import ActionDescriptor, ActionType
from loadshear.session_pool import SessionPool

logger = logging.getLogger("loadshear")

_Task = Callable[[], None]


@dataclass
class _Snapshot:
    connected_sessions: int = 0


class _SessionCountMetrics:
    def fetch_snapshot(self) -> _Snapshot:
        return _Snapshot()


class Shard:
    """Runs session actions on its own thread, one task at a time.

    ``session_factory(handler, metrics, on_done)`` builds one session;
    ``handler_factory()`` builds the message handler for this shard's
    thread. ``on_closed`` is called from the shard's thread once its work
    loop has ended.
    """

    FORCE_STOP_TIMEOUT_MS = 30 * 1000

    def __init__(
        self,
        session_factory: Callable[[Any, Any, Callable[[], None]], Any],
        endpoints: Any,
        handler_factory: Callable[[], Any] | None = None,
        on_closed: Callable[[], None] | None = None,
        metrics: Any = None,
        force_stop_timeout_ms: int = FORCE_STOP_TIMEOUT_MS,
    ) -> None:
        self._session_factory = session_factory
        self._endpoints = endpoints
        self._handler_factory = handler_factory
        self._on_closed = on_closed
        self._metrics = metrics if metrics is not None else _SessionCountMetrics()
        self._force_stop_timeout_ms = force_stop_timeout_ms

        self._queue: queue.SimpleQueue[_Task | None] = queue.SimpleQueue()
        self._guarded = True
        self._halted = threading.Event()
        self._running = False
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()

        self._handler: Any = None
        self._pool = SessionPool(self._on_pool_closed)

    def __enter__(self) -> Shard:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
        self.join()

    def start(self) -> None:
        """Start the shard's thread; later calls do nothing."""
        with self._state_lock:
            if self._running or self._thread is not None:
                return
            self._running = True
            self._thread = threading.Thread(
                target=self._thread_entry, name="loadshear-shard", daemon=True
            )
        self._thread.start()

    def submit_work(self, action: ActionDescriptor) -> bool:
        """Queue an action; False if the shard is not running."""
        if not self._running:
            return False
        self._post(lambda: self._handle_action(action))
        return True

    def schedule_metrics_pull(
        self, history: list[Any], callback: Callable[[], None]
    ) -> None:
        """Append a metrics snapshot to ``history`` on the shard's thread, then call back."""

        def pull() -> None:
            self._record_metrics(history)
            callback()

        self._post(pull)

    def stop(self) -> None:
        """Ask the sessions to close, forcing the loop down after a timeout."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
        self._post(self._begin_shutdown)

    def join(self) -> None:
        """Wait for the shard's thread. Must not be called from that thread."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _post(self, task: _Task) -> None:
        self._queue.put(task)

    def _reset_work_guard(self) -> None:
        self._guarded = False
        self._queue.put(None)

    def _halt(self) -> None:
        self._halted.set()
        self._queue.put(None)

    def _run_loop(self) -> None:
        while not self._halted.is_set():
            if not self._guarded and self._queue.empty():
                break
            task = self._queue.get()
            if self._halted.is_set():
                break
            if task is not None:
                task()

    def _thread_entry(self) -> None:
        try:
            if self._handler_factory is not None:
                self._handler = self._handler_factory()
            self._run_loop()
        except Exception as error:
            logger.warning("Shard got exception: %s", error)
            self._reset_work_guard()
            self._halt()

        self._cancel_stop_timer()

        if self._on_closed is not None:
            self._on_closed()

    def _make_session(self, on_done: Callable[[], None]) -> Any:
        return self._session_factory(self._handler, self._metrics, on_done)

    def _handle_action(self, action: ActionDescriptor) -> None:
        start, end = action.sessions_start, action.sessions_end
        if action.type is ActionType.CREATE:
            self._pool.create_sessions(end - start, self._make_session)
        elif action.type is ActionType.CONNECT:
            self._pool.start_sessions_range(self._endpoints, start, end)
        elif action.type is ActionType.SEND:
            self._pool.send_sessions_range(start, end, action.count)
        elif action.type is ActionType.FLOOD:
            self._pool.flood_sessions_range(start, end)
        elif action.type is ActionType.DRAIN:
            self._pool.drain_sessions_range(start, end)
        elif action.type is ActionType.DISCONNECT:
            self._pool.stop_sessions_range(start, end)

    def _begin_shutdown(self) -> None:
        self._start_force_stop_timer(self._force_stop_timeout_ms)
        self._pool.shutdown()

    def _cancel_stop_timer(self) -> None:
        with self._timer_lock:
            if self._stop_timer is not None:
                self._stop_timer.cancel()
                self._stop_timer = None

    def _start_force_stop_timer(self, timeout_ms: int) -> None:
        self._cancel_stop_timer()
        timer = threading.Timer(
            timeout_ms / 1000.0, self._post, args=(self._on_stop_timeout,)
        )
        timer.daemon = True
        with self._timer_lock:
            self._stop_timer = timer
        timer.start()

    def _on_stop_timeout(self) -> None:
        if not self._halted.is_set():
            logger.warning("Shard shutdown timed out. Forcing shutdown.")
            self._halt()

    def _on_pool_closed(self) -> None:
        self._cancel_stop_timer()
        self._reset_work_guard()

    def _record_metrics(self, history: list[Any]) -> None:
        snapshot = self._metrics.fetch_snapshot()
        snapshot.connected_sessions = self._pool.active_sessions()
        history.append(snapshot)