"""Schedules timed actions across shards and gathers their metrics."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from loadshear.actions import ActionDescriptor, ActionType
from loadshear.shard import Shard

logger = logging.getLogger("loadshear")

DEFAULT_METRICS_INTERVAL_MS = 500

_Task = Callable[[], None]


@dataclass
class OrchestratorConfig:
    """Settings the orchestrator hands to every shard it creates.

    ``session_factory(handler, metrics, on_done)`` builds one session,
    ``handler_factory()`` builds a message handler per shard thread and
    ``metrics_factory()`` builds a metrics recorder per shard.
    """

    session_factory: Callable[[Any, Any, Callable[[], None]], Any]
    endpoints: Any
    handler_factory: Callable[[], Any] | None = None
    shard_count: int = 1
    metrics_factory: Callable[[], Any] | None = None
    force_stop_timeout_ms: int = Shard.FORCE_STOP_TIMEOUT_MS


@dataclass
class MetricsRound:
    """The latest snapshot from every shard, taken ``offset_ms`` into the run."""

    offset_ms: int
    shard_snapshots: list[Any] = field(default_factory=list)

    @property
    def connected_sessions(self) -> int:
        """Active sessions summed over all shards."""
        return sum(
            snapshot.connected_sessions
            for snapshot in self.shard_snapshots
            if snapshot is not None
        )


def split_sessions(count: int, shard_count: int) -> list[tuple[int, int]]:
    """Split ``count`` sessions into ``shard_count`` contiguous [start, end) ranges.

    The first ``count % shard_count`` shards each take one extra session.
    """
    if shard_count < 1:
        raise ValueError("shard count must be at least 1")
    if count < 0:
        raise ValueError("session count must not be negative")

    base, remainder = divmod(count, shard_count)
    ranges = []
    start = 0
    for index in range(shard_count):
        end = start + base + (1 if index < remainder else 0)
        ranges.append((start, end))
        start = end
    return ranges


def intersect_action(
    action: ActionDescriptor, shard_range: tuple[int, int]
) -> ActionDescriptor | None:
    """The part of ``action`` that falls in ``shard_range``, in shard-local indices.

    Returns None when the action's sessions do not overlap the range.
    """
    range_start, range_end = shard_range
    lower = max(action.sessions_start, range_start)
    upper = min(action.sessions_end, range_end)
    if lower >= upper:
        return None
    local_start = lower - range_start
    return action.with_range(local_start, local_start + (upper - lower))


@dataclass
class _TimerHandle:
    timer: threading.Timer | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.timer is not None:
            self.timer.cancel()


class Orchestrator:
    """Runs a list of timed actions over a set of shards.

    ``start`` blocks the calling thread until every shard has closed.
    ``metrics_sink`` receives a :class:`MetricsRound` every
    ``metrics_interval_ms`` while the run lasts.
    """

    def __init__(
        self,
        actions: Sequence[ActionDescriptor],
        config: OrchestratorConfig,
        metrics_sink: Callable[[MetricsRound], None] | None = None,
        metrics_interval_ms: int = DEFAULT_METRICS_INTERVAL_MS,
    ) -> None:
        if not actions:
            raise ValueError("an orchestrator needs at least one action")
        if config.shard_count < 1:
            raise ValueError("shard count must be at least 1")
        if metrics_interval_ms <= 0:
            raise ValueError("metrics interval must be positive")

        self._actions = list(actions)
        self._config = config
        self._metrics_sink = metrics_sink
        self._metrics_interval_s = metrics_interval_ms / 1000.0

        self._queue: queue.SimpleQueue[_Task] = queue.SimpleQueue()
        self._guarded = True
        self._shutdown = False
        self._startup_time = time.monotonic()
        self._action_index = 0

        self._dispatch_timer: _TimerHandle | None = None
        self._metrics_timer: _TimerHandle | None = None

        self._counter_lock = threading.Lock()
        self._active_shards = 0
        self._pending_metric_pulls = 0

        self._shard_ranges: list[tuple[int, int]] = []
        self._histories: list[list[Any]] = [[] for _ in range(config.shard_count)]
        self._shards: list[Shard] = []
        for _ in range(config.shard_count):
            metrics = config.metrics_factory() if config.metrics_factory else None
            self._active_shards += 1
            self._shards.append(
                Shard(
                    session_factory=config.session_factory,
                    endpoints=config.endpoints,
                    handler_factory=config.handler_factory,
                    on_closed=self._shard_exit_callback,
                    metrics=metrics,
                    force_stop_timeout_ms=config.force_stop_timeout_ms,
                )
            )

    def start(self) -> None:
        """Start the shards and run the action schedule until all shards close."""
        for shard in self._shards:
            shard.start()

        self._startup_time = time.monotonic()
        self._post(self._dispatch_pending_actions)
        self._schedule_metrics_snapshot()

        self._run_loop()

        for shard in self._shards:
            shard.join()

    def early_stop(self) -> None:
        """Stop the run before the schedule is finished."""
        self._post(self._do_shutdown)

    def _post(self, task: _Task) -> None:
        self._queue.put(task)

    def _run_loop(self) -> None:
        while True:
            if not self._guarded and self._queue.empty():
                break
            task = self._queue.get()
            task()

    def _schedule(self, delay_s: float, callback: _Task) -> _TimerHandle:
        handle = _TimerHandle()

        def fire() -> None:
            self._post(lambda: None if handle.cancelled else callback())

        timer = threading.Timer(max(0.0, delay_s), fire)
        timer.daemon = True
        handle.timer = timer
        timer.start()
        return handle

    def _dispatch_pending_actions(self) -> None:
        now = time.monotonic()
        while self._action_index < len(self._actions):
            action = self._actions[self._action_index]
            target = self._startup_time + action.offset_ms / 1000.0
            if target > now:
                self._dispatch_timer = self._schedule(
                    target - now, self._dispatch_pending_actions
                )
                return
            self._distribute_action_to_shards(action)
            self._action_index += 1

        self._do_shutdown()

    def _distribute_action_to_shards(self, action: ActionDescriptor) -> None:
        if action.type is ActionType.CREATE:
            self._shard_ranges = split_sessions(action.count, len(self._shards))
            distributed = self._shard_ranges[-1][1] if self._shard_ranges else 0
            if distributed != action.count:
                logger.warning(
                    "Not all session index values were distributed! "
                    "start: %d count: %d",
                    distributed,
                    action.count,
                )

        for index, (shard, shard_range) in enumerate(
            zip(self._shards, self._shard_ranges)
        ):
            shard_action = intersect_action(action, shard_range)
            if shard_action is None:
                continue
            if not shard.submit_work(shard_action):
                logger.warning("Tried to submit work to shard %d and failed!", index)

    def _schedule_metrics_snapshot(self) -> None:
        if self._shutdown:
            return
        self._metrics_timer = self._schedule(
            self._metrics_interval_s, self._do_request_metrics
        )

    def _do_request_metrics(self) -> None:
        with self._counter_lock:
            self._pending_metric_pulls = len(self._shards)
        for shard, history in zip(self._shards, self._histories):
            shard.schedule_metrics_pull(history, self._shard_metrics_callback)

    def _shard_metrics_callback(self) -> None:
        with self._counter_lock:
            self._pending_metric_pulls -= 1
            remaining = self._pending_metric_pulls
        if remaining == 0:
            self._post(self._on_metrics_round_complete)

    def _on_metrics_round_complete(self) -> None:
        offset_ms = int((time.monotonic() - self._startup_time) * 1000)
        snapshots = [history[-1] if history else None for history in self._histories]
        if self._metrics_sink is not None:
            self._metrics_sink(MetricsRound(offset_ms, snapshots))
        self._schedule_metrics_snapshot()

    def _shard_exit_callback(self) -> None:
        with self._counter_lock:
            self._active_shards -= 1
            remaining = self._active_shards
        if remaining == 0:
            self._post(self._release)

    def _release(self) -> None:
        self._guarded = False
        if self._dispatch_timer is not None:
            self._dispatch_timer.cancel()

    def _do_shutdown(self) -> None:
        if self._shutdown:
            return
        self._shutdown = True

        for handle in (self._dispatch_timer, self._metrics_timer):
            if handle is not None:
                handle.cancel()

        logger.info("All actions executed, program will spin down.")

        for shard in self._shards:
            shard.stop()