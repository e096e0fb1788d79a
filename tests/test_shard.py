import threading

import pytest

from loadshear.actions import ActionDescriptor
from loadshear.shard import Shard

WAIT = 5.0
ENDPOINTS = ["127.0.0.1:9000"]


class FakeSession:
    def __init__(self, handler, metrics, on_done, finish_on_stop=True):
        self.handler = handler
        self.metrics = metrics
        self.on_done = on_done
        self.finish_on_stop = finish_on_stop
        self.calls = []
        self.started = False
        self.done = False

    def start(self, endpoints):
        self.started = True
        self.calls.append(("start", endpoints))

    def send(self, n):
        self.calls.append(("send", n))

    def flood(self):
        self.calls.append(("flood",))

    def drain(self):
        self.calls.append(("drain",))

    def stop(self):
        self.calls.append(("stop",))
        if self.finish_on_stop and self.started and not self.done:
            self.done = True
            self.on_done()


class Harness:
    def __init__(self, finish_on_stop=True):
        self.sessions = []
        self.closed = threading.Event()
        self.closed_count = 0
        self.finish_on_stop = finish_on_stop

    def session_factory(self, handler, metrics, on_done):
        session = FakeSession(handler, metrics, on_done, self.finish_on_stop)
        self.sessions.append(session)
        return session

    def on_closed(self):
        self.closed_count += 1
        self.closed.set()


def _flush(shard):
    history = []
    done = threading.Event()
    shard.schedule_metrics_pull(history, done.set)
    assert done.wait(WAIT)
    return history


def _new_shard(harness, handler_factory=None, timeout_ms=30000):
    return Shard(
        harness.session_factory,
        ENDPOINTS,
        handler_factory=handler_factory,
        on_closed=harness.on_closed,
        force_stop_timeout_ms=timeout_ms,
    )


def test_submit_before_start_is_refused():
    harness = Harness()
    shard = _new_shard(harness)
    assert shard.submit_work(ActionDescriptor.create(0, 2, 0)) is False


def test_actions_reach_sessions():
    harness = Harness()
    shard = _new_shard(harness)
    shard.start()
    try:
        assert shard.submit_work(ActionDescriptor.create(0, 3, 0)) is True
        assert shard.submit_work(ActionDescriptor.connect(0, 3, 0)) is True
        assert shard.submit_work(ActionDescriptor.send(0, 2, 5, 0)) is True
        assert shard.submit_work(ActionDescriptor.flood(2, 3, 0)) is True
        assert shard.submit_work(ActionDescriptor.drain(1, 2, 100, 0)) is True
        history = _flush(shard)
        assert len(history) == 1
        assert history[0].connected_sessions == 3
        sessions = harness.sessions
        assert len(sessions) == 3
        assert sessions[0].calls == [("start", ENDPOINTS), ("send", 5)]
        assert sessions[1].calls == [
            ("start", ENDPOINTS),
            ("send", 5),
            ("drain",),
        ]
        assert sessions[2].calls == [("start", ENDPOINTS), ("flood",)]
    finally:
        shard.stop()
        shard.join()
    assert harness.closed.is_set()
    assert harness.closed_count == 1


def test_metrics_pull_records_connected_sessions():
    harness = Harness()
    with _new_shard(harness) as shard:
        shard.start()
        shard.submit_work(ActionDescriptor.create(0, 4, 0))
        shard.submit_work(ActionDescriptor.connect(1, 4, 0))
        history = _flush(shard)
        assert len(history) == 1
        assert history[0].connected_sessions == 3
        shard.submit_work(ActionDescriptor.disconnect(1, 3, 0))
        history = _flush(shard)
        assert history[0].connected_sessions == 1
    assert harness.closed.is_set()


def test_handler_from_factory_reaches_sessions():
    handler = object()
    harness = Harness()
    with _new_shard(harness, handler_factory=lambda: handler) as shard:
        shard.start()
        shard.submit_work(ActionDescriptor.create(0, 2, 0))
        _flush(shard)
        assert [s.handler is handler for s in harness.sessions] == [True, True]


def test_stop_without_sessions_closes_shard():
    harness = Harness()
    shard = _new_shard(harness)
    shard.start()
    shard.stop()
    shard.join()
    assert harness.closed_count == 1
    assert shard.submit_work(ActionDescriptor.create(0, 1, 0)) is False


def test_handler_factory_failure_still_reports_close():
    def broken():
        raise RuntimeError("no handler")

    harness = Harness()
    shard = Shard(
        harness.session_factory,
        ENDPOINTS,
        handler_factory=broken,
        on_closed=harness.on_closed,
        force_stop_timeout_ms=30000,
    )
    shard.start()
    assert harness.closed.wait(WAIT)
    shard.join()
    assert harness.closed_count == 1
    assert harness.sessions == []


def test_force_stop_when_sessions_never_finish():
    harness = Harness(finish_on_stop=False)
    shard = _new_shard(harness, timeout_ms=50)
    shard.start()
    shard.submit_work(ActionDescriptor.create(0, 2, 0))
    shard.submit_work(ActionDescriptor.connect(0, 2, 0))
    history = _flush(shard)
    assert history[0].connected_sessions == 2
    shard.stop()
    assert harness.closed.wait(WAIT)
    shard.join()
    assert [("stop",) in s.calls for s in harness.sessions] == [True, True]
    assert harness.closed_count == 1
    assert shard.submit_work(ActionDescriptor.create(0, 1, 0)) is False


@pytest.mark.parametrize("repeat", [1, 3])
def test_repeated_start_and_stop_are_harmless(repeat):
    harness = Harness()
    shard = Shard(
        harness.session_factory,
        ENDPOINTS,
        handler_factory=None,
        on_closed=harness.on_closed,
        force_stop_timeout_ms=30000,
    )
    for _ in range(repeat):
        shard.start()
    for _ in range(repeat):
        shard.stop()
    shard.join()
    assert harness.closed_count == 1
    assert shard.submit_work(ActionDescriptor.create(0, 1, 0)) is False