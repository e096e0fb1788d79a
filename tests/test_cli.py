import io
import logging
from dataclasses import dataclass, field

import pytest

from loadshear.actions import ActionDescriptor
from loadshear.cli import (
    ACKNOWLEDGEMENT_STRING_END,
    ACKNOWLEDGEMENT_STRING_START,
    DASHBOARD_FOOTER,
    acknowledgement_text,
    describe_action,
    format_dry_run,
    ms_to_timestring,
    render_dashboard,
    request_acknowledgement,
)
from loadshear.histogram import bytes_display, numeric_display


@dataclass
class _Metrics:
    bytes_sent: int = 0
    bytes_read: int = 0
    connected_sessions: int = 0
    connection_attempts: int = 0
    failed_connections: int = 0
    finished_connections: int = 0
    connection_latency_buckets: list = field(default_factory=lambda: [0] * 16)
    send_latency_buckets: list = field(default_factory=lambda: [0] * 16)
    read_latency_buckets: list = field(default_factory=lambda: [0] * 16)


def test_timestring_zero():
    assert ms_to_timestring(0) == "[00:00:000] "


@pytest.mark.parametrize("offset", [0, 7, 45, 999, 1000, 59999, 60000, 123456, 3599999])
def test_timestring_round_trip(offset):
    text = ms_to_timestring(offset)
    assert text.startswith("[") and text.endswith("] ")
    minutes, seconds, millis = text[1:-2].split(":")
    assert len(minutes) >= 2 and len(seconds) == 2 and len(millis) == 3
    assert int(minutes) * 60000 + int(seconds) * 1000 + int(millis) == offset


def test_describe_create():
    action = ActionDescriptor.create(0, 10, 0)
    assert describe_action(action) == ms_to_timestring(0) + "CREATE 10 sessions"


def test_describe_connect_range_is_inclusive():
    action = ActionDescriptor.connect(2, 5, 1500)
    text = describe_action(action)
    assert text == ms_to_timestring(1500) + "CONNECT sessions indexed 2 through 4"


@pytest.mark.parametrize(
    "maker", [ActionDescriptor.flood, ActionDescriptor.disconnect, ActionDescriptor.connect]
)
def test_describe_range_actions(maker):
    action = maker(3, 9, 0)
    text = describe_action(action)
    assert action.type_name() in text
    assert text.endswith(f"sessions indexed 3 through {action.sessions_end - 1}")


def test_describe_send_lists_operations():
    action = ActionDescriptor.send(0, 4, 3, 200)
    text = describe_action(action, "ping", [("IDENTITY", 5), ("COUNTER", 4)])
    assert text.startswith(ms_to_timestring(200) + "SEND (3x) packet identity ping")
    assert text.endswith("<IDENTITY, 5> <COUNTER, 4> ")
    assert "with payload data\n" in text


def test_dry_run_advances_payloads_by_count():
    actions = [
        ActionDescriptor.create(0, 4, 0),
        ActionDescriptor.send(0, 4, 2, 10),
        ActionDescriptor.send(0, 4, 1, 20),
    ]
    operations = [
        [("IDENTITY", 11)],
        [("IDENTITY", 11)],
        [("TIMESTAMP", 8)],
    ]
    report = format_dry_run(
        actions, [("127.0.0.1", 8080)], ["", "first", "second"], operations
    )
    assert "  - 127.0.0.1:8080\n" in report
    assert "packet identity first" in report
    second_line = report[report.index("packet identity second"):]
    assert "<TIMESTAMP, 8>" in second_line
    assert "<IDENTITY, 11>" not in second_line


def test_dry_run_missing_payload_warns(caplog):
    actions = [ActionDescriptor.send(0, 1, 1, 0)]
    with caplog.at_level(logging.WARNING, logger="loadshear"):
        report = format_dry_run(actions, [], ["pkt"], [])
    assert "Application has a logic error" in caplog.text
    assert "packet identity pkt" in report
    assert "<" not in report.split("packet identity pkt")[1]


def test_acknowledgement_text_lists_endpoints():
    text = acknowledgement_text([("10.0.0.1", 80), ("10.0.0.2", 81)])
    assert text.startswith(ACKNOWLEDGEMENT_STRING_START)
    assert text.endswith(ACKNOWLEDGEMENT_STRING_END)
    assert "  - 10.0.0.1:80\n  - 10.0.0.2:81\n" in text


def test_request_acknowledgement_accepts_phrase():
    assert request_acknowledgement([("127.0.0.1", 1)], io.StringIO("I UNDERSTAND\n")) is True


@pytest.mark.parametrize("reply", ["i understand\n", "I UNDERSTAND \n", "yes\n", ""])
def test_request_acknowledgement_rejects_other_replies(reply, caplog):
    with caplog.at_level(logging.INFO, logger="loadshear"):
        result = request_acknowledgement([("127.0.0.1", 1)], io.StringIO(reply))
    assert result is False
    assert "Aborting" in caplog.text


def test_dashboard_totals_mode():
    totals = _Metrics(bytes_sent=2048, connected_sessions=5)
    deltas = _Metrics(bytes_sent=1024, connected_sessions=2)
    screen = render_dashboard(totals, deltas, False)
    assert "Connection Latency (totals)" in screen
    assert "Send Latency (totals)" in screen
    assert "(latest)" not in screen
    assert bytes_display("sent: ", 2048, 1024) in screen
    assert numeric_display("active: ", 5, 2) in screen
    assert screen.endswith(DASHBOARD_FOOTER)


def test_dashboard_deltas_mode_uses_delta_buckets():
    totals = _Metrics()
    deltas = _Metrics(read_latency_buckets=[1] + [0] * 15)
    screen = render_dashboard(totals, deltas, True)
    assert "Read Latency (latest)" in screen
    assert "(totals)" not in screen
    assert "\u2588" in screen
    assert "\u2588" not in render_dashboard(totals, deltas, False)