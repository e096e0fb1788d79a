"""Text output for the command line: dry runs, the safety prompt and the dashboard."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Sequence
from typing import Any, TextIO

from loadshear.actions import ActionDescriptor, ActionType
from loadshear.histogram import (
    SEPARATOR_CHAR,
    bytes_display,
    numeric_display,
    render_histogram,
)

logger = logging.getLogger("loadshear")

ACKNOWLEDGEMENT_PHRASE = "I UNDERSTAND"

ACKNOWLEDGEMENT_STRING_START = (
    "\n"
    "\033[1;31mWARNING:\033[0m\n"
    "This tool can generate high network loads, rapid connection\n"
    "churn, and resource exhaustion if misused.\n"
    "\n"
    "The following endpoints are set to be used:\n"
)

ACKNOWLEDGEMENT_STRING_END = (
    "You \033[1mMUST\033[0m have explicit authorization to act "
    "on these systems.\n"
    "Unauthorized use of this tool can cause service disruption\n"
    "and may be illegal.\n"
    "\n"
    "If you are unsure whether you are authorized, stop now.\n"
    "\n"
    "By proceeding, you confirm that you:\n"
    " - Are authorized to act on these endpoints\n"
    " - Understand the behavior of this tool for your script\n"
    " - Accept full responsibility for its use\n"
    "\n"
    "To proceed, type \033[1mI UNDERSTAND\033[0m below.\n"
)

DRY_RUN_HEADER = "             \033[1mStarting dry run\033[0m\n"
ENDPOINTS_HEADER = "The following endpoints are set to be used:\n"
DASHBOARD_FOOTER = "Press q to quit, Left / Right arrows to cycle histograms."

_PAYLOAD_INDENT = " " * 16
_RANGE_ACTIONS = (
    ActionType.CONNECT,
    ActionType.FLOOD,
    ActionType.DRAIN,
    ActionType.DISCONNECT,
)


def ms_to_timestring(offset_ms: int) -> str:
    """Render a time offset as ``[MM:SS:mmm] ``."""
    minutes, remainder = divmod(offset_ms, 60000)
    seconds, milliseconds = divmod(remainder, 1000)
    return f"[{minutes:02d}:{seconds:02d}:{milliseconds:03d}] "


def _endpoint_list(endpoints: Iterable[Any]) -> str:
    lines = []
    for endpoint in endpoints:
        host, port = endpoint
        lines.append(f"  - {host}:{port}\n")
    return "".join(lines)


def _operation_text(operations: Iterable[tuple[Any, int]]) -> str:
    parts = []
    for kind, length in operations:
        name = getattr(kind, "name", kind)
        parts.append(f"<{name}, {length}> ")
    return "".join(parts)


def describe_action(
    action: ActionDescriptor,
    packet_identifier: str = "",
    operations: Iterable[tuple[Any, int]] = (),
) -> str:
    """One dry-run line for ``action``.

    ``operations`` are (operation type, byte length) pairs of the payload a
    SEND action sends; they are ignored for other actions.
    """
    message = f"{ms_to_timestring(action.offset_ms)}{action.type_name()} "
    if action.type is ActionType.CREATE:
        message += f"{action.count} sessions"
    elif action.type is ActionType.SEND:
        message += (
            f"({action.count}x) packet identity {packet_identifier}"
            f" with payload data\n{_PAYLOAD_INDENT}"
        )
        message += _operation_text(operations)
    elif action.type in _RANGE_ACTIONS:
        message += (
            f"sessions indexed {action.sessions_start}"
            f" through {action.sessions_end - 1}"
        )
    return message


def format_dry_run(
    actions: Sequence[ActionDescriptor],
    endpoints: Iterable[Any],
    packet_identifiers: Sequence[str],
    operations: Sequence[Iterable[tuple[Any, int]]],
) -> str:
    """The whole dry-run report for a plan.

    ``packet_identifiers`` runs parallel to ``actions``. ``operations`` holds
    one operation list per payload, with ``count`` copies for each SEND, in
    the order the SEND actions appear.
    """
    lines = [DRY_RUN_HEADER, ENDPOINTS_HEADER, _endpoint_list(endpoints)]
    payload_index = 0

    for action, identifier in zip(actions, packet_identifiers):
        if action.type is ActionType.SEND:
            if payload_index >= len(operations):
                logger.warning("Application has a logic error")
                lines.append(describe_action(action, identifier, ()))
                continue
            lines.append(
                describe_action(action, identifier, operations[payload_index])
            )
            payload_index += action.count
        else:
            lines.append(describe_action(action, identifier))

    return "\n".join(lines)


def acknowledgement_text(endpoints: Iterable[Any]) -> str:
    """The warning shown before a run, listing the endpoints it will hit."""
    return "\n".join(
        [
            ACKNOWLEDGEMENT_STRING_START,
            _endpoint_list(endpoints),
            ACKNOWLEDGEMENT_STRING_END,
        ]
    )


def request_acknowledgement(
    endpoints: Iterable[Any], stream: TextIO | None = None
) -> bool:
    """Show the warning and read one line; True only for the exact phrase."""
    logger.info(acknowledgement_text(endpoints))
    source = sys.stdin if stream is None else stream
    response = source.readline().rstrip("\n")
    if response == ACKNOWLEDGEMENT_PHRASE:
        return True
    logger.info("\nAborting")
    return False


def _block_width(lines: Sequence[str]) -> int:
    return max((len(line) for line in lines), default=0)


def _side_by_side(left: str, right: str) -> list[str]:
    left_lines = left.split("\n")
    right_lines = right.split("\n")
    width = _block_width(left_lines)
    rows = max(len(left_lines), len(right_lines))
    left_lines += [""] * (rows - len(left_lines))
    right_lines += [""] * (rows - len(right_lines))
    return [
        f"{lhs.ljust(width)} \u2502 {rhs}".rstrip()
        for lhs, rhs in zip(left_lines, right_lines)
    ]


def render_dashboard(totals: Any, deltas: Any, show_deltas: bool = False) -> str:
    """Draw the live metrics screen as text.

    ``totals`` and ``deltas`` carry byte and connection counters and the
    three latency bucket lists; ``show_deltas`` picks which histograms show.
    """
    metric_lines = [
        "Throughput",
        "",
        bytes_display("sent: ", totals.bytes_sent, deltas.bytes_sent),
        bytes_display("read: ", totals.bytes_read, deltas.bytes_read),
        "",
        "Connections",
        "",
        numeric_display(
            "active: ", totals.connected_sessions, deltas.connected_sessions
        ),
        numeric_display(
            "attempted: ", totals.connection_attempts, deltas.connection_attempts
        ),
        numeric_display(
            "failed: ", totals.failed_connections, deltas.failed_connections
        ),
        numeric_display(
            "successful: ", totals.finished_connections, deltas.finished_connections
        ),
    ]
    width = _block_width(metric_lines)
    for index in (1, 4, 6):
        metric_lines[index] = SEPARATOR_CHAR * width
    for index in (0, 5):
        metric_lines[index] = metric_lines[index].center(width)
    metrics_box = "\n".join(metric_lines)

    source, label = (deltas, "latest") if show_deltas else (totals, "totals")
    connection_hist = render_histogram(
        source.connection_latency_buckets, f"Connection Latency ({label})"
    )
    send_hist = render_histogram(
        source.send_latency_buckets, f"Send Latency ({label})"
    )
    read_hist = render_histogram(
        source.read_latency_buckets, f"Read Latency ({label})"
    )

    top = _side_by_side(metrics_box, connection_hist)
    bottom = _side_by_side(send_hist, read_hist)
    full_width = max(_block_width(top), _block_width(bottom), len(DASHBOARD_FOOTER))
    separator = SEPARATOR_CHAR * full_width

    return "\n".join([separator, *top, separator, *bottom, separator, DASHBOARD_FOOTER])