"""Timed actions that the orchestrator hands out to shards."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass


class ActionType(enum.IntEnum):
    """What an action does to its range of sessions."""

    CREATE = 0
    CONNECT = 1
    SEND = 2
    FLOOD = 3
    DRAIN = 4
    DISCONNECT = 5


@dataclass(frozen=True)
class ActionDescriptor:
    """One scheduled action over the session range [sessions_start, sessions_end).

    ``count`` holds the number of sessions for CREATE, the number of copies
    for SEND and the timeout for DRAIN. ``offset_ms`` is measured from the
    start of the run.
    """

    type: ActionType
    sessions_start: int
    sessions_end: int
    count: int = 0
    offset_ms: int = 0

    @classmethod
    def create(cls, start: int, end: int, offset_ms: int) -> ActionDescriptor:
        return cls(ActionType.CREATE, start, end, end - start, offset_ms)

    @classmethod
    def connect(cls, start: int, end: int, offset_ms: int) -> ActionDescriptor:
        return cls(ActionType.CONNECT, start, end, 0, offset_ms)

    @classmethod
    def send(
        cls, start: int, end: int, send_count: int, offset_ms: int
    ) -> ActionDescriptor:
        return cls(ActionType.SEND, start, end, send_count, offset_ms)

    @classmethod
    def flood(cls, start: int, end: int, offset_ms: int) -> ActionDescriptor:
        return cls(ActionType.FLOOD, start, end, 0, offset_ms)

    @classmethod
    def drain(
        cls, start: int, end: int, timeout: int, offset_ms: int
    ) -> ActionDescriptor:
        return cls(ActionType.DRAIN, start, end, timeout, offset_ms)

    @classmethod
    def disconnect(cls, start: int, end: int, offset_ms: int) -> ActionDescriptor:
        return cls(ActionType.DISCONNECT, start, end, 0, offset_ms)

    def type_name(self) -> str:
        """The action's type as an upper-case word, e.g. ``"SEND"``."""
        return self.type.name

    def with_range(self, start: int, end: int) -> ActionDescriptor:
        """A copy of this action over a different session range."""
        return dataclasses.replace(self, sessions_start=start, sessions_end=end)