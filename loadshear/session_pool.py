"""A pool of sessions that a shard drives over index ranges."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Any, Protocol


class _Session(Protocol):
    def start(self, endpoints: Any) -> None: ...

    def send(self, n: int) -> None: ...

    def flood(self) -> None: ...

    def drain(self) -> None: ...

    def stop(self) -> None: ...


SessionFactory = Callable[[Callable[[], None]], _Session]


class SessionPool:
    """Owns a fixed set of sessions and tracks how many are connected.

    Sessions are made by a factory that receives the callback a session
    must call once it has finished. When the pool has been shut down and
    the last active session finishes, ``notify_closed`` is called once.
    """

    def __init__(self, notify_closed: Callable[[], None]) -> None:
        self._notify_closed = notify_closed
        self._sessions: list[_Session] = []
        self._active = 0
        self._closed = False
        self._notified = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        """True once shutdown has been requested."""
        return self._closed

    def __len__(self) -> int:
        return len(self._sessions)

    def shutdown(self) -> None:
        """Stop every session; notify once no session is left active."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        for session in list(self._sessions):
            session.stop()

        with self._lock:
            fire = self._active == 0 and not self._notified
            if fire:
                self._notified = True
        if fire:
            self._notify_closed()

    def create_sessions(self, count: int, factory: SessionFactory) -> bool:
        """Create ``count`` sessions; refuse if the pool already holds some."""
        if self._sessions:
            return False
        self._sessions = [factory(self._on_session_done) for _ in range(count)]
        return True

    def _range(self, start: int, end: int) -> Sequence[_Session]:
        return self._sessions[start:end]

    def start_sessions_range(self, endpoints: Any, start: int, end: int) -> None:
        """Start the sessions indexed [start, end) against ``endpoints``."""
        if self._closed:
            return
        with self._lock:
            self._active += end - start
        for session in self._range(start, end):
            session.start(endpoints)

    def send_sessions_range(self, start: int, end: int, n: int) -> None:
        """Have the sessions indexed [start, end) send ``n`` payloads each."""
        if self._closed:
            return
        for session in self._range(start, end):
            session.send(n)

    def flood_sessions_range(self, start: int, end: int) -> None:
        """Put the sessions indexed [start, end) into flood mode."""
        if self._closed:
            return
        for session in self._range(start, end):
            session.flood()

    def drain_sessions_range(self, start: int, end: int) -> None:
        """Let the sessions indexed [start, end) finish what they have queued."""
        if self._closed:
            return
        for session in self._range(start, end):
            session.drain()

    def stop_sessions_range(self, start: int, end: int) -> None:
        """Stop the sessions indexed [start, end)."""
        if self._closed:
            return
        for session in self._range(start, end):
            session.stop()

    def start_all_sessions(self, endpoints: Any) -> None:
        """Start every session in the pool."""
        self.start_sessions_range(endpoints, 0, len(self._sessions))

    def stop_all_sessions(self) -> None:
        """Stop every session in the pool."""
        self.stop_sessions_range(0, len(self._sessions))

    def active_sessions(self) -> int:
        """How many started sessions have not yet finished."""
        return self._active

    def _on_session_done(self) -> None:
        with self._lock:
            self._active -= 1
            fire = self._active == 0 and self._closed and not self._notified
            if fire:
                self._notified = True
        if fire:
            self._notify_closed()