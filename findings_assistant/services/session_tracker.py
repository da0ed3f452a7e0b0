# session_tracker.py
"""Correlation ids that let late responses be recognised as stale."""

import threading
import time
import uuid
from typing import Callable, Dict, Optional, Tuple

from findings_assistant.core import settings

ANONYMOUS_SESSION = "__anonymous__"


class SessionTracker:
    """Remembers the latest query id issued for each session.

    Sessions idle for longer than ``max_idle`` seconds are forgotten the next
    time a query begins, so abandoned sessions do not accumulate.
    """

    def __init__(
        self,
        max_idle: float = settings.SESSION_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_idle = max_idle
        self._clock = clock
        self._current: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def begin(self, session_id: Optional[str]) -> str:
        """Issue a new query id and make it the session's current one"""
        query_id = uuid.uuid4().hex
        now = self._clock()
        with self._lock:
            self._sweep_locked(now)
            self._current[session_id or ANONYMOUS_SESSION] = (query_id, now)
        return query_id

    def is_current(self, session_id: Optional[str], query_id: str) -> bool:
        """False once the session issued a newer query or was ended"""
        if session_id is None:
            return True
        with self._lock:
            entry = self._current.get(session_id)
        return entry is not None and entry[0] == query_id

    def end(self, session_id: str) -> None:
        with self._lock:
            self._current.pop(session_id, None)

    def active_sessions(self) -> int:
        with self._lock:
            return len(self._current)

    def _sweep_locked(self, now: float) -> None:
        idle = [
            session_id
            for session_id, (_, last_seen) in self._current.items()
            if now - last_seen > self.max_idle
        ]
        for session_id in idle:
            del self._current[session_id]
