"""
Bounded, expiring cache of per-session chat windows with per-session rate limiting.

Entries are kept in least-recently-touched order: every ``get``/``set`` moves the
key to the end, so the first key is always the eviction candidate. Rate-limit
windows are tracked separately and only go away on ``delete``/``clear`` or once
the sweep finds them fully aged out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

RATE_LIMIT_WINDOW_SEC = 60.0

logger = logging.getLogger(__name__)


@dataclass
class ChatMessage:
    role: str
    content: str
    timestamp: str


@dataclass
class SessionData:
    messages: List[ChatMessage] = field(default_factory=list)
    created_at: Optional[str] = None


@dataclass
class SessionEntry:
    session_id: str
    value: SessionData
    created_at: float
    last_accessed: float
    access_count: int = 1


class SessionCache:
    def __init__(
        self,
        max_size: int = 1000,
        max_age: float = 3600.0,
        max_messages_per_session: int = 6,
        max_requests_per_minute: int = 60,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        if max_messages_per_session <= 0:
            raise ValueError("max_messages_per_session must be positive")
        self.max_size = max_size
        self.max_age = max_age
        self.max_messages_per_session = max_messages_per_session
        self.max_requests_per_minute = max_requests_per_minute
        self.sweep_interval = sweep_interval
        self.clock = clock

        self._entries: "OrderedDict[str, SessionEntry]" = OrderedDict()
        self._requests: Dict[str, Deque[float]] = {}
        self._sweeper: asyncio.Task | None = None

    def _is_expired(self, entry: SessionEntry, now: float) -> bool:
        return now - entry.last_accessed > self.max_age

    def get(self, session_id: str) -> Optional[SessionData]:
        entry = self._entries.get(session_id)
        if entry is None:
            return None

        now = self.clock()
        if self._is_expired(entry, now):
            del self._entries[session_id]
            return None

        entry.access_count += 1
        entry.last_accessed = now
        self._entries.move_to_end(session_id)
        return _copy_session(entry.value)

    def set(self, session_id: str, data: SessionData) -> None:
        now = self.clock()
        value = SessionData(
            messages=list(data.messages[-self.max_messages_per_session:]),
            created_at=data.created_at,
        )

        existing = self._entries.get(session_id)
        if existing is not None:
            existing.value = value
            existing.last_accessed = now
            existing.access_count += 1
            self._entries.move_to_end(session_id)
            return

        if len(self._entries) >= self.max_size:
            evicted_id, _ = self._entries.popitem(last=False)
            logger.debug("Evicted least recently used session", extra={"session_id": evicted_id})

        self._entries[session_id] = SessionEntry(
            session_id=session_id,
            value=value,
            created_at=now,
            last_accessed=now,
        )

    def _prune_window(self, session_id: str, now: float) -> Deque[float]:
        window = self._requests.get(session_id)
        if window is None:
            window = deque()
            self._requests[session_id] = window
        while window and now - window[0] >= RATE_LIMIT_WINDOW_SEC:
            window.popleft()
        return window

    def check_rate_limit(self, session_id: str) -> bool:
        """True (and the request is counted) while the session is under the per-minute ceiling."""
        now = self.clock()
        window = self._prune_window(session_id, now)
        if len(window) >= self.max_requests_per_minute:
            return False
        window.append(now)
        return True

    def retry_after(self, session_id: str) -> float:
        """Seconds until the oldest request in the window stops counting."""
        window = self._requests.get(session_id)
        if not window:
            return 0.0
        return max(0.0, window[0] + RATE_LIMIT_WINDOW_SEC - self.clock())

    def delete(self, session_id: str) -> bool:
        self._requests.pop(session_id, None)
        return self._entries.pop(session_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self._requests.clear()

    def size(self) -> int:
        return len(self._entries)

    def sweep(self) -> int:
        """Drop expired sessions with their rate-limit windows, plus windows that aged out."""
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
            self._requests.pop(key, None)

        for key in list(self._requests):
            if not self._prune_window(key, now):
                del self._requests[key]

        if expired:
            logger.info("Cleaned up expired sessions", extra={"count": len(expired)})
        return len(expired)

    async def _run_sweeper(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._run_sweeper())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def get_stats(self) -> Dict[str, Any]:
        now = self.clock()
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "sessions": [
                {
                    "session_id": entry.session_id,
                    "message_count": len(entry.value.messages),
                    "access_count": entry.access_count,
                    "age_sec": round(now - entry.last_accessed, 3),
                }
                for entry in self._entries.values()
            ],
        }


def _copy_session(data: SessionData) -> SessionData:
    return SessionData(messages=list(data.messages), created_at=data.created_at)


__all__ = ["ChatMessage", "SessionCache", "SessionData", "SessionEntry", "RATE_LIMIT_WINDOW_SEC"]
