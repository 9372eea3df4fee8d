from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Optional, Protocol
from uuid import uuid4

from config import settings


@dataclass(frozen=True, slots=True)
class Session:
    """A signed-in dashboard user."""

    id: str
    user_email: str
    csrf_token: str
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def user(self) -> dict[str, str]:
        return {"email": self.user_email}


class SessionStore(Protocol):
    def create(self, email: str) -> Session: ...

    def get(self, session_id: Optional[str]) -> Optional[Session]: ...

    def delete(self, session_id: Optional[str]) -> None: ...

    def clear(self) -> None: ...


class InMemorySessionStore:
    """Thread-safe session map with a fixed lifetime and bounded size."""

    def __init__(
        self,
        *,
        ttl_seconds: float,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = max(float(ttl_seconds), 1.0)
        self._max_entries = max(1, max_entries)
        self._clock = clock
        self._lock = RLock()
        self._entries: "OrderedDict[str, Session]" = OrderedDict()

    def create(self, email: str) -> Session:
        now = self._clock()
        session = Session(
            id=str(uuid4()),
            user_email=email,
            csrf_token=str(uuid4()),
            created_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._prune_locked(now)
            while len(self._entries) >= self._max_entries:
                self._entries.popitem(last=False)
            self._entries[session.id] = session
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            session = self._entries.get(session_id)
            if session is None:
                return None
            if session.is_expired(now):
                del self._entries[session_id]
                return None
            return session

    def delete(self, session_id: Optional[str]) -> None:
        if not session_id:
            return
        with self._lock:
            self._entries.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _prune_locked(self, now: float) -> None:
        expired = [key for key, session in self._entries.items() if session.is_expired(now)]
        for key in expired:
            del self._entries[key]


session_store = InMemorySessionStore(
    ttl_seconds=settings.session_ttl_seconds,
    max_entries=settings.session_max_entries,
)


__all__ = ["InMemorySessionStore", "Session", "SessionStore", "session_store"]
