"""
Session Store

In-memory storage of serialized wiki sessions for the HTTP surface.

Each browser session is identified by a random ID (sent as a cookie) and
maps to a ``SessionState``: the wiki cookies and cached user info of a
logged-in MediaWikiClient. Requests rebuild a fresh client from the state
and save it back after login/logout, so no client is ever shared between
threads.

Design choices
--------------
- In-memory only (no persistence across process restarts).
- Thread-safe access using a re-entrant lock.
- Bounded size; the least recently used session is evicted first.
- ``SessionState`` is immutable, so reads need no copying.
"""

from __future__ import annotations

import secrets
from collections import OrderedDict
from threading import RLock
from typing import Optional

from ..wiki.models import SessionState


class SessionStore:
    """
    In-memory store mapping session IDs to wiki SessionState objects.
    """

    def __init__(self, max_sessions: Optional[int] = None) -> None:
        """
        Parameters
        ----------
        max_sessions : Optional[int]
            If provided, at most this many sessions are kept; the least
            recently used one is dropped when the limit is exceeded.
        """
        self._store: "OrderedDict[str, SessionState]" = OrderedDict()
        self._lock = RLock()
        self._max_sessions = max_sessions

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(32)

    def get(self, session_id: Optional[str]) -> Optional[SessionState]:
        """Return the stored state, or None for unknown/absent IDs."""
        if not session_id:
            return None
        with self._lock:
            state = self._store.get(session_id)
            if state is not None:
                self._store.move_to_end(session_id)
            return state

    def save(self, session_id: str, state: SessionState) -> None:
        with self._lock:
            self._store[session_id] = state
            self._store.move_to_end(session_id)

            if self._max_sessions is not None and self._max_sessions > 0:
                while len(self._store) > self._max_sessions:
                    self._store.popitem(last=False)

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._store.pop(session_id, None)

    # ------------------------------------------------------------------
    # Utility operations
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """Remove all sessions. Intended for tests and administrative resets."""
        with self._lock:
            self._store.clear()

    def has_session(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
