"""
Lightweight in-memory RedisCache replacement for local development.

This implements just enough of the interface used by the portal
`StateManager` so that the FastAPI app can run without a real Redis
instance. Unlike real Redis, expiry is checked lazily on read.
"""

from __future__ import annotations

import copy
import time
from typing import Any, Callable, Dict, Optional, Tuple


class RedisCache:
    def __init__(self, default_ttl: int = 1800, clock: Callable[[], float] = time.monotonic) -> None:
        # session_id -> (expires_at, data)
        self._sessions: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._default_ttl = default_ttl
        self._clock = clock

    # --- Session helpers used by StateManager ---------------------------------

    def set_session(self, session_id: str, data: Dict[str, Any], ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + (ttl or self._default_ttl)
        self._sessions[session_id] = (expires_at, copy.deepcopy(data))

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        entry = self._sessions.get(session_id)
        if entry is None:
            return None
        expires_at, data = entry
        if expires_at <= self._clock():
            self._sessions.pop(session_id, None)
            return None
        return copy.deepcopy(data)

    def update_session(self, session_id: str, updates: Dict[str, Any], ttl: Optional[int] = None) -> None:
        existing = self.get_session(session_id)
        if existing is None:
            return
        existing.update(updates)
        self.set_session(session_id, existing, ttl=ttl)

    def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    # --- Misc -----------------------------------------------------------------

    def ping(self) -> bool:
        """
        FastAPI health check calls this; always return True so the API reports
        Redis as "connected" in local/dev mode.
        """
        return True
