"""
Server-Side Session Management Module
======================================

The browser only carries a signed cookie (Starlette SessionMiddleware)
holding an opaque session id. Tokens and identity stay server-side in a
session store keyed by that id.

Handlers never touch the store directly: they receive a SessionContext
through the ``get_session`` dependency and use get/set/pull/clear on it.
"""

import asyncio
import copy
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Mapping, MutableMapping

from fastapi import Request

logger = logging.getLogger(__name__)


# =============================================================================
# Session Keys
# =============================================================================

IDENTITY = "identity"
ACCESS_TOKEN = "access_token"
REFRESH_TOKEN = "refresh_token"
ID_TOKEN = "id_token"
EXPIRES_AT = "expires_at"
PKCE_VERIFIER = "pkce_verifier"
OAUTH_STATE = "oauth_state"
CALLBACK_URL = "callback_url"
LOGOUT_STATE = "logout_state"
FLASH_ERROR = "flash_error"

SESSION_ID_KEY = "sid"


# =============================================================================
# Store
# =============================================================================

class InMemorySessionStore:
    """
    Process-local session store with idle expiry and per-session locks.

    Idle sessions are evicted when their id is next loaded and by a sweep
    that runs on write at most once per ``sweep_interval`` seconds. A lock
    exists only while some request holds or waits for it.

    Suitable for a single worker; replace with a shared store (Redis, DB)
    when running several workers.
    """

    def __init__(
        self,
        ttl_seconds: int = 86400,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = 60.0,
    ):
        self._data: Dict[str, Dict[str, Any]] = {}
        self._touched: Dict[str, float] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def _is_idle(self, session_id: str, now: float) -> bool:
        touched = self._touched.get(session_id)
        return touched is not None and now - touched > self._ttl_seconds

    def load(self, session_id: str) -> Dict[str, Any]:
        """Return a copy of the session data (empty if unknown or idle-expired)."""
        now = self._clock()
        if self._is_idle(session_id, now):
            logger.debug("Session expired after idle timeout")
            self.delete(session_id)
        if session_id not in self._data:
            return {}
        self._touched[session_id] = now
        return copy.deepcopy(self._data[session_id])

    def save(self, session_id: str, data: Mapping[str, Any]) -> None:
        self._data[session_id] = copy.deepcopy(dict(data))
        self._touched[session_id] = self._clock()
        self.purge_expired()

    def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)
        self._touched.pop(session_id, None)

    def purge_expired(self, force: bool = False) -> int:
        """
        Drop every idle-expired session.

        Args:
            force: Sweep even if the last sweep is more recent than the interval

        Returns:
            Number of sessions removed
        """
        now = self._clock()
        if not force and now - self._last_sweep < self._sweep_interval:
            return 0
        self._last_sweep = now

        expired = [sid for sid in list(self._touched) if self._is_idle(sid, now)]
        for session_id in expired:
            self.delete(session_id)

        if expired:
            logger.debug("Purged idle sessions", extra={"count": len(expired)})
        return len(expired)

    @asynccontextmanager
    async def locked(self, session_id: str) -> AsyncIterator[None]:
        """
        Hold the lock of one session id for a read-modify-write sequence.

        The lock entry is removed once the last holder or waiter leaves.
        """
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# Per-request Context
# =============================================================================

class SessionContext:
    """
    Explicit view of one user's session for the duration of a request.

    Every mutation is written through to the store immediately.

    Args:
        store: Backing session store
        cookie_session: The signed-cookie mapping holding the session id
    """

    def __init__(self, store: InMemorySessionStore, cookie_session: MutableMapping[str, Any]):
        self._store = store
        self._cookie = cookie_session

        session_id = cookie_session.get(SESSION_ID_KEY)
        if not session_id:
            session_id = secrets.token_urlsafe(32)
            cookie_session[SESSION_ID_KEY] = session_id
        self.session_id: str = session_id
        self._data = store.load(session_id)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def has(self, key: str) -> bool:
        return self._data.get(key) is not None

    def all(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def set(self, values: Mapping[str, Any]) -> None:
        """Merge values into the session."""
        self._data.update(values)
        self._flush()

    def pull(self, key: str, default: Any = None) -> Any:
        """Return a value and remove it from the session."""
        if key not in self._data:
            return default
        value = self._data.pop(key)
        self._flush()
        return value

    def forget(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)
        self._flush()

    def clear(self) -> None:
        """Remove everything stored in this session."""
        self._data = {}
        self._store.delete(self.session_id)

    def regenerate(self) -> None:
        """Move the data to a fresh session id and drop the old one."""
        old_id = self.session_id
        self.session_id = secrets.token_urlsafe(32)
        self._cookie[SESSION_ID_KEY] = self.session_id
        self._store.delete(old_id)
        self._flush()

    def reload(self) -> None:
        """Re-read the data from the store, discarding this request's copy."""
        self._data = self._store.load(self.session_id)

    @asynccontextmanager
    async def locked(self) -> AsyncIterator["SessionContext"]:
        """
        Lock this session and reload its data.

        Reads inside the block see every write made by requests that held
        the lock before.
        """
        async with self._store.locked(self.session_id):
            self.reload()
            yield self

    @property
    def is_authenticated(self) -> bool:
        """A session is authenticated if and only if it holds an identity."""
        return self.has(IDENTITY)

    def _flush(self) -> None:
        self._store.save(self.session_id, self._data)


# =============================================================================
# FastAPI Dependencies
# =============================================================================

def get_session_store(request: Request) -> InMemorySessionStore:
    return request.app.state.session_store


def get_session(request: Request) -> SessionContext:
    """
    FastAPI dependency returning the SessionContext of the current request.

    FastAPI caches dependencies per request, so the guard and the handler
    share one context.
    """
    return SessionContext(get_session_store(request), request.session)


__all__ = [
    "InMemorySessionStore",
    "SessionContext",
    "get_session",
    "get_session_store",
    "IDENTITY",
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
    "ID_TOKEN",
    "EXPIRES_AT",
    "PKCE_VERIFIER",
    "OAUTH_STATE",
    "CALLBACK_URL",
    "LOGOUT_STATE",
    "FLASH_ERROR",
]
