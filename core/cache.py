"""
Key-value store with per-entry TTL.

Holds the three kinds of process-wide state the gateway keeps:
session principals, cached access tokens and discovered file locations.
Callers only see ``get`` / ``put`` / ``forget`` so a shared backend can be
swapped in later without touching the token or discovery code.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal TTL key-value interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when missing or expired."""
        ...

    @abstractmethod
    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value``; ``ttl`` in seconds, None means no expiry."""
        ...

    @abstractmethod
    def forget(self, key: str) -> None:
        """Drop ``key`` if present."""
        ...


class InMemoryStore(KeyValueStore):
    """
    A store backed by a python dict.

    Not shared across worker processes. Writes are whole-key overwrites, so
    two racing writers leave one complete value behind, never a mix.
    """

    _clean_interval: float = 60.0

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._last_cleaned = clock()

    def _purge_expired(self) -> None:
        now = self._clock()
        if now - self._last_cleaned < self._clean_interval:
            return
        self._last_cleaned = now
        expired = [k for k, (_, exp) in self._entries.items() if exp is not None and exp <= now]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))

    def get(self, key: str) -> Optional[Any]:
        self._purge_expired()
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self._purge_expired()
        expires_at = self._clock() + ttl if ttl is not None else None
        self._entries[key] = (value, expires_at)

    def forget(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


_default_store: Optional[InMemoryStore] = None


def get_default_store() -> InMemoryStore:
    """Process-wide store shared by every request."""
    global _default_store
    if _default_store is None:
        _default_store = InMemoryStore()
    return _default_store
