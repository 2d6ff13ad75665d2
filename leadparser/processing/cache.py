"""In-memory TTL cache of parse results keyed by a checksum of the text."""
from __future__ import annotations

import copy
import threading
import time
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from leadparser.core.models import ParseResult

CACHE_TTL_SECONDS = 3600


def cache_key(text: str) -> str:
    encoded = text.encode("utf-8")
    return f"{zlib.crc32(encoded):08x}-{len(encoded)}"


@dataclass
class CacheEntry:
    result: ParseResult
    stored_at: float


class ParseCache:
    """Expired entries are dropped on the next write, not on read."""

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, text: str) -> Optional[ParseResult]:
        with self._lock:
            entry = self._entries.get(cache_key(text))
        if entry is None or self._clock() - entry.stored_at > self.ttl_seconds:
            return None
        return copy.deepcopy(entry.result)

    def set(self, text: str, result: ParseResult) -> None:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now - entry.stored_at > self.ttl_seconds]
            for key in expired:
                del self._entries[key]
            self._entries[cache_key(text)] = CacheEntry(copy.deepcopy(result), now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_cache = ParseCache()


def default_cache() -> ParseCache:
    return _default_cache
