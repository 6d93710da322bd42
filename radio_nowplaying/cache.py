"""
Short-lived result cache for the now-playing pipeline

Entries are keyed by (station_id, title, artist) so an unchanged upstream
snapshot reuses the previous classification, artwork and logo lookups
instead of calling out again. Thread-safe; Flask serves polls on threads.
"""

import threading
import time
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30


def make_cache_key(station_id, title, artist):
    """Build the cache key for one upstream snapshot"""
    return (station_id or '', (title or '').strip().lower(), (artist or '').strip().lower())


class CacheEntry:
    """One memoized poll result

    Attributes:
        raw: TrackMetadata as returned by the adapter
        track: final TrackMetadata served to clients (branded or enriched)
        verdict: AdVerdict attached to the snapshot
        stored_at: clock value when the entry was stored
    """

    __slots__ = ('raw', 'track', 'verdict', 'stored_at')

    def __init__(self, raw, track, verdict, stored_at):
        self.raw = raw
        self.track = track
        self.verdict = verdict
        self.stored_at = stored_at

    def __repr__(self):
        return f"CacheEntry(track={self.track!r}, verdict={self.verdict!r}, stored_at={self.stored_at})"


class TTLCache:
    """Thread-safe in-memory cache with a fixed time-to-live

    Interface used by the dispatcher: get(key) -> CacheEntry or None,
    put(key, entry).
    """

    def __init__(self, ttl_seconds=DEFAULT_TTL_SECONDS, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[Any, CacheEntry] = {}
        self._lock = threading.RLock()
        self._stats = {
            'hits': 0,
            'misses': 0,
            'evictions': 0
        }

    def _is_expired(self, entry):
        return self.clock() - entry.stored_at >= self.ttl_seconds

    def get(self, key) -> Optional[CacheEntry]:
        """Get an entry, or None if missing/expired"""
        with self._lock:
            entry = self._entries.get(key)

            if entry is None:
                self._stats['misses'] += 1
                return None

            if self._is_expired(entry):
                del self._entries[key]
                self._stats['evictions'] += 1
                self._stats['misses'] += 1
                return None

            self._stats['hits'] += 1
            return entry

    def put(self, key, entry):
        """Store an entry (last writer wins)"""
        with self._lock:
            self._entries[key] = entry

    def new_entry(self, raw, track, verdict):
        """Create an entry stamped with this cache's clock"""
        return CacheEntry(raw, track, verdict, self.clock())

    def delete(self, key):
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self):
        with self._lock:
            self._entries.clear()

    def cleanup_expired(self):
        """Remove all expired entries

        Returns:
            Number of entries removed
        """
        with self._lock:
            expired_keys = [key for key, entry in self._entries.items() if self._is_expired(entry)]
            for key in expired_keys:
                del self._entries[key]
            self._stats['evictions'] += len(expired_keys)

        if expired_keys:
            logger.debug(f"Evicted {len(expired_keys)} expired cache entries")
        return len(expired_keys)

    def get_stats(self):
        with self._lock:
            total = self._stats['hits'] + self._stats['misses']
            return {
                'size': len(self._entries),
                'ttl_seconds': self.ttl_seconds,
                'hits': self._stats['hits'],
                'misses': self._stats['misses'],
                'evictions': self._stats['evictions'],
                'hit_rate': round(self._stats['hits'] / total, 3) if total else 0.0,
            }

    def __len__(self):
        with self._lock:
            return len(self._entries)
