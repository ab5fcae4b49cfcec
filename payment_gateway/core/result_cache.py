"""
In-memory TTL cache of verification results.

Keeps repeated storefront polls for the same order from turning into
repeated processor calls. Entries are evicted lazily on read, and by
``sweep()`` which the maintenance task runs periodically so that orders
that are never polled again still age out.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import structlog

from .models import TTLClass, VerificationResult

logger = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    order_id: str
    result: VerificationResult
    written_at: float
    ttl_class: TTLClass


class ResultCache:
    """
    TTL cache keyed by order id.

    Each operation takes the lock for its own duration only. ``get`` and
    ``put`` hand out and store deep copies; the cached result object is
    never exposed.

    Invalidations are tracked per order as a generation number, see
    ``generation`` and ``put``. ``clear`` advances a cache-wide epoch that
    is part of every generation token.
    """

    def __init__(
        self,
        verification_ttl: float = 30.0,
        paid_ttl: float = 300.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            verification_ttl: Lifetime of regular verification results (seconds)
            paid_ttl: Lifetime of confirmed-paid results (seconds)
            max_entries: Size ceiling enforced by sweeps
            clock: Monotonic time source
        """
        self._ttls: Dict[TTLClass, float] = {
            TTLClass.VERIFICATION: verification_ttl,
            TTLClass.CONFIRMED_PAID: paid_ttl,
        }
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._generations: Dict[str, Tuple[int, float]] = {}
        self._invalidation_count = 0
        self._clear_epoch = 0
        self._lock = threading.Lock()

    def ttl_for(self, ttl_class: TTLClass) -> float:
        return self._ttls[ttl_class]

    def generation(self, order_id: str) -> Tuple[int, int]:
        """Token identifying the invalidation state of one order. See ``put``."""
        with self._lock:
            return self._generation_token(order_id)

    def _generation_token(self, order_id: str) -> Tuple[int, int]:
        record = self._generations.get(order_id)
        return (self._clear_epoch, record[0] if record else 0)

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.written_at < self._ttls[entry.ttl_class]

    def get(self, order_id: str) -> Optional[VerificationResult]:
        """
        Return a copy of the cached result, or None if absent or expired.

        The copy is flagged ``cached=True`` with its age in seconds. A stale
        entry is removed as a side effect.
        """
        with self._lock:
            entry = self._entries.get(order_id)
            if entry is None:
                return None
            now = self._clock()
            if not self._is_fresh(entry, now):
                del self._entries[order_id]
                logger.debug("verification_cache_expired", order_id=order_id)
                return None
            age = now - entry.written_at
            return entry.result.copy(cached=True, cache_age_seconds=round(age, 3))

    def put(
        self,
        order_id: str,
        result: VerificationResult,
        ttl_class: TTLClass = TTLClass.VERIFICATION,
        generation: Optional[Tuple[int, int]] = None,
    ) -> bool:
        """
        Store a result, replacing any previous entry (last write wins).

        When ``generation`` is given and this order was invalidated (or the
        cache cleared) since it was read, the write is skipped: the result
        was fetched before the invalidation and may be stale. Invalidating
        other orders does not affect the write. Returns True if the entry
        was written.
        """
        with self._lock:
            if generation is not None and generation != self._generation_token(order_id):
                logger.debug("verification_cache_write_skipped", order_id=order_id)
                return False
            self._entries[order_id] = CacheEntry(
                order_id=order_id,
                result=result.copy(cached=False, cache_age_seconds=None),
                written_at=self._clock(),
                ttl_class=ttl_class,
            )
            over_ceiling = len(self._entries) > self.max_entries
        if over_ceiling:
            self.sweep()
        return True

    def invalidate(self, order_id: str) -> bool:
        """Drop one entry. Returns True if an entry was removed."""
        with self._lock:
            removed = self._entries.pop(order_id, None) is not None
            self._invalidation_count += 1
            self._generations[order_id] = (self._invalidation_count, self._clock())
        if removed:
            logger.info("verification_cache_invalidated", order_id=order_id)
        return removed

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._generations.clear()
            self._clear_epoch += 1
        logger.info("verification_cache_cleared", entries_removed=count)
        return count

    def sweep(self) -> int:
        """
        Purge expired entries, then the oldest ones beyond the size ceiling.

        Works on a snapshot of the keys and deletes one key at a time, so
        concurrent writes during a sweep are tolerated. Generation records
        are kept for the longest TTL and then forgotten; a fetch still in
        flight after that long may write a stale result. Returns the number
        of entries removed.
        """
        removed = 0
        with self._lock:
            keys = list(self._entries)

        for order_id in keys:
            with self._lock:
                entry = self._entries.get(order_id)
                if entry is not None and not self._is_fresh(entry, self._clock()):
                    del self._entries[order_id]
                    removed += 1

        with self._lock:
            overflow = len(self._entries) - self.max_entries
            if overflow > 0:
                oldest = sorted(self._entries.values(), key=lambda e: e.written_at)[:overflow]
                oldest_ids = [entry.order_id for entry in oldest]
            else:
                oldest_ids = []

        for order_id in oldest_ids:
            with self._lock:
                if self._entries.pop(order_id, None) is not None:
                    removed += 1

        with self._lock:
            horizon = self._clock() - max(self._ttls.values())
            for order_id in [
                key for key, (_, invalidated_at) in self._generations.items()
                if invalidated_at <= horizon
            ]:
                del self._generations[order_id]

        if removed:
            logger.info("verification_cache_swept", entries_removed=removed, remaining=len(self))
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, order_id: object) -> bool:
        with self._lock:
            return order_id in self._entries
