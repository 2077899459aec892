"""
Rate Limiting Utilities for the Contact Relay

Limits how many messages one email address can send per window. The window
is a counter plus a start time that is reset wholesale once it has elapsed.

The table lives behind a small store interface:
- InMemoryRateStore: per-process dict, reset whenever the process restarts
- CacheRateStore: Django cache (Redis when REDIS_ENABLED) for multi-worker setups
"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


@dataclass
class RateRecord:
    """Per-address counter. ``window_start`` is epoch milliseconds."""
    count: int
    window_start: int


def get_client_ip(request):
    """Get client IP address from request (best effort, for logging)."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('HTTP_CLIENT_IP') or request.META.get('REMOTE_ADDR')
    return ip or 'unknown'


class RateStore:
    """
    Storage for RateRecords keyed by normalized email.

    ``update`` runs a read-modify-write for one key and returns whatever the
    callback returns. Implementations decide how atomic that is.
    """

    def get(self, key: str) -> Optional[RateRecord]:
        raise NotImplementedError

    def update(self, key: str, func):
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError


class InMemoryRateStore(RateStore):
    """Process-local table. Entries are never evicted."""

    def __init__(self):
        self._records: Dict[str, RateRecord] = {}
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            record = self._records.get(key)
            return RateRecord(record.count, record.window_start) if record else None

    def update(self, key, func):
        with self._lock:
            record, result = func(self._records.get(key))
            if record is not None:
                self._records[key] = record
            return result

    def clear(self):
        with self._lock:
            self._records.clear()

    def __len__(self):
        return len(self._records)


class CacheRateStore(RateStore):
    """
    Django cache backed table, shared by every worker using the same cache.

    get-then-set is not atomic; concurrent submissions for one address may
    be over- or under-counted by a request or two.

    Keys carry a generation number. ``clear`` bumps the generation so only
    this store's records are dropped; the stale ones expire with their TTL.
    """

    KEY_PREFIX = 'contact_rate'
    GENERATION_KEY = f'{KEY_PREFIX}:generation'

    def __init__(self, ttl_seconds: int = None):
        self.ttl_seconds = ttl_seconds

    def _generation(self):
        return cache.get_or_set(self.GENERATION_KEY, 1, timeout=None)

    def _key(self, key):
        return f'{self.KEY_PREFIX}:{self._generation()}:{key}'

    def get(self, key):
        data = cache.get(self._key(key))
        if not data:
            return None
        return RateRecord(count=data['count'], window_start=data['window_start'])

    def update(self, key, func):
        record, result = func(self.get(key))
        if record is not None:
            ttl = self.ttl_seconds or getattr(settings, 'CONTACT_RATE_LIMIT_WINDOW_SECONDS', 3600)
            cache.set(
                self._key(key),
                {'count': record.count, 'window_start': record.window_start},
                timeout=ttl
            )
        return result

    def clear(self):
        try:
            cache.incr(self.GENERATION_KEY)
        except ValueError:
            cache.set(self.GENERATION_KEY, 2, timeout=None)


class RateLimiter:
    """
    Per-key windowed counter.

    Args:
        store: RateStore holding the records
        max_count: Maximum accepted submissions per window
        window_seconds: Window length in seconds
    """

    def __init__(self, store: RateStore, max_count: int = 3, window_seconds: int = 3600):
        self.store = store
        self.max_count = max_count
        self.window_ms = window_seconds * 1000

    def check_and_increment(self, identifier: str, now_ms: int) -> Tuple[bool, int]:
        """
        Check the quota for ``identifier`` and count this submission if allowed.

        Returns:
            tuple: (is_allowed, retry_after_seconds)
        """
        key = identifier.lower()

        def apply(record):
            if record is None:
                record = RateRecord(count=0, window_start=now_ms)

            # Check if window has expired
            if now_ms - record.window_start > self.window_ms:
                record = RateRecord(count=0, window_start=now_ms)

            if record.count >= self.max_count:
                window_end = record.window_start + self.window_ms
                # Whole seconds, rounded up, never below 1
                retry_after = max(1, -(-(window_end - now_ms) // 1000))
                return None, (False, int(retry_after))

            return RateRecord(count=record.count + 1, window_start=record.window_start), (True, 0)

        return self.store.update(key, apply)


_memory_store = InMemoryRateStore()


def get_rate_store() -> RateStore:
    """Return the configured store (CONTACT_RATE_STORE = 'memory' | 'cache')."""
    backend = getattr(settings, 'CONTACT_RATE_STORE', 'memory')
    if backend == 'cache':
        return CacheRateStore()
    if backend != 'memory':
        logger.warning(f"Unknown CONTACT_RATE_STORE '{backend}', using in-memory store")
    return _memory_store


def get_rate_limiter() -> RateLimiter:
    return RateLimiter(
        get_rate_store(),
        max_count=getattr(settings, 'CONTACT_RATE_LIMIT_MAX', 3),
        window_seconds=getattr(settings, 'CONTACT_RATE_LIMIT_WINDOW_SECONDS', 3600),
    )
