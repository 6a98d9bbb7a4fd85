"""
TaskPulse Snapshot Cache — Latest dashboard snapshot, plus an optional Redis mirror.

SnapshotCache holds one snapshot at a time. ``publish`` is an atomic
reference swap under an asyncio.Lock and rejects any snapshot whose
sequence is not newer than the cached one, so a slow refresh that finishes
late never replaces a newer result. Subscribers are called after each
accepted publish.

RedisSnapshotMirror republishes accepted snapshots as JSON so dashboards in
other processes can read them. Redis data is ephemeral and reconstructible
by running a refresh.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from typing import Any, Callable, List, Optional

from taskpulse.analytics.metrics import DashboardSnapshot

logger = logging.getLogger("taskpulse.engine.cache")

SnapshotCallback = Callable[[DashboardSnapshot], Any]


class SnapshotCache:
    """
    Versioned holder for the newest DashboardSnapshot.

    Usage:
        cache = SnapshotCache()
        cache.subscribe(lambda snap: print(snap.sequence))
        accepted = await cache.publish(snapshot)
        latest = cache.latest()
    """

    def __init__(self):
        self._snapshot: Optional[DashboardSnapshot] = None
        self._version = 0
        self._lock = asyncio.Lock()
        self._subscribers: List[SnapshotCallback] = []

    async def publish(self, snapshot: DashboardSnapshot) -> bool:
        """
        Replace the cached snapshot if ``snapshot.sequence`` is newer.

        Returns:
            True if accepted, False if superseded by the cached snapshot.
        """
        async with self._lock:
            current = self._snapshot
            if current is not None and snapshot.sequence <= current.sequence:
                logger.info(
                    f"Discarded snapshot #{snapshot.sequence}; "
                    f"#{current.sequence} is already published"
                )
                return False
            self._snapshot = snapshot
            self._version += 1
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                result = callback(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Snapshot subscriber {callback!r} failed: {e}")
        return True

    def latest(self) -> Optional[DashboardSnapshot]:
        return self._snapshot

    @property
    def version(self) -> int:
        """Number of accepted publishes."""
        return self._version

    @property
    def range_key(self) -> Optional[str]:
        return self._snapshot.range_key if self._snapshot else None

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register a callback (sync or async). Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def clear(self) -> None:
        self._snapshot = None


# ---------------------------------------------------------------------------
# Redis mirror
# ---------------------------------------------------------------------------

class RedisCache:
    """
    Minimal Redis wrapper with a circuit breaker.

    Falls back to a no-op on Redis failure: the in-process SnapshotCache
    stays authoritative.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "taskpulse:",
        default_ttl: int = 600,
    ):
        self._redis_url = redis_url
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._client = None
        self._available = False

        # Circuit breaker state
        self._failure_count = 0
        self._failure_threshold = 5
        self._failure_window = 30  # seconds
        self._first_failure_time = 0.0
        self._circuit_open = False

    def connect(self) -> bool:
        """Initialize Redis connection."""
        try:
            import redis
            self._client = redis.Redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            self._client.ping()
            self._available = True
            self._circuit_open = False
            self._failure_count = 0
            logger.info(f"Redis connected: {self._redis_url} ({self._prefix})")
            return True
        except Exception as e:
            logger.warning(f"Redis connection failed ({self._redis_url}): {e}")
            self._available = False
            return False

    def _check_circuit(self) -> bool:
        if self._circuit_open:
            # Try to recover after window
            if time.time() - self._first_failure_time > self._failure_window:
                self._circuit_open = False
                self._failure_count = 0
                return self.connect()
            return False
        return self._available

    def _record_failure(self) -> None:
        now = time.time()
        if self._failure_count == 0:
            self._first_failure_time = now

        self._failure_count += 1

        if self._failure_count >= self._failure_threshold:
            elapsed = now - self._first_failure_time
            if elapsed <= self._failure_window:
                self._circuit_open = True
                logger.error(
                    f"Redis circuit breaker OPEN: {self._failure_count} failures in {elapsed:.1f}s"
                )

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        """Get a value. Returns None on miss or failure."""
        if not self._check_circuit():
            return None
        try:
            return self._client.get(self._make_key(key))
        except Exception as e:
            self._record_failure()
            logger.debug(f"Redis GET failed: {e}")
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Set a value with optional TTL. Returns False on failure."""
        if not self._check_circuit():
            return False
        try:
            self._client.set(self._make_key(key), value, ex=ttl or self._default_ttl)
            return True
        except Exception as e:
            self._record_failure()
            logger.debug(f"Redis SET failed: {e}")
            return False

    def get_json(self, key: str) -> Optional[Any]:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def close(self) -> None:
        """Close the Redis connection and release resources."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.debug(f"Redis close failed: {e}")
            self._client = None
        self._available = False
        self._circuit_open = False
        self._failure_count = 0

    @property
    def is_available(self) -> bool:
        return self._available and not self._circuit_open

    @property
    def is_circuit_open(self) -> bool:
        return self._circuit_open


class RedisSnapshotMirror:
    """
    SnapshotCache subscriber writing each accepted snapshot to Redis.
    Writes run in a worker thread.

    Keys:
        {prefix}snapshot:latest        full snapshot JSON
        {prefix}snapshot:{range_key}   newest snapshot for that range
    """

    LATEST_KEY = "snapshot:latest"

    def __init__(self, cache: RedisCache, ttl: Optional[int] = None):
        self._cache = cache
        self._ttl = ttl

    async def __call__(self, snapshot: DashboardSnapshot) -> bool:
        """Mirror ``snapshot``; the blocking Redis calls run in a worker thread."""
        return await asyncio.to_thread(self.write, snapshot)

    def write(self, snapshot: DashboardSnapshot) -> bool:
        payload = snapshot.to_json()
        stored = self._cache.set(self.LATEST_KEY, payload, ttl=self._ttl)
        self._cache.set(f"snapshot:{snapshot.range_key}", payload, ttl=self._ttl)
        if not stored:
            logger.debug(f"Snapshot #{snapshot.sequence} not mirrored (Redis unavailable)")
        return stored

    def read_latest(self) -> Optional[dict]:
        return self._cache.get_json(self.LATEST_KEY)


def create_snapshot_mirror(redis_url: str, prefix: str = "taskpulse:", ttl: int = 600) -> RedisSnapshotMirror:
    """Connect to Redis and build a mirror ready to pass to SnapshotCache.subscribe."""
    cache = RedisCache(redis_url=redis_url, prefix=prefix, default_ttl=ttl)
    cache.connect()
    return RedisSnapshotMirror(cache, ttl=ttl)
