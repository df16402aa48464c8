"""Per-credential rate limiting.

Fixed-window algorithm:
- The window is the current UTC time truncated to the minute
- A counter is kept per (credential id, window start)
- check_and_increment is a single atomic step in every backend
- Counters older than two minutes are purged opportunistically

Because windows are fixed rather than sliding, a burst straddling a minute
boundary can admit up to 2x the limit in a short interval.

Backends:
- InMemoryRateLimiter: dict guarded by a lock (single process)
- SQLiteRateLimiter: one INSERT ... ON CONFLICT DO UPDATE ... WHERE statement
- RedisRateLimiter: Lua script, keys expire after two windows
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from .models import utcnow

logger = logging.getLogger(__name__)

WINDOW = timedelta(minutes=1)
RETENTION = timedelta(minutes=2)

# Seconds a rate-limited caller is told to wait
RETRY_AFTER_SECONDS = 60

Clock = Callable[[], datetime]


class RateLimiter(ABC):
    """Fixed-window rate limiter keyed by credential and UTC minute."""

    def __init__(self, clock: Clock | None = None):
        """Initialize rate limiter.

        Args:
            clock: Returns the current aware UTC datetime (injectable for tests)
        """
        self._clock = clock or utcnow

    def now(self) -> datetime:
        """Current time according to the limiter's clock."""
        return self._clock()

    def window_start(self, now: datetime | None = None) -> datetime:
        """Start of the window containing `now`."""
        now = now or self.now()
        return now.replace(second=0, microsecond=0)

    def reset_at(self, now: datetime | None = None) -> datetime:
        """Start of the next window."""
        return self.window_start(now) + WINDOW

    @abstractmethod
    async def check_and_increment(self, credential_id: str, limit: int) -> bool:
        """Count a request if the credential is under its limit.

        Args:
            credential_id: Credential making the request
            limit: Requests allowed per window

        Returns:
            True if the request is admitted (and counted), False if over limit.
            A rejected request is not counted.
        """

    @abstractmethod
    async def get_remaining(self, credential_id: str, limit: int) -> int:
        """Requests left in the current window (limit if nothing counted yet)."""

    @abstractmethod
    async def cleanup(self) -> int:
        """Purge counters whose window started more than two minutes ago.

        Returns:
            Number of counters removed
        """


class InMemoryRateLimiter(RateLimiter):
    """In-process fixed-window limiter."""

    def __init__(self, clock: Clock | None = None):
        super().__init__(clock)
        self._counts: dict[tuple[str, datetime], int] = {}
        self._lock = threading.Lock()

    async def check_and_increment(self, credential_id: str, limit: int) -> bool:
        now = self.now()
        key = (credential_id, self.window_start(now))

        with self._lock:
            self._purge(now)
            current = self._counts.get(key, 0)
            if current >= limit:
                return False
            self._counts[key] = current + 1
            return True

    async def get_remaining(self, credential_id: str, limit: int) -> int:
        key = (credential_id, self.window_start())
        with self._lock:
            current = self._counts.get(key, 0)
        return max(limit - current, 0)

    async def cleanup(self) -> int:
        with self._lock:
            return self._purge(self.now())

    def _purge(self, now: datetime) -> int:
        """Drop stale windows. Caller holds the lock."""
        cutoff = now - RETENTION
        stale = [key for key in self._counts if key[1] < cutoff]
        for key in stale:
            del self._counts[key]
        return len(stale)


class SQLiteRateLimiter(RateLimiter):
    """SQLite-backed fixed-window limiter."""

    def __init__(self, db_path: str, clock: Clock | None = None):
        """Initialize limiter.

        Args:
            db_path: Path to SQLite database file
            clock: Injectable clock
        """
        super().__init__(clock)
        self.db_path = db_path
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rate_limit_entries (
                    api_key_id TEXT NOT NULL,
                    window_start TEXT NOT NULL,
                    request_count INTEGER NOT NULL DEFAULT 1,
                    PRIMARY KEY (api_key_id, window_start)
                )
            """)

    async def check_and_increment(self, credential_id: str, limit: int) -> bool:
        now = self.now()
        window_key = self.window_start(now).isoformat()

        with sqlite3.connect(self.db_path) as conn:
            self._purge(conn, now)
            # Insert, or increment only while under the limit; a rejected
            # request changes no row.
            cursor = conn.execute(
                """
                INSERT INTO rate_limit_entries (api_key_id, window_start, request_count)
                VALUES (?, ?, 1)
                ON CONFLICT (api_key_id, window_start)
                DO UPDATE SET request_count = request_count + 1
                WHERE request_count < ?
                """,
                (credential_id, window_key, limit),
            )
            return cursor.rowcount > 0

    async def get_remaining(self, credential_id: str, limit: int) -> int:
        window_key = self.window_start().isoformat()
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT request_count FROM rate_limit_entries
                WHERE api_key_id = ? AND window_start = ?
                """,
                (credential_id, window_key),
            ).fetchone()
        current = row[0] if row else 0
        return max(limit - current, 0)

    async def cleanup(self) -> int:
        with sqlite3.connect(self.db_path) as conn:
            return self._purge(conn, self.now())

    def _purge(self, conn: sqlite3.Connection, now: datetime) -> int:
        # ISO strings with a fixed offset sort chronologically
        cutoff = (now - RETENTION).isoformat()
        cursor = conn.execute(
            "DELETE FROM rate_limit_entries WHERE window_start < ?", (cutoff,)
        )
        return cursor.rowcount


# Redis Lua script for atomic fixed-window limiting
# Returns the new count if admitted, -1 if rate limited
RATE_LIMIT_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local ttl = tonumber(ARGV[2])

local current = tonumber(redis.call('GET', key) or '0')
if current >= limit then
    return -1
end

current = redis.call('INCR', key)
if current == 1 then
    redis.call('EXPIRE', key, ttl)
end
return current
"""


class RedisRateLimiter(RateLimiter):
    """Redis-backed fixed-window limiter.

    Uses a Lua script so the read and increment happen atomically on the
    server. Counter keys expire after two windows, which replaces explicit
    cleanup. When Redis is unreachable the limiter fails open by default
    and logs a warning.
    """

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        key_prefix: str = "keygate:rate_limit",
        fail_open: bool = True,
        clock: Clock | None = None,
    ):
        """Initialize rate limiter.

        Args:
            client: redis.asyncio client (decode_responses=True recommended)
            key_prefix: Prefix for counter keys
            fail_open: Admit requests when Redis errors (False rejects them)
            clock: Injectable clock
        """
        super().__init__(clock)
        self._client = client
        self._key_prefix = key_prefix
        self._fail_open = fail_open
        self._script_sha: str | None = None

    @classmethod
    def from_url(cls, redis_url: str, **kwargs: Any) -> RedisRateLimiter:
        """Create a limiter with a client built from a Redis URL."""
        import redis.asyncio as redis

        client = redis.from_url(redis_url, decode_responses=True)
        return cls(client, **kwargs)

    def _key(self, credential_id: str, now: datetime | None = None) -> str:
        window = int(self.window_start(now).timestamp())
        return f"{self._key_prefix}:{credential_id}:{window}"

    async def _ensure_script(self) -> str:
        """Load Lua script into Redis and cache SHA."""
        if self._script_sha is None:
            self._script_sha = await self._client.script_load(RATE_LIMIT_SCRIPT)
        return self._script_sha

    async def check_and_increment(self, credential_id: str, limit: int) -> bool:
        key = self._key(credential_id)
        ttl = int(RETENTION.total_seconds())

        try:
            script_sha = await self._ensure_script()
            result = await self._client.evalsha(script_sha, 1, key, limit, ttl)
        except Exception as e:
            # Script cache may have been flushed; reload on next call
            self._script_sha = None
            logger.warning(f"[AUTH] Rate limit check failed: {e}")
            return self._fail_open

        return int(result) > 0

    async def get_remaining(self, credential_id: str, limit: int) -> int:
        try:
            data = await self._client.get(self._key(credential_id))
        except Exception as e:
            logger.warning(f"[AUTH] Rate limit lookup failed: {e}")
            return limit
        current = int(data) if data else 0
        return max(limit - current, 0)

    async def cleanup(self) -> int:
        # Keys carry a TTL
        return 0

    async def close(self) -> None:
        """Close the underlying Redis client."""
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning(f"Error closing Redis connection: {e}")
