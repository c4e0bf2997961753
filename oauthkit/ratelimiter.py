"""A two-layer rate limiter: per-user quotas plus a keyed global failsafe."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

_CLEANUP_INTERVAL = 0.05
_SHUTDOWN_TIMEOUT = 5.0


class RateLimitError(Exception):
    """Base class for rate-limiting refusals."""


class UserQuotaExceeded(RateLimitError):
    """The user has used up their quota."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"User quota exceeded (limit: {limit})")


class SystemOverloaded(RateLimitError):
    """The system-wide capacity is exceeded."""

    def __init__(self) -> None:
        super().__init__("System capacity exceeded")


@dataclass
class LimiterConfig:
    """Configuration for :class:`TokenRateLimiter`. Durations are in seconds."""

    global_limit: int = 10000
    global_period: float = 60.0
    default_user_limit: int = 100
    user_quota_reset_interval: float = 3600.0
    user_inactivity_timeout: float = 86400.0


@dataclass
class _UserQuota:
    count: int
    limit: int
    last_reset: float
    last_activity: float


class _KeyedGcra:
    """Generic cell rate algorithm, one theoretical arrival time per key."""

    def __init__(self, period: float, burst: int) -> None:
        if period <= 0:
            raise ValueError("global_period must be positive")
        if burst <= 0:
            raise ValueError("global_limit must be positive")
        self._interval = period
        self._tolerance = period * burst
        self._tat: Dict[str, float] = {}

    def check(self, key: str, now: float) -> bool:
        tat = self._tat.get(key, now + self._interval)
        if now < tat - self._tolerance:
            return False
        self._tat[key] = max(tat, now) + self._interval
        return True


class TokenRateLimiter:
    """Per-user quotas backed by a keyed global limiter.

    A background task, started on the running event loop, periodically
    resets expired quotas and forgets inactive users.
    """

    def __init__(self, config: Optional[LimiterConfig] = None) -> None:
        self.config = config if config is not None else LimiterConfig()
        self._global = _KeyedGcra(self.config.global_period, self.config.global_limit)
        self._quotas: Dict[str, _UserQuota] = {}
        self._cleanup_task: Optional[asyncio.Task] = None
        self._closed = False
        self._ensure_cleanup_task()

    async def __aenter__(self) -> "TokenRateLimiter":
        self._ensure_cleanup_task()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()

    def _ensure_cleanup_task(self) -> None:
        if self._closed or self._cleanup_task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._cleanup_task = loop.create_task(self._cleanup_loop())

    def _new_quota(self, limit: int) -> _UserQuota:
        now = time.monotonic()
        return _UserQuota(count=0, limit=limit, last_reset=now, last_activity=now)

    async def check(self, user_id: str) -> None:
        """Allow one request for ``user_id`` or raise a :class:`RateLimitError`."""
        self._ensure_cleanup_task()
        quota = self._quotas.get(user_id)
        if quota is None:
            quota = self._new_quota(self.config.default_user_limit)
            self._quotas[user_id] = quota

        now = time.monotonic()
        if now - quota.last_reset >= self.config.user_quota_reset_interval:
            quota.count = 0
            quota.last_reset = now

        if quota.count >= quota.limit:
            raise UserQuotaExceeded(quota.limit)

        quota.count += 1
        quota.last_activity = now
        if not self._global.check(user_id, now):
            quota.count -= 1
            raise SystemOverloaded()

    def set_user_limit(self, user_id: str, limit: int) -> None:
        """Set a custom request limit for ``user_id``, keeping its usage."""
        quota = self._quotas.get(user_id)
        if quota is None:
            self._quotas[user_id] = self._new_quota(limit)
        else:
            quota.limit = limit

    def get_user_usage(self, user_id: str) -> Optional[Tuple[int, int]]:
        """Return ``(count, limit)`` for a tracked user, or None."""
        quota = self._quotas.get(user_id)
        if quota is None:
            return None
        return quota.count, quota.limit

    async def shutdown(self) -> None:
        """Stop the cleanup task and forget every user."""
        self._closed = True
        task, self._cleanup_task = self._cleanup_task, None
        if task is not None:
            task.cancel()
            done, _ = await asyncio.wait({task}, timeout=_SHUTDOWN_TIMEOUT)
            if task in done and not task.cancelled():
                error = task.exception()
                if error is not None:
                    raise error
        self._quotas.clear()

    def reset_user_quota(self, user_id: str) -> None:
        """Reset the usage count of ``user_id`` if it is tracked."""
        quota = self._quotas.get(user_id)
        if quota is not None:
            quota.count = 0
            quota.last_reset = time.monotonic()

    def remove_user(self, user_id: str) -> None:
        """Stop tracking ``user_id``."""
        self._quotas.pop(user_id, None)

    def _sweep(self, now: float) -> None:
        timeout = self.config.user_inactivity_timeout
        inactive = [
            key
            for key, quota in self._quotas.items()
            if now - quota.last_activity > timeout
        ]
        for key in inactive:
            del self._quotas[key]
        reset_interval = self.config.user_quota_reset_interval
        for quota in self._quotas.values():
            if now - quota.last_reset >= reset_interval:
                quota.count = 0
                quota.last_reset = now

    async def _cleanup_loop(self) -> None:
        while True:
            self._sweep(time.monotonic())
            await asyncio.sleep(_CLEANUP_INTERVAL)