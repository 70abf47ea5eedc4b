"""In-memory fixed-window quota store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: state is split into shards, each guarded by its own lock, so
  unrelated keys never wait on each other and one key's read-decide-mutate
  sequence is atomic.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ratewarden.adapters.rate_limit.base import (
    AbstractQuotaStore,
    Decision,
    QuotaConfig,
    QuotaStats,
)
from ratewarden.adapters.rate_limit.registry import ConfigRegistry

logger = logging.getLogger(__name__)

# (identity, endpoint); a tuple cannot collide the way a joined string can.
CompositeKey = tuple[str, str]


@dataclass
class _WindowEntry:
    count: int
    window_start: float
    window_end: float
    config: QuotaConfig


class _Shard:
    __slots__ = ("lock", "entries")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.entries: dict[CompositeKey, _WindowEntry] = {}


class ShardedQuotaStore(AbstractQuotaStore):
    """Quota store keeping one fixed window per (identity, endpoint).

    A window opens on the first request for a pair and lasts for the window
    length of the policy resolved at that moment. The policy is captured on
    the entry, so later registry changes only apply to windows opened after
    them.

    Important:
        This store is per-process only. Each worker process enforces its own
        independent limits.
    """

    def __init__(
        self,
        *,
        registry: ConfigRegistry | None = None,
        shard_count: int = 16,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store.

        Args:
            registry: Endpoint policy registry; a default one is built if omitted.
            shard_count: Number of independently locked partitions.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If shard_count is invalid.
        """
        if shard_count < 1:
            raise ValueError("shard_count must be >= 1")

        self._registry = registry or ConfigRegistry()
        self._clock = clock
        self._shards = [_Shard() for _ in range(shard_count)]

    @property
    def registry(self) -> ConfigRegistry:
        return self._registry

    def _shard_for(self, key: CompositeKey) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    @staticmethod
    def _validate(identity: str, endpoint: str) -> CompositeKey:
        if not identity:
            raise ValueError("identity must be a non-empty string")
        if not endpoint:
            raise ValueError("endpoint must be a non-empty string")
        return (identity, endpoint)

    def check_and_consume(self, identity: str, endpoint: str) -> Decision:
        """Check the pair's window and consume one request if admitted.

        Args:
            identity: Caller identity (e.g. ``user:42``, ``ip:10.0.0.1``).
            endpoint: Canonical endpoint key (e.g. ``issues/[id]``).

        Returns:
            Decision describing the outcome and the window it was made against.

        Raises:
            ValueError: If identity or endpoint is empty.
        """
        key = self._validate(identity, endpoint)
        shard = self._shard_for(key)

        with shard.lock:
            now = self._clock()
            entry = shard.entries.get(key)

            if entry is None or now >= entry.window_end:
                # Policy lookup and window opening happen under one lock hold.
                config = self._registry.resolve(endpoint)
                entry = _WindowEntry(
                    count=1,
                    window_start=now,
                    window_end=now + config.window_seconds,
                    config=config,
                )
                shard.entries[key] = entry
                return Decision(
                    allowed=True,
                    limit=config.max_requests,
                    remaining=config.max_requests - 1,
                    reset_at=entry.window_end,
                    window_seconds=config.window_seconds,
                )

            limit = entry.config.max_requests
            if entry.count >= limit:
                return Decision(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_at=entry.window_end,
                    window_seconds=entry.config.window_seconds,
                    retry_after_seconds=max(0, math.ceil(entry.window_end - now)),
                )

            entry.count += 1
            return Decision(
                allowed=True,
                limit=limit,
                remaining=limit - entry.count,
                reset_at=entry.window_end,
                window_seconds=entry.config.window_seconds,
            )

    def reset(self, identity: str, endpoint: str) -> None:
        key = self._validate(identity, endpoint)
        shard = self._shard_for(key)
        with shard.lock:
            shard.entries.pop(key, None)

    def stats(self, identity: str, endpoint: str) -> QuotaStats | None:
        """Return the open window for the pair without touching it.

        An entry whose window has already ended is reported as absent, the
        same way the next request would treat it.
        """
        key = self._validate(identity, endpoint)
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is None or self._clock() >= entry.window_end:
                return None
            return QuotaStats(
                count=entry.count,
                reset_at=entry.window_end,
                remaining=max(0, entry.config.max_requests - entry.count),
            )

    def sweep(self) -> int:
        """Remove expired windows one shard at a time.

        Returns:
            Number of entries removed.
        """
        removed = 0
        for shard in self._shards:
            with shard.lock:
                now = self._clock()
                expired = [k for k, e in shard.entries.items() if now >= e.window_end]
                for key in expired:
                    del shard.entries[key]
            removed += len(expired)

        if removed:
            logger.info("quota_store.swept", extra={"removed": removed, "live": len(self)})
        return removed

    def set_endpoint_config(self, pattern: str, config: QuotaConfig) -> None:
        self._registry.set(pattern, config)
        logger.info(
            "quota_store.policy_updated",
            extra={
                "pattern": pattern,
                "max_requests": config.max_requests,
                "window_s": config.window_seconds,
            },
        )

    def snapshot(self) -> dict[CompositeKey, QuotaStats]:
        """Copy of every stored window, expired or not. Debugging aid."""
        result: dict[CompositeKey, QuotaStats] = {}
        for shard in self._shards:
            with shard.lock:
                for key, entry in shard.entries.items():
                    result[key] = QuotaStats(
                        count=entry.count,
                        reset_at=entry.window_end,
                        remaining=max(0, entry.config.max_requests - entry.count),
                    )
        return result

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()
        logger.info("quota_store.cleared")

    def close(self) -> None:
        """Drop every window. The store stays usable and starts empty."""
        self.clear()
        logger.info("quota_store.closed")

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total
