"""Quota store interfaces and value types.

The admission layer depends on this abstraction rather than on the concrete
in-memory store, so the storage strategy can change without touching the
HTTP adapter.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class QuotaConfig:
    """Immutable rate limit policy.

    Attributes:
        max_requests: Requests admitted per window.
        window_seconds: Length of the fixed window in seconds.
    """

    max_requests: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

    @property
    def policy(self) -> str:
        """Policy descriptor in ``<limit>;w=<seconds>`` form."""
        return f"{self.max_requests};w={int(self.window_seconds)}"


@dataclass(frozen=True)
class Decision:
    """Result of a single admission check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests for the window the decision was made against.
        remaining: Requests left in the window (0 when rejected).
        reset_at: UNIX epoch seconds when the window ends.
        window_seconds: Window length of the policy in force.
        retry_after_seconds: Whole seconds to wait, only set when rejected.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    window_seconds: float
    retry_after_seconds: int | None = None

    @property
    def policy(self) -> str:
        return f"{self.limit};w={int(self.window_seconds)}"

    @property
    def reset_epoch(self) -> int:
        """Whole-second reset time, rounded up so it never precedes ``reset_at``."""
        return math.ceil(self.reset_at)


@dataclass(frozen=True)
class QuotaStats:
    """Read-only snapshot of one window entry."""

    count: int
    reset_at: float
    remaining: int

    @property
    def reset_epoch(self) -> int:
        return math.ceil(self.reset_at)


class AbstractQuotaStore(ABC):
    """Interface for quota stores."""

    @abstractmethod
    def check_and_consume(self, identity: str, endpoint: str) -> Decision:
        """Decide whether ``identity`` may hit ``endpoint`` once more.

        Consumes one unit of quota when the request is admitted. A rejected
        request leaves the window untouched.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, identity: str, endpoint: str) -> None:
        """Drop the window for the pair so the next call opens a fresh one."""
        raise NotImplementedError

    @abstractmethod
    def stats(self, identity: str, endpoint: str) -> QuotaStats | None:
        """Return the current window for the pair, or None. Never creates one."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Delete expired windows and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def set_endpoint_config(self, pattern: str, config: QuotaConfig) -> None:
        """Upsert the policy for an endpoint pattern.

        Only windows opened after the call see the new policy.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release held state at shutdown. Stores without any may skip this."""
