"""Application-level exception types.

Domain errors carry a stable code, a message, and optional structured details
so the exception handlers can render them consistently.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, NotRequired, TypedDict

from ratewarden.adapters.rate_limit.base import Decision


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    endpoint: str
    limit: int
    remaining: int
    reset_at: int
    reset_time: str
    retry_after: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


@dataclass
class ThrottledError(AppError):
    """Raised when a request is rejected by admission control.

    Carries the full decision and the header set so the transport layer can
    render both a 429 body and the throttling headers. Never swallow it.
    """

    decision: Decision | None = None
    endpoint: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_decision(
        cls,
        decision: Decision,
        *,
        endpoint: str,
        headers: dict[str, str],
    ) -> "ThrottledError":
        retry_after = decision.retry_after_seconds or 0
        reset_time = datetime.fromtimestamp(decision.reset_at, tz=timezone.utc)
        return cls(
            code="rate_limit_exceeded",
            message=(
                "Rate limit exceeded. Too many requests. "
                f"Please try again in {retry_after} seconds."
            ),
            details={
                "endpoint": endpoint,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "reset_at": decision.reset_epoch,
                "reset_time": reset_time.isoformat(),
                "retry_after": retry_after,
            },
            decision=decision,
            endpoint=endpoint,
            headers=dict(headers),
        )

    @property
    def retry_after(self) -> int:
        if self.decision is None or self.decision.retry_after_seconds is None:
            return 0
        return self.decision.retry_after_seconds
