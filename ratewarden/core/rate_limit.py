"""Admission control for the HTTP layer.

This module sits between the transport and the business routes. For each
request it derives a caller identity and a canonical endpoint, asks the
quota store for a decision, and turns that decision into response headers or
a ``ThrottledError``.

Design goals:
- Explicit wiring: the store is injected into ``AdmissionMiddleware`` by the
  application factory; routes reach it through ``request.app.state``.
- Swap-friendly: only ``AbstractQuotaStore`` is referenced here.
- Never an availability hazard: identity extraction cannot fail, it only
  falls back.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response

from ratewarden.adapters.rate_limit.base import AbstractQuotaStore, Decision, QuotaConfig, QuotaStats
from ratewarden.adapters.rate_limit.registry import normalize_pattern
from ratewarden.core.config import RateLimitSettings
from ratewarden.core.endpoints import canonicalize_endpoint
from ratewarden.core.errors import ThrottledError
from ratewarden.core.identity import DEFAULT_SUBJECT_CLAIMS, derive_identity
from ratewarden.core.logging import hash_identity

logger = logging.getLogger(__name__)

HEADER_LIMIT = "X-RateLimit-Limit"
HEADER_REMAINING = "X-RateLimit-Remaining"
HEADER_RESET = "X-RateLimit-Reset"
HEADER_POLICY = "X-RateLimit-Policy"
HEADER_RESET_TIME = "X-RateLimit-Reset-Time"
HEADER_RETRY_AFTER = "Retry-After"


def build_rate_limit_headers(decision: Decision) -> dict[str, str]:
    """Translate a decision into the standard throttling headers.

    The four ``X-RateLimit-*`` headers are always present; ``Retry-After`` and
    the human-readable reset time only on rejection.
    """
    headers = {
        HEADER_LIMIT: str(decision.limit),
        HEADER_REMAINING: str(decision.remaining),
        HEADER_RESET: str(decision.reset_epoch),
        HEADER_POLICY: decision.policy,
    }
    if not decision.allowed:
        headers[HEADER_RETRY_AFTER] = str(decision.retry_after_seconds or 0)
        headers[HEADER_RESET_TIME] = datetime.fromtimestamp(
            decision.reset_at, tz=timezone.utc
        ).isoformat()
    return headers


@dataclass(frozen=True)
class EnforcementResult:
    """Outcome of an admitted request.

    ``decision`` is None when admission control is disabled.
    """

    identity: str
    endpoint: str
    decision: Decision | None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.decision is None or self.decision.allowed


class AdmissionMiddleware:
    """Request-facing adapter around a quota store."""

    def __init__(
        self,
        store: AbstractQuotaStore,
        *,
        api_prefix: str = "/api/",
        subject_claims: Iterable[str] = DEFAULT_SUBJECT_CLAIMS,
        enabled: bool = True,
        include_headers: bool = True,
        pinned_patterns: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._api_prefix = api_prefix
        self._subject_claims = tuple(subject_claims)
        self._enabled = enabled
        self._include_headers = include_headers
        # Patterns set by deployment config; per-route defaults never replace them.
        self._pinned = frozenset(normalize_pattern(p) for p in pinned_patterns)

    @classmethod
    def from_settings(
        cls, store: AbstractQuotaStore, rate_limit_settings: RateLimitSettings
    ) -> "AdmissionMiddleware":
        return cls(
            store,
            api_prefix=rate_limit_settings.api_prefix,
            subject_claims=rate_limit_settings.subject_claims,
            enabled=rate_limit_settings.enabled,
            include_headers=rate_limit_settings.include_headers,
            pinned_patterns=rate_limit_settings.overrides,
        )

    @property
    def store(self) -> AbstractQuotaStore:
        return self._store

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def include_headers(self) -> bool:
        return self._include_headers

    def is_pinned(self, pattern: str) -> bool:
        return normalize_pattern(pattern) in self._pinned

    def identify(self, request: Request) -> str:
        peer = request.client.host if request.client else None
        return derive_identity(request.headers, peer, subject_claims=self._subject_claims)

    def endpoint_for(self, request: Request, endpoint_override: str | None = None) -> str:
        if endpoint_override:
            return endpoint_override
        return canonicalize_endpoint(request.url.path, self._api_prefix)

    def enforce(self, request: Request, endpoint_override: str | None = None) -> EnforcementResult:
        """Admit or reject one request.

        Args:
            request: Incoming request.
            endpoint_override: Fixed endpoint key; derived from the path if omitted.

        Returns:
            EnforcementResult with the header set for an admitted request.

        Raises:
            ThrottledError: When the caller has exhausted the window.
        """
        identity = self.identify(request)
        endpoint = self.endpoint_for(request, endpoint_override)

        if not self._enabled:
            return EnforcementResult(identity=identity, endpoint=endpoint, decision=None)

        decision = self._store.check_and_consume(identity, endpoint)
        headers = build_rate_limit_headers(decision)
        identity_hash = hash_identity(identity)

        if decision.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "identity_hash": identity_hash,
                    "endpoint": endpoint,
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                },
            )
            return EnforcementResult(
                identity=identity, endpoint=endpoint, decision=decision, headers=headers
            )

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "identity_hash": identity_hash,
                "identity_type": identity.split(":", 1)[0],
                "endpoint": endpoint,
                "limit": decision.limit,
                "window_s": decision.window_seconds,
                "retry_after_s": decision.retry_after_seconds,
            },
        )
        raise ThrottledError.from_decision(decision, endpoint=endpoint, headers=headers)

    def reset(
        self,
        request: Request,
        endpoint_override: str | None = None,
        *,
        identity: str | None = None,
    ) -> tuple[str, str]:
        """Clear a window. Returns the (identity, endpoint) pair that was reset."""
        identity = identity or self.identify(request)
        endpoint = self.endpoint_for(request, endpoint_override)
        self._store.reset(identity, endpoint)
        logger.info(
            "rate_limit.reset",
            extra={"identity_hash": hash_identity(identity), "endpoint": endpoint},
        )
        return identity, endpoint

    def stats(
        self,
        request: Request,
        endpoint_override: str | None = None,
        *,
        identity: str | None = None,
    ) -> tuple[str, str, QuotaStats | None]:
        identity = identity or self.identify(request)
        endpoint = self.endpoint_for(request, endpoint_override)
        return identity, endpoint, self._store.stats(identity, endpoint)


def get_admission(request: Request) -> AdmissionMiddleware:
    """FastAPI dependency returning the admission layer owned by the app."""
    return request.app.state.admission


def rate_limit(
    endpoint: str | None = None,
    *,
    max_requests: int | None = None,
    window_seconds: float | None = None,
    include_headers: bool | None = None,
) -> Callable[[Request, Response], Awaitable[EnforcementResult]]:
    """Build a route dependency enforcing admission control.

    Usage:
        @router.post("/auth/login", dependencies=[Depends(rate_limit("auth/login", max_requests=10))])

    Args:
        endpoint: Fixed endpoint key for the route; canonicalized from the path
            if omitted.
        max_requests: When given (with ``endpoint``), registers a policy for the
            endpoint the first time the dependency runs against an app, unless
            ``RATE_LIMIT_OVERRIDES`` already configures that pattern.
        window_seconds: Window for that policy, 15 minutes by default.
        include_headers: Copy the X-RateLimit-* headers onto admitted responses.
            Follows ``RATE_LIMIT_INCLUDE_HEADERS`` when omitted.

    Returns:
        Async dependency callable.
    """
    policy: QuotaConfig | None = None
    if max_requests is not None:
        if not endpoint:
            raise ValueError("a per-route policy needs an explicit endpoint")
        policy = QuotaConfig(max_requests=max_requests, window_seconds=window_seconds or 900)

    registered: weakref.WeakSet[AdmissionMiddleware] = weakref.WeakSet()

    async def enforce_rate_limit(request: Request, response: Response) -> EnforcementResult:
        admission = get_admission(request)
        if policy is not None and admission not in registered:
            if not admission.is_pinned(endpoint):
                admission.store.set_endpoint_config(endpoint, policy)
            registered.add(admission)

        result = admission.enforce(request, endpoint)
        send_headers = admission.include_headers if include_headers is None else include_headers
        if send_headers:
            response.headers.update(result.headers)
        return result

    return enforce_rate_limit


enforce_rate_limit = rate_limit()
