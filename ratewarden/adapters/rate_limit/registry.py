"""Endpoint policy registry.

Patterns are plain substrings, not regexes. Resolution tries an exact match
first, then the first registered pattern contained in the endpoint, then the
default policy.
"""

from __future__ import annotations

import threading
from typing import Mapping

from ratewarden.adapters.rate_limit.base import QuotaConfig

FIFTEEN_MINUTES = 15 * 60

DEFAULT_CONFIG = QuotaConfig(max_requests=100, window_seconds=FIFTEEN_MINUTES)

# Registration order matters for substring fallback.
DEFAULT_POLICIES: dict[str, QuotaConfig] = {
    # Authentication: tight, brute-force protection
    "auth/register": QuotaConfig(max_requests=5, window_seconds=FIFTEEN_MINUTES),
    "auth/login": QuotaConfig(max_requests=10, window_seconds=FIFTEEN_MINUTES),
    "auth/logout": QuotaConfig(max_requests=20, window_seconds=FIFTEEN_MINUTES),
    "users/profile": QuotaConfig(max_requests=50, window_seconds=FIFTEEN_MINUTES),
    "issues": QuotaConfig(max_requests=100, window_seconds=FIFTEEN_MINUTES),
    "issues/create": QuotaConfig(max_requests=20, window_seconds=FIFTEEN_MINUTES),
    "test-email": QuotaConfig(max_requests=3, window_seconds=FIFTEEN_MINUTES),
    "health": QuotaConfig(max_requests=200, window_seconds=FIFTEEN_MINUTES),
}


def normalize_pattern(value: str) -> str:
    """Lower-case and strip surrounding slashes.

    Examples:
        >>> normalize_pattern("/Auth/Login/")
        'auth/login'
    """
    return value.strip().lower().strip("/")


class ConfigRegistry:
    """Thread-safe mapping of endpoint patterns to quota policies."""

    def __init__(
        self,
        default: QuotaConfig = DEFAULT_CONFIG,
        policies: Mapping[str, QuotaConfig] | None = None,
    ) -> None:
        self._default = default
        self._lock = threading.Lock()
        self._policies: dict[str, QuotaConfig] = {}
        for pattern, config in (policies or {}).items():
            self.set(pattern, config)

    @property
    def default(self) -> QuotaConfig:
        return self._default

    def set(self, pattern: str, config: QuotaConfig) -> None:
        """Insert or replace a pattern.

        Replacing keeps the pattern's original position in the match order.
        """
        key = normalize_pattern(pattern)
        with self._lock:
            self._policies[key] = config

    def resolve(self, endpoint: str) -> QuotaConfig:
        """Return the policy for a canonical endpoint."""
        normalized = normalize_pattern(endpoint)
        if not normalized:
            return self._default

        with self._lock:
            exact = self._policies.get(normalized)
            if exact is not None:
                return exact
            for pattern, config in self._policies.items():
                if pattern and pattern in normalized:
                    return config
        return self._default

    def items(self) -> list[tuple[str, QuotaConfig]]:
        """Registered patterns in match order."""
        with self._lock:
            return list(self._policies.items())

    def smallest_window(self) -> float:
        with self._lock:
            windows = [c.window_seconds for c in self._policies.values()]
        return min([self._default.window_seconds, *windows])


def parse_policy(value: str) -> QuotaConfig:
    """Parse a ``"<max>/<window_seconds>"`` policy string.

    Examples:
        >>> parse_policy("10/900")
        QuotaConfig(max_requests=10, window_seconds=900.0)

    Raises:
        ValueError: If the string is malformed or the numbers are out of range.
    """
    max_part, sep, window_part = value.partition("/")
    if not sep:
        raise ValueError(f"invalid policy {value!r}, expected '<max>/<window_seconds>'")
    return QuotaConfig(
        max_requests=int(max_part.strip()),
        window_seconds=float(window_part.strip()),
    )


def build_default_registry(
    *,
    default: QuotaConfig = DEFAULT_CONFIG,
    overrides: Mapping[str, str] | None = None,
) -> ConfigRegistry:
    """Build a registry holding the shipped policy table plus overrides.

    Args:
        default: Policy used when no pattern matches.
        overrides: Extra ``pattern -> "<max>/<window>"`` entries, upserted after
            the shipped table.

    Returns:
        ConfigRegistry ready to hand to a store.
    """
    registry = ConfigRegistry(default=default, policies=DEFAULT_POLICIES)
    for pattern, policy in (overrides or {}).items():
        registry.set(pattern, parse_policy(policy))
    return registry
