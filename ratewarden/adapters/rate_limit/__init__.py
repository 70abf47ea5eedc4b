"""Rate limiting adapters.

The store, its policy registry, and the background sweeper live here. The
HTTP layer only depends on ``AbstractQuotaStore`` so a shared backend could
replace the in-memory one without touching the routes.
"""

from __future__ import annotations

from ratewarden.adapters.rate_limit.base import (
    AbstractQuotaStore,
    Decision,
    QuotaConfig,
    QuotaStats,
)
from ratewarden.adapters.rate_limit.in_memory import ShardedQuotaStore
from ratewarden.adapters.rate_limit.registry import (
    DEFAULT_POLICIES,
    ConfigRegistry,
    build_default_registry,
)
from ratewarden.adapters.rate_limit.sweeper import QuotaSweeper

__all__ = [
    "AbstractQuotaStore",
    "ConfigRegistry",
    "DEFAULT_POLICIES",
    "Decision",
    "QuotaConfig",
    "QuotaStats",
    "QuotaSweeper",
    "ShardedQuotaStore",
    "build_default_registry",
]
