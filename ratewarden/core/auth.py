"""Admin API key guard.

Protects the administrative rate limit endpoints (stats, reset, policy
updates). Keys come from a comma-separated ``ADMIN_API_KEYS`` value.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header, Request

from ratewarden.core.config import AuthSettings, settings
from ratewarden.core.errors import AuthenticationAppError
from ratewarden.core.logging import hash_identity

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> sorted(parse_api_keys("key1, key2 ,key1"))
        ['key1', 'key2']
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_admin_key(provided_key: str | None, auth_settings: AuthSettings | None = None) -> None:
    """Check a provided admin key against the configured ones.

    Raises:
        AuthenticationAppError: If the key is missing, unknown, or no keys are
            configured while authentication is required.
    """
    cfg = auth_settings or settings.auth
    if not cfg.api_key_required:
        return

    valid_keys = parse_api_keys(cfg.api_keys)
    if not valid_keys:
        logger.error("admin_auth.failed", extra={"reason": "admin_keys_not_configured"})
        raise AuthenticationAppError(
            code="admin_keys_not_configured",
            message="Admin authentication is enabled but no keys are configured",
            details={"hint": "Set ADMIN_API_KEYS or disable with ADMIN_API_KEY_REQUIRED=false"},
        )

    if not provided_key:
        logger.warning("admin_auth.failed", extra={"reason": "missing_admin_key"})
        raise AuthenticationAppError(
            code="missing_admin_key",
            message="Missing admin key. Provide X-Admin-Key header.",
        )

    if not any(hmac.compare_digest(provided_key, key) for key in valid_keys):
        logger.warning(
            "admin_auth.failed",
            extra={"reason": "invalid_admin_key", "key_hash": hash_identity(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_admin_key",
            message="Invalid admin key",
        )


async def verify_admin_key(
    request: Request,
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """FastAPI dependency guarding admin routes.

    Uses the settings the app was built with, falling back to the global ones.
    """
    app_settings = getattr(request.app.state, "settings", None)
    validate_admin_key(x_admin_key, app_settings.auth if app_settings else None)
