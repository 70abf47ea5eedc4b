"""Endpoint canonicalization.

Per-resource routes collapse onto one key (``/issues/9`` and
``/issues/507f1f77bcf86cd799439011`` both become ``issues/[id]``) so all
operations on a resource type share one quota bucket.
"""

from __future__ import annotations

import re

ID_PLACEHOLDER = "[id]"
ROOT_ENDPOINT = "root"

_OPAQUE_ID = re.compile(
    r"^(?:"
    r"[0-9a-f]{24}"
    r"|[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    r"|\d+"
    r")$",
    re.IGNORECASE,
)


def looks_like_id(segment: str) -> bool:
    """True for 24-hex object ids, UUIDs and decimal integers."""
    return bool(_OPAQUE_ID.match(segment))


def canonicalize_endpoint(path: str, api_prefix: str = "/api/") -> str:
    """Turn a request path into the logical endpoint key.

    Args:
        path: URL path of the request (query string excluded).
        api_prefix: Prefix removed before anything else.

    Returns:
        Canonical endpoint, ``"root"`` when nothing is left.

    Examples:
        >>> canonicalize_endpoint("/api/issues/42")
        'issues/[id]'
        >>> canonicalize_endpoint("/api/issues")
        'issues'
        >>> canonicalize_endpoint("/")
        'root'
    """
    if api_prefix and path.startswith(api_prefix):
        path = path[len(api_prefix):]

    head, sep, last = path.rstrip("/").rpartition("/")
    if looks_like_id(last):
        path = f"{head}{sep}{ID_PLACEHOLDER}"

    return path.strip("/") or ROOT_ENDPOINT
