"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module,
so the global ``settings`` object is built for the test environment.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("ADMIN_API_KEY_REQUIRED", "true")
os.environ.setdefault("ADMIN_API_KEYS", "test-admin-key-123,test-admin-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Callable

import pytest
from starlette.requests import Request


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Factory for bare Starlette requests (no app, no transport)."""

    def _make(
        path: str = "/api/issues",
        headers: dict[str, str] | None = None,
        client: tuple[str, int] | None = ("10.0.0.1", 52100),
    ) -> Request:
        scope = {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "root_path": "",
            "path": path,
            "query_string": b"",
            "headers": [
                (k.lower().encode("latin-1"), v.encode("latin-1"))
                for k, v in (headers or {}).items()
            ],
            "client": client,
        }
        return Request(scope)

    return _make
