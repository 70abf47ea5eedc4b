"""Tests for endpoint policy resolution."""

import pytest

from ratewarden.adapters.rate_limit import (
    DEFAULT_POLICIES,
    ConfigRegistry,
    QuotaConfig,
    build_default_registry,
)
from ratewarden.adapters.rate_limit.registry import normalize_pattern, parse_policy

DEFAULT = QuotaConfig(max_requests=100, window_seconds=900)


def _cfg(n: int) -> QuotaConfig:
    return QuotaConfig(max_requests=n, window_seconds=900)


class TestResolve:
    def test_exact_match_wins_over_earlier_substring(self) -> None:
        registry = ConfigRegistry(default=DEFAULT, policies={"issues": _cfg(100), "issues/create": _cfg(20)})

        assert registry.resolve("issues/create") == _cfg(20)

    def test_first_registered_substring_wins(self) -> None:
        registry = ConfigRegistry(default=DEFAULT, policies={"auth": _cfg(7), "login": _cfg(3)})

        assert registry.resolve("v2/auth/login") == _cfg(7)

    def test_no_match_falls_back_to_default(self) -> None:
        registry = ConfigRegistry(default=DEFAULT, policies={"auth/login": _cfg(3)})

        assert registry.resolve("reports") is DEFAULT
        assert registry.resolve("") is DEFAULT

    def test_lookup_is_normalized(self) -> None:
        registry = ConfigRegistry(default=DEFAULT, policies={"/Auth/Login/": _cfg(3)})

        assert registry.resolve("/AUTH/login") == _cfg(3)
        assert [p for p, _ in registry.items()] == ["auth/login"]

    def test_resource_endpoint_matches_collection_pattern(self) -> None:
        registry = build_default_registry()

        assert registry.resolve("issues/[id]") == DEFAULT_POLICIES["issues"]


class TestSet:
    def test_upsert_keeps_match_position(self) -> None:
        registry = ConfigRegistry(default=DEFAULT, policies={"auth": _cfg(7), "login": _cfg(3)})

        registry.set("auth", _cfg(9))

        assert [p for p, _ in registry.items()] == ["auth", "login"]
        assert registry.resolve("auth/login") == _cfg(9)

    def test_new_pattern_is_appended(self) -> None:
        registry = ConfigRegistry(default=DEFAULT, policies={"auth": _cfg(7)})

        registry.set("reports", _cfg(2))

        assert registry.resolve("reports/monthly") == _cfg(2)


class TestDefaultTable:
    def test_shipped_policies(self) -> None:
        registry = build_default_registry()

        assert registry.resolve("auth/login").max_requests == 10
        assert registry.resolve("auth/register").max_requests == 5
        assert registry.resolve("issues/create").max_requests == 20
        assert registry.resolve("issues").max_requests == 100
        assert registry.resolve("health").max_requests == 200
        assert registry.resolve("anything-else") == registry.default
        assert all(c.window_seconds == 900 for _, c in registry.items())

    def test_overrides_are_applied(self) -> None:
        registry = build_default_registry(overrides={"auth/login": "3/60", "exports": "1/3600"})

        assert registry.resolve("auth/login") == QuotaConfig(max_requests=3, window_seconds=60)
        assert registry.resolve("exports") == QuotaConfig(max_requests=1, window_seconds=3600)
        assert registry.smallest_window() == 60

    def test_custom_default(self) -> None:
        custom = QuotaConfig(max_requests=5, window_seconds=30)
        registry = build_default_registry(default=custom)

        assert registry.resolve("unlisted") is custom
        assert registry.smallest_window() == 30


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("10/900", QuotaConfig(max_requests=10, window_seconds=900)),
        (" 3 / 60 ", QuotaConfig(max_requests=3, window_seconds=60)),
    ],
)
def test_parse_policy(raw: str, expected: QuotaConfig) -> None:
    assert parse_policy(raw) == expected


@pytest.mark.parametrize("raw", ["10", "x/900", "0/900", "5/0", ""])
def test_parse_policy_rejects_bad_input(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_policy(raw)


def test_normalize_pattern() -> None:
    assert normalize_pattern("  /Users/Profile/ ") == "users/profile"
