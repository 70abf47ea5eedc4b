"""Tests for endpoint canonicalization."""

import pytest

from ratewarden.core.endpoints import canonicalize_endpoint, looks_like_id


@pytest.mark.parametrize(
    "path",
    [
        "/issues/507f1f77bcf86cd799439011",
        "/issues/42",
        "/issues/9b1deb4d-3b7d-4bad-9bdd-2b0d7b3dcb6d",
        "/api/issues/42",
        "/api/issues/42/",
    ],
)
def test_resource_ids_collapse_to_placeholder(path: str) -> None:
    assert canonicalize_endpoint(path) == "issues/[id]"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/issues", "issues"),
        ("/api/issues", "issues"),
        ("/api/auth/login", "auth/login"),
        ("/api/users/profile/", "users/profile"),
        ("/api/issues/create", "issues/create"),
        ("/api/issues/42/comments", "issues/42/comments"),
        ("/", "root"),
        ("", "root"),
        ("/api/", "root"),
    ],
)
def test_canonicalize(path: str, expected: str) -> None:
    assert canonicalize_endpoint(path) == expected


def test_custom_prefix() -> None:
    assert canonicalize_endpoint("/v1/issues/7", api_prefix="/v1/") == "issues/[id]"
    assert canonicalize_endpoint("/api/issues/7", api_prefix="/v1/") == "api/issues/[id]"


@pytest.mark.parametrize(
    ("segment", "expected"),
    [
        ("507f1f77bcf86cd799439011", True),
        ("507F1F77BCF86CD799439011", True),
        ("9b1deb4d-3b7d-4bad-9bdd-2b0d7b3dcb6d", True),
        ("12345", True),
        ("507f1f77bcf86cd79943901", False),
        ("create", False),
        ("12a", False),
        ("", False),
    ],
)
def test_looks_like_id(segment: str, expected: bool) -> None:
    assert looks_like_id(segment) is expected
