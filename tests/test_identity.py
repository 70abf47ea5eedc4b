"""Tests for caller identity derivation."""

import pytest
from jose import jwt

from ratewarden.core.identity import (
    derive_identity,
    extract_bearer_subject,
    resolve_client_ip,
    strip_port,
)


def _token(claims: dict, secret: str = "issuer-secret") -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


class TestBearerSubject:
    def test_user_id_claim(self) -> None:
        assert extract_bearer_subject(f"Bearer {_token({'userId': 'abc123'})}") == "abc123"

    def test_falls_back_to_sub_claim(self) -> None:
        assert extract_bearer_subject(f"Bearer {_token({'sub': 42})}") == "42"

    def test_signature_is_not_verified(self) -> None:
        forged = _token({"userId": "victim"}, secret="attacker-secret")

        assert extract_bearer_subject(f"Bearer {forged}") == "victim"

    @pytest.mark.parametrize(
        "header",
        [
            None,
            "",
            "Bearer ",
            "Basic dXNlcjpwYXNz",
            "Bearer not-a-jwt",
            "Bearer a.b.c",
        ],
    )
    def test_unusable_credentials_return_none(self, header: str | None) -> None:
        assert extract_bearer_subject(header) is None

    def test_token_without_subject_returns_none(self) -> None:
        assert extract_bearer_subject(f"Bearer {_token({'email': 'a@b.c'})}") is None

    def test_non_scalar_subject_is_ignored(self) -> None:
        token = _token({"userId": {"id": 1}, "sub": "fallback"})

        assert extract_bearer_subject(f"Bearer {token}") == "fallback"

    def test_custom_claims(self) -> None:
        token = _token({"uid": "u-9"})

        assert extract_bearer_subject(f"Bearer {token}", claims=("uid",)) == "u-9"


class TestClientIp:
    def test_trusted_proxy_header_wins(self) -> None:
        headers = {
            "CF-Connecting-IP": "203.0.113.7",
            "X-Real-IP": "198.51.100.1",
            "X-Forwarded-For": "192.0.2.1",
        }
        assert resolve_client_ip(headers) == "203.0.113.7"

    def test_real_ip_before_forwarded_for(self) -> None:
        headers = {"X-Real-IP": "198.51.100.1", "X-Forwarded-For": "192.0.2.1"}
        assert resolve_client_ip(headers) == "198.51.100.1"

    def test_forwarded_for_uses_first_entry(self) -> None:
        headers = {"x-forwarded-for": "192.0.2.1:5555, 10.0.0.2, 10.0.0.3"}
        assert resolve_client_ip(headers) == "192.0.2.1"

    def test_peer_address_when_no_header(self) -> None:
        assert resolve_client_ip({}, peer="10.1.2.3") == "10.1.2.3"

    def test_unknown_when_nothing_resolves(self) -> None:
        assert resolve_client_ip({}) == "unknown"
        assert resolve_client_ip({"X-Forwarded-For": " , "}) == "unknown"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("10.0.0.1", "10.0.0.1"),
            ("10.0.0.1:8080", "10.0.0.1"),
            ("[2001:db8::1]:443", "2001:db8::1"),
            ("2001:db8::1", "2001:db8::1"),
            (" 10.0.0.1 ", "10.0.0.1"),
        ],
    )
    def test_strip_port(self, raw: str, expected: str) -> None:
        assert strip_port(raw) == expected


class TestDeriveIdentity:
    def test_bearer_subject_takes_priority(self) -> None:
        headers = {
            "Authorization": f"Bearer {_token({'userId': 'u1'})}",
            "X-Real-IP": "198.51.100.1",
        }
        assert derive_identity(headers, "10.0.0.1") == "user:u1"

    def test_malformed_token_falls_back_to_ip(self) -> None:
        headers = {"Authorization": "Bearer garbage", "X-Real-IP": "198.51.100.1"}
        assert derive_identity(headers) == "ip:198.51.100.1"

    def test_anonymous_without_address(self) -> None:
        assert derive_identity({}) == "ip:unknown"
