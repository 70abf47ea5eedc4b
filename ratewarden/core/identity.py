"""Caller identity derivation for admission control.

Identity is derived without authenticating the caller: rate limits must also
apply to anonymous traffic and to requests carrying invalid or forged
credentials (brute-force logins in particular). Nothing here raises; every
failure falls back to the client address and finally to ``"unknown"``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

DEFAULT_SUBJECT_CLAIMS: tuple[str, ...] = ("userId", "sub", "user_id")

# Highest priority first. CF-Connecting-IP is set by the trusted edge proxy.
CLIENT_IP_HEADERS: tuple[str, ...] = (
    "cf-connecting-ip",
    "x-real-ip",
    "x-client-ip",
    "x-forwarded-for",
)


def _lowered(headers: Mapping[str, str]) -> dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def extract_bearer_subject(
    authorization: str | None,
    claims: Iterable[str] = DEFAULT_SUBJECT_CLAIMS,
) -> str | None:
    """Read the subject id from a bearer token without verifying it.

    Args:
        authorization: Raw ``Authorization`` header value.
        claims: Payload claims to try, in order.

    Returns:
        The subject id as a string, or None when the header is absent, not a
        bearer credential, undecodable, or carries no usable subject.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    try:
        payload = jwt.get_unverified_claims(token.strip())
    except JWTError:
        logger.debug("identity.bearer_undecodable")
        return None

    for claim in claims:
        value = payload.get(claim)
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            continue
        subject = str(value).strip()
        if subject:
            return subject
    return None


def strip_port(address: str) -> str:
    """Remove a trailing ``:port`` from an IPv4 or bracketed IPv6 address.

    Examples:
        >>> strip_port("10.0.0.1:8080")
        '10.0.0.1'
        >>> strip_port("[2001:db8::1]:443")
        '2001:db8::1'
        >>> strip_port("2001:db8::1")
        '2001:db8::1'
    """
    address = address.strip()
    if address.startswith("["):
        end = address.find("]")
        return address[1:end] if end != -1 else address
    if address.count(":") == 1:
        return address.split(":", 1)[0]
    return address


def resolve_client_ip(headers: Mapping[str, str], peer: str | None = None) -> str:
    """Resolve the client address from forwarding headers.

    Args:
        headers: Request headers (any case).
        peer: Transport-level peer address, used when no header resolves.

    Returns:
        The client address without port, or ``"unknown"``.
    """
    lowered = _lowered(headers)
    for name in CLIENT_IP_HEADERS:
        raw = lowered.get(name)
        if not raw:
            continue
        if name == "x-forwarded-for":
            raw = raw.split(",")[0]
        ip = strip_port(raw)
        if ip:
            return ip

    if peer:
        return strip_port(peer) or UNKNOWN
    return UNKNOWN


def derive_identity(
    headers: Mapping[str, str],
    peer: str | None = None,
    *,
    subject_claims: Iterable[str] = DEFAULT_SUBJECT_CLAIMS,
) -> str:
    """Return ``user:<subject>`` for a decodable bearer, else ``ip:<address>``."""
    subject = extract_bearer_subject(_lowered(headers).get("authorization"), subject_claims)
    if subject:
        return f"user:{subject}"
    return f"ip:{resolve_client_ip(headers, peer)}"
