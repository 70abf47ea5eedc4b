"""Pydantic schemas for the admin rate limit endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class QuotaStatsResponse(BaseModel):
    """Current window for one (identity, endpoint) pair."""

    identity: str = Field(..., description="Identity the window belongs to, e.g. 'ip:10.0.0.1'.")
    endpoint: str = Field(..., description="Canonical endpoint key, e.g. 'issues/[id]'.")
    count: int = Field(..., description="Requests admitted in the current window.")
    remaining: int = Field(..., description="Requests left before rejection.")
    reset_at: int = Field(..., description="UNIX epoch seconds when the window ends.")


class ResetResponse(BaseModel):
    identity: str
    endpoint: str
    status: str = "reset"


class EndpointPolicyRequest(BaseModel):
    """Policy upsert for an endpoint pattern (plain substring match)."""

    pattern: str = Field(..., min_length=1, description="Endpoint pattern, e.g. 'auth/login'.")
    max_requests: int = Field(..., ge=1, description="Requests admitted per window.")
    window_seconds: float = Field(900, gt=0, description="Window length in seconds.")


class EndpointPolicyResponse(BaseModel):
    pattern: str
    max_requests: int
    window_seconds: float
    policy: str = Field(..., description="Descriptor in '<limit>;w=<seconds>' form.")


class SweepResponse(BaseModel):
    removed: int = Field(..., description="Expired windows deleted by this sweep.")
