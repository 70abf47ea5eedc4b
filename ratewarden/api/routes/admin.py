"""Administrative rate limit endpoints.

Thin pass-throughs to the admission layer: inspect or clear a caller's
window, upsert endpoint policies, and force a sweep. When ``identity`` is
omitted the caller's own derived identity is used.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ratewarden.adapters.rate_limit.base import QuotaConfig
from ratewarden.core.auth import verify_admin_key
from ratewarden.core.rate_limit import AdmissionMiddleware, get_admission
from ratewarden.schemas.rate_limit import (
    EndpointPolicyRequest,
    EndpointPolicyResponse,
    QuotaStatsResponse,
    ResetResponse,
    SweepResponse,
)

router = APIRouter(
    prefix="/admin/rate-limits",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_key)],
)

EndpointQuery = Annotated[
    str, Query(min_length=1, description="Canonical endpoint key, e.g. 'auth/login'.")
]
IdentityQuery = Annotated[
    str | None, Query(description="Identity such as 'user:42' or 'ip:10.0.0.1'.")
]
Admission = Annotated[AdmissionMiddleware, Depends(get_admission)]


@router.get("/stats", response_model=QuotaStatsResponse)
def get_stats(
    request: Request,
    endpoint: EndpointQuery,
    admission: Admission,
    identity: IdentityQuery = None,
) -> QuotaStatsResponse:
    """Return the open window for a pair without consuming quota.

    Raises:
        HTTPException: 404 when the pair has no open window.
    """
    identity, endpoint, stats = admission.stats(request, endpoint, identity=identity)
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No open rate limit window for this identity and endpoint.",
        )
    return QuotaStatsResponse(
        identity=identity,
        endpoint=endpoint,
        count=stats.count,
        remaining=stats.remaining,
        reset_at=stats.reset_epoch,
    )


@router.delete("", response_model=ResetResponse)
def reset_window(
    request: Request,
    endpoint: EndpointQuery,
    admission: Admission,
    identity: IdentityQuery = None,
) -> ResetResponse:
    identity, endpoint = admission.reset(request, endpoint, identity=identity)
    return ResetResponse(identity=identity, endpoint=endpoint)


@router.put("/policies", response_model=EndpointPolicyResponse)
def upsert_policy(
    body: EndpointPolicyRequest,
    admission: Admission,
) -> EndpointPolicyResponse:
    """Upsert a policy. Windows already open keep their original limit."""
    config = QuotaConfig(max_requests=body.max_requests, window_seconds=body.window_seconds)
    admission.store.set_endpoint_config(body.pattern, config)
    return EndpointPolicyResponse(
        pattern=body.pattern,
        max_requests=config.max_requests,
        window_seconds=config.window_seconds,
        policy=config.policy,
    )


@router.post("/sweep", response_model=SweepResponse)
def sweep(admission: Admission) -> SweepResponse:
    return SweepResponse(removed=admission.store.sweep())
