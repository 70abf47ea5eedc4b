from __future__ import annotations

from fastapi import APIRouter, Depends

from ratewarden.core.rate_limit import rate_limit

router = APIRouter(tags=["Health"])


@router.get("/health", dependencies=[Depends(rate_limit("health"))])
def health_check() -> dict:
    """Liveness probe. Rate limited loosely under the ``health`` policy."""

    return {"status": "ok"}
