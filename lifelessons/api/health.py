"""
Health and readiness API.

Provides lightweight endpoints for operational monitoring without exposing secrets.
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from lifelessons.api.deps import get_store
from lifelessons.core.database import StoreContext
from lifelessons.core.logging import latency_bucket_ms
from lifelessons.models.base import CamelModel

logger = logging.getLogger("lifelessons")

router = APIRouter(tags=["health"])


class StoreHealth(CamelModel):
    ready: bool
    latency_ms: Optional[float] = None


class HealthResponse(CamelModel):
    ok: bool
    store: StoreHealth


@router.get("/")
def root():
    return {"status": "ok", "service": "lifelessons"}


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(store: StoreContext = Depends(get_store)):
    """Readiness check: 200 only once the store context is connected."""
    if not store.ready:
        return JSONResponse(status_code=503, content={"status": "error", "detail": "store not ready"})
    return {"status": "ok"}


@router.get("/health", response_model=HealthResponse)
def health(store: StoreContext = Depends(get_store)):
    """Store round-trip with latency; never raises."""
    start = time.perf_counter()
    ok = store.ping()
    latency_ms = (time.perf_counter() - start) * 1000

    logger.info("health.store", extra={"status": ok, "latency_bucket": latency_bucket_ms(latency_ms)})
    return HealthResponse(
        ok=ok,
        store=StoreHealth(ready=store.ready, latency_ms=round(latency_ms, 2) if ok else None),
    )
