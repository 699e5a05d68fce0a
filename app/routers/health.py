# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# - GET /health        Process is up; reports environment and version
# - GET /health/live   Container liveness (no I/O)
# - GET /health/ready  Supabase table and storage reachable with the
#                      service-role client; Stripe is only checked for a key
# =============================================================================

from datetime import datetime, timezone
from typing import Callable

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from app.dependencies import SupabaseDep
from lib.supabase_client import SupabaseClients

router = APIRouter()

API_VERSION = "1.0.0"


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    environment: str | None = None
    version: str | None = None


class ReadinessStatus(BaseModel):
    status: str
    timestamp: str
    checks: dict[str, str]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check(call: Callable[[], object]) -> str:
    """Return "healthy", or "unhealthy: <reason>" trimmed for the response body."""
    try:
        call()
    except Exception as e:
        return f"unhealthy: {str(e)[:50]}"
    return "healthy"


def readiness_checks(clients: SupabaseClients) -> dict[str, str]:
    """Dependency checks keyed by name; billing never calls Stripe."""
    return {
        "database": _check(lambda: clients.admin().table("ambassadors").select("id").limit(1).execute()),
        "storage": _check(lambda: clients.admin().storage.list_buckets()),
        "billing": "configured" if settings.STRIPE_SECRET_KEY else "not configured",
    }


@router.get("/health", response_model=HealthStatus, response_model_exclude_none=True)
async def health_check() -> HealthStatus:
    return HealthStatus(
        status="healthy",
        timestamp=_now(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/live", response_model=HealthStatus, response_model_exclude_none=True)
async def liveness_check() -> HealthStatus:
    return HealthStatus(status="alive", timestamp=_now())


@router.get("/health/ready", response_model=ReadinessStatus)
async def readiness_check(clients: SupabaseDep) -> ReadinessStatus:
    """Ready when the database and storage answer; degraded otherwise."""
    checks = readiness_checks(clients)
    ready = checks["database"] == "healthy" and checks["storage"] == "healthy"
    return ReadinessStatus(status="ready" if ready else "degraded", timestamp=_now(), checks=checks)
