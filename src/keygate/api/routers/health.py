"""Health router."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from keygate import __version__
from keygate.api.models import HealthCheck, HealthStatus

health_router = APIRouter(tags=["Health"])


@health_router.get("/health", response_model=HealthCheck)
async def health_check(request: Request):
    """Check keygate health status."""
    checks: dict[str, str] = {}

    store = request.app.state.credential_store
    try:
        checks["credential_store"] = "ok" if await store.ping() else "error: unreachable"
    except Exception as e:
        checks["credential_store"] = f"error: {e}"

    recorder = request.app.state.last_used_recorder
    checks["last_used_recorder"] = "ok" if recorder.running else "stopped"

    status = (
        HealthStatus.UNHEALTHY
        if any(v.startswith("error") for v in checks.values())
        else HealthStatus.HEALTHY
    )
    health = HealthCheck(
        status=status,
        version=__version__,
        checks=checks,
        timestamp=datetime.now(UTC),
    )
    status_code = 200 if status is HealthStatus.HEALTHY else 503
    return JSONResponse(status_code=status_code, content=health.model_dump(mode="json"))
