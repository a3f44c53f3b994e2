"""Health check endpoints."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Return service health status."""
    registry = getattr(request.app.state, "registry", None)
    return {
        "status": "healthy",
        "service": "tenantguard-api",
        "version": "0.4.0",
        "catalogs": registry.names() if registry is not None else [],
    }


@router.get("/health/live")
async def liveness():
    """Liveness probe, always 200 while the process is running."""
    return {"status": "alive"}
