"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from tenantguard.api.routes import catalogs, diagnostics, health, remediation, risk

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(catalogs.router)
api_router.include_router(risk.router)
api_router.include_router(diagnostics.router)
api_router.include_router(remediation.router)
