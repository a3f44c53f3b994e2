"""Rule catalog metadata routes."""

from fastapi import APIRouter

from tenantguard.dependencies import Registry

router = APIRouter(tags=["Catalogs"])


@router.get("/catalogs")
async def list_catalogs(registry: Registry) -> dict:
    return {
        "catalogs": [
            {"name": name, "rule_count": len(registry.get(name))}
            for name in registry.names()
        ]
    }


@router.get("/catalogs/{name}")
async def get_catalog(name: str, registry: Registry) -> dict:
    return registry.describe(name)
