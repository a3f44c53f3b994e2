"""Evaluate a rule catalog against a tenant's live configuration."""

import logging

from tenantguard.errors.exceptions import ValidationError
from tenantguard.models.action import TenantContext
from tenantguard.models.finding import Finding
from tenantguard.rules.catalogs import CATALOG_PROBES, evaluate_partners
from tenantguard.rules.catalogs.partner import CATALOG as PARTNER_CATALOG
from tenantguard.rules.engine import evaluate
from tenantguard.rules.registry import CatalogRegistry
from tenantguard.services.diagnostics.probes import ProbeBoundary

logger = logging.getLogger(__name__)


async def review_tenant(
    registry: CatalogRegistry,
    catalog: str,
    fetch_snapshot: ProbeBoundary,
    tenant: TenantContext,
) -> list[Finding]:
    """Fetch the area *catalog* covers and evaluate it.

    Raises ``ProbeError`` when the configuration cannot be fetched. Partner
    inventories are evaluated one partner policy at a time.
    """
    rules = registry.get(catalog)
    probe_id = CATALOG_PROBES.get(catalog)
    if probe_id is None:
        raise ValidationError(
            f"Catalog '{catalog}' has no live configuration to review",
            details={"catalog": catalog, "reviewable": sorted(CATALOG_PROBES)},
        )

    snapshot = await fetch_snapshot(probe_id, tenant)
    if catalog == PARTNER_CATALOG:
        findings = evaluate_partners(rules, snapshot)
    else:
        findings = evaluate(rules, snapshot)
    logger.info(
        "Reviewed %s for %s: %d finding(s)",
        catalog,
        tenant.tenant_filter,
        len(findings),
    )
    return findings
