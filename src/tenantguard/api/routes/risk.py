"""Risk evaluation and save-gate routes."""

import logging

from fastapi import APIRouter

from tenantguard.dependencies import Directory, Registry
from tenantguard.models.finding import SeverityCounts
from tenantguard.models.requests import EvaluateRequest, GateRequest
from tenantguard.rules.engine import evaluate
from tenantguard.services.risk_gate import RiskGate
from tenantguard.services.tenant_review import review_tenant

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Risk"])


@router.post("/risk/evaluate")
async def evaluate_snapshot(body: EvaluateRequest, registry: Registry, directory: Directory) -> dict:
    """Evaluate a snapshot, or the tenant's live configuration, against one catalog.

    Never writes anything.
    """
    if body.snapshot is None and body.tenant is not None:
        findings = await review_tenant(registry, body.catalog, directory.fetch_snapshot, body.tenant)
    else:
        findings = evaluate(registry.get(body.catalog), body.snapshot or {})
    return {
        "catalog": body.catalog,
        "findings": [f.to_dict() for f in findings],
        "counts": SeverityCounts.of(findings).to_dict(),
    }


@router.post("/risk/gate")
async def gate_write(body: GateRequest, registry: Registry, directory: Directory) -> dict:
    """Perform a configuration write only if it passes the risk gate.

    Risky snapshots are refused with 409 CONFIRMATION_REQUIRED; the response
    details carry a token that confirms this exact snapshot on resubmission.
    """
    gate = RiskGate(registry.get(body.catalog), catalog=body.catalog)
    check = gate.check(body.snapshot)
    parameters = body.parameters if body.parameters is not None else body.snapshot

    async def _save():
        return await directory.perform_action(body.action_id, dict(parameters), body.tenant)

    result = await gate.commit(check, _save, body.confirmation_token)
    outcome = result.save_result
    logger.info(
        "Gated write %s for %s saved (success=%s)",
        body.action_id,
        body.tenant.tenant_filter,
        outcome.success,
    )
    return {
        "decision": result.decision.value,
        "outcome": outcome.model_dump(mode="json"),
        "findings": [f.to_dict() for f in result.findings],
        "summary": result.summary.to_dict() if result.summary else None,
    }
