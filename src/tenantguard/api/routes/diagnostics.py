"""Failure diagnosis route."""

from fastapi import APIRouter

from tenantguard.dependencies import Analyzer, Directory
from tenantguard.errors.exceptions import ValidationError
from tenantguard.models.action import FailureContext
from tenantguard.models.enums import FailureClass
from tenantguard.models.requests import DiagnoseRequest
from tenantguard.services.diagnostics.probes import all_diagnostic_sources

router = APIRouter(tags=["Diagnostics"])


@router.post("/diagnostics")
async def diagnose_failure(body: DiagnoseRequest, analyzer: Analyzer, directory: Directory) -> dict:
    """Explain why an action failed. An empty list means the raw error should be shown."""
    try:
        attempted = [FailureClass(c) for c in body.attempted_classes]
    except ValueError as exc:
        raise ValidationError(str(exc), details={"attempted_classes": body.attempted_classes}) from exc

    failure = FailureContext(
        action_id=body.action_id,
        parameters=body.parameters,
        error_payload=body.error_payload,
        tenant=body.tenant,
    )
    failure_class = analyzer.classify(failure)
    findings = await analyzer.diagnose(failure, all_diagnostic_sources(directory.fetch_snapshot), attempted)
    return {
        "failure_class": failure_class.value if failure_class else None,
        "findings": [f.to_dict() for f in findings],
    }
