"""Request bodies for the HTTP API."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tenantguard.models.action import TenantContext


class EvaluateRequest(BaseModel):
    """A catalog evaluation.

    Without ``snapshot`` the tenant's live configuration is fetched instead.
    """

    model_config = ConfigDict(extra="forbid")

    catalog: str
    snapshot: dict[str, Any] | None = None
    tenant: TenantContext | None = None


class GateRequest(BaseModel):
    """A configuration write that must pass the risk gate first.

    ``snapshot`` is the configuration as it will be after the write, and
    ``action_id``/``parameters`` the write itself.
    """

    model_config = ConfigDict(extra="forbid")

    catalog: str
    snapshot: dict[str, Any] = Field(default_factory=dict)
    tenant: TenantContext
    action_id: str
    parameters: dict[str, Any] | None = None
    confirmation_token: str | None = None


class DiagnoseRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tenant: TenantContext
    action_id: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    error_payload: Any
    attempted_classes: list[str] = Field(default_factory=list)


class SessionCreateRequest(BaseModel):
    """Start a remediation session.

    Without ``error_payload`` the action is performed first and diagnosed
    only if it fails.
    """

    model_config = ConfigDict(extra="forbid")

    tenant: TenantContext
    action_id: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    error_payload: Any = None


class ApplyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    finding_index: int = Field(..., ge=0)
    acknowledge_high_risk: bool = False
