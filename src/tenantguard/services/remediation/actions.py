"""Executable remediation actions attached to diagnosed findings.

A remediation is a pre-built call to the same action boundary the console
uses for every other write, with parameters derived from the diagnosis.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from tenantguard.errors.exceptions import AcknowledgementRequiredError
from tenantguard.models.action import ActionOutcome, TenantContext
from tenantguard.models.enums import RemediationKind, RiskLevel

logger = logging.getLogger(__name__)

ActionPerformer = Callable[[str, dict[str, Any], TenantContext], Awaitable[ActionOutcome]]


@dataclass
class RemediationAction:
    """A parameterized fix for one finding.

    ``fix_action_id`` is the directory action that applies the fix. When it is
    ``None`` the fix is purely a correction of the retried call, carried in
    ``retry_overrides``. High-risk actions refuse to execute until
    ``acknowledge()`` has been called.
    """

    kind: RemediationKind
    risk_level: RiskLevel
    title: str
    tenant: TenantContext
    parameters: dict[str, Any] = field(default_factory=dict)
    fix_action_id: str | None = None
    risk_warning: str | None = None
    retry_overrides: dict[str, Any] = field(default_factory=dict)
    performer: ActionPerformer | None = field(default=None, compare=False, repr=False)
    acknowledged: bool = field(default=False, compare=False)

    @property
    def requires_acknowledgement(self) -> bool:
        return self.risk_level == RiskLevel.HIGH

    def acknowledge(self) -> None:
        self.acknowledged = True

    async def execute(self) -> ActionOutcome:
        """Apply the fix. Remote failures come back as a failed outcome."""
        if self.requires_acknowledgement and not self.acknowledged:
            raise AcknowledgementRequiredError(self.kind.value, self.risk_warning)

        if self.fix_action_id is None:
            return ActionOutcome.ok({"retry_overrides": dict(self.retry_overrides)})

        if self.performer is None:
            return ActionOutcome.failed(f"No action performer configured for '{self.fix_action_id}'")

        logger.info(
            "Executing remediation %s via %s (risk=%s)",
            self.kind.value,
            self.fix_action_id,
            self.risk_level.value,
        )
        try:
            return await self.performer(self.fix_action_id, dict(self.parameters), self.tenant)
        except Exception as exc:
            logger.exception("Remediation %s raised", self.kind.value)
            return ActionOutcome.failed(f"{type(exc).__name__}: {exc}")

    def to_dict(self) -> dict[str, Any]:
        """Descriptor for the operator surface (never the callable)."""
        return {
            "kind": self.kind.value,
            "risk_level": self.risk_level.value,
            "title": self.title,
            "risk_warning": self.risk_warning,
            "parameters": self.parameters,
            "fix_action_id": self.fix_action_id,
            "retry_overrides": self.retry_overrides,
            "requires_acknowledgement": self.requires_acknowledgement,
        }
