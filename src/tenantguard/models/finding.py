"""The Finding record shared by rule evaluation and failure diagnosis."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from tenantguard.models.enums import FailureClass, Severity

if TYPE_CHECKING:
    from tenantguard.services.remediation.actions import RemediationAction


@dataclass(frozen=True)
class Finding:
    """One flagged issue: a generic configuration risk or a diagnosed root cause."""

    severity: Severity
    title: str
    description: str
    recommendation: str | None = None
    source: str | None = None
    evidence: Any = None
    rule_id: str | None = None

    # Diagnostic findings only
    remediation: RemediationAction | None = None
    settings_page: str | None = None
    failure_class: FailureClass | None = None
    manual_action_required: bool = False

    @property
    def has_remediation(self) -> bool:
        return self.remediation is not None

    def without_remediation(self, settings_page: str | None, recommendation: str | None = None) -> Finding:
        """Copy of this finding escalated to a manual-action-only finding."""
        return replace(
            self,
            remediation=None,
            settings_page=settings_page or self.settings_page,
            recommendation=recommendation or self.recommendation,
            manual_action_required=True,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "recommendation": self.recommendation,
            "source": self.source,
            "evidence": self.evidence,
            "rule_id": self.rule_id,
            "settings_page": self.settings_page,
            "failure_class": self.failure_class.value if self.failure_class else None,
            "manual_action_required": self.manual_action_required,
            "remediation": self.remediation.to_dict() if self.remediation else None,
        }


@dataclass
class SeverityCounts:
    error: int = 0
    warning: int = 0
    info: int = 0

    @classmethod
    def of(cls, findings: Iterable[Finding]) -> SeverityCounts:
        counts = cls()
        for finding in findings:
            if finding.severity == Severity.ERROR:
                counts.error += 1
            elif finding.severity == Severity.WARNING:
                counts.warning += 1
            else:
                counts.info += 1
        return counts

    @property
    def actionable(self) -> int:
        return self.error + self.warning

    def to_dict(self) -> dict[str, int]:
        return {"error": self.error, "warning": self.warning, "info": self.info}


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Stable sort, most severe first; ties keep their incoming order."""
    return sorted(findings, key=lambda f: f.severity.rank)


def actionable(findings: Iterable[Finding]) -> list[Finding]:
    """The error/warning subset that requires operator confirmation."""
    return [f for f in findings if f.severity.actionable]
