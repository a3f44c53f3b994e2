"""String enums shared by the rule engine, diagnostics and remediation workflow."""

from enum import StrEnum


class Severity(StrEnum):
    """Finding severity. Ordered error > warning > info."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort position, most severe first."""
        return _SEVERITY_RANK[self]

    @property
    def actionable(self) -> bool:
        """Whether findings of this severity require operator confirmation."""
        return self in (Severity.ERROR, Severity.WARNING)


_SEVERITY_RANK = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
}


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RemediationKind(StrEnum):
    UNASSIGN_AND_RETRY = "unassign-and-retry"
    REMOVE_AND_RETRY = "remove-and-retry"
    RETRY_WITH_CORRECTED_PARAMETER = "retry-with-corrected-parameter"
    ADD_DOMAIN_AND_RETRY = "add-domain-and-retry"
    UPDATE_SETTING_AND_RETRY = "update-setting-and-retry"


class SessionStatus(StrEnum):
    IDLE = "idle"
    DIAGNOSING = "diagnosing"
    READY = "ready"
    FIXING = "fixing"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureClass(StrEnum):
    """Known diagnosable classes of failed directory actions."""

    DOMAIN_COLLABORATION_RESTRICTION = "domain-collaboration-restriction"
    RESOURCE_ALREADY_ASSIGNED = "resource-already-assigned"
    WRONG_RESOURCE_TYPE = "wrong-resource-type"


class ProbeId(StrEnum):
    """Configuration areas that can be fetched as a snapshot."""

    COLLABORATION_POLICY = "collaboration-policy"
    SHARING_POLICY = "sharing-policy"
    FEDERATION_POLICY = "federation-policy"
    PARTNER_POLICY = "partner-policy"
    PHONE_NUMBERS = "phone-numbers"


class GateDecision(StrEnum):
    SAVED = "saved"
    CANCELLED = "cancelled"
    CONFIRMATION_REQUIRED = "confirmation_required"
