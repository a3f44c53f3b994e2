"""Custom exception classes for TenantGuard."""


class TenantGuardError(Exception):
    """Base exception for TenantGuard."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(TenantGuardError):
    """Schema or request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(TenantGuardError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class ConfirmationRequiredError(TenantGuardError):
    """A save was attempted while actionable risk findings are unconfirmed."""

    def __init__(self, message: str = "Risk findings must be confirmed before saving", details=None):
        super().__init__("CONFIRMATION_REQUIRED", message, details, status_code=409)


class InvalidTransitionError(TenantGuardError):
    """Remediation session is not in a state that allows the requested step."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            "INVALID_TRANSITION",
            f"Cannot {requested} while session is '{current}'",
            details={"status": current, "requested": requested},
            status_code=409,
        )


class RemediationLimitError(TenantGuardError):
    """A remediation was already attempted in this session."""

    def __init__(self, message: str = "An automatic fix was already attempted for this failure"):
        super().__init__("REMEDIATION_LIMIT", message, status_code=409)


class AcknowledgementRequiredError(TenantGuardError):
    """A high-risk remediation was executed without explicit acknowledgment."""

    def __init__(self, kind: str, risk_warning: str | None = None):
        super().__init__(
            "ACKNOWLEDGEMENT_REQUIRED",
            f"Remediation '{kind}' is high risk and must be acknowledged before it runs",
            details={"kind": kind, "risk_warning": risk_warning},
            status_code=428,
        )


class ProbeError(TenantGuardError):
    """A configuration snapshot could not be fetched."""

    def __init__(self, probe_id: str, message: str):
        super().__init__(
            "PROBE_FAILED",
            f"Probe '{probe_id}' failed: {message}",
            details={"probe_id": probe_id},
            status_code=502,
        )
        self.probe_id = probe_id
