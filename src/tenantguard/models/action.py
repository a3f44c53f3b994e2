"""Pydantic models for the original-action boundary."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_EMAIL_KEYS = ("mail", "email", "userPrincipalName", "upn")
_DOMAIN_KEYS = ("domain", "Domain", "targetDomain")
_PHONE_KEYS = ("PhoneNumber", "TelephoneNumber", "phoneNumber")
_ASSIGNEE_KEYS = ("input", "AssignedTo", "userPrincipalName", "Identity")

_EMAIL_RE = re.compile(r"^[^@\s]+@([A-Za-z0-9.-]+\.[A-Za-z]{2,})$")


class TenantContext(BaseModel):
    """The tenant every probe and action call is scoped to."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tenant_filter: str = Field(..., min_length=1)
    display_name: str | None = None


class ActionOutcome(BaseModel):
    """Result of one call to the directory action boundary."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    result: Any = None
    error_payload: Any = None

    @classmethod
    def ok(cls, result: Any = None) -> "ActionOutcome":
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, error_payload: Any) -> "ActionOutcome":
        return cls(success=False, error_payload=error_payload)


class FailureContext(BaseModel):
    """An operator-initiated action that the directory API rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    action_id: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    error_payload: Any = None
    tenant: TenantContext

    @property
    def target_domain(self) -> str | None:
        """Domain of the invited/affected address, lower-cased."""
        for key in _EMAIL_KEYS:
            value = self.parameters.get(key)
            if isinstance(value, str):
                match = _EMAIL_RE.match(value.strip())
                if match:
                    return match.group(1).lower()
        for key in _DOMAIN_KEYS:
            value = self.parameters.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip().lower()
        return None

    @property
    def phone_number(self) -> str | None:
        for key in _PHONE_KEYS:
            value = self.parameters.get(key)
            if value:
                return str(value)
        return None

    @property
    def assignee(self) -> str | None:
        """Identity the action was trying to assign a resource to."""
        for key in _ASSIGNEE_KEYS:
            value = self.parameters.get(key)
            if isinstance(value, dict):
                value = value.get("value")
            if isinstance(value, str) and value:
                return value
        return None

    def with_overrides(self, overrides: dict[str, Any]) -> dict[str, Any]:
        """Original parameters with *overrides* applied on top."""
        return {**self.parameters, **overrides}
