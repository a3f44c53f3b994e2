"""Heuristics for failed phone number assignments."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from tenantguard.models.enums import FailureClass, ProbeId, RemediationKind, RiskLevel, Severity
from tenantguard.models.finding import Finding
from tenantguard.services.diagnostics.heuristics.base import Heuristic, HeuristicContext
from tenantguard.services.remediation.actions import RemediationAction

UNASSIGN_NUMBER_ACTION = "ExecRemoveTeamsVoicePhoneNumberAssignment"

_NON_DIGITS = re.compile(r"\D")


def _digits(value: Any) -> str:
    return _NON_DIGITS.sub("", str(value or ""))


def find_number(snapshot, phone_number: str | None) -> Mapping[str, Any] | None:
    """Inventory entry for *phone_number*, compared on digits only."""
    wanted = _digits(phone_number)
    if not wanted:
        return None
    for entry in snapshot.get("numbers") or ():
        if isinstance(entry, Mapping) and _digits(entry.get("TelephoneNumber")) == wanted:
            return entry
    return None


def _same_identity(left: str | None, right: str | None) -> bool:
    return bool(left and right) and left.strip().lower() == right.strip().lower()


def _finding(ctx: HeuristicContext, **kwargs) -> Finding:
    return Finding(
        source=ctx.source.label,
        settings_page=ctx.source.page_for(ctx.tenant),
        failure_class=ctx.failure_class,
        **kwargs,
    )


def number_assigned_elsewhere(ctx: HeuristicContext) -> Finding | None:
    number = ctx.failure.phone_number
    entry = find_number(ctx.snapshot, number)
    if entry is None:
        return None
    owner = entry.get("AssignedTo")
    if not owner or _same_identity(owner, ctx.failure.assignee):
        return None
    number_type = entry.get("NumberType")
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title=f"{number} is assigned to {owner}",
        description=(
            f"The phone number is already assigned to {owner}. A number can only be assigned "
            "to one identity at a time."
        ),
        recommendation=f"Unassign the number from {owner} before assigning it again.",
        evidence={"phone_number": number, "assigned_to": owner, "number_type": number_type},
        remediation=RemediationAction(
            kind=RemediationKind.UNASSIGN_AND_RETRY,
            risk_level=RiskLevel.HIGH,
            title=f"Unassign {number} from {owner}, then retry",
            tenant=ctx.tenant,
            fix_action_id=UNASSIGN_NUMBER_ACTION,
            parameters={
                "PhoneNumber": entry.get("TelephoneNumber"),
                "AssignedTo": owner,
                "PhoneNumberType": number_type,
            },
            risk_warning=f"{owner} will lose this phone number and will not be able to receive calls on it.",
            performer=ctx.performer,
        ),
    )


def number_assigned_to_same_identity(ctx: HeuristicContext) -> Finding | None:
    entry = find_number(ctx.snapshot, ctx.failure.phone_number)
    if entry is None or not _same_identity(entry.get("AssignedTo"), ctx.failure.assignee):
        return None
    return _finding(
        ctx,
        severity=Severity.INFO,
        title="Number is already assigned to this user",
        description=f"{entry.get('TelephoneNumber')} is already assigned to {entry.get('AssignedTo')}.",
        recommendation="No change is needed.",
        evidence={"phone_number": entry.get("TelephoneNumber"), "assigned_to": entry.get("AssignedTo")},
    )


def number_not_in_inventory(ctx: HeuristicContext) -> Finding | None:
    number = ctx.failure.phone_number
    if not number or find_number(ctx.snapshot, number) is not None:
        return None
    return _finding(
        ctx,
        severity=Severity.WARNING,
        title=f"{number} was not found in the tenant's phone number inventory",
        description="The number is not acquired by this tenant, or the inventory has not refreshed yet.",
        recommendation="Check the number in the voice administration page.",
        evidence={"phone_number": number},
    )


def wrong_number_type(ctx: HeuristicContext) -> Finding | None:
    entry = find_number(ctx.snapshot, ctx.failure.phone_number)
    if entry is None:
        return None
    actual = entry.get("NumberType")
    supplied = ctx.failure.parameters.get("PhoneNumberType")
    if not actual or str(supplied or "").lower() == str(actual).lower():
        return None
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title=f"Number type should be {actual}",
        description=(
            f"The assignment was submitted with number type '{supplied}', but "
            f"{entry.get('TelephoneNumber')} is a {actual} number."
        ),
        recommendation=f"Retry the assignment with number type {actual}.",
        evidence={"phone_number": entry.get("TelephoneNumber"), "supplied": supplied, "actual": actual},
        remediation=RemediationAction(
            kind=RemediationKind.RETRY_WITH_CORRECTED_PARAMETER,
            risk_level=RiskLevel.LOW,
            title=f"Retry with number type {actual}",
            tenant=ctx.tenant,
            retry_overrides={"PhoneNumberType": actual},
            performer=ctx.performer,
        ),
    )


_ASSIGNED = FailureClass.RESOURCE_ALREADY_ASSIGNED
_WRONG_TYPE = FailureClass.WRONG_RESOURCE_TYPE

VOICE_HEURISTICS: list[Heuristic] = [
    Heuristic("number-assigned-elsewhere", _ASSIGNED, ProbeId.PHONE_NUMBERS, 10, number_assigned_elsewhere),
    Heuristic("number-assigned-same-identity", _ASSIGNED, ProbeId.PHONE_NUMBERS, 20, number_assigned_to_same_identity),
    Heuristic("number-not-in-inventory", _ASSIGNED, ProbeId.PHONE_NUMBERS, 30, number_not_in_inventory),
    Heuristic("number-type-mismatch", _WRONG_TYPE, ProbeId.PHONE_NUMBERS, 10, wrong_number_type),
    Heuristic("number-type-not-in-inventory", _WRONG_TYPE, ProbeId.PHONE_NUMBERS, 30, number_not_in_inventory),
]
