"""Heuristics for invitations and shares rejected by a domain collaboration restriction."""

from __future__ import annotations

from tenantguard.models.enums import FailureClass, ProbeId, RemediationKind, RiskLevel, Severity
from tenantguard.models.finding import Finding
from tenantguard.rules.catalogs.collaboration import domain_lists
from tenantguard.services.diagnostics.heuristics.base import (
    Heuristic,
    HeuristicContext,
    domain_matches,
)
from tenantguard.services.remediation.actions import RemediationAction

_CLASS = FailureClass.DOMAIN_COLLABORATION_RESTRICTION

EDIT_COLLABORATION_ACTION = "EditExternalCollaboration"
EDIT_SHARING_ACTION = "EditSharepointSettings"


def _finding(ctx: HeuristicContext, **kwargs) -> Finding:
    return Finding(
        source=ctx.source.label,
        settings_page=ctx.source.page_for(ctx.tenant),
        failure_class=ctx.failure_class,
        **kwargs,
    )


def _collaboration_policy(allowed: list[str], blocked: list[str]) -> dict:
    return {
        "domainRestrictions": {
            "InvitationsAllowedAndBlockedDomainsPolicy": {
                "AllowedDomains": allowed,
                "BlockedDomains": blocked,
            }
        }
    }


# ---------------------------------------------------------------------------
# Collaboration policy (guest invitations)
# ---------------------------------------------------------------------------


def invites_disabled(ctx: HeuristicContext) -> Finding | None:
    if ctx.snapshot.get("allowInvitesFrom") != "none":
        return None
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title="Guest invitations are disabled",
        description=(
            "Guest invite restrictions are set so that no one in the organization can invite "
            "guests, including administrators."
        ),
        recommendation='Set guest invite restrictions to "Only admins and Guest Inviter role".',
        evidence={"allowInvitesFrom": "none"},
        remediation=RemediationAction(
            kind=RemediationKind.UPDATE_SETTING_AND_RETRY,
            risk_level=RiskLevel.HIGH,
            title="Allow admins and Guest Inviters to invite guests, then retry",
            tenant=ctx.tenant,
            fix_action_id=EDIT_COLLABORATION_ACTION,
            parameters={"allowInvitesFrom": "adminsAndGuestInviters"},
            risk_warning=(
                "This re-enables guest invitations for the whole tenant, not only for this invitation."
            ),
            performer=ctx.performer,
        ),
    )


def domain_blocked(ctx: HeuristicContext) -> Finding | None:
    domain = ctx.failure.target_domain
    if not domain:
        return None
    allowed, blocked = domain_lists(ctx.snapshot)
    hits = domain_matches(domain, blocked)
    if not hits:
        return None
    remaining = [d for d in blocked if d not in hits]
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title=f"{domain} is on the blocked domains list",
        description=(
            f"The external collaboration policy blocks invitations to {domain}. "
            "Every invitation to an address in this domain is rejected."
        ),
        recommendation=f"Remove {domain} from the blocked domains list if collaboration is intended.",
        evidence={"domain": domain, "list_type": "blockList", "current_list": list(blocked)},
        remediation=RemediationAction(
            kind=RemediationKind.REMOVE_AND_RETRY,
            risk_level=RiskLevel.LOW,
            title=f"Remove {domain} from the block list, then retry",
            tenant=ctx.tenant,
            fix_action_id=EDIT_COLLABORATION_ACTION,
            parameters={"domain": domain, **_collaboration_policy(list(allowed), remaining)},
            performer=ctx.performer,
        ),
    )


def domain_not_allowed(ctx: HeuristicContext) -> Finding | None:
    domain = ctx.failure.target_domain
    if not domain:
        return None
    allowed, blocked = domain_lists(ctx.snapshot)
    if not allowed or domain_matches(domain, allowed):
        return None
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title=f"{domain} is not on the allowed domains list",
        description=(
            "The external collaboration policy only allows invitations to the listed domains, "
            f"and {domain} is not one of them."
        ),
        recommendation=f"Add {domain} to the allowed domains list if this partner is trusted.",
        evidence={"domain": domain, "list_type": "allowList", "current_list": list(allowed)},
        remediation=RemediationAction(
            kind=RemediationKind.ADD_DOMAIN_AND_RETRY,
            risk_level=RiskLevel.MEDIUM,
            title=f"Add {domain} to the allow list, then retry",
            tenant=ctx.tenant,
            fix_action_id=EDIT_COLLABORATION_ACTION,
            parameters={"domain": domain, **_collaboration_policy([*allowed, domain], list(blocked))},
            risk_warning=f"Any address in {domain} can be invited once the domain is allowed.",
            performer=ctx.performer,
        ),
    )


def restriction_managed_externally(ctx: HeuristicContext) -> Finding | None:
    """Policy object exists but both lists are empty.

    The directory still rejected the invitation, so the restriction is enforced
    somewhere this console does not manage (for example a cross-tenant access
    policy or a legacy B2B policy).
    """
    if ctx.snapshot.get("domainRestrictions") is None:
        return None
    if ctx.snapshot.get("allowInvitesFrom") == "none":
        return None
    allowed, blocked = domain_lists(ctx.snapshot)
    if allowed or blocked:
        return None
    domain = ctx.failure.target_domain
    return _finding(
        ctx,
        severity=Severity.WARNING,
        title="Domain restriction is managed outside this console",
        description=(
            "A domain restriction policy exists but its allow and block lists are empty, yet the "
            f"invitation{' to ' + domain if domain else ''} was rejected. The restriction is "
            "enforced by a policy this console does not manage."
        ),
        recommendation="Review cross-tenant access and legacy B2B policies in the directory admin portal.",
        evidence={"domain": domain, "allowed": [], "blocked": []},
    )


# ---------------------------------------------------------------------------
# Sharing policy
# ---------------------------------------------------------------------------


def sharing_disabled(ctx: HeuristicContext) -> Finding | None:
    capability = ctx.snapshot.get("sharingCapability")
    if capability not in ("disabled", "existingExternalUserSharingOnly"):
        return None
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title="External sharing does not allow new guests",
        description=(
            f"Tenant sharing is set to '{capability}', so content cannot be shared with "
            "people who are not already guests in the directory."
        ),
        recommendation='Set sharing to "New and existing guests" if sharing with new external users is required.',
        evidence={"sharingCapability": capability},
    )


def sharing_domain_blocked(ctx: HeuristicContext) -> Finding | None:
    domain = ctx.failure.target_domain
    if not domain or ctx.snapshot.get("sharingDomainRestrictionMode") != "blockList":
        return None
    blocked = list(ctx.snapshot.get("sharingBlockedDomainList") or ())
    hits = domain_matches(domain, blocked)
    if not hits:
        return None
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title=f"{domain} is blocked for sharing",
        description=f"The sharing policy blocks sharing with {domain}.",
        recommendation=f"Remove {domain} from the sharing block list if sharing is intended.",
        evidence={"domain": domain, "list_type": "blockList", "current_list": blocked},
        remediation=RemediationAction(
            kind=RemediationKind.REMOVE_AND_RETRY,
            risk_level=RiskLevel.LOW,
            title=f"Remove {domain} from the sharing block list, then retry",
            tenant=ctx.tenant,
            fix_action_id=EDIT_SHARING_ACTION,
            parameters={
                "domain": domain,
                "sharingBlockedDomainList": [d for d in blocked if d not in hits],
            },
            performer=ctx.performer,
        ),
    )


def sharing_domain_not_allowed(ctx: HeuristicContext) -> Finding | None:
    domain = ctx.failure.target_domain
    if not domain or ctx.snapshot.get("sharingDomainRestrictionMode") != "allowList":
        return None
    allowed = list(ctx.snapshot.get("sharingAllowedDomainList") or ())
    if domain_matches(domain, allowed):
        return None
    return _finding(
        ctx,
        severity=Severity.ERROR,
        title=f"{domain} is not allowed for sharing",
        description=f"The sharing policy only allows the listed domains, and {domain} is not one of them.",
        recommendation=f"Add {domain} to the sharing allow list if this partner is trusted.",
        evidence={"domain": domain, "list_type": "allowList", "current_list": allowed},
        remediation=RemediationAction(
            kind=RemediationKind.ADD_DOMAIN_AND_RETRY,
            risk_level=RiskLevel.MEDIUM,
            title=f"Add {domain} to the sharing allow list, then retry",
            tenant=ctx.tenant,
            fix_action_id=EDIT_SHARING_ACTION,
            parameters={"domain": domain, "sharingAllowedDomainList": [*allowed, domain]},
            risk_warning=f"Content can be shared with any address in {domain} once the domain is allowed.",
            performer=ctx.performer,
        ),
    )


DOMAIN_HEURISTICS: list[Heuristic] = [
    Heuristic("collaboration-domain-blocked", _CLASS, ProbeId.COLLABORATION_POLICY, 10, domain_blocked),
    Heuristic("sharing-domain-blocked", _CLASS, ProbeId.SHARING_POLICY, 15, sharing_domain_blocked),
    Heuristic("collaboration-domain-not-allowed", _CLASS, ProbeId.COLLABORATION_POLICY, 20, domain_not_allowed),
    Heuristic("sharing-domain-not-allowed", _CLASS, ProbeId.SHARING_POLICY, 25, sharing_domain_not_allowed),
    Heuristic("collaboration-invites-disabled", _CLASS, ProbeId.COLLABORATION_POLICY, 30, invites_disabled),
    Heuristic("sharing-disabled", _CLASS, ProbeId.SHARING_POLICY, 40, sharing_disabled),
    Heuristic(
        "collaboration-managed-externally",
        _CLASS,
        ProbeId.COLLABORATION_POLICY,
        90,
        restriction_managed_externally,
    ),
]
