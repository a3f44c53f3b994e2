"""Risk rules for external collaboration (guest invitation) settings."""

from tenantguard.models.enums import Severity
from tenantguard.rules.engine import Rule

CATALOG = "collaboration"

GUEST_MEMBER_ROLE_ID = "a0b1b346-4d3e-4e8b-98f8-753987be4970"


def domain_lists(s) -> tuple[tuple, tuple]:
    """(allowed, blocked) invitation domain lists, whichever shape the API returned."""
    restrictions = s.get("domainRestrictions") or {}
    policy = restrictions.get("InvitationsAllowedAndBlockedDomainsPolicy") or restrictions
    return tuple(policy.get("AllowedDomains") or ()), tuple(policy.get("BlockedDomains") or ())


def _no_domain_restrictions(s) -> bool:
    allowed, blocked = domain_lists(s)
    return not allowed and not blocked


COLLABORATION_RULES: list[Rule] = [
    Rule(
        id="invites-everyone",
        predicate=lambda s: s.get("allowInvitesFrom") == "everyone",
        severity=Severity.ERROR,
        title="High Risk — Unrestricted Guest Invitations",
        description=(
            "Anyone, including existing guest users, can invite additional guests. This creates "
            "uncontrolled transitive access where external users bring in more external users."
        ),
        recommendation=(
            'Set to "Only admins and Guest Inviter role" or "Member users and admins" to maintain '
            "invitation oversight."
        ),
        source=CATALOG,
    ),
    Rule(
        id="guest-member-access",
        predicate=lambda s: s.get("guestUserRoleId") == GUEST_MEMBER_ROLE_ID,
        severity=Severity.ERROR,
        title="High Risk — Guests Have Full Member Access",
        description=(
            "Guest users have the same directory permissions as member users, including the ability "
            "to enumerate all users, groups, and other directory objects."
        ),
        recommendation='Set to "Limited access" (default) or "Restricted access" to prevent directory enumeration.',
        source=CATALOG,
    ),
    Rule(
        id="email-verified-join",
        predicate=lambda s: s.get("allowEmailVerifiedUsersToJoinOrganization") is True,
        severity=Severity.WARNING,
        title="Self-Service Join Enabled",
        description=(
            "Anyone with a verified email address can self-register into this directory without an "
            "admin invitation. This may add unintended accounts to the tenant."
        ),
        recommendation="Disable unless specifically required for a self-service workflow.",
        source=CATALOG,
    ),
    Rule(
        id="no-domain-restrictions",
        predicate=_no_domain_restrictions,
        severity=Severity.WARNING,
        title="No Domain Restrictions",
        description=(
            "Guest invitations are allowed from any email domain, including competitors or "
            "untrusted organizations."
        ),
        recommendation="Use an allow list of trusted partner domains to limit which organizations can be invited.",
        source=CATALOG,
    ),
    Rule(
        id="msn-allowed",
        predicate=lambda s: s.get("blockMsnSignIn") is False,
        severity=Severity.INFO,
        title="Personal Microsoft Accounts Allowed",
        description=(
            "Users can sign in with personal consumer accounts. These accounts are not managed by any "
            "organization and lack enterprise security controls."
        ),
        recommendation="Block consumer sign-in if personal accounts are not needed for this tenant.",
        source=CATALOG,
    ),
]
