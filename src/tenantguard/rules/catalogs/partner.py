"""Risk rules for a single cross-tenant partner policy."""

from collections.abc import Mapping, Sequence
from dataclasses import replace

from tenantguard.models.enums import Severity
from tenantguard.models.finding import Finding, sort_findings
from tenantguard.models.snapshot import ConfigurationSnapshot
from tenantguard.rules.engine import Rule, as_snapshot, evaluate

CATALOG = "partner"

_ACCESS_SETTINGS = (
    "b2bCollaborationInbound",
    "b2bCollaborationOutbound",
    "b2bDirectConnectInbound",
    "b2bDirectConnectOutbound",
)
_TRUST_CLAIMS = ("isMfaAccepted", "isCompliantDeviceAccepted", "isHybridAzureADJoinedDeviceAccepted")


def access_type(s, setting: str) -> str | None:
    return s.dig(setting, "usersAndGroups", "accessType")


PARTNER_RULES: list[Rule] = [
    Rule(
        id="auto-consent-inbound",
        predicate=lambda s: s.dig("automaticUserConsentSettings", "inboundAllowed") is True,
        severity=Severity.WARNING,
        title="Automatic Inbound Consent Enabled",
        description=(
            "Inbound invitations from this partner are auto-redeemed without user consent prompts. "
            "External users gain access without explicitly accepting an invitation."
        ),
        recommendation="Disable unless you have a specific cross-tenant sync agreement with this partner.",
        source=CATALOG,
    ),
    Rule(
        id="auto-consent-outbound",
        predicate=lambda s: s.dig("automaticUserConsentSettings", "outboundAllowed") is True,
        severity=Severity.WARNING,
        title="Automatic Outbound Consent Enabled",
        description="Your users' invitations to this partner are auto-redeemed without an explicit consent step.",
        recommendation="Disable unless you have a specific cross-tenant sync agreement with this partner.",
        source=CATALOG,
    ),
    Rule(
        id="all-trust-enabled",
        predicate=lambda s: all(s.dig("inboundTrust", claim) is True for claim in _TRUST_CLAIMS),
        severity=Severity.INFO,
        title="All Inbound Trust Claims Accepted",
        description=(
            "MFA, device compliance and hybrid join claims from this partner are all trusted. "
            "You are fully relying on the partner's security posture."
        ),
        recommendation="Verify the partner's security practices before trusting all claims.",
        source=CATALOG,
    ),
    Rule(
        id="b2b-direct-connect-inbound-open",
        predicate=lambda s: access_type(s, "b2bDirectConnectInbound") == "allowed",
        severity=Severity.INFO,
        title="B2B Direct Connect Inbound Allowed",
        description=(
            "Partner users can be added to shared channels without guest accounts. They have no "
            "footprint in your directory and are not subject to your access policies unless inbound "
            "trust is configured."
        ),
        recommendation="Enable inbound trust for this partner so access policies apply to direct connect users.",
        source=CATALOG,
    ),
    Rule(
        id="all-access-open",
        predicate=lambda s: all(access_type(s, setting) == "allowed" for setting in _ACCESS_SETTINGS),
        severity=Severity.INFO,
        title="All Access Policies Fully Open",
        description=(
            "Collaboration and direct connect allow all users in both directions for this partner. "
            "This is the most permissive configuration."
        ),
        source=CATALOG,
    ),
]


def partner_policies(snapshot) -> list[ConfigurationSnapshot]:
    """Split a fetched ``{"partners": [...]}`` inventory into one snapshot per partner."""
    entries = snapshot.get("partners")
    if entries is None:
        return [as_snapshot(snapshot)]
    return [ConfigurationSnapshot(entry) for entry in entries if isinstance(entry, Mapping)]


def evaluate_partners(rules: Sequence[Rule], snapshot) -> list[Finding]:
    """Evaluate each partner policy on its own; findings name the partner they belong to."""
    findings: list[Finding] = []
    for policy in partner_policies(snapshot):
        partner = {
            key: policy.get(key) for key in ("tenantId", "displayName") if policy.get(key) is not None
        }
        for finding in evaluate(rules, policy):
            findings.append(replace(finding, evidence={**(finding.evidence or {}), "partner": partner}))
    return sort_findings(findings)
