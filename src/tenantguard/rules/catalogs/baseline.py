"""Security-baseline rules for cross-tenant default policy templates.

A template describes the default inbound/outbound access applied to every
external organization that has no partner-specific policy.
"""

from tenantguard.models.enums import Severity
from tenantguard.rules.catalogs.partner import access_type
from tenantguard.rules.engine import Rule

CATALOG = "baseline"


BASELINE_RULES: list[Rule] = [
    Rule(
        id="default-auto-consent",
        predicate=lambda s: s.dig("automaticUserConsentSettings", "inboundAllowed") is True
        or s.dig("automaticUserConsentSettings", "outboundAllowed") is True,
        severity=Severity.ERROR,
        title="High Risk — Automatic Consent for Every Organization",
        description=(
            "The default policy redeems invitations automatically for every external tenant, "
            "not just vetted partners."
        ),
        recommendation="Keep automatic consent off in defaults and enable it per partner only.",
        source=CATALOG,
    ),
    Rule(
        id="default-inbound-collaboration-open",
        predicate=lambda s: access_type(s, "b2bCollaborationInbound") == "allowed",
        severity=Severity.WARNING,
        title="Inbound Collaboration Open to All Organizations",
        description="Users from any external organization can be invited as guests by default.",
        recommendation="Block inbound collaboration by default and allow it for named partners.",
        source=CATALOG,
    ),
    Rule(
        id="default-mfa-trust-disabled",
        predicate=lambda s: s.dig("inboundTrust", "isMfaAccepted") is not True,
        severity=Severity.WARNING,
        title="External MFA Not Trusted",
        description=(
            "Guests must register MFA in your tenant even when their home tenant already enforces it. "
            "Guests often skip or defer registration, leaving sign-ins unprotected."
        ),
        recommendation="Trust MFA claims from external tenants in the default policy.",
        source=CATALOG,
    ),
    Rule(
        id="default-direct-connect-outbound-open",
        predicate=lambda s: access_type(s, "b2bDirectConnectOutbound") == "allowed",
        severity=Severity.INFO,
        title="Direct Connect Outbound Allowed by Default",
        description="Your users can join shared channels in any external organization.",
        source=CATALOG,
    ),
]
