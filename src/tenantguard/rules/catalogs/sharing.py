"""Risk rules for the tenant file-sharing policy."""

from tenantguard.models.enums import Severity
from tenantguard.rules.engine import Rule

CATALOG = "sharing"

ANONYMOUS = "externalUserAndGuestSharing"


def _anonymous(s) -> bool:
    return s.get("sharingCapability") == ANONYMOUS


def _external_enabled(s) -> bool:
    return s.get("sharingCapability") not in (None, "disabled")


SHARING_RULES: list[Rule] = [
    Rule(
        id="anonymous-sharing",
        predicate=_anonymous,
        severity=Severity.ERROR,
        title="High Risk — Anonymous Sharing Enabled",
        description=(
            "Files and folders can be shared with \"Anyone\" links that require no sign-in. "
            "Anyone who obtains the link can open the content, and access cannot be traced to a person."
        ),
        recommendation=(
            'Use "New and existing guests" so external recipients must authenticate before accessing content.'
        ),
        source=CATALOG,
    ),
    Rule(
        id="default-link-anyone",
        predicate=lambda s: s.get("defaultSharingLinkType") == "anyone",
        severity=Severity.ERROR,
        title="High Risk — Anonymous Links Are the Default",
        description=(
            "The sharing dialog pre-selects an anonymous link. Users who click Share without changing "
            "the link type publish content to anyone with the URL."
        ),
        recommendation='Set the default link type to "Specific people" or "People in your organization".',
        source=CATALOG,
    ),
    Rule(
        id="anonymous-edit-links",
        predicate=lambda s: _anonymous(s)
        and (s.get("fileAnonymousLinkType") == "edit" or s.get("folderAnonymousLinkType") == "edit"),
        severity=Severity.WARNING,
        title="Anonymous Links Can Edit Content",
        description=(
            "Anonymous links grant edit permission. Unauthenticated users can modify or upload content "
            "and changes cannot be attributed."
        ),
        recommendation="Restrict anonymous file and folder links to view only.",
        source=CATALOG,
    ),
    Rule(
        id="anonymous-links-never-expire",
        predicate=lambda s: _anonymous(s) and not s.get("requireAnonymousLinksExpireInDays"),
        severity=Severity.WARNING,
        title="Anonymous Links Never Expire",
        description=(
            "Anonymous links stay valid indefinitely. Links forwarded or leaked years later still grant access."
        ),
        recommendation="Require anonymous links to expire, for example after 30 days.",
        source=CATALOG,
    ),
    Rule(
        id="external-resharing",
        predicate=lambda s: s.get("isResharingByExternalUsersEnabled") is True,
        severity=Severity.WARNING,
        title="Guests Can Reshare Content",
        description=(
            "External users can share items they do not own with further external users, "
            "extending access beyond the people you invited."
        ),
        recommendation="Disable resharing by external users.",
        source=CATALOG,
    ),
    Rule(
        id="no-sharing-domain-restriction",
        predicate=lambda s: _external_enabled(s) and s.get("sharingDomainRestrictionMode", "none") == "none",
        severity=Severity.INFO,
        title="External Sharing Not Limited by Domain",
        description="External sharing is allowed with any email domain.",
        recommendation="Consider an allow list of partner domains if sharing is only needed with known organizations.",
        source=CATALOG,
    ),
    Rule(
        id="default-permission-edit",
        predicate=lambda s: s.get("defaultLinkPermission") == "edit",
        severity=Severity.INFO,
        title="Sharing Links Default to Edit",
        description="New sharing links grant edit permission unless the user changes it.",
        recommendation="Default to view permission and let users opt in to edit.",
        source=CATALOG,
    ),
]
