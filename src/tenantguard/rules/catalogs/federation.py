"""Risk rules for chat and meeting federation (external access) settings."""

from tenantguard.models.enums import Severity
from tenantguard.rules.engine import Rule

CATALOG = "federation"

_OPEN_LOBBY = ("Everyone", "EveryoneInSameAndFederatedCompany")
_CLOUD_STORAGE = ("allowDropBox", "allowBox", "allowGoogleDrive", "allowShareFile", "allowEgnyte")


FEDERATION_RULES: list[Rule] = [
    Rule(
        id="anonymous-start-meeting",
        predicate=lambda s: s.get("allowAnonymousUsersToStartMeeting") is True,
        severity=Severity.ERROR,
        title="High Risk — Anonymous Users Can Start Meetings",
        description=(
            "Unauthenticated participants can start meetings before an organizer joins, "
            "allowing meeting bridges to be used without oversight."
        ),
        recommendation="Disable anonymous meeting start.",
        source=CATALOG,
    ),
    Rule(
        id="federation-all-external",
        predicate=lambda s: s.get("enableFederationAccess") is True
        and s.get("federationMode", "AllowAllExternal") == "AllowAllExternal",
        severity=Severity.WARNING,
        title="Chat Open to All External Organizations",
        description=(
            "Users can chat and call with users in any external organization. Phishing and "
            "impersonation attempts from unknown tenants reach users directly."
        ),
        recommendation="Allow only specific external domains that your users work with.",
        source=CATALOG,
    ),
    Rule(
        id="consumer-access",
        predicate=lambda s: s.get("enableTeamsConsumerAccess") is True or s.get("allowTeamsConsumer") is True,
        severity=Severity.WARNING,
        title="Consumer Accounts Can Communicate With Users",
        description="Users can chat with unmanaged personal accounts that have no organizational controls.",
        recommendation="Disable consumer access unless there is a business requirement.",
        source=CATALOG,
    ),
    Rule(
        id="lobby-bypass-everyone",
        predicate=lambda s: s.get("autoAdmittedUsers") in _OPEN_LOBBY,
        severity=Severity.WARNING,
        title="Meeting Lobby Bypassed by External Users",
        description="External participants are admitted to meetings without waiting in the lobby.",
        recommendation='Admit "People in my organization" automatically and send everyone else to the lobby.',
        source=CATALOG,
    ),
    Rule(
        id="anonymous-join",
        predicate=lambda s: s.get("allowAnonymousUsersToJoinMeeting") is True,
        severity=Severity.INFO,
        title="Anonymous Meeting Join Allowed",
        description="People without an account can join meetings through the join link.",
        source=CATALOG,
    ),
    Rule(
        id="third-party-storage",
        predicate=lambda s: any(s.get(key) is True for key in _CLOUD_STORAGE),
        severity=Severity.INFO,
        title="Third-Party Cloud Storage Enabled",
        description="Users can attach files from third-party storage providers outside tenant data controls.",
        recommendation="Disable providers your organization does not sanction.",
        source=CATALOG,
    ),
]
