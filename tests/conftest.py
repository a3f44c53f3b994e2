"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient

from tenantguard.errors.exceptions import ProbeError
from tenantguard.models.action import ActionOutcome, TenantContext
from tenantguard.models.enums import ProbeId
from tenantguard.models.snapshot import ConfigurationSnapshot

DOMAIN_BLOCKED_ERROR = {
    "Results": (
        "Failed to invite user@blocked.com: The organization does not allow "
        "collaboration with the domain of the user you are inviting."
    )
}
NUMBER_ASSIGNED_ERROR = {"Results": "Failed: The phone number is already assigned to another user."}
NUMBER_TYPE_ERROR = {"Results": "Failed: Phone number type DirectRouting does not match the number."}

INVITE_PARAMS = {"mail": "user@blocked.com", "displayName": "Blocked User", "sendInvite": True}
PHONE_PARAMS = {
    "input": {"value": "bob@contoso.com", "label": "Bob"},
    "PhoneNumber": "+1 555 555 0100",
    "PhoneNumberType": "DirectRouting",
}

BLOCKING_COLLABORATION = {"domainRestrictions": {"BlockedDomains": ["blocked.com"]}}
OPEN_SHARING = {"sharingCapability": "externalUserAndGuestSharing", "sharingDomainRestrictionMode": "none"}
PHONE_INVENTORY = {
    "numbers": [
        {"TelephoneNumber": "+15555550100", "AssignedTo": "alice@contoso.com", "NumberType": "CallingPlan"},
        {"TelephoneNumber": "+15555550101", "AssignedTo": None, "NumberType": "CallingPlan"},
    ]
}


class FakeDirectory:
    """In-memory stand-in for the directory API boundaries."""

    base_url = "memory://directory"

    def __init__(self, snapshots=None):
        self.snapshots: dict[ProbeId, dict] = dict(snapshots or {})
        self.probe_errors: dict[ProbeId, Exception] = {}
        self.results: dict[str, list] = {}
        self.calls: list[tuple[str, dict]] = []
        self.probe_calls: list[ProbeId] = []

    def queue(self, action_id: str, *results) -> None:
        """Results for *action_id*, consumed in order; the last one repeats."""
        self.results[action_id] = list(results)

    def calls_to(self, action_id: str) -> list[dict]:
        return [params for called, params in self.calls if called == action_id]

    async def fetch_snapshot(self, probe_id: ProbeId, tenant: TenantContext) -> ConfigurationSnapshot:
        self.probe_calls.append(probe_id)
        if probe_id in self.probe_errors:
            raise self.probe_errors[probe_id]
        if probe_id not in self.snapshots:
            raise ProbeError(probe_id.value, "no snapshot configured")
        return ConfigurationSnapshot(self.snapshots[probe_id], probe_id=probe_id.value)

    async def perform_action(self, action_id: str, parameters: dict, tenant: TenantContext) -> ActionOutcome:
        self.calls.append((action_id, dict(parameters)))
        queued = self.results.get(action_id)
        if not queued:
            return ActionOutcome.ok({"Results": f"{action_id} completed"})
        result = queued.pop(0) if len(queued) > 1 else queued[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def tenant():
    return TenantContext(tenant_filter="contoso.onmicrosoft.com", display_name="Contoso")


@pytest.fixture
def directory():
    return FakeDirectory(
        {
            ProbeId.COLLABORATION_POLICY: BLOCKING_COLLABORATION,
            ProbeId.SHARING_POLICY: OPEN_SHARING,
            ProbeId.PHONE_NUMBERS: PHONE_INVENTORY,
        }
    )


@pytest.fixture
def app(directory):
    """Create a test application instance backed by the fake directory."""
    from tenantguard.main import create_app

    return create_app(directory=directory)


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
