"""Tests for failure diagnosis."""

import httpx
import pytest

from conftest import (
    BLOCKING_COLLABORATION,
    DOMAIN_BLOCKED_ERROR,
    INVITE_PARAMS,
    NUMBER_ASSIGNED_ERROR,
    NUMBER_TYPE_ERROR,
    PHONE_PARAMS,
)
from tenantguard.config import settings
from tenantguard.models.action import FailureContext
from tenantguard.models.enums import FailureClass, ProbeId, RemediationKind, RiskLevel, Severity
from tenantguard.services.diagnostics.analyzer import DiagnosticAnalyzer
from tenantguard.services.diagnostics.heuristics import Heuristic
from tenantguard.services.diagnostics.probes import (
    SETTINGS_PAGES,
    tenant_settings_page,
    all_diagnostic_sources,
    sources_from_boundary,
)

DOMAIN = FailureClass.DOMAIN_COLLABORATION_RESTRICTION


def _invite_failure(tenant, error=DOMAIN_BLOCKED_ERROR, params=INVITE_PARAMS):
    return FailureContext(action_id="AddGuest", parameters=params, error_payload=error, tenant=tenant)


def _collaboration_only(directory):
    return sources_from_boundary(directory.fetch_snapshot, [ProbeId.COLLABORATION_POLICY])


@pytest.mark.asyncio
async def test_blocked_domain_yields_single_low_risk_fix(directory, tenant):
    analyzer = DiagnosticAnalyzer(performer=directory.perform_action)
    findings = await analyzer.diagnose(_invite_failure(tenant), _collaboration_only(directory))

    assert len(findings) == 1
    finding = findings[0]
    assert finding.severity == Severity.ERROR
    assert finding.failure_class == DOMAIN
    assert finding.evidence == {"domain": "blocked.com", "list_type": "blockList", "current_list": ["blocked.com"]}
    assert finding.remediation.kind == RemediationKind.REMOVE_AND_RETRY
    assert finding.remediation.risk_level == RiskLevel.LOW
    policy = finding.remediation.parameters["domainRestrictions"]["InvitationsAllowedAndBlockedDomainsPolicy"]
    assert policy["BlockedDomains"] == []


@pytest.mark.asyncio
async def test_only_class_relevant_probes_are_fetched(directory, tenant):
    analyzer = DiagnosticAnalyzer()
    findings = await analyzer.diagnose(_invite_failure(tenant), all_diagnostic_sources(directory.fetch_snapshot))
    assert len(findings) == 1
    assert ProbeId.PHONE_NUMBERS not in directory.probe_calls
    assert set(directory.probe_calls) == {ProbeId.COLLABORATION_POLICY, ProbeId.SHARING_POLICY}


@pytest.mark.asyncio
async def test_attempted_class_offers_manual_action_only(directory, tenant):
    analyzer = DiagnosticAnalyzer()
    findings = await analyzer.diagnose(_invite_failure(tenant), _collaboration_only(directory), attempted_classes=[DOMAIN])

    assert findings
    assert all(f.remediation is None for f in findings)
    assert findings[0].settings_page == settings.collaboration_admin_url
    assert findings[0].manual_action_required


@pytest.mark.asyncio
async def test_emptied_lists_after_fix_report_external_restriction(directory, tenant):
    directory.snapshots[ProbeId.COLLABORATION_POLICY] = {"domainRestrictions": {"BlockedDomains": []}}
    analyzer = DiagnosticAnalyzer()
    findings = await analyzer.diagnose(_invite_failure(tenant), _collaboration_only(directory), attempted_classes=[DOMAIN])

    assert len(findings) == 1
    assert findings[0].severity == Severity.WARNING
    assert "outside this console" in findings[0].title
    assert findings[0].remediation is None
    assert findings[0].settings_page


@pytest.mark.asyncio
async def test_residual_finding_when_nothing_explains_repeat_failure(directory, tenant):
    directory.snapshots[ProbeId.COLLABORATION_POLICY] = {"allowInvitesFrom": "adminsAndGuestInviters"}
    analyzer = DiagnosticAnalyzer()
    findings = await analyzer.diagnose(_invite_failure(tenant), _collaboration_only(directory), attempted_classes=[DOMAIN])

    assert len(findings) == 1
    assert findings[0].severity == Severity.ERROR
    assert findings[0].remediation is None
    assert findings[0].settings_page == settings.collaboration_admin_url
    assert findings[0].evidence["error"] == DOMAIN_BLOCKED_ERROR


@pytest.mark.asyncio
async def test_no_cause_invented_before_a_fix(directory, tenant):
    directory.snapshots[ProbeId.COLLABORATION_POLICY] = {"allowInvitesFrom": "adminsAndGuestInviters"}
    findings = await DiagnosticAnalyzer().diagnose(_invite_failure(tenant), _collaboration_only(directory))
    assert findings == []


@pytest.mark.asyncio
async def test_failed_probe_becomes_warning(directory, tenant):
    directory.probe_errors[ProbeId.COLLABORATION_POLICY] = httpx.ConnectError("connection refused")
    directory.snapshots[ProbeId.SHARING_POLICY] = {
        "sharingCapability": "externalUserSharingOnly",
        "sharingDomainRestrictionMode": "blockList",
        "sharingBlockedDomainList": ["blocked.com", "other.com"],
    }
    findings = await DiagnosticAnalyzer().diagnose(
        _invite_failure(tenant), all_diagnostic_sources(directory.fetch_snapshot)
    )

    assert [f.severity for f in findings] == [Severity.ERROR, Severity.WARNING]
    assert findings[0].remediation.parameters["sharingBlockedDomainList"] == ["other.com"]
    assert findings[1].title.startswith("Could not verify")
    assert findings[1].evidence["probe_id"] == "collaboration-policy"
    assert findings[1].settings_page == (
        SETTINGS_PAGES[ProbeId.COLLABORATION_POLICY] + "?tenantFilter=contoso.onmicrosoft.com"
    )


@pytest.mark.asyncio
async def test_sequential_probes_match_concurrent(directory, tenant):
    sources = all_diagnostic_sources(directory.fetch_snapshot)
    concurrent = await DiagnosticAnalyzer(concurrent=True).diagnose(_invite_failure(tenant), sources)
    sequential = await DiagnosticAnalyzer(concurrent=False).diagnose(_invite_failure(tenant), sources)
    assert concurrent == sequential


@pytest.mark.asyncio
async def test_diagnose_is_idempotent(directory, tenant):
    analyzer = DiagnosticAnalyzer(performer=directory.perform_action)
    sources = all_diagnostic_sources(directory.fetch_snapshot)
    first = await analyzer.diagnose(_invite_failure(tenant), sources)
    second = await analyzer.diagnose(_invite_failure(tenant), sources)
    assert first == second


@pytest.mark.asyncio
async def test_unclassified_failure_returns_nothing(directory, tenant):
    failure = _invite_failure(tenant, error={"Results": "Request timed out"})
    findings = await DiagnosticAnalyzer().diagnose(failure, all_diagnostic_sources(directory.fetch_snapshot))
    assert findings == []
    assert directory.probe_calls == []


@pytest.mark.asyncio
async def test_blocked_and_disabled_ordered_by_priority(directory, tenant):
    directory.snapshots[ProbeId.COLLABORATION_POLICY] = {**BLOCKING_COLLABORATION, "allowInvitesFrom": "none"}
    findings = await DiagnosticAnalyzer().diagnose(_invite_failure(tenant), _collaboration_only(directory))
    assert [f.title for f in findings] == [
        "blocked.com is on the blocked domains list",
        "Guest invitations are disabled",
    ]
    assert findings[1].remediation.risk_level == RiskLevel.HIGH


@pytest.mark.asyncio
async def test_allow_list_missing_domain(directory, tenant):
    directory.snapshots[ProbeId.COLLABORATION_POLICY] = {
        "domainRestrictions": {"InvitationsAllowedAndBlockedDomainsPolicy": {"AllowedDomains": ["partner.com"]}}
    }
    findings = await DiagnosticAnalyzer().diagnose(_invite_failure(tenant), _collaboration_only(directory))
    assert len(findings) == 1
    action = findings[0].remediation
    assert action.kind == RemediationKind.ADD_DOMAIN_AND_RETRY
    assert action.risk_level == RiskLevel.MEDIUM
    policy = action.parameters["domainRestrictions"]["InvitationsAllowedAndBlockedDomainsPolicy"]
    assert policy["AllowedDomains"] == ["partner.com", "blocked.com"]


@pytest.mark.asyncio
async def test_broken_heuristic_is_isolated(directory, tenant):
    def _boom(ctx):
        raise ValueError("bad data")

    heuristics = [Heuristic("broken", DOMAIN, ProbeId.COLLABORATION_POLICY, 1, _boom)]
    findings = await DiagnosticAnalyzer(heuristics=heuristics).diagnose(
        _invite_failure(tenant), _collaboration_only(directory)
    )
    assert len(findings) == 1
    assert findings[0].rule_id == "broken"
    assert findings[0].severity == Severity.ERROR


@pytest.mark.asyncio
async def test_number_assigned_to_someone_else(directory, tenant):
    failure = FailureContext(
        action_id="ExecTeamsVoicePhoneNumberAssignment",
        parameters=PHONE_PARAMS,
        error_payload=NUMBER_ASSIGNED_ERROR,
        tenant=tenant,
    )
    findings = await DiagnosticAnalyzer().diagnose(failure, all_diagnostic_sources(directory.fetch_snapshot))
    assert len(findings) == 1
    action = findings[0].remediation
    assert action.kind == RemediationKind.UNASSIGN_AND_RETRY
    assert action.risk_level == RiskLevel.HIGH
    assert action.requires_acknowledgement
    assert action.fix_action_id == "ExecRemoveTeamsVoicePhoneNumberAssignment"
    assert action.parameters["AssignedTo"] == "alice@contoso.com"


@pytest.mark.asyncio
async def test_number_already_assigned_to_same_user_is_info(directory, tenant):
    params = {**PHONE_PARAMS, "input": {"value": "ALICE@contoso.com"}}
    failure = FailureContext(
        action_id="ExecTeamsVoicePhoneNumberAssignment",
        parameters=params,
        error_payload=NUMBER_ASSIGNED_ERROR,
        tenant=tenant,
    )
    findings = await DiagnosticAnalyzer().diagnose(failure, all_diagnostic_sources(directory.fetch_snapshot))
    assert [f.severity for f in findings] == [Severity.INFO]
    assert findings[0].remediation is None


@pytest.mark.asyncio
async def test_unknown_number_points_to_settings(directory, tenant):
    params = {**PHONE_PARAMS, "PhoneNumber": "+1 555 555 0199"}
    failure = FailureContext(
        action_id="ExecTeamsVoicePhoneNumberAssignment",
        parameters=params,
        error_payload=NUMBER_ASSIGNED_ERROR,
        tenant=tenant,
    )
    findings = await DiagnosticAnalyzer().diagnose(failure, all_diagnostic_sources(directory.fetch_snapshot))
    assert [f.severity for f in findings] == [Severity.WARNING]
    assert findings[0].settings_page == SETTINGS_PAGES[ProbeId.PHONE_NUMBERS] + "?tenantFilter=contoso.onmicrosoft.com"


@pytest.mark.asyncio
async def test_wrong_number_type_is_corrected(directory, tenant):
    params = {**PHONE_PARAMS, "PhoneNumber": "+15555550101"}
    failure = FailureContext(
        action_id="ExecTeamsVoicePhoneNumberAssignment",
        parameters=params,
        error_payload=NUMBER_TYPE_ERROR,
        tenant=tenant,
    )
    findings = await DiagnosticAnalyzer().diagnose(failure, all_diagnostic_sources(directory.fetch_snapshot))
    assert len(findings) == 1
    action = findings[0].remediation
    assert action.kind == RemediationKind.RETRY_WITH_CORRECTED_PARAMETER
    assert action.fix_action_id is None
    assert action.retry_overrides == {"PhoneNumberType": "CallingPlan"}


def test_settings_pages_are_scoped_to_tenant(tenant):
    assert tenant_settings_page("/teams-share/teams/business-voice", tenant) == (
        "/teams-share/teams/business-voice?tenantFilter=contoso.onmicrosoft.com"
    )
    assert tenant_settings_page("/tenant/standards?tab=1", tenant) == (
        "/tenant/standards?tab=1&tenantFilter=contoso.onmicrosoft.com"
    )
    assert tenant_settings_page(settings.voice_admin_url, tenant) == settings.voice_admin_url
    assert tenant_settings_page(None, tenant) is None
