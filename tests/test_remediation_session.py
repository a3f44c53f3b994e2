"""Tests for the remediation session state machine."""

import asyncio

import pytest

from conftest import (
    DOMAIN_BLOCKED_ERROR,
    INVITE_PARAMS,
    NUMBER_ASSIGNED_ERROR,
    NUMBER_TYPE_ERROR,
    PHONE_PARAMS,
)
from tenantguard.errors.exceptions import (
    AcknowledgementRequiredError,
    InvalidTransitionError,
    RemediationLimitError,
    ValidationError,
)
from tenantguard.models.action import ActionOutcome, FailureContext
from tenantguard.models.enums import FailureClass, ProbeId, SessionStatus, Severity
from tenantguard.services.remediation.session import RemediationSession

ASSIGN = "ExecTeamsVoicePhoneNumberAssignment"
UNASSIGN = "ExecRemoveTeamsVoicePhoneNumberAssignment"


def _session(directory, tenant, **kwargs):
    transitions = []
    session = RemediationSession(
        tenant=tenant,
        perform_action=directory.perform_action,
        fetch_snapshot=directory.fetch_snapshot,
        listeners=[lambda t: transitions.append((t.previous, t.current))],
        **kwargs,
    )
    return session, transitions


@pytest.mark.asyncio
async def test_successful_action_never_diagnoses(directory, tenant):
    session, transitions = _session(directory, tenant)
    outcome = await session.run("AddGuest", INVITE_PARAMS)
    assert outcome.success
    assert session.status == SessionStatus.IDLE
    assert transitions == []
    assert directory.probe_calls == []


@pytest.mark.asyncio
async def test_fix_and_retry_succeeds(directory, tenant):
    directory.queue("AddGuest", ActionOutcome.failed(DOMAIN_BLOCKED_ERROR), ActionOutcome.ok("invited"))
    presented = []
    session, transitions = _session(directory, tenant, present_findings=presented.append)

    await session.run("AddGuest", INVITE_PARAMS)
    assert session.status == SessionStatus.READY
    assert session.failure_class == FailureClass.DOMAIN_COLLABORATION_RESTRICTION
    assert len(session.findings) == 1
    assert presented == [session.findings]

    outcome = await session.apply(0)
    assert outcome.success
    assert session.status == SessionStatus.SUCCEEDED
    assert session.fix_attempted
    assert len(directory.calls_to("EditExternalCollaboration")) == 1
    assert directory.calls_to("AddGuest") == [INVITE_PARAMS, INVITE_PARAMS]
    assert transitions == [
        (SessionStatus.IDLE, SessionStatus.DIAGNOSING),
        (SessionStatus.DIAGNOSING, SessionStatus.READY),
        (SessionStatus.READY, SessionStatus.FIXING),
        (SessionStatus.FIXING, SessionStatus.RETRYING),
        (SessionStatus.RETRYING, SessionStatus.SUCCEEDED),
    ]


@pytest.mark.asyncio
async def test_retry_failure_escalates_without_looping(directory, tenant):
    directory.queue("AddGuest", ActionOutcome.failed(DOMAIN_BLOCKED_ERROR))
    session, transitions = _session(directory, tenant)

    await session.run("AddGuest", INVITE_PARAMS)
    outcome = await session.apply(session.findings[0])

    assert not outcome.success
    assert session.status == SessionStatus.READY
    assert session.fix_attempted
    assert session.findings
    assert all(f.remediation is None for f in session.findings)
    assert all(f.settings_page for f in session.findings)
    assert transitions[-2:] == [
        (SessionStatus.FIXING, SessionStatus.RETRYING),
        (SessionStatus.RETRYING, SessionStatus.READY),
    ]

    with pytest.raises(RemediationLimitError):
        await session.apply(0)
    assert len(directory.calls_to("EditExternalCollaboration")) == 1
    assert len(directory.calls_to("AddGuest")) == 2


@pytest.mark.asyncio
async def test_fix_failure_leads_with_error(directory, tenant):
    directory.queue("AddGuest", ActionOutcome.failed(DOMAIN_BLOCKED_ERROR))
    directory.queue("EditExternalCollaboration", ActionOutcome.failed({"message": "Insufficient privileges"}))
    session, _ = _session(directory, tenant)

    await session.begin(
        FailureContext(action_id="AddGuest", parameters=INVITE_PARAMS, error_payload=DOMAIN_BLOCKED_ERROR, tenant=tenant)
    )
    outcome = await session.apply(0)

    assert not outcome.success
    assert session.status == SessionStatus.READY
    assert session.fix_attempted
    assert session.findings[0].title == "Remediation failed"
    assert session.findings[0].severity == Severity.ERROR
    assert "Insufficient privileges" in session.findings[0].description
    assert directory.calls_to("AddGuest") == []


@pytest.mark.asyncio
async def test_high_risk_fix_needs_acknowledgement(directory, tenant):
    directory.queue(ASSIGN, ActionOutcome.failed(NUMBER_ASSIGNED_ERROR), ActionOutcome.ok("assigned"))
    asked = []

    async def decline(action):
        asked.append(action.kind)
        return False

    session, _ = _session(directory, tenant, request_high_risk_acknowledgment=decline)
    await session.run(ASSIGN, PHONE_PARAMS)
    assert session.findings[0].remediation.requires_acknowledgement

    with pytest.raises(AcknowledgementRequiredError):
        await session.apply(0)
    assert session.status == SessionStatus.READY
    assert not session.fix_attempted
    assert asked
    assert directory.calls_to(UNASSIGN) == []

    outcome = await session.apply(0, acknowledge=True)
    assert outcome.success
    assert session.status == SessionStatus.SUCCEEDED
    assert directory.calls_to(UNASSIGN)[0]["AssignedTo"] == "alice@contoso.com"


@pytest.mark.asyncio
async def test_acknowledgement_callback_can_approve(directory, tenant):
    directory.queue(ASSIGN, ActionOutcome.failed(NUMBER_ASSIGNED_ERROR), ActionOutcome.ok("assigned"))
    session, _ = _session(directory, tenant, request_high_risk_acknowledgment=lambda action: True)
    await session.run(ASSIGN, PHONE_PARAMS)
    outcome = await session.apply(0)
    assert outcome.success
    assert len(directory.calls_to(UNASSIGN)) == 1


@pytest.mark.asyncio
async def test_corrected_parameter_is_used_on_retry(directory, tenant):
    params = {**PHONE_PARAMS, "PhoneNumber": "+15555550101"}
    directory.queue(ASSIGN, ActionOutcome.failed(NUMBER_TYPE_ERROR), ActionOutcome.ok("assigned"))
    session, _ = _session(directory, tenant)

    await session.run(ASSIGN, params)
    outcome = await session.apply(0)

    assert outcome.success
    retried = directory.calls_to(ASSIGN)[-1]
    assert retried["PhoneNumberType"] == "CallingPlan"
    assert retried["PhoneNumber"] == "+15555550101"


@pytest.mark.asyncio
async def test_apply_requires_ready_and_remediation(directory, tenant):
    directory.snapshots[ProbeId.COLLABORATION_POLICY] = {"domainRestrictions": {"BlockedDomains": []}}
    session, _ = _session(directory, tenant)

    with pytest.raises(InvalidTransitionError):
        await session.apply(0)

    await session.begin(
        FailureContext(action_id="AddGuest", parameters=INVITE_PARAMS, error_payload=DOMAIN_BLOCKED_ERROR, tenant=tenant)
    )
    assert session.findings[0].remediation is None
    with pytest.raises(ValidationError):
        await session.apply(0)
    with pytest.raises(ValidationError):
        await session.apply(5)


@pytest.mark.asyncio
async def test_reset_discards_in_flight_diagnosis(directory, tenant):
    release = asyncio.Event()

    async def slow_fetch(probe_id, t):
        await release.wait()
        return await directory.fetch_snapshot(probe_id, t)

    session = RemediationSession(tenant=tenant, perform_action=directory.perform_action, fetch_snapshot=slow_fetch)
    failure = FailureContext(
        action_id="AddGuest", parameters=INVITE_PARAMS, error_payload=DOMAIN_BLOCKED_ERROR, tenant=tenant
    )
    task = asyncio.create_task(session.begin(failure))
    await asyncio.sleep(0)
    assert session.status == SessionStatus.DIAGNOSING

    await session.reset()
    release.set()
    assert await task == []
    assert session.status == SessionStatus.IDLE
    assert session.findings == []
    assert session.generation == 1


class _HeldAction:
    """Action boundary that records a call, then holds its result until released."""

    def __init__(self, directory, action_id, skip=0):
        self.directory = directory
        self.action_id = action_id
        self.skip = skip
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def perform_action(self, action_id, parameters, tenant):
        outcome = await self.directory.perform_action(action_id, parameters, tenant)
        if action_id == self.action_id:
            if self.skip:
                self.skip -= 1
            else:
                self.entered.set()
                await self.release.wait()
        return outcome


@pytest.mark.asyncio
async def test_reset_during_fix_discards_fix_result(directory, tenant):
    directory.queue("AddGuest", ActionOutcome.failed(DOMAIN_BLOCKED_ERROR), ActionOutcome.ok("invited"))
    held = _HeldAction(directory, "EditExternalCollaboration")
    session = RemediationSession(
        tenant=tenant, perform_action=held.perform_action, fetch_snapshot=directory.fetch_snapshot
    )
    await session.run("AddGuest", INVITE_PARAMS)

    task = asyncio.create_task(session.apply(0))
    await held.entered.wait()
    assert session.status == SessionStatus.FIXING

    await session.reset()
    calls_at_reset = len(directory.calls)
    held.release.set()
    outcome = await task

    assert outcome.success
    assert session.status == SessionStatus.IDLE
    assert session.findings == []
    assert not session.fix_attempted
    assert session.attempted_classes == set()
    assert len(directory.calls) == calls_at_reset
    assert len(directory.calls_to("AddGuest")) == 1


@pytest.mark.asyncio
async def test_reset_during_retry_discards_retry_result(directory, tenant):
    directory.queue("AddGuest", ActionOutcome.failed(DOMAIN_BLOCKED_ERROR))
    held = _HeldAction(directory, "AddGuest", skip=1)
    session = RemediationSession(
        tenant=tenant, perform_action=held.perform_action, fetch_snapshot=directory.fetch_snapshot
    )
    await session.run("AddGuest", INVITE_PARAMS)

    task = asyncio.create_task(session.apply(0))
    await held.entered.wait()
    assert session.status == SessionStatus.RETRYING

    await session.reset()
    calls_at_reset = len(directory.calls)
    probes_at_reset = len(directory.probe_calls)
    held.release.set()
    outcome = await task

    assert not outcome.success
    assert session.status == SessionStatus.IDLE
    assert session.findings == []
    assert session.last_outcome is None
    assert session.failure_context is None
    assert len(directory.calls) == calls_at_reset
    assert len(directory.probe_calls) == probes_at_reset


@pytest.mark.asyncio
async def test_reset_during_acknowledgment_prompt_runs_nothing(directory, tenant):
    directory.queue(ASSIGN, ActionOutcome.failed(NUMBER_ASSIGNED_ERROR), ActionOutcome.ok("assigned"))
    asked = asyncio.Event()
    answer = asyncio.Event()

    async def slow_approval(action):
        asked.set()
        await answer.wait()
        return True

    session, transitions = _session(directory, tenant, request_high_risk_acknowledgment=slow_approval)
    await session.run(ASSIGN, PHONE_PARAMS)
    action = session.findings[0].remediation

    task = asyncio.create_task(session.apply(0))
    await asked.wait()
    await session.reset()
    answer.set()
    outcome = await task

    assert not outcome.success
    assert session.status == SessionStatus.IDLE
    assert not session.fix_attempted
    assert not action.acknowledged
    assert directory.calls_to(UNASSIGN) == []
    assert len(directory.calls_to(ASSIGN)) == 1
    assert transitions[-1] == (SessionStatus.READY, SessionStatus.IDLE)


@pytest.mark.asyncio
async def test_second_apply_while_prompt_open_is_refused(directory, tenant):
    directory.queue(ASSIGN, ActionOutcome.failed(NUMBER_ASSIGNED_ERROR), ActionOutcome.ok("assigned"))
    asked = asyncio.Event()
    answer = asyncio.Event()

    async def slow_approval(action):
        asked.set()
        await answer.wait()
        return True

    session, _ = _session(directory, tenant, request_high_risk_acknowledgment=slow_approval)
    await session.run(ASSIGN, PHONE_PARAMS)

    task = asyncio.create_task(session.apply(0))
    await asked.wait()
    with pytest.raises(InvalidTransitionError):
        await session.apply(0)

    answer.set()
    outcome = await task
    assert outcome.success
    assert session.status == SessionStatus.SUCCEEDED
    assert len(directory.calls_to(UNASSIGN)) == 1


@pytest.mark.asyncio
async def test_raising_action_boundary_fails_session(directory, tenant):
    directory.queue("AddGuest", RuntimeError("socket closed"))
    session, transitions = _session(directory, tenant)

    outcome = await session.run("AddGuest", INVITE_PARAMS)

    assert not outcome.success
    assert session.status == SessionStatus.FAILED
    assert session.findings[0].severity == Severity.ERROR
    assert "socket closed" in session.findings[0].description
    assert transitions == [(SessionStatus.IDLE, SessionStatus.FAILED)]


@pytest.mark.asyncio
async def test_listener_errors_do_not_break_session(directory, tenant):
    directory.queue("AddGuest", ActionOutcome.failed(DOMAIN_BLOCKED_ERROR))

    def broken(transition):
        raise RuntimeError("listener bug")

    session = RemediationSession(
        tenant=tenant,
        perform_action=directory.perform_action,
        fetch_snapshot=directory.fetch_snapshot,
        listeners=[broken],
    )
    await session.run("AddGuest", INVITE_PARAMS)
    assert session.status == SessionStatus.READY


def test_requires_some_probe_source(directory, tenant):
    with pytest.raises(ValueError):
        RemediationSession(tenant=tenant, perform_action=directory.perform_action)
