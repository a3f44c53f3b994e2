"""Remediation session — one failed action, one diagnosis, at most one fix.

    idle -> diagnosing -> ready -> fixing -> retrying -> succeeded
                            ^        |          |
                            +--------+----------+   (fix or retry failed)

``reset()`` returns to idle from any state and bumps ``generation``; any
probe, acknowledgment, fix or retry result that arrives for an older generation
is dropped.
``failed`` is entered only when a boundary callable raises instead of
returning an outcome.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

from tenantguard.errors.exceptions import (
    AcknowledgementRequiredError,
    InvalidTransitionError,
    RemediationLimitError,
    ValidationError,
)
from tenantguard.events.session_events import SessionTransition, TransitionListener, emit_transition
from tenantguard.models.action import ActionOutcome, FailureContext, TenantContext
from tenantguard.models.enums import FailureClass, SessionStatus, Severity
from tenantguard.models.finding import Finding
from tenantguard.services.diagnostics.analyzer import DiagnosticAnalyzer
from tenantguard.services.diagnostics.probes import DiagnosticSource, ProbeBoundary, all_diagnostic_sources
from tenantguard.services.id_generator import SESSION_PREFIX, generate_id
from tenantguard.services.remediation.actions import ActionPerformer, RemediationAction
from tenantguard.services.risk_gate import maybe_await

logger = logging.getLogger(__name__)

PresentFindings = Callable[[list[Finding]], Any]
AcknowledgeCallback = Callable[[RemediationAction], Awaitable[bool] | bool]


class RemediationSession:
    """Drives the diagnose/fix/retry workflow for one failed operator action."""

    def __init__(
        self,
        tenant: TenantContext,
        perform_action: ActionPerformer,
        probes: Sequence[DiagnosticSource] | None = None,
        fetch_snapshot: ProbeBoundary | None = None,
        analyzer: DiagnosticAnalyzer | None = None,
        present_findings: PresentFindings | None = None,
        request_high_risk_acknowledgment: AcknowledgeCallback | None = None,
        listeners: Iterable[TransitionListener] = (),
        session_id: str | None = None,
    ):
        if probes is None:
            if fetch_snapshot is None:
                raise ValueError("Either probes or fetch_snapshot is required")
            probes = all_diagnostic_sources(fetch_snapshot)

        self.session_id = session_id or generate_id(SESSION_PREFIX)
        self.tenant = tenant
        self.perform_action = perform_action
        self.probes = list(probes)
        self.analyzer = analyzer or DiagnosticAnalyzer(performer=perform_action)
        self.present_findings = present_findings
        self.request_high_risk_acknowledgment = request_high_risk_acknowledgment
        self.listeners: list[TransitionListener] = list(listeners)

        self.status = SessionStatus.IDLE
        self.findings: list[Finding] = []
        self.fix_attempted = False
        self.failure_context: FailureContext | None = None
        self.failure_class: FailureClass | None = None
        self.attempted_classes: set[FailureClass] = set()
        self.last_outcome: ActionOutcome | None = None
        self.generation = 0
        self._applying: int | None = None

    def subscribe(self, listener: TransitionListener) -> None:
        self.listeners.append(listener)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, action_id: str, parameters: dict[str, Any] | None = None) -> ActionOutcome:
        """Perform the original action; on failure, start diagnosing it."""
        self._require(SessionStatus.IDLE, "run an action")
        parameters = dict(parameters or {})
        generation = self.generation
        try:
            outcome = await self.perform_action(action_id, parameters, self.tenant)
        except Exception as exc:
            if self._is_current(generation):
                await self._fail(exc, action_id)
            return ActionOutcome.failed(f"{type(exc).__name__}: {exc}")

        if not self._is_current(generation):
            return outcome
        self.last_outcome = outcome
        if outcome.success:
            return outcome

        await self.begin(
            FailureContext(
                action_id=action_id,
                parameters=parameters,
                error_payload=outcome.error_payload,
                tenant=self.tenant,
            )
        )
        return outcome

    async def begin(self, failure: FailureContext) -> list[Finding]:
        """Diagnose a failure the caller already observed."""
        self._require(SessionStatus.IDLE, "begin diagnosis")
        self.failure_context = failure
        self.failure_class = self.analyzer.classify(failure)
        await self._transition(SessionStatus.DIAGNOSING, action_id=failure.action_id)
        return await self._diagnose(failure)

    # ------------------------------------------------------------------
    # Operator steps
    # ------------------------------------------------------------------

    def resolve(self, finding: Finding | int) -> Finding:
        if isinstance(finding, int):
            if not 0 <= finding < len(self.findings):
                raise ValidationError(
                    f"Finding index {finding} is out of range",
                    details={"findings": len(self.findings)},
                )
            return self.findings[finding]
        return finding

    def acknowledge_high_risk(self, finding: Finding | int) -> None:
        """Record the operator's explicit acknowledgment of a high-risk fix."""
        target = self.resolve(finding)
        if target.remediation is not None:
            target.remediation.acknowledge()

    async def apply(self, finding: Finding | int, acknowledge: bool = False) -> ActionOutcome:
        """Apply a finding's remediation and retry the original action once.

        Returns the outcome of the retry, or of the fix when the fix itself
        failed. A session dismissed while the acknowledgment prompt is open
        performs nothing and returns a failed outcome.
        """
        generation = self.generation
        self._require(SessionStatus.READY, "apply a remediation")
        if self.fix_attempted:
            raise RemediationLimitError()
        if self._applying == generation:
            raise InvalidTransitionError(self.status.value, "apply a second remediation")

        target = self.resolve(finding)
        action = target.remediation
        if action is None:
            raise ValidationError(
                "This finding has no automatic remediation",
                details={"title": target.title, "settings_page": target.settings_page},
            )

        self._applying = generation
        try:
            if acknowledge:
                action.acknowledge()
            if action.requires_acknowledgement and not action.acknowledged:
                approved = False
                if self.request_high_risk_acknowledgment is not None:
                    approved = await maybe_await(self.request_high_risk_acknowledgment(action)) is True
                if not self._is_current(generation) or self.status != SessionStatus.READY:
                    logger.info("Session %s was dismissed during acknowledgment", self.session_id)
                    return ActionOutcome.failed("The session was dismissed before the remediation ran")
                if approved:
                    action.acknowledge()
                if not action.acknowledged:
                    logger.info("High-risk remediation %s not acknowledged", action.kind.value)
                    raise AcknowledgementRequiredError(action.kind.value, action.risk_warning)

            await self._transition(
                SessionStatus.FIXING, kind=action.kind.value, risk_level=action.risk_level.value
            )
            fix_outcome = await action.execute()
            if not self._is_current(generation):
                return fix_outcome

            self.fix_attempted = True
            if self.failure_class is not None:
                self.attempted_classes.add(self.failure_class)

            if not fix_outcome.success:
                self.findings = [self._fix_failed_finding(action, fix_outcome)] + [
                    self._manual_only(f) for f in self.findings if f is not target
                ]
                await self._enter_ready()
                return fix_outcome

            return await self._retry(action)
        finally:
            if self._applying == generation:
                self._applying = None

    async def reset(self) -> None:
        """Dismiss the session; in-flight results for it are discarded."""
        self.generation += 1
        self.findings = []
        self.fix_attempted = False
        self.failure_context = None
        self.failure_class = None
        self.attempted_classes = set()
        self.last_outcome = None
        if self.status != SessionStatus.IDLE:
            await self._transition(SessionStatus.IDLE)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _diagnose(self, failure: FailureContext) -> list[Finding]:
        generation = self.generation
        try:
            findings = await self.analyzer.diagnose(failure, self.probes, self.attempted_classes)
        except Exception as exc:
            if self._is_current(generation):
                await self._fail(exc, failure.action_id)
            return list(self.findings)

        if not self._is_current(generation):
            logger.info("Discarding stale diagnosis for session %s", self.session_id)
            return []
        if self.fix_attempted:
            findings = [self._manual_only(f) for f in findings]
        self.findings = findings
        await self._enter_ready()
        return findings

    async def _retry(self, action: RemediationAction) -> ActionOutcome:
        failure = self.failure_context
        parameters = failure.with_overrides(action.retry_overrides)
        generation = self.generation
        await self._transition(SessionStatus.RETRYING, action_id=failure.action_id)

        try:
            outcome = await self.perform_action(failure.action_id, parameters, self.tenant)
        except Exception as exc:
            if self._is_current(generation):
                await self._fail(exc, failure.action_id)
            return ActionOutcome.failed(f"{type(exc).__name__}: {exc}")

        if not self._is_current(generation):
            return outcome
        self.last_outcome = outcome

        if outcome.success:
            self.findings = []
            await self._transition(SessionStatus.SUCCEEDED, action_id=failure.action_id)
            return outcome

        retry_failure = FailureContext(
            action_id=failure.action_id,
            parameters=parameters,
            error_payload=outcome.error_payload,
            tenant=self.tenant,
        )
        self.failure_context = retry_failure
        self.failure_class = self.analyzer.classify(retry_failure)
        logger.info("Retry of %s still failed after remediation", failure.action_id)
        await self._diagnose(retry_failure)
        return outcome

    def _manual_only(self, finding: Finding) -> Finding:
        if finding.remediation is None:
            return finding
        probe_surface = None
        if finding.failure_class is not None:
            probe_surface = self.analyzer.admin_surface(finding.failure_class)
        return finding.without_remediation(probe_surface)

    @staticmethod
    def _fix_failed_finding(action: RemediationAction, outcome: ActionOutcome) -> Finding:
        return Finding(
            severity=Severity.ERROR,
            title="Remediation failed",
            description=f"'{action.title}' could not be applied: {_error_text(outcome.error_payload)}",
            recommendation="Apply the change manually in the administration portal, then retry.",
            evidence={"fix_action_id": action.fix_action_id, "error": outcome.error_payload},
            manual_action_required=True,
        )

    async def _fail(self, exc: Exception, action_id: str) -> None:
        logger.error("Session %s boundary call for %s raised: %s", self.session_id, action_id, exc)
        self.findings = [
            Finding(
                severity=Severity.ERROR,
                title="Action could not be completed",
                description=f"The call to {action_id} raised an unexpected error: {type(exc).__name__}: {exc}",
                evidence={"action_id": action_id, "error": str(exc)},
                manual_action_required=True,
            )
        ]
        await self._transition(SessionStatus.FAILED, action_id=action_id)

    async def _enter_ready(self) -> None:
        await self._transition(SessionStatus.READY, findings=len(self.findings))
        if self.present_findings is not None:
            await maybe_await(self.present_findings(list(self.findings)))

    async def _transition(self, status: SessionStatus, **payload: Any) -> None:
        previous, self.status = self.status, status
        transition = SessionTransition(
            session_id=self.session_id,
            previous=previous,
            current=status,
            generation=self.generation,
            payload=payload,
        )
        await emit_transition(transition, self.listeners)

    def _require(self, status: SessionStatus, requested: str) -> None:
        if self.status != status:
            raise InvalidTransitionError(self.status.value, requested)

    def _is_current(self, generation: int) -> bool:
        return generation == self.generation

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "status": self.status.value,
            "tenant": self.tenant.tenant_filter,
            "action_id": self.failure_context.action_id if self.failure_context else None,
            "failure_class": self.failure_class.value if self.failure_class else None,
            "fix_attempted": self.fix_attempted,
            "generation": self.generation,
            "findings": [f.to_dict() for f in self.findings],
        }


def _error_text(payload: Any) -> str:
    if isinstance(payload, dict):
        for key in ("message", "Message", "error", "Results"):
            if isinstance(payload.get(key), str):
                return payload[key]
    return str(payload)
