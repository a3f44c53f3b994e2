"""Risk gate — intercepts a save intent and demands confirmation for risky settings.

Usage::

    gate = RiskGate(SHARING_RULES, catalog="sharing")
    result = await gate.gate_save(snapshot, save, request_confirmation=ask_operator)

The HTTP surface cannot hold a request open while the operator decides, so the
gate also exposes a two-phase form: ``check()`` returns the findings and a
confirmation token bound to the exact snapshot, and ``commit()`` saves only if
nothing needs confirming or the caller echoes that token back.
"""

from __future__ import annotations

import hashlib
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tenantguard.errors.exceptions import ConfirmationRequiredError
from tenantguard.models.enums import GateDecision
from tenantguard.models.finding import Finding, SeverityCounts, actionable
from tenantguard.models.snapshot import ConfigurationSnapshot
from tenantguard.rules.engine import Rule, as_snapshot, evaluate

logger = logging.getLogger(__name__)

SaveCallback = Callable[[], Any]
ConfirmCallback = Callable[["RiskSummary"], Awaitable[bool]]
PresentCallback = Callable[[list[Finding]], Any]


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


@dataclass
class RiskSummary:
    """Findings grouped for the confirmation prompt, errors first."""

    findings: list[Finding]
    counts: SeverityCounts

    @classmethod
    def of(cls, findings: Sequence[Finding]) -> RiskSummary:
        return cls(findings=list(findings), counts=SeverityCounts.of(findings))

    @property
    def headline(self) -> str:
        parts = []
        if self.counts.error:
            parts.append(_plural(self.counts.error, "high-risk setting"))
        if self.counts.warning:
            parts.append(_plural(self.counts.warning, "moderate-risk setting"))
        if not parts:
            return "The current configuration includes settings that may need review."
        return f"The current configuration includes {' and '.join(parts)}."

    @property
    def has_high_risk(self) -> bool:
        return self.counts.error > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "headline": self.headline,
            "counts": self.counts.to_dict(),
            "has_high_risk": self.has_high_risk,
            "findings": [f.to_dict() for f in self.findings],
        }


@dataclass
class GateCheck:
    """Outcome of evaluating a snapshot before a save."""

    findings: list[Finding]
    summary: RiskSummary
    confirmation_token: str

    @property
    def requires_confirmation(self) -> bool:
        return self.summary.counts.actionable > 0


@dataclass
class GateResult:
    decision: GateDecision
    findings: list[Finding] = field(default_factory=list)
    summary: RiskSummary | None = None
    save_result: Any = None

    @property
    def saved(self) -> bool:
        return self.decision == GateDecision.SAVED


class RiskGate:
    """Runs a rule catalog before a configuration write."""

    def __init__(self, rules: Sequence[Rule], catalog: str | None = None):
        self.rules = tuple(rules)
        self.catalog = catalog

    def check(self, snapshot: ConfigurationSnapshot | Mapping[str, Any]) -> GateCheck:
        snap = as_snapshot(snapshot)
        findings = evaluate(self.rules, snap)
        summary = RiskSummary.of(actionable(findings))
        return GateCheck(
            findings=findings,
            summary=summary,
            confirmation_token=self._token(snap),
        )

    def _token(self, snapshot: ConfigurationSnapshot) -> str:
        material = f"{self.catalog or ''}:{snapshot.fingerprint()}"
        return hashlib.sha256(material.encode("utf-8")).hexdigest()

    async def commit(
        self,
        check: GateCheck,
        save: SaveCallback,
        confirmation_token: str | None = None,
    ) -> GateResult:
        """Save if nothing needs confirming or the token matches this exact snapshot."""
        if check.requires_confirmation and confirmation_token != check.confirmation_token:
            raise ConfirmationRequiredError(
                check.summary.headline,
                details={
                    "confirmation_token": check.confirmation_token,
                    "summary": check.summary.to_dict(),
                },
            )
        save_result = await maybe_await(save())
        return GateResult(
            decision=GateDecision.SAVED,
            findings=check.findings,
            summary=check.summary,
            save_result=save_result,
        )

    async def gate_save(
        self,
        snapshot: ConfigurationSnapshot | Mapping[str, Any],
        save: SaveCallback,
        request_confirmation: ConfirmCallback | None = None,
        present_findings: PresentCallback | None = None,
    ) -> GateResult:
        """Call *save* unless actionable findings exist and the operator declines.

        ``save`` runs at most once per call. Without a confirmation callback the
        gate cannot ask, so a risky save is reported as still needing
        confirmation and nothing is written.
        """
        check = self.check(snapshot)
        if check.findings and present_findings is not None:
            await maybe_await(present_findings(check.findings))

        if not check.requires_confirmation:
            save_result = await maybe_await(save())
            return GateResult(GateDecision.SAVED, check.findings, check.summary, save_result)

        logger.info(
            "Save gated by %d actionable finding(s) (catalog=%s)",
            check.summary.counts.actionable,
            self.catalog,
        )
        if request_confirmation is None:
            return GateResult(GateDecision.CONFIRMATION_REQUIRED, check.findings, check.summary)

        try:
            confirmed = await maybe_await(request_confirmation(check.summary))
        except Exception:
            logger.exception("Confirmation prompt failed; treating as cancelled")
            confirmed = False

        if confirmed is not True:
            return GateResult(GateDecision.CANCELLED, check.findings, check.summary)

        save_result = await maybe_await(save())
        return GateResult(GateDecision.SAVED, check.findings, check.summary, save_result)


async def gate_save(
    rules: Sequence[Rule],
    snapshot: ConfigurationSnapshot | Mapping[str, Any],
    save: SaveCallback,
    request_confirmation: ConfirmCallback | None = None,
    present_findings: PresentCallback | None = None,
) -> GateResult:
    """Functional form of ``RiskGate.gate_save``."""
    return await RiskGate(rules).gate_save(snapshot, save, request_confirmation, present_findings)
