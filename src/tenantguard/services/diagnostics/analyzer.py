"""Diagnostic analyzer — explains why an operator action failed.

Given a failed action, the analyzer classifies the error, fetches the related
configuration areas through the supplied probes, and runs the heuristics for
that failure class against each snapshot. Findings with a knowable fix carry
a ``RemediationAction``; the rest point at the settings page.

Diagnosis never raises for remote problems: a probe that cannot be fetched
becomes a warning finding and the remaining probes are still evaluated.
Diagnostics the backend returned with the error itself are merged in as
manual-action findings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from tenantguard.config import settings
from tenantguard.models.action import FailureContext
from tenantguard.models.enums import FailureClass, ProbeId, Severity
from tenantguard.models.finding import Finding
from tenantguard.models.snapshot import ConfigurationSnapshot
from tenantguard.rules.engine import as_snapshot, broken_rule_finding
from tenantguard.services.diagnostics.classifiers import FAILURE_MATCHERS, FailureMatcher, classify
from tenantguard.services.diagnostics.heuristics import DEFAULT_HEURISTICS, Heuristic, HeuristicContext
from tenantguard.services.diagnostics.probes import CLASS_PROBES, DiagnosticSource
from tenantguard.services.diagnostics.reported import reported_findings
from tenantguard.services.remediation.actions import ActionPerformer

logger = logging.getLogger(__name__)


def default_admin_surfaces() -> dict[ProbeId, str]:
    """External administration pages, used once the console's own fix has been tried."""
    return {
        ProbeId.COLLABORATION_POLICY: settings.collaboration_admin_url,
        ProbeId.SHARING_POLICY: settings.sharing_admin_url,
        ProbeId.PHONE_NUMBERS: settings.voice_admin_url,
    }


_REPORTED_PRIORITY = 500

_CLASS_SURFACE_PROBE: dict[FailureClass, ProbeId] = {
    FailureClass.DOMAIN_COLLABORATION_RESTRICTION: ProbeId.COLLABORATION_POLICY,
    FailureClass.RESOURCE_ALREADY_ASSIGNED: ProbeId.PHONE_NUMBERS,
    FailureClass.WRONG_RESOURCE_TYPE: ProbeId.PHONE_NUMBERS,
}


@dataclass(frozen=True)
class _Ranked:
    finding: Finding
    priority: int
    probe_order: int
    probe_id: ProbeId | None
    is_root_cause: bool = True

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.finding.severity.rank, self.priority, self.probe_order)


class DiagnosticAnalyzer:
    """Classifies failures and runs class-specific root-cause heuristics."""

    def __init__(
        self,
        performer: ActionPerformer | None = None,
        heuristics: Sequence[Heuristic] | None = None,
        matchers: Sequence[FailureMatcher] | None = None,
        admin_surfaces: Mapping[ProbeId, str] | None = None,
        concurrent: bool | None = None,
    ):
        self.performer = performer
        self.heuristics = sorted(heuristics if heuristics is not None else DEFAULT_HEURISTICS, key=lambda h: h.priority)
        self.matchers = list(matchers if matchers is not None else FAILURE_MATCHERS)
        self.admin_surfaces = dict(admin_surfaces) if admin_surfaces is not None else default_admin_surfaces()
        self.concurrent = settings.concurrent_probes if concurrent is None else concurrent

    def classify(self, failure: FailureContext) -> FailureClass | None:
        return classify(failure.error_payload, self.matchers)

    def admin_surface(self, failure_class: FailureClass, probe_id: ProbeId | None = None) -> str | None:
        if probe_id is not None and probe_id in self.admin_surfaces:
            return self.admin_surfaces[probe_id]
        return self.admin_surfaces.get(_CLASS_SURFACE_PROBE.get(failure_class))

    async def diagnose(
        self,
        failure: FailureContext,
        probes: Iterable[DiagnosticSource],
        attempted_classes: Iterable[FailureClass] = (),
    ) -> list[Finding]:
        """Root-cause findings for *failure*, most severe and most specific first.

        An empty list means the failure is not of a diagnosable class and the
        caller should show the raw error. When the class is in
        *attempted_classes* no automatic remediation is offered.
        """
        failure_class = self.classify(failure)
        if failure_class is None:
            logger.info("Failure of %s is not a diagnosable class", failure.action_id)
            return []

        relevant = CLASS_PROBES.get(failure_class, ())
        sources = [s for s in probes if s.probe_id in relevant]
        logger.info(
            "Diagnosing %s failure of %s with %d probe(s)",
            failure_class.value,
            failure.action_id,
            len(sources),
        )

        results = await self._fetch_all(sources, failure)

        ranked: list[_Ranked] = []
        for order, (source, result) in enumerate(zip(sources, results)):
            if isinstance(result, BaseException):
                ranked.append(
                    _Ranked(self._probe_failure(source, result, failure), 1000, order, source.probe_id, False)
                )
                continue
            ranked.extend(self._run_heuristics(failure, failure_class, source, result, order))

        # Diagnostics the backend returned with the error rank after heuristics of equal severity
        surface_probe = _CLASS_SURFACE_PROBE.get(failure_class)
        for index, finding in enumerate(reported_findings(failure.error_payload, failure.tenant, failure_class)):
            ranked.append(_Ranked(finding, _REPORTED_PRIORITY, len(sources) + index, surface_probe))

        ranked.sort(key=lambda r: r.key)

        if failure_class in set(attempted_classes):
            return self._escalate(failure, failure_class, ranked)
        return [r.finding for r in ranked]

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    async def _fetch(self, source: DiagnosticSource, failure: FailureContext) -> ConfigurationSnapshot | Exception:
        try:
            snapshot = await source.fetch(failure.tenant)
        except Exception as exc:
            logger.warning("Probe %s failed: %s", source.probe_id.value, exc)
            return exc
        return as_snapshot(snapshot)

    async def _fetch_all(self, sources: list[DiagnosticSource], failure: FailureContext) -> list:
        if self.concurrent:
            return list(await asyncio.gather(*(self._fetch(s, failure) for s in sources)))
        return [await self._fetch(s, failure) for s in sources]

    @staticmethod
    def _probe_failure(source: DiagnosticSource, exc: BaseException, failure: FailureContext) -> Finding:
        return Finding(
            severity=Severity.WARNING,
            title=f"Could not verify {source.label}",
            description=(
                f"{source.label} could not be retrieved, so it was not checked as a cause of this failure."
            ),
            recommendation="Check this setting manually.",
            source=source.label,
            evidence={"probe_id": source.probe_id.value, "error": f"{type(exc).__name__}: {exc}"},
            settings_page=source.page_for(failure.tenant),
            manual_action_required=True,
        )

    # ------------------------------------------------------------------
    # Heuristics
    # ------------------------------------------------------------------

    def _run_heuristics(
        self,
        failure: FailureContext,
        failure_class: FailureClass,
        source: DiagnosticSource,
        snapshot: ConfigurationSnapshot,
        order: int,
    ) -> list[_Ranked]:
        ctx = HeuristicContext(
            failure=failure,
            failure_class=failure_class,
            snapshot=snapshot,
            source=source,
            performer=self.performer,
        )
        ranked: list[_Ranked] = []
        for heuristic in self.heuristics:
            if not heuristic.applies_to(failure_class, source.probe_id):
                continue
            try:
                finding = heuristic.evaluate(ctx)
            except Exception as exc:
                logger.warning("Heuristic %s raised: %s", heuristic.id, exc)
                ranked.append(
                    _Ranked(
                        broken_rule_finding(heuristic.id, source.label, exc),
                        heuristic.priority,
                        order,
                        source.probe_id,
                        False,
                    )
                )
                continue
            if finding is not None:
                ranked.append(_Ranked(finding, heuristic.priority, order, source.probe_id))
        return ranked

    # ------------------------------------------------------------------
    # Loop guard
    # ------------------------------------------------------------------

    def _escalate(
        self,
        failure: FailureContext,
        failure_class: FailureClass,
        ranked: list[_Ranked],
    ) -> list[Finding]:
        findings: list[Finding] = []
        root_causes = 0
        for item in ranked:
            if not item.is_root_cause:
                findings.append(item.finding)
                continue
            root_causes += 1
            surface = self.admin_surface(failure_class, item.probe_id)
            findings.append(
                item.finding.without_remediation(
                    surface,
                    recommendation=(
                        "An automatic fix was already attempted for this failure. "
                        "Change this setting in the administration portal."
                    ),
                )
            )

        if root_causes == 0:
            findings.insert(0, self._residual(failure, failure_class))
        logger.info(
            "Automatic fix already attempted for %s; returning %d manual finding(s)",
            failure_class.value,
            len(findings),
        )
        return findings

    def _residual(self, failure: FailureContext, failure_class: FailureClass) -> Finding:
        return Finding(
            severity=Severity.ERROR,
            title="Automatic fix did not resolve the failure",
            description=(
                "The console already applied its automatic fix and retried, but the action "
                "failed again with the same kind of error. The remaining restriction has to be "
                "changed outside this console."
            ),
            recommendation="Review the setting in the administration portal and retry the action.",
            evidence={"action_id": failure.action_id, "error": failure.error_payload},
            settings_page=self.admin_surface(failure_class),
            failure_class=failure_class,
            manual_action_required=True,
        )
