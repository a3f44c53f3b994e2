"""Root-cause heuristic interface.

A heuristic is the diagnostic counterpart of a ``Rule``: a pure function of
one snapshot (plus the failed action's inputs) that either explains the
failure with a Finding or returns None.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from tenantguard.models.action import FailureContext, TenantContext
from tenantguard.models.enums import FailureClass, ProbeId
from tenantguard.models.finding import Finding
from tenantguard.models.snapshot import ConfigurationSnapshot
from tenantguard.services.diagnostics.probes import DiagnosticSource
from tenantguard.services.remediation.actions import ActionPerformer


@dataclass(frozen=True)
class HeuristicContext:
    failure: FailureContext
    failure_class: FailureClass
    snapshot: ConfigurationSnapshot
    source: DiagnosticSource
    performer: ActionPerformer | None = None

    @property
    def tenant(self) -> TenantContext:
        return self.failure.tenant


HeuristicFn = Callable[[HeuristicContext], Finding | None]


@dataclass(frozen=True)
class Heuristic:
    """One root-cause test. Lower ``priority`` means more specific."""

    id: str
    failure_class: FailureClass
    probe_id: ProbeId
    priority: int
    evaluate: HeuristicFn

    def applies_to(self, failure_class: FailureClass, probe_id: ProbeId) -> bool:
        return self.failure_class == failure_class and self.probe_id == probe_id


def normalize_domain(value: str) -> str:
    return value.strip().lower().lstrip("@")


def domain_matches(domain: str, entries: Iterable[str]) -> list[str]:
    """Entries that cover *domain*, exactly or through a ``*.`` wildcard."""
    domain = normalize_domain(domain)
    hits = []
    for entry in entries:
        candidate = normalize_domain(str(entry))
        if candidate == domain:
            hits.append(entry)
        elif candidate.startswith("*.") and domain.endswith(candidate[1:]):
            hits.append(entry)
    return hits
