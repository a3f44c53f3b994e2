"""Evaluate static predicate rules against a configuration snapshot.

Rules are plain data: an ordered list of ``Rule`` records per configuration
area. Evaluation is a pure function of ``(rules, snapshot)``; a rule whose
predicate raises is reported as a broken rule instead of aborting the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from tenantguard.models.enums import Severity
from tenantguard.models.finding import Finding, sort_findings
from tenantguard.models.snapshot import ConfigurationSnapshot

logger = logging.getLogger(__name__)

Predicate = Callable[[ConfigurationSnapshot], bool]


@dataclass(frozen=True)
class Rule:
    """A single configuration risk rule."""

    id: str
    predicate: Predicate
    severity: Severity
    title: str
    description: str
    recommendation: str | None = None
    source: str | None = None

    def to_finding(self) -> Finding:
        return Finding(
            severity=self.severity,
            title=self.title,
            description=self.description,
            recommendation=self.recommendation,
            source=self.source,
            rule_id=self.id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Rule metadata without the predicate."""
        return {
            "id": self.id,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "recommendation": self.recommendation,
            "source": self.source,
        }


def broken_rule_finding(rule_id: str, source: str | None, exc: Exception) -> Finding:
    """Self-diagnostic finding for a rule or heuristic that raised."""
    return Finding(
        severity=Severity.ERROR,
        title=f"Rule '{rule_id}' could not be evaluated",
        description=(
            "This check raised an error while inspecting the configuration, so its "
            "result is unknown. Other checks were still evaluated."
        ),
        recommendation="Review the setting manually until the check is fixed.",
        source=source,
        evidence={"rule_id": rule_id, "error": f"{type(exc).__name__}: {exc}"},
        rule_id=rule_id,
    )


def as_snapshot(snapshot: ConfigurationSnapshot | Mapping[str, Any]) -> ConfigurationSnapshot:
    if isinstance(snapshot, ConfigurationSnapshot):
        return snapshot
    return ConfigurationSnapshot(snapshot)


def evaluate(
    rules: Sequence[Rule],
    snapshot: ConfigurationSnapshot | Mapping[str, Any],
) -> list[Finding]:
    """Return one Finding per matching rule, most severe first.

    Ties keep catalog order. A predicate exception marks that rule as
    non-matching and adds an error-severity finding naming the rule.
    """
    snap = as_snapshot(snapshot)
    findings: list[Finding] = []
    for rule in rules:
        try:
            matched = bool(rule.predicate(snap))
        except Exception as exc:
            logger.warning("Rule %s raised during evaluation: %s", rule.id, exc)
            findings.append(broken_rule_finding(rule.id, rule.source, exc))
            continue
        if matched:
            findings.append(rule.to_finding())
    return sort_findings(findings)
