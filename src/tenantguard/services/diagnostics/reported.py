"""Diagnostics the directory backend reports alongside a failed action.

The backend sometimes runs its own policy checks before answering and returns
them with the error, in one of two shapes:

* structured, next to ``Results``::

    {"Results": [...], "BlockedDomain": "blocked.com",
     "Diagnostics": [{"issue": ..., "severity": "error", "source": ...,
                      "detail": ..., "fix": ..., "settingsPage": "/tenant/...",
                      "listType": "blockList", "currentList": [...]}]}

* as text appended to the error message::

    Failed to invite x. Error: ... Diagnostics: [Category] message
    Risk(error): consequence CIPP Settings: /tenant/...

Both become manual-action Findings; they carry no remediation because the
backend does not say how to build one.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from tenantguard.models.action import TenantContext
from tenantguard.models.enums import FailureClass, Severity
from tenantguard.models.finding import Finding
from tenantguard.services.diagnostics.probes import tenant_settings_page

logger = logging.getLogger(__name__)

_SEVERITIES = {"error": Severity.ERROR, "warning": Severity.WARNING, "info": Severity.INFO}

_SECTION = re.compile(r"Diagnostics:\s*")
_ITEM_BREAK = re.compile(r"\n\n|\r?\n(?=\[)")
_CATEGORY = re.compile(r"^\[([^\]]+)\]\s*")
_RISK = re.compile(r"\s*Risk\((error|warning|info)\):\s*(.*?)(?:\s*CIPP Settings:\s*(\S+)\s*)?$", re.DOTALL)
_SETTINGS = re.compile(r"\s*CIPP Settings:\s*(\S+)\s*$")


def _severity(value: Any) -> Severity:
    return _SEVERITIES.get(str(value or "").lower(), Severity.WARNING)


# ---------------------------------------------------------------------------
# Structured entries
# ---------------------------------------------------------------------------


def _structured_finding(
    entry: Mapping[str, Any],
    blocked_domain: str | None,
    tenant: TenantContext,
    failure_class: FailureClass | None,
) -> Finding:
    evidence: dict[str, Any] = {}
    if blocked_domain:
        evidence["domain"] = blocked_domain
    if entry.get("listType"):
        evidence["list_type"] = entry["listType"]
    if entry.get("currentList"):
        evidence["current_list"] = list(entry["currentList"])

    issue = entry.get("issue") or "Policy issue reported by the directory"
    return Finding(
        severity=_severity(entry.get("severity")),
        title=str(issue),
        description=str(entry.get("detail") or issue),
        recommendation=entry.get("fix"),
        source=entry.get("source"),
        evidence=evidence or None,
        settings_page=tenant_settings_page(entry.get("settingsPage"), tenant),
        failure_class=failure_class,
        manual_action_required=True,
    )


# ---------------------------------------------------------------------------
# Text sections
# ---------------------------------------------------------------------------


def parse_diagnostics_text(text: str) -> list[dict[str, Any]]:
    """Split a ``Diagnostics:`` section into category/message/risk/settings items."""
    parts = _SECTION.split(text, maxsplit=1)
    if len(parts) < 2:
        return []

    items = []
    for raw in _ITEM_BREAK.split(parts[1]):
        raw = raw.strip()
        if not raw:
            continue
        category_match = _CATEGORY.match(raw)
        category = category_match.group(1) if category_match else None
        rest = raw[category_match.end():] if category_match else raw

        risk_match = _RISK.search(rest)
        if risk_match:
            items.append(
                {
                    "category": category,
                    "message": rest[: risk_match.start()].strip(),
                    "risk": risk_match.group(1),
                    "risk_text": risk_match.group(2).strip(),
                    "settings_path": risk_match.group(3),
                }
            )
            continue

        settings_match = _SETTINGS.search(rest)
        items.append(
            {
                "category": category,
                "message": (rest[: settings_match.start()] if settings_match else rest).strip(),
                "risk": None,
                "risk_text": None,
                "settings_path": settings_match.group(1) if settings_match else None,
            }
        )
    return items


def _text_finding(item: dict[str, Any], tenant: TenantContext, failure_class: FailureClass | None) -> Finding:
    message = item["message"] or item["risk_text"] or "Policy issue reported by the directory"
    return Finding(
        severity=_severity(item["risk"]),
        title=message,
        description=item["risk_text"] or message,
        source=item["category"],
        settings_page=tenant_settings_page(item["settings_path"], tenant),
        failure_class=failure_class,
        manual_action_required=True,
    )


def _texts(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, Mapping):
        return [t for k, v in value.items() if k != "Diagnostics" for t in _texts(v)]
    if isinstance(value, (list, tuple)):
        return [t for v in value for t in _texts(v)]
    return []


def reported_findings(
    payload: Any,
    tenant: TenantContext,
    failure_class: FailureClass | None = None,
) -> list[Finding]:
    """Findings for every diagnostic the backend attached to *payload*, in reported order."""
    findings: list[Finding] = []

    if isinstance(payload, Mapping) and isinstance(payload.get("Diagnostics"), list):
        blocked_domain = payload.get("BlockedDomain")
        for entry in payload["Diagnostics"]:
            if isinstance(entry, Mapping):
                findings.append(_structured_finding(entry, blocked_domain, tenant, failure_class))

    for text in _texts(payload):
        for item in parse_diagnostics_text(text):
            findings.append(_text_finding(item, tenant, failure_class))

    unique: list[Finding] = []
    seen: set[tuple[str, str | None]] = set()
    for finding in findings:
        key = (finding.title, finding.settings_page)
        if key not in seen:
            seen.add(key)
            unique.append(finding)

    if unique:
        logger.info("Directory reported %d diagnostic(s) with the failure", len(unique))
    return unique
