"""Configuration areas a diagnosis can inspect, and where each is managed."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from tenantguard.models.action import TenantContext
from tenantguard.models.enums import FailureClass, ProbeId
from tenantguard.models.snapshot import ConfigurationSnapshot

SnapshotFetcher = Callable[[TenantContext], Awaitable[ConfigurationSnapshot | Mapping[str, Any]]]
ProbeBoundary = Callable[[ProbeId, TenantContext], Awaitable[ConfigurationSnapshot]]

PROBE_LABELS: dict[ProbeId, str] = {
    ProbeId.COLLABORATION_POLICY: "External Collaboration Settings",
    ProbeId.SHARING_POLICY: "SharePoint Sharing Settings",
    ProbeId.FEDERATION_POLICY: "Teams External Access Settings",
    ProbeId.PARTNER_POLICY: "Cross-Tenant Partner Policies",
    ProbeId.PHONE_NUMBERS: "Teams Phone Number Inventory",
}

# Console pages where an operator can fix the setting by hand
SETTINGS_PAGES: dict[ProbeId, str] = {
    ProbeId.COLLABORATION_POLICY: "/tenant/administration/cross-tenant-access/external-collaboration",
    ProbeId.SHARING_POLICY: "/teams-share/sharepoint/sharing-settings",
    ProbeId.FEDERATION_POLICY: "/teams-share/teams/teams-settings",
    ProbeId.PARTNER_POLICY: "/tenant/administration/cross-tenant-access/partners",
    ProbeId.PHONE_NUMBERS: "/teams-share/teams/business-voice",
}

# Probes that can explain each failure class, in presentation order
CLASS_PROBES: dict[FailureClass, tuple[ProbeId, ...]] = {
    FailureClass.DOMAIN_COLLABORATION_RESTRICTION: (
        ProbeId.COLLABORATION_POLICY,
        ProbeId.SHARING_POLICY,
    ),
    FailureClass.RESOURCE_ALREADY_ASSIGNED: (ProbeId.PHONE_NUMBERS,),
    FailureClass.WRONG_RESOURCE_TYPE: (ProbeId.PHONE_NUMBERS,),
}


@dataclass
class DiagnosticSource:
    """One probe: how to fetch a configuration area and where it lives."""

    probe_id: ProbeId
    fetch: SnapshotFetcher
    label: str = ""
    settings_page: str | None = None

    def __post_init__(self) -> None:
        if not self.label:
            self.label = PROBE_LABELS.get(self.probe_id, str(self.probe_id))
        if self.settings_page is None:
            self.settings_page = SETTINGS_PAGES.get(self.probe_id)

    def page_for(self, tenant: TenantContext) -> str | None:
        return tenant_settings_page(self.settings_page, tenant)


def tenant_settings_page(page: str | None, tenant: TenantContext) -> str | None:
    """Scope a console page to *tenant*; external URLs are returned unchanged."""
    if not page or not page.startswith("/"):
        return page
    separator = "&" if "?" in page else "?"
    return f"{page}{separator}{urlencode({'tenantFilter': tenant.tenant_filter})}"


def sources_from_boundary(
    fetch_snapshot: ProbeBoundary,
    probe_ids: Iterable[ProbeId],
) -> list[DiagnosticSource]:
    """Wrap the ``fetch_snapshot(probe_id, tenant)`` boundary as diagnostic sources."""

    def _bind(probe_id: ProbeId) -> SnapshotFetcher:
        async def _fetch(tenant: TenantContext) -> ConfigurationSnapshot:
            return await fetch_snapshot(probe_id, tenant)

        return _fetch

    return [DiagnosticSource(probe_id=p, fetch=_bind(p)) for p in probe_ids]


def sources_for_class(fetch_snapshot: ProbeBoundary, failure_class: FailureClass) -> list[DiagnosticSource]:
    return sources_from_boundary(fetch_snapshot, CLASS_PROBES.get(failure_class, ()))


def all_diagnostic_sources(fetch_snapshot: ProbeBoundary) -> list[DiagnosticSource]:
    """One source per probe used by any failure class."""
    seen: list[ProbeId] = []
    for probe_ids in CLASS_PROBES.values():
        for probe_id in probe_ids:
            if probe_id not in seen:
                seen.append(probe_id)
    return sources_from_boundary(fetch_snapshot, seen)
