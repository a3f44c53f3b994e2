"""Static rule catalogs, one per configuration area."""

from tenantguard.models.enums import ProbeId
from tenantguard.rules.catalogs.baseline import BASELINE_RULES
from tenantguard.rules.catalogs.collaboration import COLLABORATION_RULES
from tenantguard.rules.catalogs.federation import FEDERATION_RULES
from tenantguard.rules.catalogs.partner import PARTNER_RULES, evaluate_partners
from tenantguard.rules.catalogs.sharing import SHARING_RULES

DEFAULT_CATALOGS = {
    "sharing": SHARING_RULES,
    "collaboration": COLLABORATION_RULES,
    "federation": FEDERATION_RULES,
    "partner": PARTNER_RULES,
    "baseline": BASELINE_RULES,
}

# Probe that fetches the live configuration each catalog reviews. The
# baseline catalog reviews templates, which have no live counterpart.
CATALOG_PROBES = {
    "sharing": ProbeId.SHARING_POLICY,
    "collaboration": ProbeId.COLLABORATION_POLICY,
    "federation": ProbeId.FEDERATION_POLICY,
    "partner": ProbeId.PARTNER_POLICY,
}

__all__ = [
    "BASELINE_RULES",
    "CATALOG_PROBES",
    "COLLABORATION_RULES",
    "DEFAULT_CATALOGS",
    "FEDERATION_RULES",
    "PARTNER_RULES",
    "SHARING_RULES",
    "evaluate_partners",
]
