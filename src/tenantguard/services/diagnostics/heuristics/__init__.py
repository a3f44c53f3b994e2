"""Root-cause heuristics, grouped by failure class."""

from tenantguard.services.diagnostics.heuristics.base import Heuristic, HeuristicContext
from tenantguard.services.diagnostics.heuristics.domains import DOMAIN_HEURISTICS
from tenantguard.services.diagnostics.heuristics.voice import VOICE_HEURISTICS

DEFAULT_HEURISTICS: list[Heuristic] = [*DOMAIN_HEURISTICS, *VOICE_HEURISTICS]

__all__ = [
    "DEFAULT_HEURISTICS",
    "DOMAIN_HEURISTICS",
    "VOICE_HEURISTICS",
    "Heuristic",
    "HeuristicContext",
]
