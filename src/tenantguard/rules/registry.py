"""Registry of named rule catalogs."""

from collections.abc import Sequence
from typing import Any

from tenantguard.errors.exceptions import NotFoundError, ValidationError
from tenantguard.rules.engine import Rule


class CatalogRegistry:
    """Registry of available rule catalogs."""

    def __init__(self) -> None:
        self._catalogs: dict[str, tuple[Rule, ...]] = {}

    def register(self, name: str, rules: Sequence[Rule]) -> None:
        """Register a catalog. Rule ids must be unique within it."""
        seen: set[str] = set()
        for rule in rules:
            if rule.id in seen:
                raise ValidationError(
                    f"Duplicate rule id '{rule.id}' in catalog '{name}'",
                    details={"catalog": name, "rule_id": rule.id},
                )
            seen.add(rule.id)
        self._catalogs[name] = tuple(rules)

    def get(self, name: str) -> tuple[Rule, ...]:
        """Get a catalog's rules in evaluation order."""
        if name not in self._catalogs:
            raise NotFoundError("Rule catalog", name)
        return self._catalogs[name]

    def names(self) -> list[str]:
        return list(self._catalogs)

    def describe(self, name: str) -> dict[str, Any]:
        """Catalog metadata suitable for the API (no predicates)."""
        rules = self.get(name)
        return {
            "name": name,
            "rule_count": len(rules),
            "rules": [r.to_dict() for r in rules],
        }


def get_default_registry() -> CatalogRegistry:
    """Registry holding every built-in catalog."""
    from tenantguard.rules.catalogs import DEFAULT_CATALOGS

    registry = CatalogRegistry()
    for name, rules in DEFAULT_CATALOGS.items():
        registry.register(name, rules)
    return registry
