"""Read-only configuration snapshots fetched from the directory API."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class ConfigurationSnapshot(Mapping[str, Any]):
    """Immutable mapping of setting name to value for one configuration area.

    Nested mappings are exposed as read-only proxies and lists as tuples, so
    no rule predicate or heuristic can mutate what another one reads.
    """

    __slots__ = ("_data", "probe_id", "fetched_at")

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        probe_id: str | None = None,
        fetched_at: datetime | None = None,
    ):
        self._data = _freeze(dict(data or {}))
        self.probe_id = probe_id
        self.fetched_at = fetched_at or datetime.now(timezone.utc)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ConfigurationSnapshot(probe_id={self.probe_id!r}, keys={sorted(self._data)!r})"

    def dig(self, *path: str, default: Any = None) -> Any:
        """Walk nested mappings, returning *default* when any hop is missing."""
        current: Any = self._data
        for key in path:
            if not isinstance(current, Mapping) or key not in current:
                return default
            current = current[key]
        return current

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable deep copy suitable for JSON serialization."""
        return _thaw(self._data)

    def fingerprint(self) -> str:
        """SHA-256 over the canonical JSON form of the snapshot contents."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
