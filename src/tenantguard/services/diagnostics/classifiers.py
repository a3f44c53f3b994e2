"""Decide whether a failed action belongs to a diagnosable failure class.

Matchers look at the flattened error text and at any structured error codes in
the payload. The first matcher that fires wins, so more specific classes are
listed first.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Pattern

from tenantguard.models.enums import FailureClass

_CODE_KEYS = ("code", "Code", "errorCode", "ErrorCode")


@dataclass
class FailureMatcher:
    """Text/structure test for one failure class."""

    failure_class: FailureClass
    patterns: list[str]
    codes: frozenset[str] = frozenset()
    description: str = ""

    _compiled: list[Pattern] | None = field(default=None, repr=False)

    @property
    def compiled_patterns(self) -> list[Pattern]:
        if self._compiled is None:
            self._compiled = [re.compile(p, re.IGNORECASE) for p in self.patterns]
        return self._compiled

    def matches(self, text: str, codes: set[str]) -> bool:
        if self.codes and codes & self.codes:
            return True
        return any(p.search(text) for p in self.compiled_patterns)


FAILURE_MATCHERS: list[FailureMatcher] = [
    FailureMatcher(
        failure_class=FailureClass.DOMAIN_COLLABORATION_RESTRICTION,
        patterns=[
            r"does not allow collaboration",
            r"InvitationsAllowedAndBlockedDomainsPolicy",
            r"domain\b.{0,80}\b(is\s+)?(not\s+allowed|blocked|not\s+permitted)",
            r"guest\s+invitations?\s+(are|is)\s+(not\s+allowed|disabled|blocked)",
            r"sharing\s+(with|to)\b.{0,80}\b(is\s+)?(not\s+allowed|blocked|restricted)",
        ],
        codes=frozenset({"DomainNotAllowed", "InvitationDomainBlocked"}),
        description="The invited or shared-with domain is restricted by collaboration policy",
    ),
    FailureMatcher(
        failure_class=FailureClass.WRONG_RESOURCE_TYPE,
        patterns=[
            r"(phone\s*)?number\s*type\b.{0,80}\b(does\s+not\s+match|mismatch|is\s+not\s+valid|invalid)",
            r"\b(invalid|incorrect|wrong)\s+(phone\s*)?number\s*type",
            r"PhoneNumberType\b.{0,80}\b(invalid|does\s+not\s+match|not\s+supported)",
        ],
        codes=frozenset({"PhoneNumberTypeMismatch"}),
        description="The resource-type argument does not match the resource",
    ),
    FailureMatcher(
        failure_class=FailureClass.RESOURCE_ALREADY_ASSIGNED,
        patterns=[
            r"already\s+(been\s+)?assigned",
            r"is\s+assigned\s+to\s+(another|a\s+different)\s+(user|identity|resource\s+account)",
            r"already\s+in\s+use",
        ],
        codes=frozenset({"PhoneNumberAlreadyAssigned", "ResourceAlreadyAssigned"}),
        description="The resource is already assigned to another identity",
    ),
]


def flatten_error(payload: Any) -> str:
    """Collect every string in an error payload into one searchable text."""
    parts: list[str] = []

    def _walk(value: Any) -> None:
        if value is None:
            return
        if isinstance(value, str):
            parts.append(value)
        elif isinstance(value, Mapping):
            for v in value.values():
                _walk(v)
        elif isinstance(value, (list, tuple, set)):
            for v in value:
                _walk(v)
        else:
            parts.append(str(value))

    _walk(payload)
    return "\n".join(parts)


def error_codes(payload: Any) -> set[str]:
    """Values of ``code``-like keys anywhere in a structured payload."""
    codes: set[str] = set()

    def _walk(value: Any) -> None:
        if isinstance(value, Mapping):
            for key, v in value.items():
                if key in _CODE_KEYS and isinstance(v, str):
                    codes.add(v)
                _walk(v)
        elif isinstance(value, (list, tuple)):
            for v in value:
                _walk(v)

    _walk(payload)
    return codes


def classify(payload: Any, matchers: Sequence[FailureMatcher] = FAILURE_MATCHERS) -> FailureClass | None:
    """Return the failure class of *payload*, or None when it is not diagnosable."""
    text = flatten_error(payload)
    codes = error_codes(payload)
    if not text and not codes:
        return None
    for matcher in matchers:
        if matcher.matches(text, codes):
            return matcher.failure_class
    return None
