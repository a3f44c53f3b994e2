"""Prefixed identifiers for sessions and transition events."""

import uuid

SESSION_PREFIX = "rsess_"
EVENT_PREFIX = "sevt_"


def generate_id(prefix: str) -> str:
    """Return *prefix* followed by 16 hex characters, e.g. ``rsess_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{uuid.uuid4().hex[:16]}"
