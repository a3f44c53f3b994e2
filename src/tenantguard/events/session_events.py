"""Remediation session transition events.

Every status change of a ``RemediationSession`` is logged and handed to the
session's listeners, so an interface layer (or a headless test) can follow the
workflow without polling.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from tenantguard.models.enums import SessionStatus
from tenantguard.services.id_generator import EVENT_PREFIX, generate_id

logger = logging.getLogger(__name__)

# Event type constants
SESSION_DIAGNOSING = "session.diagnosing"
SESSION_READY = "session.ready"
SESSION_FIXING = "session.fixing"
SESSION_RETRYING = "session.retrying"
SESSION_SUCCEEDED = "session.succeeded"
SESSION_FAILED = "session.failed"
SESSION_RESET = "session.reset"

# Status entered -> event type
STATUS_EVENTS = {
    SessionStatus.DIAGNOSING: SESSION_DIAGNOSING,
    SessionStatus.READY: SESSION_READY,
    SessionStatus.FIXING: SESSION_FIXING,
    SessionStatus.RETRYING: SESSION_RETRYING,
    SessionStatus.SUCCEEDED: SESSION_SUCCEEDED,
    SessionStatus.FAILED: SESSION_FAILED,
    SessionStatus.IDLE: SESSION_RESET,
}

# Event type -> log level
EVENT_LOG_LEVEL = {
    SESSION_FAILED: logging.WARNING,
}


@dataclass
class SessionTransition:
    session_id: str
    previous: SessionStatus
    current: SessionStatus
    generation: int
    event_type: str = ""
    event_id: str = field(default_factory=lambda: generate_id(EVENT_PREFIX))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.event_type:
            self.event_type = STATUS_EVENTS[self.current]

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "session_id": self.session_id,
            "previous": self.previous.value,
            "current": self.current.value,
            "generation": self.generation,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": self.payload,
        }


TransitionListener = Callable[[SessionTransition], Awaitable[None] | None]


async def emit_transition(transition: SessionTransition, listeners: list[TransitionListener]) -> int:
    """Log *transition* and deliver it to every listener.

    A listener that raises is logged and skipped; the session keeps going.
    Returns the number of successful deliveries.
    """
    logger.log(
        EVENT_LOG_LEVEL.get(transition.event_type, logging.INFO),
        "Remediation session %s: %s -> %s (generation %d)",
        transition.session_id,
        transition.previous.value,
        transition.current.value,
        transition.generation,
    )

    delivered = 0
    for listener in listeners:
        try:
            result = listener(transition)
            if inspect.isawaitable(result):
                await result
            delivered += 1
        except Exception:
            logger.exception("Transition listener failed for %s", transition.event_type)
    return delivered
