"""In-process registry of open remediation sessions.

A session is kept only while the operator can still act on it. Sessions that
finish (the action succeeded, or the retry after a fix succeeded) are dropped,
and any session left untouched for ``idle_timeout`` seconds expires.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone

from tenantguard.config import settings
from tenantguard.errors.exceptions import NotFoundError
from tenantguard.models.enums import SessionStatus
from tenantguard.services.remediation.session import RemediationSession

logger = logging.getLogger(__name__)

_FINISHED = frozenset({SessionStatus.IDLE, SessionStatus.SUCCEEDED})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    def __init__(self, idle_timeout: float | None = None, now: Callable[[], datetime] = _utcnow):
        timeout = settings.session_idle_timeout if idle_timeout is None else idle_timeout
        self.idle_timeout = timedelta(seconds=timeout)
        self._now = now
        self._sessions: dict[str, RemediationSession] = {}
        self._expires_at: dict[str, datetime] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[RemediationSession]:
        return iter(list(self._sessions.values()))

    def keep(self, session: RemediationSession) -> bool:
        """Retain *session* if it still awaits the operator; drop it otherwise.

        Returns whether the session is retained.
        """
        self.purge_expired()
        if session.status in _FINISHED:
            self.discard(session.session_id)
            return False
        self._sessions[session.session_id] = session
        self._expires_at[session.session_id] = self._now() + self.idle_timeout
        return True

    def get(self, session_id: str) -> RemediationSession:
        self.purge_expired()
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Remediation session", session_id)
        self._expires_at[session_id] = self._now() + self.idle_timeout
        return session

    def discard(self, session_id: str) -> RemediationSession | None:
        self._expires_at.pop(session_id, None)
        return self._sessions.pop(session_id, None)

    def purge_expired(self) -> list[str]:
        now = self._now()
        expired = [sid for sid, expires_at in self._expires_at.items() if expires_at <= now]
        for session_id in expired:
            self.discard(session_id)
        if expired:
            logger.info("Expired %d idle remediation session(s)", len(expired))
        return expired

    def clear(self) -> None:
        self._sessions.clear()
        self._expires_at.clear()
