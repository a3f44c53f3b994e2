"""Tests for the in-process remediation session store."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import DOMAIN_BLOCKED_ERROR, INVITE_PARAMS
from tenantguard.errors.exceptions import NotFoundError
from tenantguard.models.action import ActionOutcome
from tenantguard.models.enums import SessionStatus
from tenantguard.services.remediation.session import RemediationSession
from tenantguard.services.remediation.store import SessionStore


class _Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


async def _ready_session(directory, tenant):
    directory.queue("AddGuest", ActionOutcome.failed(DOMAIN_BLOCKED_ERROR))
    session = RemediationSession(
        tenant=tenant, perform_action=directory.perform_action, fetch_snapshot=directory.fetch_snapshot
    )
    await session.run("AddGuest", INVITE_PARAMS)
    assert session.status == SessionStatus.READY
    return session


@pytest.mark.asyncio
async def test_finished_sessions_are_not_kept(directory, tenant):
    store = SessionStore(idle_timeout=60)
    session = RemediationSession(
        tenant=tenant, perform_action=directory.perform_action, fetch_snapshot=directory.fetch_snapshot
    )
    await session.run("AddGuest", INVITE_PARAMS)

    assert store.keep(session) is False
    assert len(store) == 0


@pytest.mark.asyncio
async def test_ready_session_kept_until_idle_timeout(directory, tenant):
    clock = _Clock()
    store = SessionStore(idle_timeout=60, now=clock)
    session = await _ready_session(directory, tenant)

    assert store.keep(session) is True
    clock.advance(45)
    assert store.get(session.session_id) is session

    # access pushes the expiry out again
    clock.advance(45)
    assert store.get(session.session_id) is session

    clock.advance(61)
    with pytest.raises(NotFoundError):
        store.get(session.session_id)
    assert len(store) == 0


@pytest.mark.asyncio
async def test_keep_drops_session_that_finished_later(directory, tenant):
    store = SessionStore(idle_timeout=60)
    session = await _ready_session(directory, tenant)
    store.keep(session)

    await session.reset()
    assert store.keep(session) is False
    assert session.session_id not in store


def test_unknown_session_is_not_found():
    with pytest.raises(NotFoundError):
        SessionStore(idle_timeout=60).get("rsess_missing")
