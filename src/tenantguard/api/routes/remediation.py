"""Remediation session routes.

Sessions live in process memory only while the operator can still act on
them. A session whose action succeeded is returned once and not retained.
"""

from fastapi import APIRouter, Response

from tenantguard.dependencies import Analyzer, Directory, Sessions, TraceId
from tenantguard.logging_config import bind_request_context
from tenantguard.models.action import FailureContext
from tenantguard.models.requests import ApplyRequest, SessionCreateRequest
from tenantguard.services.remediation.session import RemediationSession
from tenantguard.services.remediation.store import SessionStore

router = APIRouter(tags=["Remediation"])


def _get_session(sessions: SessionStore, session_id: str, trace_id: str) -> RemediationSession:
    session = sessions.get(session_id)
    bind_request_context(trace_id, session.tenant.tenant_filter, session.session_id)
    return session


def _session_response(sessions: SessionStore, session: RemediationSession, outcome=None) -> dict:
    body = {**session.to_dict(), "retained": sessions.keep(session)}
    if outcome is not None:
        body["outcome"] = outcome.model_dump(mode="json")
    return body


@router.post("/remediation/sessions", status_code=201)
async def create_session(
    body: SessionCreateRequest,
    sessions: Sessions,
    analyzer: Analyzer,
    directory: Directory,
    trace_id: TraceId,
) -> dict:
    session = RemediationSession(
        tenant=body.tenant,
        perform_action=directory.perform_action,
        fetch_snapshot=directory.fetch_snapshot,
        analyzer=analyzer,
    )
    bind_request_context(trace_id, body.tenant.tenant_filter, session.session_id)

    if body.error_payload is None:
        outcome = await session.run(body.action_id, body.parameters)
        return _session_response(sessions, session, outcome)

    await session.begin(
        FailureContext(
            action_id=body.action_id,
            parameters=body.parameters,
            error_payload=body.error_payload,
            tenant=body.tenant,
        )
    )
    return _session_response(sessions, session)


@router.get("/remediation/sessions/{session_id}")
async def get_session(session_id: str, sessions: Sessions, trace_id: TraceId) -> dict:
    return _get_session(sessions, session_id, trace_id).to_dict()


@router.post("/remediation/sessions/{session_id}/apply")
async def apply_remediation(session_id: str, body: ApplyRequest, sessions: Sessions, trace_id: TraceId) -> dict:
    session = _get_session(sessions, session_id, trace_id)
    outcome = await session.apply(body.finding_index, acknowledge=body.acknowledge_high_risk)
    return _session_response(sessions, session, outcome)


@router.delete("/remediation/sessions/{session_id}", status_code=204)
async def discard_session(session_id: str, sessions: Sessions, trace_id: TraceId) -> Response:
    session = _get_session(sessions, session_id, trace_id)
    await session.reset()
    sessions.discard(session_id)
    return Response(status_code=204)
