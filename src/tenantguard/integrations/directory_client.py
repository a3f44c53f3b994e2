"""Directory API client — the probe and action boundaries over HTTP.

The console backend exposes one endpoint per read (``GET /api/List…``) and
per write (``POST /api/Exec…`` / ``/api/Edit…``), each scoped by
``tenantFilter``. Responses are usually wrapped in a ``Results`` envelope.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict

from tenantguard.config import settings
from tenantguard.errors.exceptions import ProbeError
from tenantguard.models.action import ActionOutcome, TenantContext
from tenantguard.models.enums import ProbeId
from tenantguard.models.snapshot import ConfigurationSnapshot

logger = logging.getLogger(__name__)

PROBE_ENDPOINTS: dict[ProbeId, str] = {
    ProbeId.COLLABORATION_POLICY: "ListExternalCollaboration",
    ProbeId.SHARING_POLICY: "ListSharepointSettings",
    ProbeId.FEDERATION_POLICY: "ListTeamsSettings",
    ProbeId.PARTNER_POLICY: "ListCrossTenantPartners",
    ProbeId.PHONE_NUMBERS: "ListTeamsVoice",
}


class DirectoryAuth(BaseModel):
    """Stores the env var NAME of the bearer token, never the token itself."""

    model_config = ConfigDict(extra="forbid")

    bearer_token_env: str | None = None

    def resolve_bearer_token(self) -> str | None:
        if self.bearer_token_env:
            return os.environ.get(self.bearer_token_env)
        return None

    def get_headers(self) -> dict[str, str]:
        token = self.resolve_bearer_token()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}


def unwrap_results(payload: Any) -> Any:
    """Strip the backend's ``{"Results": ...}`` envelope, if present."""
    if isinstance(payload, dict) and "Results" in payload:
        return payload["Results"]
    return payload


def _snapshot_data(probe_id: ProbeId, payload: Any) -> dict[str, Any]:
    payload = unwrap_results(payload)
    if probe_id == ProbeId.PHONE_NUMBERS:
        return {"numbers": payload if isinstance(payload, list) else []}
    if probe_id == ProbeId.PARTNER_POLICY and isinstance(payload, list):
        return {"partners": payload}
    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    if not isinstance(payload, dict):
        raise ValueError(f"expected an object, got {type(payload).__name__}")
    return payload


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class DirectoryApiClient:
    """Implements ``fetch_snapshot`` and ``perform_action`` against the console backend."""

    def __init__(
        self,
        base_url: str | None = None,
        auth: DirectoryAuth | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.directory_api_url).rstrip("/")
        self.auth = auth or DirectoryAuth(bearer_token_env=settings.directory_api_token_env)
        self.timeout = timeout if timeout is not None else settings.directory_api_timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> DirectoryApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Probe boundary
    # ------------------------------------------------------------------

    async def fetch_snapshot(self, probe_id: ProbeId, tenant: TenantContext) -> ConfigurationSnapshot:
        """Fetch one configuration area. Raises ``ProbeError`` on any failure."""
        endpoint = PROBE_ENDPOINTS.get(probe_id)
        if endpoint is None:
            raise ProbeError(str(probe_id), "no endpoint for this probe")

        try:
            resp = await self._client.get(
                f"/api/{endpoint}",
                params={"tenantFilter": tenant.tenant_filter},
                headers=self.auth.get_headers(),
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Directory API returned HTTP %s for %s (tenant=%s)",
                exc.response.status_code,
                endpoint,
                tenant.tenant_filter,
            )
            raise ProbeError(probe_id.value, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("HTTP error fetching %s for %s: %s", endpoint, tenant.tenant_filter, exc)
            raise ProbeError(probe_id.value, str(exc) or type(exc).__name__) from exc

        try:
            data = _snapshot_data(probe_id, resp.json())
        except ValueError as exc:
            logger.error("Unusable response from %s for %s: %s", endpoint, tenant.tenant_filter, exc)
            raise ProbeError(probe_id.value, f"unusable response: {exc}") from exc

        return ConfigurationSnapshot(data, probe_id=probe_id.value)

    # ------------------------------------------------------------------
    # Action boundary
    # ------------------------------------------------------------------

    async def perform_action(
        self,
        action_id: str,
        parameters: dict[str, Any],
        tenant: TenantContext,
    ) -> ActionOutcome:
        """Run a directory write. Remote failures come back as a failed outcome."""
        body = {**parameters, "tenantFilter": tenant.tenant_filter}
        try:
            resp = await self._client.post(
                f"/api/{action_id}",
                json=body,
                headers=self.auth.get_headers(),
            )
        except httpx.HTTPError as exc:
            logger.error("HTTP error performing %s for %s: %s", action_id, tenant.tenant_filter, exc)
            return ActionOutcome.failed(str(exc) or type(exc).__name__)

        payload = _response_body(resp)
        if resp.is_error:
            logger.warning(
                "Directory API rejected %s for %s with HTTP %s",
                action_id,
                tenant.tenant_filter,
                resp.status_code,
            )
            return ActionOutcome.failed(payload)

        logger.info("Performed %s for %s", action_id, tenant.tenant_filter)
        return ActionOutcome.ok(unwrap_results(payload))
