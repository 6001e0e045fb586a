"""
Dialogue Service Client — Watson Assistant V1 ``message`` API.

Sends one conversational turn (input + context) to a workspace and returns
the service's JSON response untouched. Failures are raised as
AssistantError carrying the upstream status code and error body so the
HTTP layer can pass them through verbatim.
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

import httpx

from config.settings import AssistantConfig

logger = structlog.get_logger()


class AssistantError(Exception):
    """Failure talking to the dialogue service."""

    def __init__(self, message: str, code: int = 500, body: Optional[dict[str, Any]] = None):
        self.code = code or 500
        self.body = body if body is not None else {"error": message, "code": self.code}
        super().__init__(message)


class AssistantClient:
    """Async client for the dialogue service, authenticated with basic credentials."""

    def __init__(self, config: AssistantConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.url.rstrip("/"),
                auth=(self.config.username, self.config.password),
                timeout=self.config.timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def message(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Send a message payload to the configured workspace.

        Args:
            payload: ``{"workspace_id": ..., "context": {...}, "input": {...}}``

        Raises:
            AssistantError: on transport failure or a non-2xx response.
        """
        client = await self._get_client()
        workspace_id = payload["workspace_id"]
        body = {
            "input": payload.get("input") or {},
            "context": payload.get("context") or {},
        }

        try:
            resp = await client.post(
                f"/v1/workspaces/{workspace_id}/message",
                params={"version": self.config.version},
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error("assistant_transport_error", error=str(e))
            raise AssistantError(str(e) or type(e).__name__) from e

        if resp.status_code >= 400:
            error_body = _error_body(resp)
            logger.error("assistant_api_error", status=resp.status_code, body=resp.text[:500])
            raise AssistantError(
                str(error_body.get("error", resp.reason_phrase)),
                code=resp.status_code,
                body=error_body,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise AssistantError("Dialogue service returned a non-JSON body") from e

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _error_body(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        return data
    return {"error": resp.text or resp.reason_phrase, "code": resp.status_code}
