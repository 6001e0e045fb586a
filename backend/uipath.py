"""
Orchestration API Client — UiPath Orchestrator queues.

Two calls, always made in order for a single submission:
  1. authenticate()    POST form credentials, read the bearer token from "result"
  2. add_queue_item()  POST {"itemData": ...} with that token

Tokens are never cached: each submission authenticates again.
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

import httpx

from config.settings import OrchestratorConfig
from models.schemas import AuthToken, QueueItem, QueueStage

logger = structlog.get_logger()


class OrchestratorError(Exception):
    """Failure at one stage of a queue submission."""

    def __init__(
        self,
        message: str,
        stage: QueueStage,
        status_code: Optional[int] = None,
        body: Any = None,
    ):
        self.stage = stage
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class OrchestratorClient:
    """Async client for the orchestrator auth and queue endpoints."""

    def __init__(self, config: OrchestratorConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def authenticate(self) -> AuthToken:
        client = await self._get_client()
        form = {
            "tenancyName": self.config.tenant,
            "usernameOrEmailAddress": self.config.username,
            "password": self.config.password,
        }

        logger.info("orchestrator_authenticate", tenant=self.config.tenant)
        try:
            resp = await client.post(self.config.auth_endpoint, data=form)
        except httpx.HTTPError as e:
            raise OrchestratorError(
                f"Auth request failed: {str(e) or type(e).__name__}", QueueStage.AUTHENTICATE,
            ) from e

        if resp.status_code != 200:
            raise OrchestratorError(
                f"Auth endpoint returned {resp.status_code}",
                QueueStage.AUTHENTICATE,
                status_code=resp.status_code,
                body=resp.text[:500],
            )

        try:
            token = resp.json().get("result")
        except (ValueError, AttributeError) as e:
            raise OrchestratorError(
                "Auth endpoint returned an unreadable body",
                QueueStage.AUTHENTICATE,
                status_code=resp.status_code,
            ) from e
        if not token:
            raise OrchestratorError(
                "Auth response carried no token",
                QueueStage.AUTHENTICATE,
                status_code=resp.status_code,
            )
        return AuthToken(str(token))

    async def add_queue_item(self, token: AuthToken, item: QueueItem) -> Any:
        client = await self._get_client()

        logger.info("orchestrator_add_queue_item", queue_name=item.name)
        try:
            resp = await client.post(
                self.config.queue_endpoint,
                json=item.to_payload(),
                headers={"Authorization": token.header},
            )
        except httpx.HTTPError as e:
            raise OrchestratorError(
                f"Queue request failed: {str(e) or type(e).__name__}", QueueStage.SUBMIT,
            ) from e

        try:
            body = resp.json() if resp.content else None
        except ValueError:
            body = resp.text

        if not resp.is_success:
            raise OrchestratorError(
                f"Queue endpoint returned {resp.status_code}",
                QueueStage.SUBMIT,
                status_code=resp.status_code,
                body=body,
            )
        return body

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
