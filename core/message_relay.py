"""
Message Relay — forwards one conversational turn to the dialogue service.

Builds the request payload from the configured workspace, calls the service
and annotates the reply. When no workspace is configured, the service is not
called at all and a fixed setup message is returned instead.
"""
from __future__ import annotations

import structlog
from typing import Any

from backend.assistant import AssistantClient, AssistantError
from config.settings import AssistantConfig
from core.annotation import update_message
from models.schemas import MessageRequest

logger = structlog.get_logger()

MISSING_WORKSPACE_TEXT = (
    "The app has not been configured with a <b>WORKSPACE_ID</b> environment variable. "
    "Please refer to the "
    '<a href="https://github.com/watson-developer-cloud/assistant-simple">README</a> '
    "documentation on how to set this variable. <br>"
    "Once a workspace has been defined the intents may be imported from "
    '<a href="https://github.com/watson-developer-cloud/assistant-simple/blob/master/training/car_workspace.json">here</a> '
    "in order to get a working application."
)


class MessageRelay:
    """Relays chat turns between the UI and the dialogue service."""

    def __init__(self, config: AssistantConfig, client: AssistantClient):
        self.config = config
        self.client = client

    def build_payload(self, request: MessageRequest) -> dict[str, Any]:
        return {
            "workspace_id": self.config.workspace_id,
            "context": request.context or {},
            "input": request.input or {},
        }

    async def relay(self, request: MessageRequest) -> dict[str, Any]:
        """
        Send the turn and return the annotated response.

        Raises:
            AssistantError: the service call failed; carries status and body.
        """
        logger.info("message_relay_called")

        if not self.config.workspace_configured:
            logger.warning("workspace_not_configured")
            return {"output": {"text": MISSING_WORKSPACE_TEXT}}

        payload = self.build_payload(request)
        try:
            data = await self.client.message(payload)
        except AssistantError as e:
            logger.error("assistant_call_failed", code=e.code, error=str(e))
            raise

        return update_message(data)
