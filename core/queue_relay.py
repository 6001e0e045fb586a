"""
Queue Submission Relay — pushes a work item into an orchestrator queue.

Sequential pipeline, one explicit result per stage:
  configuration → authenticate → submit

Every failure is logged and returned as a failed QueueSubmissionResult
naming the stage; nothing is raised to the caller.
"""
from __future__ import annotations

import structlog

from backend.uipath import OrchestratorClient, OrchestratorError
from config.settings import OrchestratorConfig
from models.schemas import QueueItem, QueueStage, QueueStatus, QueueSubmissionResult

logger = structlog.get_logger()


class QueueRelay:

    def __init__(self, config: OrchestratorConfig, client: OrchestratorClient):
        self.config = config
        self.client = client

    def build_item(self, queue_name: str) -> QueueItem:
        return QueueItem(
            name=queue_name,
            priority=self.config.priority,
            reference=self.config.reference,
        )

    async def submit(self, queue_name: str) -> QueueSubmissionResult:
        logger.info("queue_relay_called", queue_name=queue_name)

        if not self.config.is_configured:
            logger.warning("orchestrator_not_configured", queue_name=queue_name)
            return QueueSubmissionResult(
                status=QueueStatus.FAILED,
                stage=QueueStage.CONFIGURATION,
                queue_name=queue_name,
                detail="Orchestrator endpoints are not configured",
            )

        try:
            token = await self.client.authenticate()
            body = await self.client.add_queue_item(token, self.build_item(queue_name))
        except OrchestratorError as e:
            logger.error("queue_submission_failed",
                         queue_name=queue_name,
                         stage=e.stage.value,
                         status=e.status_code,
                         error=str(e))
            return QueueSubmissionResult(
                status=QueueStatus.FAILED,
                stage=e.stage,
                queue_name=queue_name,
                detail=str(e),
            )

        logger.info("queue_item_added", queue_name=queue_name, body=body)
        return QueueSubmissionResult(
            status=QueueStatus.QUEUED,
            queue_name=queue_name,
            item=body,
        )
