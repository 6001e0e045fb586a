"""
FastAPI Application — chat relay + orchestrator queue relay.

Provides:
- POST /api/message  relay a chat turn to the dialogue service
- POST /api/queue    push a work item into an orchestrator queue
- GET  /health       liveness probe
- Static UI served from the public directory
- HTTP Basic Auth in front of all of the above
"""
from __future__ import annotations

import structlog
from pathlib import Path
from typing import Optional
from contextlib import asynccontextmanager

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from api.auth import BasicAuthMiddleware
from backend.assistant import AssistantClient, AssistantError
from backend.uipath import OrchestratorClient
from config.logging_setup import configure_logging
from config.settings import Settings, get_settings
from core.message_relay import MessageRelay
from core.queue_relay import QueueRelay
from models.schemas import MessageRequest, QueueRequest, QueueStage

logger = structlog.get_logger()

router = APIRouter()


# ──────────────────────────────────────────────────────────────
#  Dependencies
# ──────────────────────────────────────────────────────────────

def get_message_relay(request: Request) -> MessageRelay:
    return request.app.state.message_relay


def get_queue_relay(request: Request) -> QueueRelay:
    return request.app.state.queue_relay


# ══════════════════════════════════════════════════════════════
#  ROUTES
# ══════════════════════════════════════════════════════════════

@router.get("/health")
async def health(request: Request):
    return {"status": "ok", "app": request.app.state.settings.app_name}


@router.post("/api/message")
async def message(
    req: Optional[MessageRequest] = None,
    relay: MessageRelay = Depends(get_message_relay),
):
    """Relay one chat turn; upstream errors come back with their own status."""
    return await relay.relay(req or MessageRequest())


@router.post("/api/queue")
async def queue(req: QueueRequest, relay: QueueRelay = Depends(get_queue_relay)):
    """Submit a queue item and report which stage, if any, failed."""
    result = await relay.submit(req.queue_name)
    if result.ok:
        status_code = 200
    elif result.stage == QueueStage.CONFIGURATION.value:
        status_code = 503
    else:
        status_code = 502
    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json", by_alias=True),
    )


async def assistant_error_handler(request: Request, exc: AssistantError):
    return JSONResponse(status_code=exc.code, content=exc.body)


# ──────────────────────────────────────────────────────────────
#  Bootstrap
# ──────────────────────────────────────────────────────────────

def create_app(
    settings: Settings = None,
    assistant_client: AssistantClient = None,
    orchestrator_client: OrchestratorClient = None,
) -> FastAPI:
    """
    Build the application with explicit dependencies.

    Clients not passed in are created from ``settings``; tests pass their own
    clients wired to mock transports.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    assistant_client = assistant_client or AssistantClient(settings.assistant)
    orchestrator_client = orchestrator_client or OrchestratorClient(settings.orchestrator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("assistant_relay_started",
                    app=settings.app_name,
                    workspace_configured=settings.assistant.workspace_configured,
                    orchestrator_configured=settings.orchestrator.is_configured,
                    basic_auth=settings.auth.enabled)
        yield
        await assistant_client.close()
        await orchestrator_client.close()
        logger.info("assistant_relay_stopped")

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Relay between a chat UI, a dialogue service and an orchestrator queue",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.message_relay = MessageRelay(settings.assistant, assistant_client)
    app.state.queue_relay = QueueRelay(settings.orchestrator, orchestrator_client)

    app.add_exception_handler(AssistantError, assistant_error_handler)
    app.include_router(router)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="public")
    else:
        logger.info("static_dir_missing", path=str(static_dir))

    if settings.auth.enabled:
        app.add_middleware(
            BasicAuthMiddleware,
            username=settings.auth.username,
            password=settings.auth.password,
        )

    return app


app = create_app()


# ══════════════════════════════════════════════════════════════
#  Entry Point
# ══════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
