"""Shared test fixtures for Assistant Relay."""
import json
from typing import Any, Callable, Union
from urllib.parse import parse_qs

import httpx
import pytest

from backend.assistant import AssistantClient
from backend.uipath import OrchestratorClient
from config.settings import AssistantConfig, AuthConfig, OrchestratorConfig, Settings

ASSISTANT_URL = "https://assistant.test/api"
AUTH_ENDPOINT = "https://orchestrator.test/api/account/authenticate"
QUEUE_ENDPOINT = "https://orchestrator.test/odata/Queues/UiPathODataSvc.AddQueueItem"

MESSAGE_PATH = "/api/v1/workspaces/ws-123/message"
AUTH_PATH = "/api/account/authenticate"
QUEUE_PATH = "/odata/Queues/UiPathODataSvc.AddQueueItem"

Answer = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class RecordingTransport:
    """
    Answers outbound calls from a (method, path) table and records every
    request, so tests can assert how many calls were made and what they carried.
    """

    def __init__(self, routes: dict[tuple[str, str], Answer] = None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(404, json={"error": "no route in test"})
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(request)
        return answer

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content)


def form_body(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def assistant_config() -> AssistantConfig:
    return AssistantConfig(
        username="watson-user",
        password="watson-pass",
        url=ASSISTANT_URL,
        workspace_id="ws-123",
    )


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(
        auth_endpoint=AUTH_ENDPOINT,
        tenant="acme",
        username="robot-admin",
        password="s3cret",
        queue_endpoint=QUEUE_ENDPOINT,
        priority="High",
    )


@pytest.fixture
def settings(assistant_config, orchestrator_config, tmp_path) -> Settings:
    return Settings(
        app_name="AssistantRelayTest",
        static_dir=str(tmp_path / "missing-public"),
        auth=AuthConfig(username="admin", password="letmein"),
        assistant=assistant_config,
        orchestrator=orchestrator_config,
    )


@pytest.fixture
def assistant_transport() -> RecordingTransport:
    return RecordingTransport({
        ("POST", MESSAGE_PATH): httpx.Response(200, json={
            "intents": [{"intent": "turn_on", "confidence": 0.82}],
            "entities": [],
            "context": {"conversation_id": "conv-1"},
        }),
    })


@pytest.fixture
def orchestrator_transport() -> RecordingTransport:
    return RecordingTransport({
        ("POST", AUTH_PATH): httpx.Response(200, json={"result": "tok-abc", "success": True}),
        ("POST", QUEUE_PATH): httpx.Response(201, json={"Id": 4711, "Status": "New"}),
    })


@pytest.fixture
def assistant_client(assistant_config, assistant_transport) -> AssistantClient:
    return AssistantClient(assistant_config, transport=assistant_transport.transport)


@pytest.fixture
def orchestrator_client(orchestrator_config, orchestrator_transport) -> OrchestratorClient:
    return OrchestratorClient(orchestrator_config, transport=orchestrator_transport.transport)
