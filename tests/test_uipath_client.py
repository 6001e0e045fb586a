"""
Tests for the orchestrator client: token authentication and AddQueueItem.
"""
import httpx
import pytest

from backend.uipath import OrchestratorClient, OrchestratorError
from conftest import AUTH_PATH, QUEUE_PATH, RecordingTransport, form_body, json_body
from models.schemas import AuthToken, QueueItem, QueueStage


def make_client(config, routes):
    transport = RecordingTransport(routes)
    return OrchestratorClient(config, transport=transport.transport), transport


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_posts_form_credentials(self, orchestrator_client, orchestrator_transport):
        token = await orchestrator_client.authenticate()

        assert token == AuthToken("tok-abc")
        req = orchestrator_transport.calls(AUTH_PATH)[0]
        assert req.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert form_body(req) == {
            "tenancyName": "acme",
            "usernameOrEmailAddress": "robot-admin",
            "password": "s3cret",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [201, 400, 401, 500])
    async def test_non_200_fails(self, orchestrator_config, status):
        client, _ = make_client(orchestrator_config, {
            ("POST", AUTH_PATH): httpx.Response(status, json={"result": "tok"}),
        })
        with pytest.raises(OrchestratorError) as exc_info:
            await client.authenticate()
        assert exc_info.value.stage == QueueStage.AUTHENTICATE
        assert exc_info.value.status_code == status

    @pytest.mark.asyncio
    async def test_unparseable_body_fails(self, orchestrator_config):
        client, _ = make_client(orchestrator_config, {
            ("POST", AUTH_PATH): httpx.Response(200, text="<html>login</html>"),
        })
        with pytest.raises(OrchestratorError, match="unreadable"):
            await client.authenticate()

    @pytest.mark.asyncio
    async def test_missing_token_fails(self, orchestrator_config):
        client, _ = make_client(orchestrator_config, {
            ("POST", AUTH_PATH): httpx.Response(200, json={"success": False}),
        })
        with pytest.raises(OrchestratorError, match="no token"):
            await client.authenticate()

    @pytest.mark.asyncio
    async def test_transport_error_fails(self, orchestrator_config):
        client, _ = make_client(orchestrator_config, {
            ("POST", AUTH_PATH): httpx.ConnectTimeout("timed out"),
        })
        with pytest.raises(OrchestratorError) as exc_info:
            await client.authenticate()
        assert exc_info.value.stage == QueueStage.AUTHENTICATE
        assert exc_info.value.status_code is None


class TestAddQueueItem:

    @pytest.mark.asyncio
    async def test_posts_item_with_bearer_token(self, orchestrator_client, orchestrator_transport):
        item = QueueItem(name="InvoiceQueue", priority="High")
        body = await orchestrator_client.add_queue_item(AuthToken("tok-abc"), item)

        assert body == {"Id": 4711, "Status": "New"}
        req = orchestrator_transport.calls(QUEUE_PATH)[0]
        assert req.headers["Authorization"] == "Bearer tok-abc"
        assert json_body(req) == {
            "itemData": {
                "Name": "InvoiceQueue",
                "Priority": "High",
                "SpecificContent": {"ParamA": "dummy", "ParamB": "dummy", "ParamC": "dummy"},
                "DeferDate": None,
                "DueDate": None,
                "Reference": "demo process",
            }
        }

    @pytest.mark.asyncio
    async def test_rejected_item_fails_at_submit(self, orchestrator_config):
        client, _ = make_client(orchestrator_config, {
            ("POST", QUEUE_PATH): httpx.Response(
                409, json={"message": "Error creating Transaction. Duplicate Reference."},
            ),
        })
        with pytest.raises(OrchestratorError) as exc_info:
            await client.add_queue_item(AuthToken("t"), QueueItem(name="q"))
        assert exc_info.value.stage == QueueStage.SUBMIT
        assert exc_info.value.status_code == 409
        assert "Duplicate" in exc_info.value.body["message"]

    @pytest.mark.asyncio
    async def test_empty_success_body(self, orchestrator_config):
        client, _ = make_client(orchestrator_config, {("POST", QUEUE_PATH): httpx.Response(204)})
        assert await client.add_queue_item(AuthToken("t"), QueueItem(name="q")) is None


class TestAuthToken:

    def test_header(self):
        assert AuthToken("abc").header == "Bearer abc"

    def test_repr_hides_value(self):
        assert "abc" not in repr(AuthToken("abc"))
