"""Integration tests for the MCP HTTP transport."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from bitbucket_mcp.api.mcp import MessageKind, classify_message
from bitbucket_mcp.main import create_app
from bitbucket_mcp.mcp.transport import _negotiate_protocol_version

HEADERS = {
    "Accept": "application/json, text/event-stream",
    "Content-Type": "application/json",
}


@pytest.fixture
def http_client(settings, bitbucket):
    app = create_app(settings, transport=httpx.MockTransport(bitbucket))
    with TestClient(app) as client:
        yield client


def _rpc(method, message_id=1, params=None):
    message = {"jsonrpc": "2.0", "id": message_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


class TestMCPHTTPPost:
    """Test MCP HTTP POST endpoint."""

    def test_missing_accept_header(self, http_client):
        response = http_client.post(
            "/mcp",
            json=_rpc("initialize"),
            headers={"Content-Type": "application/json", "Accept": "text/event-stream"},
        )
        assert response.status_code == 400

    def test_missing_content_type(self, http_client):
        response = http_client.post(
            "/mcp",
            content=b'{"jsonrpc": "2.0", "id": 1, "method": "ping"}',
            headers={"Accept": "application/json", "Content-Type": "text/plain"},
        )
        assert response.status_code == 400

    def test_invalid_json(self, http_client):
        response = http_client.post("/mcp", content=b"not json", headers=HEADERS)
        assert response.status_code == 400

    def test_notification_returns_202(self, http_client):
        response = http_client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
            headers=HEADERS,
        )
        assert response.status_code == 202

    def test_response_message_returns_202(self, http_client):
        response = http_client.post(
            "/mcp",
            json={"jsonrpc": "2.0", "id": 9, "result": {}},
            headers=HEADERS,
        )
        assert response.status_code == 202

    def test_invalid_request_message(self, http_client):
        response = http_client.post("/mcp", json={"jsonrpc": "2.0", "id": 1}, headers=HEADERS)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32600

    def test_initialize(self, http_client):
        response = http_client.post(
            "/mcp",
            json=_rpc("initialize", params={"protocolVersion": "2025-06-18", "capabilities": {}}),
            headers=HEADERS,
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["protocolVersion"] == "2025-06-18"
        assert result["serverInfo"]["name"] == "bitbucket-mcp"
        assert "tools" in result["capabilities"]

    def test_initialize_unsupported_version(self, http_client):
        response = http_client.post(
            "/mcp",
            json=_rpc("initialize", params={"protocolVersion": "2023-01-01"}),
            headers=HEADERS,
        )

        assert response.json()["error"]["code"] == -32602

    def test_ping(self, http_client):
        response = http_client.post("/mcp", json=_rpc("ping", message_id="p1"), headers=HEADERS)

        assert response.json() == {"jsonrpc": "2.0", "id": "p1", "result": {}}

    def test_unknown_method(self, http_client):
        response = http_client.post("/mcp", json=_rpc("resources/list"), headers=HEADERS)

        assert response.json()["error"]["code"] == -32601

    def test_tools_list(self, http_client):
        response = http_client.post("/mcp", json=_rpc("tools/list"), headers=HEADERS)

        tools = response.json()["result"]["tools"]
        assert len(tools) == 36
        diff_tool = next(tool for tool in tools if tool["name"] == "getPullRequestDiff")
        assert diff_tool["inputSchema"]["required"] == ["workspace", "repo_slug", "pull_request_id"]

    def test_tools_call(self, http_client, bitbucket):
        bitbucket.add("GET", "/repositories/acme/web", json={"slug": "web", "scm": "git"})

        response = http_client.post(
            "/mcp",
            json=_rpc("tools/call", params={
                "name": "getRepository",
                "arguments": {"workspace": "acme", "repo_slug": "web"},
            }),
            headers=HEADERS,
        )

        result = response.json()["result"]
        assert result["isError"] is False
        assert json.loads(result["content"][0]["text"]) == {"slug": "web", "scm": "git"}
        request = bitbucket.requests[0]
        assert request.headers["Authorization"] == "Bearer test-token"

    def test_tools_call_error_result(self, http_client, bitbucket):
        response = http_client.post(
            "/mcp",
            json=_rpc("tools/call", params={
                "name": "getRepository",
                "arguments": {"workspace": "acme", "repo_slug": "missing"},
            }),
            headers=HEADERS,
        )

        result = response.json()["result"]
        assert result["isError"] is True
        assert "Bitbucket API error" in result["content"][0]["text"]

    def test_tools_call_without_name(self, http_client):
        response = http_client.post("/mcp", json=_rpc("tools/call", params={}), headers=HEADERS)

        assert response.json()["error"]["code"] == -32602

    def test_batch(self, http_client):
        response = http_client.post(
            "/mcp",
            json=[
                _rpc("ping", message_id=1),
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                _rpc("tools/list", message_id=2),
                "garbage",
            ],
            headers=HEADERS,
        )

        body = response.json()
        assert [item.get("id") for item in body] == [1, 2, None]
        assert body[2]["error"]["code"] == -32600

    def test_batch_of_notifications_returns_202(self, http_client):
        response = http_client.post(
            "/mcp",
            json=[{"jsonrpc": "2.0", "method": "notifications/initialized"}],
            headers=HEADERS,
        )
        assert response.status_code == 202


class TestHealth:

    def test_health(self, http_client):
        response = http_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "Bitbucket MCP"


class TestProtocolNegotiation:

    @pytest.mark.parametrize("client_version,expected", [
        ("2025-06-18", "2025-06-18"),
        ("2025-12-01", "2025-06-18"),
        ("2025-03-26", "2024-11-05"),
        ("2024-11-05", "2024-11-05"),
        ("2024-01-01", None),
    ])
    def test_negotiation(self, client_version, expected):
        assert _negotiate_protocol_version(client_version) == expected


class TestClassifyMessage:

    @pytest.mark.parametrize("message,expected", [
        ({"jsonrpc": "2.0", "id": 1, "method": "ping"}, MessageKind.REQUEST),
        ({"jsonrpc": "2.0", "id": 0, "method": "ping"}, MessageKind.REQUEST),
        ({"jsonrpc": "2.0", "method": "notifications/initialized"}, MessageKind.NOTIFICATION),
        ({"jsonrpc": "2.0", "id": 1, "result": {}}, MessageKind.RESPONSE),
        ({"jsonrpc": "2.0", "id": 1, "error": {"code": -1, "message": "x"}}, MessageKind.RESPONSE),
        ({"jsonrpc": "2.0", "id": 1}, MessageKind.INVALID),
        ("garbage", MessageKind.INVALID),
        (None, MessageKind.INVALID),
    ])
    def test_classification(self, message, expected):
        assert classify_message(message) is expected

    def test_batch_and_single_share_classification(self, http_client):
        single = http_client.post("/mcp", json={"jsonrpc": "2.0", "id": 4}, headers=HEADERS)
        batch = http_client.post(
            "/mcp",
            json=[{"jsonrpc": "2.0", "id": 4}, {"jsonrpc": "2.0", "id": 5, "result": {}}],
            headers=HEADERS,
        )

        assert single.json()["error"]["code"] == -32600
        assert batch.json() == [single.json()]

    def test_empty_batch(self, http_client):
        response = http_client.post("/mcp", json=[], headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == []
