from __future__ import annotations

import anyio
import httpx
import mcp.types as types
import pytest
from starlette.testclient import TestClient

from myntra_mcp.catalog import CATALOG
from myntra_mcp.config import Settings
from myntra_mcp.middleware import origin_allowed
from myntra_mcp.server import build_app, build_mcp_server
from myntra_mcp.session import MemoryTokenStore, RedisTokenStore

from tests.fakes import BASE_URL, DownRedis, FakeMyntra


def make_client(myntra: FakeMyntra, store=None, **overrides) -> TestClient:
    cfg = Settings(myntra_api_base=BASE_URL, redis_url=None, **overrides)
    app = build_app(cfg, store=store or MemoryTokenStore(), transport=myntra.transport)
    return TestClient(app)


def test_health(myntra):
    response = make_client(myntra).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["version"] == "1.0.0"


def test_ready_with_memory_store(myntra):
    response = make_client(myntra).get("/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_ready_reports_unreachable_redis(myntra):
    response = make_client(myntra, store=RedisTokenStore(DownRedis())).get("/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "not ready"


def test_login_status_logout_roundtrip(myntra):
    client = make_client(myntra)

    login = client.post("/auth/login", json={"sellerId": "S1", "apiKey": "k", "apiSecret": "s"})
    assert login.status_code == 200
    assert login.json()["sellerId"] == "S1"
    assert login.json()["expiresIn"] > 0

    status = client.get("/auth/status/S1").json()
    assert status["authenticated"] is True
    assert status["sellerId"] == "S1"

    metrics = client.get("/metrics").text
    assert "active_sessions 1.0" in metrics

    logout = client.post("/auth/logout/S1")
    assert logout.json()["success"] is True
    assert client.get("/auth/status/S1").json()["authenticated"] is False


def test_metrics_exposes_prometheus_gauges(myntra):
    response = make_client(myntra).get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "# TYPE active_sessions gauge" in response.text
    assert "active_sessions 0.0" in response.text
    assert "# TYPE process_uptime_seconds gauge" in response.text


def test_login_requires_fields(myntra):
    response = make_client(myntra).post("/auth/login", json={"sellerId": "S1"})

    assert response.status_code == 400
    assert response.json()["required"] == ["sellerId", "apiKey", "apiSecret"]
    assert myntra.requests == []


def test_login_rejected(myntra):
    myntra.on("POST", "/auth/token", httpx.Response(401, json={"message": "Invalid API key"}))

    response = make_client(myntra).post("/auth/login", json={"sellerId": "S1", "apiKey": "x", "apiSecret": "y"})

    assert response.status_code == 401
    assert response.json()["details"] == "Invalid API key"


def test_api_keys_guard_login_surface(myntra):
    client = make_client(myntra, mcp_api_keys=["secret-key"])

    denied = client.post("/auth/login", json={"sellerId": "S1", "apiKey": "k", "apiSecret": "s"})
    allowed = client.post(
        "/auth/login",
        json={"sellerId": "S1", "apiKey": "k", "apiSecret": "s"},
        headers={"Authorization": "Bearer secret-key"},
    )

    assert denied.status_code == 401
    assert allowed.status_code == 200
    assert client.get("/health").status_code == 200


def test_disallowed_origin_is_rejected(myntra):
    client = make_client(myntra, allowed_origins=["https://claude.ai"])

    response = client.get("/auth/status/S1", headers={"Origin": "https://evil.example"})

    assert response.status_code == 403


def test_mcp_server_lists_full_catalog(gateway):
    server = build_mcp_server(gateway, "1.0.0")
    handler = server.request_handlers[types.ListToolsRequest]

    result = anyio.run(handler, types.ListToolsRequest(method="tools/list"))

    tools = result.root.tools
    assert [tool.name for tool in tools] == [spec.name for spec in CATALOG]
    create = next(tool for tool in tools if tool.name == "create_product")
    assert set(create.inputSchema["required"]) == {
        "seller_id", "sku", "name", "brand", "category", "mrp", "selling_price", "inventory",
    }
    list_products = next(tool for tool in tools if tool.name == "list_products")
    assert list_products.inputSchema["properties"]["limit"]["default"] == 50
    assert "all" in list_products.inputSchema["properties"]["status"]["enum"]


@pytest.mark.parametrize("name", [spec.name for spec in CATALOG])
def test_every_catalog_entry_requires_seller_id(name):
    spec = next(spec for spec in CATALOG if spec.name == name)

    assert "seller_id" in spec.input_schema()["required"]


async def _call_tool(server, name, arguments):
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    return (await handler(request)).root


@pytest.mark.anyio
async def test_mcp_call_tool_success(gateway):
    server = build_mcp_server(gateway, "1.0.0")

    result = await _call_tool(
        server, "authenticate", {"seller_id": "S1", "api_key": "k", "api_secret": "s"}
    )

    assert result.isError is False
    assert result.content[0].type == "text"
    assert result.content[0].text.startswith("Successfully authenticated with Myntra!")


@pytest.mark.anyio
async def test_mcp_call_tool_error_result(gateway):
    server = build_mcp_server(gateway, "1.0.0")

    result = await _call_tool(server, "get_order", {"seller_id": "never-seen"})

    assert result.isError is True
    assert result.content[0].text == "Not authenticated with Myntra. Please authenticate first using authenticate."


@pytest.mark.anyio
async def test_mcp_call_tool_unknown_name(gateway):
    server = build_mcp_server(gateway, "1.0.0")

    result = await _call_tool(server, "delete_everything", {"seller_id": "S1"})

    assert result.isError is True
    assert result.content[0].text == "Unknown tool: delete_everything"


def test_wrong_api_key_or_scheme_is_unauthorized(myntra):
    client = make_client(myntra, mcp_api_keys=["secret-key"])

    wrong_key = client.get("/auth/status/S1", headers={"Authorization": "Bearer other"})
    wrong_scheme = client.get("/auth/status/S1", headers={"Authorization": "Basic secret-key"})

    assert wrong_key.status_code == 401
    assert wrong_scheme.status_code == 401


@pytest.mark.parametrize(
    "origin, allowed, expected",
    [
        (None, [], True),
        ("https://claude.ai", ["https://claude.ai"], True),
        ("https://evil.example", ["*"], True),
        ("https://evil.example", ["https://claude.ai"], False),
        ("https://claude.ai", [], False),
    ],
)
def test_origin_allowed(origin, allowed, expected):
    assert origin_allowed(origin, allowed) is expected
