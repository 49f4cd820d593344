import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest
from redis.exceptions import RedisError
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from .api import SellerApi
from .auth import AuthManager
from .catalog import CATALOG
from .config import Settings, settings
from .errors import AuthError
from .gateway import ToolGateway
from .http_client import HttpClient
from .middleware import McpAuthMiddleware
from .session import TokenStore, build_token_store

logger = logging.getLogger(__name__)

SERVER_NAME = "myntra-seller-mcp-server"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_mcp_server(gateway: ToolGateway, version: str) -> Server:
    """Low-level MCP server whose tools/list and tools/call are backed by the catalog and gateway."""
    server = Server(SERVER_NAME, version=version)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema())
            for spec in CATALOG
        ]

    # Arguments are validated by the gateway so errors come back as tool text.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> types.CallToolResult:
        result = await gateway.dispatch(name, arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=result.text)],
            isError=result.is_error,
        )

    return server


class McpEndpoint:
    """ASGI endpoint handing /mcp requests to the streamable HTTP session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager):
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)


def build_app(
    cfg: Settings = settings,
    *,
    store: Optional[TokenStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Starlette:
    """Create the Starlette app with MCP routes, auth aliases, probes and middleware."""
    started = time.monotonic()
    http_client = HttpClient(cfg.myntra_api_base, timeout=cfg.myntra_api_timeout, transport=transport)
    auth = AuthManager(http_client, store if store is not None else build_token_store(cfg))
    gateway = ToolGateway(auth, SellerApi(http_client, auth))
    session_manager = StreamableHTTPSessionManager(app=build_mcp_server(gateway, cfg.version))

    async def health(_request: Request):
        return JSONResponse(
            {
                "status": "healthy",
                "timestamp": _timestamp(),
                "version": cfg.version,
                "uptime": round(time.monotonic() - started, 3),
            }
        )

    async def ready(_request: Request):
        try:
            await auth.store.ping()
        except (RedisError, OSError) as exc:
            return JSONResponse({"status": "not ready", "error": str(exc)}, status_code=503)
        return JSONResponse({"status": "ready"})

    registry = CollectorRegistry()
    uptime_gauge = Gauge("process_uptime_seconds", "Seconds since the app was built", registry=registry)
    sessions_gauge = Gauge("active_sessions", "Seller sessions held by the token store", registry=registry)

    async def metrics(_request: Request):
        uptime_gauge.set(time.monotonic() - started)
        sessions_gauge.set(await auth.store.count())
        return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    async def login(request: Request):
        try:
            body = await request.json()
        except ValueError:
            body = None
        body = body if isinstance(body, dict) else {}
        seller_id, api_key, api_secret = body.get("sellerId"), body.get("apiKey"), body.get("apiSecret")
        if not seller_id or not api_key or not api_secret:
            return JSONResponse(
                {
                    "error": "Missing required fields",
                    "required": ["sellerId", "apiKey", "apiSecret"],
                    "timestamp": _timestamp(),
                },
                status_code=400,
            )

        try:
            session, _reused = await auth.authenticate(str(seller_id), str(api_key), str(api_secret))
        except AuthError as exc:
            return JSONResponse(
                {"error": "Authentication failed", "details": str(exc), "timestamp": _timestamp()},
                status_code=401,
            )
        return JSONResponse(
            {
                "success": True,
                "message": "Authentication successful",
                "sellerId": session.seller_id,
                "expiresIn": session.expires_in(auth.clock()),
                "timestamp": _timestamp(),
            }
        )

    async def auth_status(request: Request):
        seller_id = request.path_params["seller_id"]
        if not await auth.is_authenticated(seller_id):
            return JSONResponse({"authenticated": False, "timestamp": _timestamp()})
        session = await auth.get_session(seller_id)
        return JSONResponse(
            {
                "authenticated": True,
                "sellerId": session.seller_id if session else seller_id,
                "expiresIn": session.expires_in(auth.clock()) if session else 0,
                "timestamp": _timestamp(),
            }
        )

    async def logout(request: Request):
        await auth.revoke(request.path_params["seller_id"])
        return JSONResponse(
            {"success": True, "message": "Logged out successfully", "timestamp": _timestamp()}
        )

    @asynccontextmanager
    async def lifespan(_app: Starlette):
        logger.info("Myntra Seller MCP Server starting, API base %s", cfg.myntra_api_base)
        try:
            async with session_manager.run():
                yield
        finally:
            await auth.aclose()
            logger.info("Myntra Seller MCP Server stopped")

    routes = [
        Route("/health", health),
        Route("/ready", ready),
        Route("/metrics", metrics),
        Route("/auth/login", login, methods=["POST"]),
        Route("/auth/status/{seller_id}", auth_status),
        Route("/auth/logout/{seller_id}", logout, methods=["POST"]),
        # Route rather than Mount so /mcp is served without a 307 to /mcp/.
        Route("/mcp", McpEndpoint(session_manager)),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.auth = auth
    app.state.gateway = gateway
    app.add_middleware(
        McpAuthMiddleware,
        api_keys=cfg.mcp_api_keys,
        allowed_origins=cfg.allowed_origins,
    )

    if cfg.allowed_origins:
        allow_origins = ["*"] if "*" in cfg.allowed_origins else cfg.allowed_origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allow_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "Mcp-Session-Id"],
            expose_headers=["Mcp-Session-Id"],
        )

    return app
