from typing import Iterable, Optional, Sequence

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.types import ASGIApp


def origin_allowed(origin: Optional[str], allowed_origins: Sequence[str]) -> bool:
    """Requests without an Origin header (curl, desktop MCP clients) always pass."""
    if not origin:
        return True
    return "*" in allowed_origins or origin in allowed_origins


def _bearer_token(request: Request) -> Optional[str]:
    scheme, _, credentials = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


class McpAuthMiddleware(BaseHTTPMiddleware):
    """Protect the MCP endpoint and the login surface with optional API key and origin checks."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        api_keys: Iterable[str] = (),
        allowed_origins: Sequence[str] = (),
        protected_prefixes: Sequence[str] = ("/mcp", "/auth"),
    ):
        super().__init__(app)
        self.api_keys = frozenset(api_keys)
        self.allowed_origins = tuple(allowed_origins)
        self.protected_prefixes = tuple(protected_prefixes)

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.protected_prefixes):
            return await call_next(request)

        if not origin_allowed(request.headers.get("origin"), self.allowed_origins):
            return PlainTextResponse("Origin not allowed.", status_code=403)
        if self.api_keys and _bearer_token(request) not in self.api_keys:
            return JSONResponse({"error": "Unauthorized"}, status_code=401)

        return await call_next(request)
