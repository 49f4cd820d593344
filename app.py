"""Entry point for the Myntra Seller MCP server."""

import uvicorn

from myntra_mcp.config import settings
from myntra_mcp.log import configure_logging
from myntra_mcp.server import build_app

configure_logging(settings.log_level)
app = build_app(settings)


if __name__ == "__main__":
    uvicorn.run("app:app", host=settings.host, port=settings.port, reload=False, log_config=None)
