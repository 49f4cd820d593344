import os
from dataclasses import dataclass, field
from typing import List


def _env_list(name: str, default: str = "") -> List[str]:
    """Comma-separated env var as a list, blank entries dropped."""
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


@dataclass
class Settings:
    """Centralised configuration for the MCP server, token storage and the Myntra API."""

    myntra_api_base: str = os.getenv("MYNTRA_API_BASE", "https://api.myntra.com/seller").rstrip("/")
    myntra_api_timeout: float = float(os.getenv("MYNTRA_API_TIMEOUT", "30"))

    # Durable token storage; in-memory only when unset.
    redis_url: str | None = os.getenv("REDIS_URL") or None
    token_key_prefix: str = os.getenv("TOKEN_KEY_PREFIX", "tokens:")
    token_retention_seconds: int = int(os.getenv("TOKEN_RETENTION_SECONDS", str(3600 * 24 * 7)))
    redis_retry_attempts: int = int(os.getenv("REDIS_RETRY_ATTEMPTS", "3"))
    redis_backoff_base: float = float(os.getenv("REDIS_BACKOFF_BASE", "0.05"))
    redis_backoff_cap: float = float(os.getenv("REDIS_BACKOFF_CAP", "0.5"))

    mcp_api_keys: List[str] = field(default_factory=lambda: _env_list("MCP_API_KEYS"))
    allowed_origins: List[str] = field(
        default_factory=lambda: _env_list(
            "ALLOWED_ORIGINS",
            "https://claude.ai,https://chatgpt.com,http://localhost:3000",
        )
    )
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "9093"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    version: str = os.getenv("APP_VERSION", "1.0.0")


settings = Settings()
