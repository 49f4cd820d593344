import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol, Set

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Access + refresh token pair held for a single seller."""

    seller_id: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None, leeway_seconds: int = 0) -> bool:
        """Return True when the access token must not be used without a refresh."""
        if not self.expires_at:
            return True
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at - timedelta(seconds=leeway_seconds)

    def expires_in(self, now: Optional[datetime] = None) -> int:
        """Whole seconds left before expiry, never negative."""
        if not self.expires_at:
            return 0
        now = now or datetime.now(timezone.utc)
        return max(0, int((self.expires_at - now).total_seconds()))

    def to_record(self) -> Dict[str, Any]:
        """Flat JSON-able record used by durable storage."""
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresOn": int(self.expires_at.timestamp() * 1000) if self.expires_at else None,
            "sellerId": self.seller_id,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Session":
        expires_on = record.get("expiresOn")
        expires_at = (
            datetime.fromtimestamp(expires_on / 1000, tz=timezone.utc)
            if isinstance(expires_on, (int, float))
            else None
        )
        return cls(
            seller_id=record["sellerId"],
            access_token=record.get("accessToken"),
            refresh_token=record.get("refreshToken"),
            expires_at=expires_at,
        )


class TokenStore(Protocol):
    async def put(self, seller_id: str, session: Session) -> None: ...
    async def get(self, seller_id: str) -> Optional[Session]: ...
    async def delete(self, seller_id: str) -> None: ...
    async def ping(self) -> None: ...
    async def count(self) -> int: ...
    async def aclose(self) -> None: ...


class MemoryTokenStore:
    """Per-seller session map (memory only, cleared on restart)."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    async def put(self, seller_id: str, session: Session) -> None:
        self._sessions[seller_id] = session

    async def get(self, seller_id: str) -> Optional[Session]:
        return self._sessions.get(seller_id)

    async def delete(self, seller_id: str) -> None:
        self._sessions.pop(seller_id, None)

    async def ping(self) -> None:
        return None

    async def count(self) -> int:
        return len(self._sessions)

    async def aclose(self) -> None:
        self._sessions.clear()


class RedisTokenStore:
    """
    Redis-backed session store.

    Every write lands in the in-process map first, then in Redis (with the
    client's retry policy). A seller whose last Redis write or delete failed is
    kept in ``_unsynced``: reads for that seller are answered from memory and
    retry the pending write until Redis accepts it.
    """

    def __init__(
        self,
        client: Any,
        *,
        key_prefix: str = "tokens:",
        retention_seconds: int = 3600 * 24 * 7,
        fallback: Optional[MemoryTokenStore] = None,
    ):
        self.client = client
        self.key_prefix = key_prefix
        self.retention_seconds = retention_seconds
        self.fallback = fallback or MemoryTokenStore()
        self._unsynced: Set[str] = set()

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        key_prefix: str = "tokens:",
        retention_seconds: int = 3600 * 24 * 7,
        retry_attempts: int = 3,
        backoff_base: float = 0.05,
        backoff_cap: float = 0.5,
    ) -> "RedisTokenStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            retry=Retry(ExponentialBackoff(cap=backoff_cap, base=backoff_base), retry_attempts),
            retry_on_error=[RedisConnectionError, RedisTimeoutError],
        )
        return cls(client, key_prefix=key_prefix, retention_seconds=retention_seconds)

    def _key(self, seller_id: str) -> str:
        return f"{self.key_prefix}{seller_id}"

    async def _push(self, seller_id: str) -> None:
        """Mirror the in-process entry for seller_id into Redis (SET or DEL)."""
        session = await self.fallback.get(seller_id)
        if session is None:
            await self.client.delete(self._key(seller_id))
        else:
            await self.client.set(
                self._key(seller_id),
                json.dumps(session.to_record()),
                ex=self.retention_seconds,
            )
        self._unsynced.discard(seller_id)

    async def put(self, seller_id: str, session: Session) -> None:
        await self.fallback.put(seller_id, session)
        try:
            await self._push(seller_id)
        except RedisError as exc:
            self._unsynced.add(seller_id)
            logger.error("Failed to store tokens in Redis: %s", exc, extra={"seller_id": seller_id})

    async def get(self, seller_id: str) -> Optional[Session]:
        if seller_id in self._unsynced:
            try:
                await self._push(seller_id)
            except RedisError as exc:
                logger.warning("Redis still out of sync: %s", exc, extra={"seller_id": seller_id})
            return await self.fallback.get(seller_id)

        try:
            raw = await self.client.get(self._key(seller_id))
            if raw:
                return Session.from_record(json.loads(raw))
        except (RedisError, ValueError, KeyError) as exc:
            logger.error("Failed to get tokens from Redis: %s", exc, extra={"seller_id": seller_id})
        return await self.fallback.get(seller_id)

    async def delete(self, seller_id: str) -> None:
        await self.fallback.delete(seller_id)
        try:
            await self._push(seller_id)
        except RedisError as exc:
            self._unsynced.add(seller_id)
            logger.error("Failed to delete tokens from Redis: %s", exc, extra={"seller_id": seller_id})

    async def ping(self) -> None:
        await self.client.ping()

    async def count(self) -> int:
        return await self.fallback.count()

    async def aclose(self) -> None:
        await self.fallback.aclose()
        try:
            await self.client.aclose()
        except RedisError as exc:
            logger.warning("Error closing Redis client: %s", exc)


def build_token_store(cfg) -> TokenStore:
    """Pick the durable store when REDIS_URL is configured, memory otherwise."""
    if cfg.redis_url:
        logger.info("Using Redis for token storage")
        return RedisTokenStore.from_url(
            cfg.redis_url,
            key_prefix=cfg.token_key_prefix,
            retention_seconds=cfg.token_retention_seconds,
            retry_attempts=cfg.redis_retry_attempts,
            backoff_base=cfg.redis_backoff_base,
            backoff_cap=cfg.redis_backoff_cap,
        )
    logger.info("No Redis URL provided, using in-memory token storage")
    return MemoryTokenStore()
