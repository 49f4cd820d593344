import asyncio
import base64
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple, Type

from .errors import ApiError, AuthError, MyntraError, NotAuthenticated, RefreshFailure
from .http_client import HttpClient
from .session import Session, TokenStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _jwt_expiry(access_token: str) -> Optional[datetime]:
    """`exp` claim of an unverified JWT access token, when it carries one."""
    try:
        _header, claims, _signature = access_token.split(".")
        decoded = base64.urlsafe_b64decode(claims + "=" * (-len(claims) % 4))
        exp = json.loads(decoded).get("exp")
    except (ValueError, TypeError, AttributeError):
        return None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


class AuthManager:
    """Owns per-seller sessions: token issuance, refresh-on-expiry and revocation."""

    def __init__(
        self,
        client: HttpClient,
        store: TokenStore,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.store = store
        self.clock = clock
        self._refresh_locks: Dict[str, asyncio.Lock] = {}

    def _session_from_payload(
        self,
        seller_id: str,
        payload: Any,
        error_cls: Type[MyntraError],
        fallback_refresh: Optional[str] = None,
    ) -> Session:
        data = payload if isinstance(payload, dict) else {}
        access_token = data.get("access_token")
        if not access_token:
            raise error_cls("access token missing in Myntra response")

        now = self.clock()
        expires_in = data.get("expires_in")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            expires_at = now + timedelta(seconds=expires_in)
        else:
            # No usable expiry means the token is stale straight away.
            expires_at = _jwt_expiry(access_token) or now

        return Session(
            seller_id=seller_id,
            access_token=access_token,
            refresh_token=data.get("refresh_token") or fallback_refresh,
            expires_at=expires_at,
        )

    async def authenticate(self, seller_id: str, api_key: str, api_secret: str) -> Tuple[Session, bool]:
        """
        Exchange API credentials for a session.

        Returns (session, reused). When the seller already holds a valid session it
        is returned as-is and no call is made to the token endpoint.
        """
        if await self.is_authenticated(seller_id):
            session = await self.store.get(seller_id)
            if session:
                return session, True

        try:
            payload = await self.client.request(
                "POST",
                "auth/token",
                json_body={"seller_id": seller_id, "api_key": api_key, "api_secret": api_secret},
            )
        except ApiError as exc:
            logger.warning("Authentication rejected: %s", exc, extra={"seller_id": seller_id})
            raise AuthError(str(exc)) from exc

        session = self._session_from_payload(seller_id, payload, AuthError)
        await self.store.put(seller_id, session)
        logger.info("Seller authenticated", extra={"seller_id": seller_id})
        return session, False

    async def is_authenticated(self, seller_id: str) -> bool:
        """True when a usable access token exists, refreshing a stale one if possible."""
        session = await self.store.get(seller_id)
        if not session or not session.access_token:
            return False
        if not session.is_expired(self.clock()):
            return True
        if not session.refresh_token:
            return False
        return await self.refresh(seller_id)

    async def _exchange_refresh_token(self, session: Session) -> Session:
        try:
            payload = await self.client.request(
                "POST",
                "auth/refresh",
                json_body={"refresh_token": session.refresh_token},
            )
        except ApiError as exc:
            raise RefreshFailure(str(exc)) from exc
        return self._session_from_payload(
            session.seller_id,
            payload,
            RefreshFailure,
            fallback_refresh=session.refresh_token,
        )

    async def refresh(self, seller_id: str) -> bool:
        """Refresh the access token using the stored refresh token; revokes on failure."""
        lock = self._refresh_locks.setdefault(seller_id, asyncio.Lock())
        async with lock:
            session = await self.store.get(seller_id)
            if not session or not session.refresh_token:
                return False
            if session.access_token and not session.is_expired(self.clock()):
                # A concurrent caller already refreshed while we waited.
                return True

            try:
                new_session = await self._exchange_refresh_token(session)
            except RefreshFailure as exc:
                logger.warning("Token refresh failed: %s", exc, extra={"seller_id": seller_id})
                await self.revoke(seller_id)
                return False

            await self.store.put(seller_id, new_session)
            logger.info("Access token refreshed", extra={"seller_id": seller_id})
            return True

    async def revoke(self, seller_id: str) -> None:
        """Forget the seller's session. Never raises."""
        try:
            await self.store.delete(seller_id)
        except Exception:
            logger.exception("Failed to revoke tokens", extra={"seller_id": seller_id})

    async def current_access_token(self, seller_id: str) -> str:
        """Token for an outbound call. Does not refresh; call is_authenticated first."""
        session = await self.store.get(seller_id)
        if not session or not session.access_token:
            raise NotAuthenticated()
        return session.access_token

    async def get_session(self, seller_id: str) -> Optional[Session]:
        return await self.store.get(seller_id)

    async def aclose(self) -> None:
        await self.store.aclose()
