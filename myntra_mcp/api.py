import logging
from typing import Any, Dict, Optional

from .auth import AuthManager
from .errors import ApiError
from .http_client import HttpClient

logger = logging.getLogger(__name__)


class SellerApi:
    """Authenticated calls to the Myntra seller API on behalf of one seller at a time."""

    def __init__(self, client: HttpClient, auth: AuthManager):
        self.client = client
        self.auth = auth

    async def call(
        self,
        seller_id: str,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Any] = None,
    ) -> Any:
        """
        Issue one request with the seller's current bearer token.

        Raises NotAuthenticated when no token is stored and ApiError on any
        non-2xx response or transport failure. Nothing is retried here.
        """
        token = await self.auth.current_access_token(seller_id)
        try:
            return await self.client.request(
                method,
                path,
                access_token=token,
                params=params,
                json_body=body,
            )
        except ApiError as exc:
            logger.warning(
                "Myntra API %s %s failed: %s",
                method,
                path,
                exc,
                extra={"seller_id": seller_id},
            )
            raise
