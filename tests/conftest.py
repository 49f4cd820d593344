from __future__ import annotations

from datetime import timedelta

import pytest

from myntra_mcp.api import SellerApi
from myntra_mcp.auth import AuthManager
from myntra_mcp.gateway import ToolGateway
from myntra_mcp.http_client import HttpClient
from myntra_mcp.session import MemoryTokenStore, Session

from tests.fakes import BASE_URL, FakeClock, FakeMyntra


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def myntra() -> FakeMyntra:
    return FakeMyntra()


@pytest.fixture
def store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def http_client(myntra: FakeMyntra) -> HttpClient:
    return HttpClient(BASE_URL, transport=myntra.transport)


@pytest.fixture
def auth(http_client: HttpClient, store: MemoryTokenStore, clock: FakeClock) -> AuthManager:
    return AuthManager(http_client, store, clock=clock)


@pytest.fixture
def api(http_client: HttpClient, auth: AuthManager) -> SellerApi:
    return SellerApi(http_client, auth)


@pytest.fixture
def gateway(auth: AuthManager, api: SellerApi) -> ToolGateway:
    return ToolGateway(auth, api)


@pytest.fixture
async def signed_in(store: MemoryTokenStore, clock: FakeClock) -> Session:
    """Seller S1 holding a valid session without going through the token endpoint."""
    session = Session(
        seller_id="S1",
        access_token="T-live",
        refresh_token="R-live",
        expires_at=clock() + timedelta(hours=1),
    )
    await store.put("S1", session)
    return session
