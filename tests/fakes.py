"""In-process stand-ins for the Myntra API, the clock and Redis."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from redis.exceptions import ConnectionError as RedisConnectionError

BASE_URL = "https://api.test/seller"

Route = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMyntra:
    """Stub Myntra seller API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Route | httpx.Response] = {}
        self.requests: List[httpx.Request] = []
        self.token_counter = 0
        self.on("POST", "/auth/token", self._issue_token)
        self.on("POST", "/auth/refresh", self._issue_token)

    def _issue_token(self, _request: httpx.Request) -> httpx.Response:
        self.token_counter += 1
        n = self.token_counter
        return httpx.Response(
            200,
            json={"access_token": f"T{n}", "refresh_token": f"R{n}", "expires_in": 3600},
        )

    def on(self, method: str, path: str, response: Route | httpx.Response | Dict[str, Any]) -> None:
        if isinstance(response, dict):
            response = httpx.Response(200, json=response)
        self.routes[(method, path)] = response

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/seller")
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})
        if isinstance(route, httpx.Response):
            return httpx.Response(route.status_code, headers=route.headers, content=route.content)
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.removeprefix("/seller") == path
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content.decode("utf-8")) if request.content else None


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the token store; flip ``down`` to simulate an outage."""

    def __init__(self, down: bool = False) -> None:
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.closed = False
        self.down = down

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.data.get(key)

    async def delete(self, key: str) -> int:
        self._check()
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True


class DownRedis(FakeRedis):
    def __init__(self) -> None:
        super().__init__(down=True)
