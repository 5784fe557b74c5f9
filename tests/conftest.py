"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from aiohttp import ClientSession

from pyvesynccloud.const import EU_BASE_URL, US_BASE_URL


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

Response = tuple[dict[str, Any] | None, int]

CROSS_REGION_CODE = -11260022
CREDENTIAL_CODE = -11201129
TOKEN_EXPIRED_CODE = -11001000
APP_VERSION_CODE = -11012022


def ok(result: dict[str, Any] | None = None) -> Response:
    """Build a successful VeSync response."""
    payload: dict[str, Any] = {"traceId": "1700000000000", "code": 0, "msg": "request success"}
    if result is not None:
        payload["result"] = result
    return payload, 200


def error(code: int, msg: str = "error", result: dict[str, Any] | None = None) -> Response:
    """Build a failed VeSync response."""
    payload: dict[str, Any] = {"traceId": "1700000000000", "code": code, "msg": msg}
    if result is not None:
        payload["result"] = result
    return payload, 200


def make_jwt(claims: dict[str, Any]) -> str:
    """Build an unsigned JWT carrying the given claims."""

    def encode(part: dict[str, Any]) -> str:
        return base64.urlsafe_b64encode(json.dumps(part).encode()).decode().rstrip("=")

    return f"{encode({'alg': 'HS256', 'typ': 'JWT'})}.{encode(claims)}.signature"


@dataclass
class RecordedCall:
    """One request seen by the fake cloud."""

    endpoint: str
    method: str
    base_url: str
    json_data: dict[str, Any] | None
    headers: dict[str, str] | None


class FakeCloud:
    """Scripted stand-in for ``VeSyncAPI.call_api``.

    Responses are queued per (base URL, endpoint). The last queued response
    for a route is repeated once the queue is down to one entry. Unknown
    routes answer like an unreachable host.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._routes: dict[tuple[str, str], list[Response]] = {}

    def add(self, base_url: str, endpoint: str, *responses: Response) -> None:
        self._routes.setdefault((base_url, endpoint), []).extend(responses)

    async def call_api(
        self,
        endpoint: str,
        method: str = "post",
        *,
        base_url: str,
        json_data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Response:
        self.calls.append(RecordedCall(endpoint, method, base_url, json_data, headers))
        queue = self._routes.get((base_url, endpoint))
        if not queue:
            return None, 0
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def calls_to(self, endpoint: str, base_url: str | None = None) -> list[RecordedCall]:
        return [
            call
            for call in self.calls
            if call.endpoint == endpoint and (base_url is None or call.base_url == base_url)
        ]


@pytest.fixture
def fake_cloud() -> FakeCloud:
    """Create an empty fake cloud."""
    return FakeCloud()


@pytest.fixture
def jwt_factory() -> Callable[[dict[str, Any]], str]:
    """Return the unsigned JWT builder."""
    return make_jwt


@pytest.fixture
def us_url() -> str:
    return US_BASE_URL


@pytest.fixture
def eu_url() -> str:
    return EU_BASE_URL


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()
