"""Tests for the GARDENA cloud HTTP client."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import aiohttp
import pytest

from gardena_bridge.client import DEFAULT_BASE_URL, GardenaClient
from gardena_bridge.errors import ApiError, AuthorizationError, TransportError
from tests.conftest import LOCATION_1_ID, TOKEN, USER_ID


class FakeResponse:
    """Fake aiohttp response usable as an async context manager."""

    def __init__(self, status: int = 200, text: str = "") -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        pass


class FakeHttpSession:
    """Fake aiohttp.ClientSession that replays responses and records requests."""

    def __init__(self, responses: list[FakeResponse | BaseException]) -> None:
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


def _client(*responses: FakeResponse | BaseException) -> tuple[GardenaClient, FakeHttpSession]:
    client = GardenaClient()
    http = FakeHttpSession(list(responses))
    client._session = http  # type: ignore[assignment]
    return client, http


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_context_manager_opens_and_closes() -> None:
    http = FakeHttpSession([])
    with patch("gardena_bridge.client.aiohttp.ClientSession", MagicMock(return_value=http)):
        async with GardenaClient("https://example.test/") as client:
            assert client.base_url == "https://example.test"
            assert client._session is http
    assert http.closed
    assert client._session is None


@pytest.mark.asyncio
async def test_request_requires_open_client() -> None:
    with pytest.raises(TransportError, match="not open"):
        await GardenaClient().request("GET", "/sg-1/locations/")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_session() -> None:
    body = '{"sessions": {"token": "t", "user_id": "u", "refresh_token": "r"}}'
    client, http = _client(FakeResponse(201, body))
    result = await client.create_session("me@example.com", "secret")

    assert result == {"token": "t", "user_id": "u", "refresh_token": "r"}
    [req] = http.requests
    assert req["method"] == "POST"
    assert req["url"] == f"{DEFAULT_BASE_URL}/sg-1/sessions"
    assert req["json"] == {"sessions": {"email": "me@example.com", "password": "secret"}}
    assert "X-Session" not in req["headers"]


@pytest.mark.asyncio
async def test_create_session_without_payload() -> None:
    client, _ = _client(FakeResponse(200, '{"unexpected": true}'))
    assert await client.create_session("me@example.com", "secret") == {}


@pytest.mark.asyncio
async def test_get_locations_sends_token_and_user() -> None:
    client, http = _client(FakeResponse(200, '{"locations": [{"id": "L1"}]}'))
    assert await client.get_locations(TOKEN, USER_ID) == [{"id": "L1"}]
    [req] = http.requests
    assert req["url"] == f"{DEFAULT_BASE_URL}/sg-1/locations/"
    assert req["params"] == {"user_id": USER_ID}
    assert req["headers"]["X-Session"] == TOKEN


@pytest.mark.asyncio
async def test_get_devices() -> None:
    client, http = _client(FakeResponse(200, '{"devices": [{"id": "D1"}]}'))
    assert await client.get_devices(TOKEN, LOCATION_1_ID) == [{"id": "D1"}]
    assert http.requests[0]["params"] == {"locationId": LOCATION_1_ID}


@pytest.mark.asyncio
async def test_send_command_empty_body() -> None:
    client, http = _client(FakeResponse(204, ""))
    uri = "/sg-1/devices/D1/abilities/mower/command?locationId=L1"
    result = await client.send_command(TOKEN, "POST", uri, {"name": "park_until_next_timer"})
    assert result is None
    [req] = http.requests
    assert req["url"] == f"{DEFAULT_BASE_URL}{uri}"
    assert req["json"] == {"name": "park_until_next_timer"}


@pytest.mark.asyncio
async def test_absolute_uri_is_used_as_is() -> None:
    client, http = _client(FakeResponse(200, "{}"))
    await client.request("GET", "https://other.test/x")
    assert http.requests[0]["url"] == "https://other.test/x"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unauthorized() -> None:
    client, _ = _client(FakeResponse(401, "Unauthorized"))
    with pytest.raises(AuthorizationError):
        await client.create_session("me@example.com", "wrong")


@pytest.mark.asyncio
async def test_http_error_carries_status() -> None:
    client, _ = _client(FakeResponse(500, "boom"))
    with pytest.raises(ApiError) as exc_info:
        await client.get_devices(TOKEN, LOCATION_1_ID)
    assert exc_info.value.status == 500


@pytest.mark.asyncio
async def test_invalid_json() -> None:
    client, _ = _client(FakeResponse(200, "<html>"))
    with pytest.raises(ApiError, match="not JSON"):
        await client.get_locations(TOKEN, USER_ID)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [aiohttp.ClientConnectionError("connection refused"), TimeoutError()],
)
async def test_transport_failures(exc: BaseException) -> None:
    client, _ = _client(exc)
    with pytest.raises(TransportError):
        await client.get_locations(TOKEN, USER_ID)
