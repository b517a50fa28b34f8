"""GARDENA smart system cloud HTTP client."""

from __future__ import annotations

import json as json_mod
import logging
from types import TracebackType
from typing import Any

import aiohttp

from gardena_bridge.errors import ApiError, AuthorizationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://sg-api.dss.husqvarnagroup.net"
SESSIONS_URI = "/sg-1/sessions"
LOCATIONS_URI = "/sg-1/locations"
DEVICES_URI = "/sg-1/devices"

REQUEST_TIMEOUT = 30.0


class GardenaClient:
    """Async context manager for the GARDENA cloud API.

    Usage::

        async with GardenaClient() as client:
            auth = await client.create_session("me@example.com", "secret")
            locations = await client.get_locations(auth["token"], auth["user_id"])
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = REQUEST_TIMEOUT) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> GardenaClient:
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def request(
        self,
        method: str,
        uri: str,
        *,
        token: str | None = None,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (or None)."""
        if not self._session:
            raise TransportError("Client is not open")

        url = uri if uri.startswith(("http://", "https://")) else f"{self._base_url}{uri}"
        headers = {"Content-Type": "application/json"}
        if token:
            headers["X-Session"] = token

        logger.debug("%s %s", method, url)
        try:
            async with self._session.request(
                method, url, headers=headers, params=params, json=json,
            ) as resp:
                if resp.status == 401:
                    raise AuthorizationError(f"{method} {uri}: unauthorized")
                text = await resp.text()
                if resp.status >= 400:
                    raise ApiError(f"{method} {uri} failed: HTTP {resp.status} {text[:200]}", resp.status)
        except TimeoutError:
            raise TransportError(f"{method} {uri} timed out") from None
        except aiohttp.ClientError as exc:
            raise TransportError(f"Cannot reach {self._base_url}: {exc}") from None

        if not text.strip():
            return None
        try:
            return json_mod.loads(text)
        except ValueError:
            raise ApiError(f"{method} {uri}: response is not JSON", resp.status) from None

    async def create_session(self, email: str, password: str) -> dict[str, Any]:
        """Authenticate and return the raw ``sessions`` payload."""
        body = await self.request(
            "POST",
            SESSIONS_URI,
            json={"sessions": {"email": email, "password": password}},
        )
        if not isinstance(body, dict):
            return {}
        return body.get("sessions") or {}

    async def get_locations(self, token: str, user_id: str) -> list[dict[str, Any]]:
        body = await self.request("GET", f"{LOCATIONS_URI}/", token=token, params={"user_id": user_id})
        if not isinstance(body, dict):
            return []
        return body.get("locations") or []

    async def get_devices(self, token: str, location_id: str) -> list[dict[str, Any]]:
        body = await self.request("GET", f"{DEVICES_URI}/", token=token, params={"locationId": location_id})
        if not isinstance(body, dict):
            return []
        return body.get("devices") or []

    async def send_command(self, token: str, method: str, uri: str, payload: dict[str, Any]) -> Any:
        return await self.request(method, uri, token=token, json=payload)
