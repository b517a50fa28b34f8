"""Session lifecycle and the connectivity flag."""

from __future__ import annotations

import logging
from enum import Enum

from gardena_bridge.client import GardenaClient
from gardena_bridge.errors import AuthorizationError, SessionError, TransportError
from gardena_bridge.models import ROLE_CONNECTION, Session, StateEntry, ValueType
from gardena_bridge.paths import StatePath
from gardena_bridge.store import MemoryStateStore

logger = logging.getLogger(__name__)

CONNECTION_PATH = StatePath(("info", "connection"))


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    AUTHENTICATING = "authenticating"
    CONNECTED = "connected"


class SessionManager:
    """Owns the single live :class:`Session` and the ``info.connection`` flag.

    Components that issue requests hold a reference to the manager and read
    ``manager.session`` at call time, so a reconnect is visible to them
    immediately.
    """

    def __init__(
        self,
        client: GardenaClient,
        store: MemoryStateStore,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._username = username
        self._password = password
        self.session = Session()
        self.state = SessionState.DISCONNECTED

    @property
    def client(self) -> GardenaClient:
        return self._client

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    def ensure_flag(self) -> None:
        """Create ``info.connection`` if the store does not have it yet."""
        if CONNECTION_PATH not in self._store:
            self._store.upsert(StateEntry(
                path=CONNECTION_PATH,
                value=False,
                type=ValueType.BOOLEAN,
                role=ROLE_CONNECTION,
                name="connection",
                desc="Connected to the GARDENA cloud.",
            ))

    def _set_flag(self, connected: bool) -> None:
        self.state = SessionState.CONNECTED if connected else SessionState.DISCONNECTED
        self._store.set_value(CONNECTION_PATH, connected, ack=True)

    def _fail(self) -> None:
        self.session.clear()
        self._set_flag(False)

    async def connect(self, username: str | None = None, password: str | None = None) -> Session:
        """Authenticate once.

        Falls back to the configured credentials when none are given.
        Raises :class:`TransportError`, :class:`AuthorizationError` or
        :class:`SessionError`; the session is cleared and the flag is false
        in every failure case.
        """
        username = username or self._username
        password = password or self._password
        logger.info("Connecting to GARDENA smart system service ...")
        self.state = SessionState.AUTHENTICATING

        try:
            payload = await self._client.create_session(username or "", password or "")
        except TransportError:
            logger.info("Connection failure.")
            self._fail()
            raise
        except AuthorizationError:
            self._fail()
            logger.debug("Deleted auth tokens.")
            raise AuthorizationError(
                "Connection works, but authorization failed (wrong password?)"
            ) from None
        except Exception:
            self._fail()
            raise

        token = payload.get("token")
        user_id = payload.get("user_id")
        refresh_token = payload.get("refresh_token")
        if not (token and user_id and refresh_token):
            self._fail()
            raise SessionError("No auth data received")

        self.session.token = str(token)
        self.session.user_id = str(user_id)
        self.session.refresh_token = str(refresh_token)
        self._set_flag(True)
        logger.debug("Saved auth tokens.")
        return self.session

    def invalidate(self, reason: str) -> None:
        """Mark the session stale after a failed request."""
        logger.warning("Session invalidated: %s", reason)
        self._fail()
