"""Exception hierarchy for the GARDENA bridge."""

from __future__ import annotations


class GardenaError(Exception):
    """Base error for everything raised by the bridge."""


class TransportError(GardenaError):
    """The cloud could not be reached (network failure or timeout)."""


class AuthorizationError(GardenaError):
    """The cloud rejected the credentials or the session token."""


class SessionError(GardenaError):
    """Authentication succeeded but the session payload was malformed."""


class ApiError(GardenaError):
    """The cloud answered with an unexpected HTTP status."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


class SchemaError(GardenaError):
    """The command catalog cannot describe the requested operation."""


class ConfigError(GardenaError):
    """Invalid bridge configuration."""
