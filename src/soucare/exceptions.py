"""Custom exception hierarchy for soucare."""

from __future__ import annotations


class SoucareError(Exception):
    """Base exception for all soucare errors."""


class SoucareConfigError(SoucareError):
    """Invalid or missing configuration."""


class SoucareTransportError(SoucareError):
    """HTTP-level failure (network or non-2xx)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class SoucareNetworkError(SoucareTransportError):
    """The request never reached the server or no response came back.

    Covers DNS failures, refused connections, timeouts and requests blocked
    before dispatch.
    """


class SoucareHttpError(SoucareTransportError):
    """Server answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        status_text: str = "",
        body_text: str = "",
        endpoint: str = "",
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.body_text = body_text
        super().__init__(message, endpoint=endpoint)


class SoucareValidationError(SoucareError):
    """Payload did not have the expected top-level shape."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class SoucareAuthenticationError(SoucareError):
    """Login failed on every available method."""
