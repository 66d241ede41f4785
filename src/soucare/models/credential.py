"""Credential model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from soucare._constants import DEMO_TOKEN, SESSION_TOKEN


class AuthMode(StrEnum):
    BEARER = "bearer"
    """Send ``Authorization: Bearer <token>``."""
    SESSION = "session"
    """Rely on the cookie set by the session endpoint."""
    NONE = "none"
    """Offline demo, no network traffic at all."""


class Credential(BaseModel):
    """Opaque session credential and how to present it.

    Parameters
    ----------
    mode : AuthMode
        Presentation mode.
    token : str
        Bearer token; empty for the other modes.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    mode: AuthMode
    token: str = Field(default="", repr=False)

    @model_validator(mode="after")
    def _check_token(self) -> Credential:
        if self.mode == AuthMode.BEARER and not self.token:
            raise ValueError("bearer credential requires a token")
        return self

    @classmethod
    def bearer(cls, token: str) -> Credential:
        return cls(mode=AuthMode.BEARER, token=token)

    @classmethod
    def session(cls) -> Credential:
        return cls(mode=AuthMode.SESSION)

    @classmethod
    def demo(cls) -> Credential:
        return cls(mode=AuthMode.NONE)

    @classmethod
    def from_token(cls, raw: str) -> Credential:
        """Interpret a stored token string.

        ``"demo"`` selects offline mode, ``"session"`` selects cookie
        authentication and anything else is a bearer token.
        """
        token = raw.strip()
        if not token:
            raise ValueError("empty token")
        if token == DEMO_TOKEN:
            return cls.demo()
        if token == SESSION_TOKEN:
            return cls.session()
        return cls.bearer(token)

    def to_token(self) -> str:
        """Inverse of :meth:`from_token`."""
        if self.mode == AuthMode.NONE:
            return DEMO_TOKEN
        if self.mode == AuthMode.SESSION:
            return SESSION_TOKEN
        return self.token

    @property
    def is_demo(self) -> bool:
        return self.mode == AuthMode.NONE
