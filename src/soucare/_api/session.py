"""Login endpoints.

Endpoints:
  - /api/auth/login (JSON, returns a bearer token)
  - /api/session (form-encoded, sets a session cookie)
"""

from __future__ import annotations

import logging
from typing import Any

from soucare._api._fallback import EndpointStrategy, attempt_in_order
from soucare._transport import Transport
from soucare.config import SoucareConfig
from soucare.exceptions import SoucareAuthenticationError
from soucare.models.credential import Credential

_logger = logging.getLogger(__name__)

_TOKEN_KEYS = ("token", "access_token", "jwt")


def extract_token(payload: Any) -> str | None:
    """Pick the bearer token out of a login response."""
    if not isinstance(payload, dict):
        return None
    for key in _TOKEN_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


async def login(config: SoucareConfig, transport: Transport, email: str, password: str) -> Credential:
    """Obtain a credential, preferring a bearer token over a cookie session."""
    anonymous = Credential.session()

    async def _bearer() -> Credential:
        payload = await transport.call(
            config.endpoints.login,
            credential=anonymous,
            method="POST",
            body={"email": email, "password": password},
        )
        token = extract_token(payload)
        if token is None:
            raise SoucareAuthenticationError(f"{config.endpoints.login} returned no token")
        return Credential.bearer(token)

    async def _session() -> Credential:
        await transport.call(
            config.endpoints.session,
            credential=anonymous,
            method="POST",
            form={"email": email, "password": password},
        )
        return Credential.session()

    outcome = await attempt_in_order([EndpointStrategy("bearer", _bearer), EndpointStrategy("session", _session)])
    if not outcome.ok:
        raise SoucareAuthenticationError(f"Login failed: {outcome.last_error}") from outcome.last_error
    _logger.debug("Logged in via %s", outcome.strategy)
    assert outcome.value is not None  # noqa: S101
    return outcome.value
