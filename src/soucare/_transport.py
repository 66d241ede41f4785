"""HTTP transport with credential injection and cookie management."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from http.cookies import SimpleCookie
from typing import Any, Protocol

import aiohttp

from soucare._constants import USER_AGENT
from soucare._redact import redact_for_log
from soucare.config import SoucareConfig
from soucare.exceptions import SoucareHttpError, SoucareNetworkError, SoucareValidationError
from soucare.models.credential import AuthMode, Credential

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def call(
        self,
        endpoint: str,
        *,
        credential: Credential,
        method: str = "GET",
        body: Any = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        ...


class HttpTransport:
    """Single-call HTTP abstraction over an aiohttp session.

    Failures are translated into :class:`SoucareNetworkError` (request never
    completed) or :class:`SoucareHttpError` (non-2xx). A response without a
    JSON content type is a successful ``None``.
    """

    def __init__(self, config: SoucareConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._cookies: dict[str, str] = {}
        self._cookie_header: str = ""

    def _update_cookies(self, headers: Any) -> None:
        """Extract Set-Cookie headers and store them."""
        raw_cookies = headers.getall("Set-Cookie", [])
        changed = False
        for raw in raw_cookies:
            cookie: SimpleCookie = SimpleCookie()
            cookie.load(raw)
            for key, morsel in cookie.items():
                value = morsel.value
                if self._cookies.get(key) != value:
                    self._cookies[key] = value
                    changed = True

        if changed:
            self._cookie_header = "; ".join(f"{k}={v}" for k, v in self._cookies.items())

    def clear_cookies(self) -> None:
        self._cookies.clear()
        self._cookie_header = ""

    @property
    def has_session_cookie(self) -> bool:
        return bool(self._cookies)

    def _build_headers(
        self,
        credential: Credential,
        *,
        has_json_body: bool,
        has_form: bool,
        extra: Mapping[str, str] | None,
    ) -> dict[str, str]:
        headers: dict[str, str] = {"user-agent": USER_AGENT}
        if has_json_body:
            headers["content-type"] = "application/json"
        elif has_form:
            headers["content-type"] = "application/x-www-form-urlencoded"
        if credential.mode == AuthMode.BEARER:
            headers["authorization"] = f"Bearer {credential.token}"
        if self._cookie_header:
            headers["cookie"] = self._cookie_header
        if extra:
            headers.update(extra)
        return headers

    async def call(
        self,
        endpoint: str,
        *,
        credential: Credential,
        method: str = "GET",
        body: Any = None,
        form: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Perform one request and return the decoded JSON body (or ``None``)."""
        if credential.mode == AuthMode.NONE:
            _logger.debug("Skipping %s %s in offline mode", method, endpoint)
            return None

        url = self._config.url(endpoint)
        request_headers = self._build_headers(
            credential,
            has_json_body=body is not None,
            has_form=form is not None,
            extra=headers,
        )
        _logger.debug("%s %s params=%s headers=%s", method, url, params, redact_for_log(request_headers))

        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
        try:
            async with self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                data=json.dumps(body) if body is not None else (dict(form) if form is not None else None),
                headers=request_headers,
                timeout=timeout,
            ) as resp:
                self._update_cookies(resp.headers)
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    status_text = resp.reason or ""
                    message = f"{resp.status} {status_text}".strip()
                    if text:
                        message = f"{message}: {text[:200]}"
                    raise SoucareHttpError(
                        message,
                        status=resp.status,
                        status_text=status_text,
                        body_text=text,
                        endpoint=endpoint,
                    )
                content_type = resp.headers.get("Content-Type", "")
        except SoucareHttpError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SoucareNetworkError(
                f"Request to {endpoint} failed: {exc or type(exc).__name__}",
                endpoint=endpoint,
            ) from exc

        if "application/json" not in content_type:
            _logger.debug("Non-JSON response from %s (%s), treating as empty", endpoint, content_type or "no type")
            return None

        try:
            return json.loads(text) if text.strip() else None
        except json.JSONDecodeError as exc:
            raise SoucareValidationError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc
