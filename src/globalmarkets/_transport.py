"""JSON-over-HTTP transport shared by the external providers."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from globalmarkets._constants import USER_AGENT
from globalmarkets.exceptions import ProviderError

_logger = logging.getLogger(__name__)

_SECRET_KEYS = frozenset({"api_key", "apikey", "authorization", "x-api-key"})


def redact_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of *payload* with credential fields masked, for DEBUG logs."""
    return {key: "<redacted>" if str(key).lower() in _SECRET_KEYS else value for key, value in payload.items()}


class Transport(Protocol):
    """Structural transport interface used by provider modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str, *, params: Mapping[str, Any] | None = None, provider: str = "") -> Any: ...

    async def post_json(self, url: str, payload: Mapping[str, Any], *, provider: str = "") -> Any: ...


class HttpTransport:
    """JSON transport over a shared :class:`aiohttp.ClientSession`.

    Non-2xx responses, network failures and undecodable bodies all raise
    :class:`ProviderError`; callers never see raw aiohttp exceptions.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 30.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        provider: str,
        params: Mapping[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        if payload is not None:
            headers["content-type"] = "application/json"
            _logger.debug("%s %s payload=%s", method, url, redact_payload(payload))
        else:
            _logger.debug("%s %s params=%s", method, url, dict(params or {}))

        try:
            async with self._http.request(
                method,
                url,
                params=params,
                data=json.dumps(payload) if payload is not None else None,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise ProviderError(
                        f"{provider or url} failed: HTTP {resp.status} {resp.reason or ''}".rstrip(),
                        status_code=resp.status,
                        provider=provider,
                    )
        except ProviderError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise ProviderError(f"Request to {provider or url} failed: {exc}", provider=provider) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ProviderError(
                f"Invalid JSON from {provider or url}: {text[:200]}",
                status_code=resp.status,
                provider=provider,
            ) from exc

    async def get_json(self, url: str, *, params: Mapping[str, Any] | None = None, provider: str = "") -> Any:
        return await self._request("GET", url, params=params, provider=provider)

    async def post_json(self, url: str, payload: Mapping[str, Any], *, provider: str = "") -> Any:
        return await self._request("POST", url, payload=payload, provider=provider)
