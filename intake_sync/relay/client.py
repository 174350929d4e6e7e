"""Request relay - forwards one HTTP call upstream and classifies the answer.

The relay owns no business logic: it sends ``RelayRequest`` objects with httpx and
hands every answer, including transport failures, back as a ``NormalizedResponse``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import settings
from .normalizer import NormalizedResponse, UpstreamError, classify

logger = logging.getLogger(__name__)

_REDACTED_HEADERS = {"authorization", "x-auth-key"}


@dataclass
class RelayRequest:
    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    params: dict[str, Any] | None = None


def prepare_headers(headers: dict[str, str] | None, method: str, has_body: bool) -> dict[str, str]:
    """Drop host headers and default the content type for bodies."""
    prepared: dict[str, str] = {}
    for key, value in (headers or {}).items():
        if not isinstance(value, str) or "host" in key.lower():
            continue
        prepared[key] = value
    if has_body and method.upper() != "GET":
        if not any(k.lower() == "content-type" for k in prepared):
            prepared["Content-Type"] = "application/json"
    return prepared


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    return {
        k: ("***redacted***" if k.lower() in _REDACTED_HEADERS else v)
        for k, v in headers.items()
    }


class HttpRelay:
    """httpx-backed relay.

    Usage:
        async with HttpRelay() as relay:
            response = await relay.invoke(RelayRequest(url="https://...", headers={...}))
    """

    def __init__(
        self,
        timeout: float | None = None,
        follow_redirects: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=settings.relay_timeout_seconds if timeout is None else timeout,
            follow_redirects=(
                settings.relay_follow_redirects if follow_redirects is None else follow_redirects
            ),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def invoke(self, request: RelayRequest) -> NormalizedResponse:
        method = (request.method or "GET").upper()
        has_body = request.body is not None and method != "GET"
        headers = prepare_headers(request.headers, method, has_body)

        content: str | None = None
        if has_body:
            content = request.body if isinstance(request.body, str) else json.dumps(request.body)

        logger.debug(
            "Relaying %s %s headers=%s", method, request.url, redact_headers(headers),
        )

        try:
            response = await self._client.request(
                method,
                request.url,
                params=request.params,
                headers=headers,
                content=content,
            )
        except httpx.TimeoutException as e:
            logger.warning("Request to %s timed out: %s", request.url, e)
            return UpstreamError(
                status_code=408,
                request_url=request.url,
                message="Request timeout: the request took too long to complete and was aborted",
            )
        except httpx.HTTPError as e:
            logger.warning("Request to %s failed: %s", request.url, e)
            return UpstreamError(
                status_code=0,
                request_url=request.url,
                message=f"Network request failed: {e}",
            )

        logger.debug(
            "Upstream %s %s -> %s (%s bytes)",
            method, request.url, response.status_code, len(response.content),
        )
        return classify(
            response.status_code,
            response.headers.get("content-type"),
            response.text,
            str(response.request.url),
            location=response.headers.get("location"),
        )
