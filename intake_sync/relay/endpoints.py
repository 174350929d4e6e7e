"""Bounded candidate endpoints with first-success-wins semantics.

Some upstream APIs moved between hosts and versions; where more than one endpoint
may serve a call, the candidates are an ordered list in settings rather than a
trial loop inside the caller. Every attempt is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..config import settings
from ..sync.errors import UpstreamError
from .client import RelayRequest
from .normalizer import NormalizedResponse, Success, describe

logger = logging.getLogger(__name__)


@dataclass
class ConnectionResult:
    system: str
    success: bool
    message: str
    endpoint: str | None = None


async def first_success(
    relay,
    candidates: list[str],
    build_request: Callable[[str], RelayRequest],
) -> tuple[str, NormalizedResponse]:
    """Try each candidate in order and return ``(url, response)`` of the first success.

    Raises:
        UpstreamError: every candidate failed; carries the last failure message.
    """
    if not candidates:
        raise UpstreamError("No candidate endpoints configured")

    last_message = ""
    last_status: int | None = None
    for index, template in enumerate(candidates, start=1):
        request = build_request(template)
        response = await relay.invoke(request)
        if isinstance(response, Success) and response.ok:
            logger.info("Endpoint %d/%d succeeded: %s", index, len(candidates), request.url)
            return request.url, response
        last_message = describe(response)
        last_status = response.status_code
        logger.info(
            "Endpoint %d/%d failed: %s (%s)", index, len(candidates), request.url, last_message,
        )

    raise UpstreamError(last_message, last_status)


async def check_connection(relay, system: str, api_key: str, location_id: str | None = None) -> ConnectionResult:
    """Verify an API key against the configured candidate endpoints of ``system``."""
    if system == "ghl":
        name = "GoHighLevel"
        candidates = settings.ghl_test_endpoints
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Version": settings.ghl_api_version,
            "Accept": "application/json",
        }
    elif system == "intakeq":
        name = "IntakeQ"
        candidates = settings.intakeq_test_endpoints
        headers = {"X-Auth-Key": api_key, "Accept": "application/json"}
    else:
        raise ValueError(f"Unknown system: {system}")

    def build(template: str) -> RelayRequest:
        return RelayRequest(
            url=template.format(location_id=location_id or ""),
            method="GET",
            headers=headers,
        )

    try:
        url, _ = await first_success(relay, candidates, build)
    except UpstreamError as e:
        return ConnectionResult(system=system, success=False, message=e.message or f"Failed to test {name} API key")

    suffix = "" if url == build(candidates[0]).url else " (using fallback endpoint)"
    return ConnectionResult(
        system=system,
        success=True,
        message=f"{name} connection successful{suffix}!",
        endpoint=url,
    )
