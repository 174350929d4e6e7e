"""Classify raw upstream HTTP responses into typed outcomes.

Upstream APIs do not always answer with JSON: expired keys come back as HTML login
pages, misrouted calls as redirects, and some endpoints return plain text. Every
relay call is classified exactly once into one ``NormalizedResponse`` variant.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

HTML_SNIPPET_CHARS = 500
RAW_SNIPPET_CHARS = 1000

# (needles, diagnosis) in priority order
_HTML_DIAGNOSES: list[tuple[tuple[str, ...], str]] = [
    (("401", "Unauthorized"), "401 Unauthorized — invalid API key or credentials"),
    (("403", "Forbidden"), "403 Forbidden — access denied"),
    (("404", "Not Found"), "404 Not Found — API endpoint does not exist"),
    (("500", "Internal Server Error"), "500 Internal Server Error — upstream server fault"),
]
_HTML_GENERIC_DIAGNOSIS = "Authentication failed or invalid endpoint"


@dataclass(frozen=True)
class NormalizedResponse:
    status_code: int
    request_url: str = ""
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class Success(NormalizedResponse):
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.status_code < 400


@dataclass(frozen=True)
class HtmlError(NormalizedResponse):
    snippet: str = ""
    diagnosis: str = _HTML_GENERIC_DIAGNOSIS


@dataclass(frozen=True)
class Redirect(NormalizedResponse):
    location: str | None = None


@dataclass(frozen=True)
class Empty(NormalizedResponse):
    @property
    def ok(self) -> bool:
        return self.status_code < 400


@dataclass(frozen=True)
class ParseError(NormalizedResponse):
    raw_snippet: str = ""
    reason: str = ""


@dataclass(frozen=True)
class UpstreamError(NormalizedResponse):
    """The call never produced a classifiable response (transport failure, timeout)."""

    message: str = ""


def is_html(body_text: str) -> bool:
    return "<!DOCTYPE" in body_text or "<html" in body_text


def diagnose_html(body_text: str) -> str:
    for needles, diagnosis in _HTML_DIAGNOSES:
        if any(needle in body_text for needle in needles):
            return diagnosis
    return _HTML_GENERIC_DIAGNOSIS


def status_error_message(status: int) -> str | None:
    """Human-readable explanation for a 4xx/5xx status, ``None`` below 400."""
    if status == 401:
        return "Authentication failed. The API key may be invalid or expired."
    if status == 403:
        return "Access forbidden. The API key does not have permission to access this resource."
    if status == 404:
        return "Resource not found. The requested API endpoint does not exist."
    if 400 <= status < 500:
        return f"Client error: HTTP {status}. Check request parameters and authentication."
    if status >= 500:
        return f"Server error: HTTP {status}. The upstream server encountered an internal error."
    return None


def classify(
    status: int,
    content_type: str | None,
    body_text: str,
    request_url: str,
    location: str | None = None,
) -> NormalizedResponse:
    """Classify one upstream response. Pure: no I/O, no retries."""
    body_text = body_text or ""
    error_message = status_error_message(status)
    common = {"status_code": status, "request_url": request_url, "error_message": error_message}

    if is_html(body_text):
        return HtmlError(
            snippet=body_text[:HTML_SNIPPET_CHARS],
            diagnosis=diagnose_html(body_text),
            **common,
        )

    if 300 <= status < 400:
        return Redirect(location=location, **common)

    trimmed = body_text.strip()
    if not trimmed:
        return Empty(**common)

    looks_json = trimmed.startswith("{") or trimmed.startswith("[")
    if looks_json and (not content_type or "application/json" in content_type):
        try:
            parsed = json.loads(trimmed)
        except ValueError as e:
            return ParseError(
                raw_snippet=body_text[:RAW_SNIPPET_CHARS],
                reason=str(e),
                **common,
            )
        return Success(payload=parsed, **common)

    return Success(
        payload={"text": body_text, "contentType": content_type or "text/plain"},
        **common,
    )


def describe(response: NormalizedResponse) -> str:
    """One-line description of a failed response for logs and activity entries."""
    if isinstance(response, HtmlError):
        return response.diagnosis
    if isinstance(response, Redirect):
        target = response.location or "unknown location"
        return f"Redirect (HTTP {response.status_code}) to {target}"
    if isinstance(response, ParseError):
        return f"Invalid JSON from upstream: {response.reason}"
    if isinstance(response, UpstreamError):
        return response.message or response.error_message or "Upstream request failed"
    if isinstance(response, Success) and isinstance(response.payload, dict):
        detail = response.payload.get("message") or response.payload.get("error")
        if isinstance(detail, list):
            detail = "; ".join(str(d) for d in detail)
        if detail:
            return f"HTTP {response.status_code}: {detail}"
    return response.error_message or f"HTTP {response.status_code}"
