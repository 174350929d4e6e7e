"""Sync error taxonomy.

Fatal errors (configuration, credentials) abort a run before any network I/O.
Everything else is caught at category, leg or record scope and logged.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync failures."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ConfigurationError(SyncError):
    """Invalid or incomplete sync configuration."""

    pass


class ConfigurationMissing(ConfigurationError):
    """No sync configuration has been saved yet."""

    pass


class CredentialsMissing(ConfigurationError):
    """One or both upstream API keys are not configured."""

    def __init__(self, message: str, missing: list[str] | None = None):
        self.missing = list(missing or [])
        super().__init__(message)


class InvalidFilters(ConfigurationError):
    """Stored source or target filters cannot be decoded."""

    pass


class KeyFieldUnresolved(ConfigurationError):
    """A category has no key field and no fallback."""

    def __init__(self, message: str, category: str | None = None):
        self.category = category
        super().__init__(message)


class RecordKeyMissing(SyncError):
    """A record carries no value for its category's key field."""

    pass


class UpstreamError(SyncError):
    """An upstream call did not produce a usable payload."""

    def __init__(self, message: str, status_code: int | None = None, request_url: str | None = None):
        self.request_url = request_url
        super().__init__(message, status_code)


class UpstreamHtmlResponse(UpstreamError):
    """Upstream answered with an HTML page instead of JSON."""

    pass


class UpstreamStatusError(UpstreamError):
    """Upstream answered with a 4xx/5xx status or an unexpected redirect."""

    pass


class NetworkFailure(UpstreamError):
    """Transport-level failure: connection refused, DNS, timeout."""

    pass


class ParseFailure(UpstreamError):
    """Upstream body looked like JSON but could not be parsed."""

    pass
