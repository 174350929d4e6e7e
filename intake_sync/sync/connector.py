"""Shared plumbing for upstream system connectors.

A connector turns record-level operations (fetch, find, create, update) into relay
calls against one system and converts non-success responses into the sync error
taxonomy.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from ..mapping.field_mapper import ContactShape, read_value
from ..mapping.models import SyncFilters
from ..relay.client import RelayRequest
from ..relay.normalizer import (
    Empty,
    HtmlError,
    NormalizedResponse,
    ParseError,
    Redirect,
    UpstreamError as UpstreamErrorResponse,
    describe,
)
from .errors import (
    NetworkFailure,
    ParseFailure,
    UpstreamHtmlResponse,
    UpstreamStatusError,
)

logger = logging.getLogger(__name__)

_LIST_KEYS = ("contacts", "clients", "results", "data", "items")


def expect_payload(response: NormalizedResponse) -> Any:
    """Return the usable payload of ``response`` or raise the matching error."""
    status = response.status_code
    url = response.request_url
    if isinstance(response, HtmlError):
        raise UpstreamHtmlResponse(response.diagnosis, status, url)
    if isinstance(response, UpstreamErrorResponse):
        if status in (0, 408):
            raise NetworkFailure(describe(response), status, url)
        raise UpstreamStatusError(describe(response), status, url)
    if isinstance(response, ParseError):
        raise ParseFailure(describe(response), status, url)
    if isinstance(response, Redirect):
        raise UpstreamStatusError(describe(response), status, url)
    if status >= 400:
        raise UpstreamStatusError(describe(response), status, url)
    if isinstance(response, Empty):
        return {}
    return getattr(response, "payload", None)


def extract_items(payload: Any, key: str | None = None) -> list[dict]:
    """Extract a record list from a bare list or a wrapped envelope."""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if not isinstance(payload, dict):
        return []
    keys = (key,) + _LIST_KEYS if key else _LIST_KEYS
    for k in keys:
        raw = payload.get(k)
        if isinstance(raw, list):
            return [item for item in raw if isinstance(item, dict)]
        if isinstance(raw, dict):
            nested = raw.get(k)
            if isinstance(nested, list):
                return [item for item in nested if isinstance(item, dict)]
    return []


def _item_id(item: dict, id_keys: tuple[str, ...]) -> str:
    for k in id_keys:
        value = item.get(k)
        if value not in (None, ""):
            return str(value)
    return ""


def _add_unseen(
    batch: list[dict], id_keys: tuple[str, ...], seen_ids: set[str], out: list[dict],
) -> int:
    """Append records not seen before; returns how many were new."""
    added = 0
    for item in batch:
        item_id = _item_id(item, id_keys)
        if item_id:
            if item_id in seen_ids:
                continue
            seen_ids.add(item_id)
        out.append(item)
        added += 1
    return added


async def paginate_page(
    fetch_page: Callable[[int, int], Awaitable[Any]],
    key: str,
    page_size: int,
    max_pages: int,
    id_keys: tuple[str, ...] = ("id",),
) -> list[dict]:
    """Paginate endpoints that take a 1-based page number."""
    all_items: list[dict] = []
    seen_ids: set[str] = set()

    for page in range(1, max_pages + 1):
        batch = extract_items(await fetch_page(page, page_size), key)
        if not batch:
            break
        # Some endpoints ignore the page parameter and repeat the first page.
        if _add_unseen(batch, id_keys, seen_ids, all_items) == 0 or len(batch) < page_size:
            break

    return all_items


async def paginate_cursor(
    fetch_page: Callable[[int, dict[str, Any]], Awaitable[Any]],
    key: str,
    page_size: int,
    max_pages: int,
    cursor_keys: tuple[str, ...] = ("startAfterId", "startAfter"),
    id_keys: tuple[str, ...] = ("id",),
) -> list[dict]:
    """Paginate endpoints that return their next cursor under ``meta``.

    ``fetch_page`` receives the page size and the cursor params to send; the first
    call gets an empty cursor. Paging stops when the response omits any of
    ``cursor_keys`` or repeats the previous cursor.
    """
    all_items: list[dict] = []
    seen_ids: set[str] = set()
    cursor: dict[str, Any] = {}

    for _ in range(max_pages):
        payload = await fetch_page(page_size, cursor)
        batch = extract_items(payload, key)
        if not batch or _add_unseen(batch, id_keys, seen_ids, all_items) == 0:
            break

        meta = payload.get("meta") if isinstance(payload, dict) else None
        if not isinstance(meta, dict):
            break
        next_cursor = {k: meta.get(k) for k in cursor_keys}
        if any(v in (None, "") for v in next_cursor.values()) or next_cursor == cursor:
            break
        cursor = next_cursor

    return all_items


def match_exact(records: list[dict], attribute: str, value: Any) -> dict | None:
    """First record whose ``attribute`` equals ``value``; email compares case-insensitively."""
    wanted = str(value)
    email = attribute.rsplit(".", 1)[-1].lower() == "email"
    for record in records:
        candidate = read_value(record, attribute)
        if candidate is None:
            continue
        if email:
            if str(candidate).strip().lower() == wanted.strip().lower():
                return record
        elif str(candidate) == wanted:
            return record
    return None


class Connector:
    """Base connector for one upstream system."""

    system: str = ""
    shape: ContactShape
    categories: frozenset[str] = frozenset({"contact"})
    base_url: str = ""

    def __init__(self, relay, api_key: str):
        self._relay = relay
        self._api_key = api_key

    def supports(self, category: str) -> bool:
        return category in self.categories

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    async def _call(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        request = RelayRequest(
            url=f"{self.base_url.rstrip('/')}{path}",
            method=method,
            headers=self._headers(),
            body=body,
            params=params,
        )
        response = await self._relay.invoke(request)
        try:
            return expect_payload(response)
        except Exception as e:
            logger.debug("%s %s %s failed: %s", self.system, method, path, e)
            raise

    def record_id(self, record: dict) -> str | None:
        value = record.get("id")
        return str(value) if value not in (None, "") else None

    async def fetch(self, category: str, filters: SyncFilters) -> list[dict]:
        raise NotImplementedError

    async def find(self, category: str, attribute: str, value: Any) -> dict | None:
        raise NotImplementedError

    async def create(self, category: str, fragment: dict) -> dict:
        raise NotImplementedError

    async def update(self, category: str, record_id: str, fragment: dict) -> dict:
        raise NotImplementedError
