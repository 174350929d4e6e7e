"""GoHighLevel connector - contacts API (target side)."""

from __future__ import annotations

import logging
from typing import Any

from ..config import settings
from ..mapping.field_mapper import GHL_CONTACT
from ..mapping.filters import apply_filters
from ..mapping.models import SyncFilters
from .connector import Connector, extract_items, match_exact, paginate_cursor

logger = logging.getLogger(__name__)


class GHLConnector(Connector):
    """GoHighLevel contacts for one location."""

    system = "GoHighLevel"
    shape = GHL_CONTACT

    def __init__(
        self,
        relay,
        api_key: str,
        location_id: str | None,
        base_url: str | None = None,
    ):
        super().__init__(relay, api_key)
        self.location_id = location_id
        self.base_url = base_url or settings.ghl_api_base

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Version": settings.ghl_api_version,
            "Accept": "application/json",
        }

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.location_id:
            params["locationId"] = self.location_id
        params.update({k: v for k, v in extra.items() if v is not None})
        return params

    async def list_contacts(self, query: str | None = None) -> list[dict]:
        async def fetch_page(limit: int, cursor: dict[str, Any]) -> Any:
            return await self._call(
                "GET",
                "/contacts/",
                params=self._params(limit=min(limit, 100), query=query, **cursor),
            )

        return await paginate_cursor(
            fetch_page,
            "contacts",
            id_keys=("id", "_id"),
            page_size=settings.ghl_page_size,
            max_pages=settings.ghl_max_pages,
        )

    async def fetch(self, category: str, filters: SyncFilters) -> list[dict]:
        contacts = await self.list_contacts()
        filtered = apply_filters(contacts, filters, self.shape, category)
        logger.info(
            "Fetched %d GoHighLevel contacts, %d after filters", len(contacts), len(filtered),
        )
        return filtered

    async def find(self, category: str, attribute: str, value: Any) -> dict | None:
        if attribute == self.shape.email:
            payload = await self._call(
                "GET", "/contacts/search/duplicate", params=self._params(email=str(value)),
            )
            if isinstance(payload, dict) and isinstance(payload.get("contact"), dict):
                candidates = [payload["contact"]]
            else:
                candidates = extract_items(payload, "contacts")
        else:
            payload = await self._call(
                "GET", "/contacts/", params=self._params(query=str(value), limit=100),
            )
            candidates = extract_items(payload, "contacts")
        return match_exact(candidates, attribute, value)

    async def create(self, category: str, fragment: dict) -> dict:
        body = dict(fragment)
        if self.location_id:
            body.setdefault("locationId", self.location_id)
        payload = await self._call("POST", "/contacts/", body=body)
        if isinstance(payload, dict) and isinstance(payload.get("contact"), dict):
            return payload["contact"]
        return payload if isinstance(payload, dict) else {}

    async def update(self, category: str, record_id: str, fragment: dict) -> dict:
        body = {k: v for k, v in fragment.items() if k not in ("id", "locationId")}
        payload = await self._call("PUT", f"/contacts/{record_id}", body=body)
        if isinstance(payload, dict) and isinstance(payload.get("contact"), dict):
            return payload["contact"]
        return payload if isinstance(payload, dict) else {}
