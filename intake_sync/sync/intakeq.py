"""IntakeQ connector - clients API (source side)."""

from __future__ import annotations

import logging
from typing import Any

from ..config import settings
from ..mapping.field_mapper import INTAKEQ_CONTACT
from ..mapping.filters import apply_filters
from ..mapping.models import SyncFilters
from .connector import Connector, extract_items, match_exact, paginate_page

logger = logging.getLogger(__name__)


class IntakeQConnector(Connector):
    """IntakeQ clients.

    IntakeQ has no separate update call: ``POST /clients`` with a ``ClientId``
    saves over the existing client.
    """

    system = "IntakeQ"
    shape = INTAKEQ_CONTACT

    def __init__(self, relay, api_key: str, base_url: str | None = None):
        super().__init__(relay, api_key)
        self.base_url = base_url or settings.intakeq_api_base

    def _headers(self) -> dict[str, str]:
        return {
            "X-Auth-Key": self._api_key,
            "Accept": "application/json",
        }

    def record_id(self, record: dict) -> str | None:
        for key in ("ClientId", "Id", "id"):
            value = record.get(key)
            if value not in (None, ""):
                return str(value)
        return None

    async def list_clients(self, search: str | None = None) -> list[dict]:
        async def fetch_page(page: int, page_size: int) -> Any:
            params: dict[str, Any] = {"page": page, "includeProfile": "true"}
            if search:
                params["search"] = search
            return await self._call("GET", "/clients", params=params)

        return await paginate_page(
            fetch_page,
            "clients",
            page_size=settings.intakeq_page_size,
            max_pages=settings.intakeq_max_pages,
            id_keys=("ClientId", "Id", "id"),
        )

    async def fetch(self, category: str, filters: SyncFilters) -> list[dict]:
        clients = await self.list_clients()
        filtered = apply_filters(clients, filters, self.shape, category)
        logger.info(
            "Fetched %d IntakeQ clients, %d after filters", len(clients), len(filtered),
        )
        return filtered

    async def find(self, category: str, attribute: str, value: Any) -> dict | None:
        payload = await self._call(
            "GET", "/clients", params={"search": str(value), "includeProfile": "true"},
        )
        return match_exact(extract_items(payload, "clients"), attribute, value)

    async def create(self, category: str, fragment: dict) -> dict:
        payload = await self._call("POST", "/clients", body=dict(fragment))
        return payload if isinstance(payload, dict) else {}

    async def update(self, category: str, record_id: str, fragment: dict) -> dict:
        body = dict(fragment)
        body["ClientId"] = int(record_id) if str(record_id).isdigit() else record_id
        payload = await self._call("POST", "/clients", body=body)
        return payload if isinstance(payload, dict) else {}
