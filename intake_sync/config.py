"""Sync service configuration via pydantic-settings."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class SyncSettings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///intake_sync.db"
    echo_sql: bool = False
    app_title: str = "IntakeQ / GoHighLevel Sync"

    # Single logical config record and the default credentials tenant
    config_record_id: str = "default"
    default_tenant: str = "default"

    # Request relay
    relay_timeout_seconds: float = 20.0
    relay_follow_redirects: bool = True

    # GoHighLevel (target side)
    ghl_api_base: str = "https://services.leadconnectorhq.com"
    ghl_api_version: str = "2021-07-28"
    ghl_page_size: int = 100
    ghl_max_pages: int = 200
    ghl_test_endpoints: list[str] = [
        "https://services.leadconnectorhq.com/contacts/?locationId={location_id}&limit=1",
        "https://rest.gohighlevel.com/v1/contacts/?limit=1",
    ]

    # IntakeQ (source side)
    intakeq_api_base: str = "https://intakeq.com/api/v1"
    intakeq_page_size: int = 100
    intakeq_max_pages: int = 100
    intakeq_test_endpoints: list[str] = [
        "https://intakeq.com/api/v1/clients",
    ]

    # Dashboard edits are coalesced before they hit the store
    config_save_debounce_seconds: float = 0.75

    # Auto-sync (runs only while is_sync_enabled is set)
    auto_sync_enabled: bool = True
    auto_sync_interval_seconds: float = 300.0

    activity_default_limit: int = 50

    model_config = {"env_prefix": "SYNC_", "env_file": ".env", "extra": "ignore"}

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.database_url


settings = SyncSettings()
