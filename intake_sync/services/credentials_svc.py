"""API credentials store - keys per tenant and upstream system."""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import async_session_factory
from ..models.credential import ApiCredential

SYSTEM_NAMES: dict[str, str] = {
    "ghl": "GoHighLevel",
    "intakeq": "IntakeQ",
}


@dataclass(frozen=True)
class Credentials:
    """API keys for one sync run. Source side is IntakeQ, target side is GoHighLevel."""

    source_api_key: str | None = field(default=None, repr=False)
    target_api_key: str | None = field(default=None, repr=False)
    target_location_id: str | None = None

    def missing(self) -> list[str]:
        """Display names of systems without a key, GoHighLevel first."""
        missing = []
        if not self.target_api_key:
            missing.append(SYSTEM_NAMES["ghl"])
        if not self.source_api_key:
            missing.append(SYSTEM_NAMES["intakeq"])
        return missing

    @property
    def complete(self) -> bool:
        return not self.missing()


async def get_credentials(db: AsyncSession, tenant: str | None = None) -> Credentials:
    stmt = select(ApiCredential).where(ApiCredential.tenant == (tenant or settings.default_tenant))
    rows = {row.system: row for row in (await db.execute(stmt)).scalars().all()}
    ghl = rows.get("ghl")
    intakeq = rows.get("intakeq")
    return Credentials(
        source_api_key=(intakeq.api_key or None) if intakeq else None,
        target_api_key=(ghl.api_key or None) if ghl else None,
        target_location_id=ghl.location_id if ghl else None,
    )


async def save_credential(
    db: AsyncSession,
    system: str,
    api_key: str,
    location_id: str | None = None,
    tenant: str | None = None,
) -> ApiCredential:
    if system not in SYSTEM_NAMES:
        raise ValueError(f"Unknown system: {system}")
    tenant = tenant or settings.default_tenant
    stmt = select(ApiCredential).where(
        ApiCredential.tenant == tenant, ApiCredential.system == system,
    )
    row = (await db.execute(stmt)).scalar_one_or_none()
    if row is None:
        row = ApiCredential(tenant=tenant, system=system, api_key=api_key, location_id=location_id)
        db.add(row)
    else:
        row.api_key = api_key
        if location_id is not None:
            row.location_id = location_id
    await db.commit()
    await db.refresh(row)
    return row


class CredentialsStore:
    """Credentials capability backed by a session factory."""

    def __init__(self, session_factory=None, tenant: str | None = None):
        self._session_factory = session_factory or async_session_factory
        self.tenant = tenant or settings.default_tenant

    async def get(self) -> Credentials:
        async with self._session_factory() as db:
            return await get_credentials(db, self.tenant)

    async def save(self, system: str, api_key: str, location_id: str | None = None) -> None:
        async with self._session_factory() as db:
            await save_credential(db, system, api_key, location_id, self.tenant)
