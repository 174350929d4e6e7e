"""Settings routes - sync configuration, key fields and API credentials."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..mapping.key_fields import clear_key_field, set_key_field
from ..relay.endpoints import check_connection
from ..schemas.sync import (
    ConnectionTestOut,
    ConnectionTestRequest,
    CredentialsStatus,
    CredentialsUpdate,
    KeyFieldUpdate,
    SyncConfigOut,
    SyncConfigUpdate,
)
from ..services import config_svc, credentials_svc
from ..services.config_svc import ConfigStore, DebouncedConfigSaver
from ..sync.errors import ConfigurationError
from .sync import get_relay_factory

router = APIRouter(prefix="/sync", tags=["settings"])

config_saver = DebouncedConfigSaver(ConfigStore())


def get_config_saver() -> DebouncedConfigSaver:
    return config_saver


@router.get("/config", response_model=SyncConfigOut)
async def get_config(db: AsyncSession = Depends(get_db)):
    try:
        config = await config_svc.load_config(db)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.message) from e
    if config is None:
        raise HTTPException(status_code=404, detail="Sync configuration not found")
    return config.to_dict()


@router.put("/config")
async def update_config(
    data: SyncConfigUpdate,
    defer: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    saver: DebouncedConfigSaver = Depends(get_config_saver),
):
    partial = data.model_dump(exclude_none=True)
    try:
        if defer:
            saver.schedule(partial)
            return {"status": "pending", "fields": sorted(partial)}
        config = await config_svc.save_config(db, partial)
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.message) from e
    return config.to_dict()


@router.post("/config/key-field", response_model=SyncConfigOut)
async def update_key_field(data: KeyFieldUpdate, db: AsyncSession = Depends(get_db)):
    try:
        config = await config_svc.load_config(db)
        if config is None:
            raise HTTPException(status_code=404, detail="Sync configuration not found")
        if data.field:
            mapping = set_key_field(config.field_mapping, data.category, data.field)
        else:
            mapping = clear_key_field(config.field_mapping, data.category)
        config = await config_svc.save_config(db, {"field_mapping": mapping})
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=e.message) from e
    return config.to_dict()


async def _credentials_status(db: AsyncSession) -> CredentialsStatus:
    creds = await credentials_svc.get_credentials(db)
    return CredentialsStatus(
        ghl_configured=bool(creds.target_api_key),
        intakeq_configured=bool(creds.source_api_key),
        ghl_location_id=creds.target_location_id,
    )


@router.get("/credentials", response_model=CredentialsStatus)
async def get_credentials_status(db: AsyncSession = Depends(get_db)):
    return await _credentials_status(db)


@router.put("/credentials", response_model=CredentialsStatus)
async def update_credentials(data: CredentialsUpdate, db: AsyncSession = Depends(get_db)):
    if data.ghl_api_key is not None:
        await credentials_svc.save_credential(db, "ghl", data.ghl_api_key, data.ghl_location_id)
    elif data.ghl_location_id is not None:
        creds = await credentials_svc.get_credentials(db)
        await credentials_svc.save_credential(
            db, "ghl", creds.target_api_key or "", data.ghl_location_id,
        )
    if data.intakeq_api_key is not None:
        await credentials_svc.save_credential(db, "intakeq", data.intakeq_api_key)
    return await _credentials_status(db)


@router.post("/credentials/test", response_model=ConnectionTestOut)
async def check_credentials(
    data: ConnectionTestRequest,
    db: AsyncSession = Depends(get_db),
    relay_factory=Depends(get_relay_factory),
):
    if data.system not in credentials_svc.SYSTEM_NAMES:
        raise HTTPException(status_code=422, detail=f"Unknown system: {data.system}")

    creds = await credentials_svc.get_credentials(db)
    if data.system == "ghl":
        api_key = data.api_key or creds.target_api_key
        location_id = data.location_id or creds.target_location_id
    else:
        api_key = data.api_key or creds.source_api_key
        location_id = None
    if not api_key:
        name = credentials_svc.SYSTEM_NAMES[data.system]
        return ConnectionTestOut(
            system=data.system, success=False, message=f"No {name} API key configured",
        )

    async with relay_factory() as relay:
        result = await check_connection(relay, data.system, api_key, location_id)
    return ConnectionTestOut(
        system=result.system,
        success=result.success,
        message=result.message,
        endpoint=result.endpoint,
    )
