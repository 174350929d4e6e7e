"""Sync orchestrator - reconciles contacts between IntakeQ and GoHighLevel.

One run: load config and credentials, resolve key fields, then for every direction
leg fetch the filtered records of one side, map each to the other side's schema,
look up a match by key and update or create it. Every record and run-level event
lands in the activity log; records are processed strictly one after another.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ..mapping.field_mapper import (
    ContactShape,
    apply_mapping,
    key_attribute,
    read_side,
    read_value,
    write_side,
    write_value,
)
from ..mapping.filters import matches_id_filter
from ..mapping.key_fields import resolve_key_fields
from ..mapping.models import CategoryMapping, Direction, FieldMapping, SyncFilters
from ..schemas.activity import ActivityLogCreate, FieldChange
from ..services.credentials_svc import Credentials
from .connector import Connector
from .errors import (
    ConfigurationError,
    ConfigurationMissing,
    CredentialsMissing,
    InvalidFilters,
    RecordKeyMissing,
    SyncError,
    UpstreamStatusError,
)
from .ghl import GHLConnector
from .intakeq import IntakeQConnector
from .notifier import Notifier

logger = logging.getLogger(__name__)

SYSTEM = "System"
RUN_ACTIVITY_TYPE = "Contact Sync"


def direction_message(direction: Direction) -> str:
    if direction is Direction.SOURCE_TO_TARGET:
        return "IntakeQ to GoHighLevel"
    if direction is Direction.TARGET_TO_SOURCE:
        return "GoHighLevel to IntakeQ"
    return "Bidirectional"


def _run_endpoints(direction: Direction) -> tuple[str, str]:
    if direction is Direction.TARGET_TO_SOURCE:
        return "GoHighLevel", "IntakeQ"
    return "IntakeQ", "GoHighLevel"


@dataclass
class RecordOutcome:
    category: str
    leg: Direction
    key_value: str | None
    action: str  # created / updated / skipped / failed
    error: str | None = None
    changes: list[FieldChange] = field(default_factory=list)


@dataclass
class SyncRun:
    direction: Direction = Direction.BIDIRECTIONAL
    key_fields: dict[str, str] = field(default_factory=dict)
    outcomes: list[RecordOutcome] = field(default_factory=list)
    skipped_categories: dict[str, str] = field(default_factory=dict)
    state: str = "idle"  # idle / loading / running / completed / aborted
    has_errors: bool = False
    abort_reason: str | None = None

    def count(self, action: str) -> int:
        return sum(1 for o in self.outcomes if o.action == action)


def default_connectors(relay, credentials: Credentials) -> tuple[Connector, Connector]:
    """Build the (source, target) connector pair for a run."""
    return (
        IntakeQConnector(relay, credentials.source_api_key or ""),
        GHLConnector(relay, credentials.target_api_key or "", credentials.target_location_id),
    )


def record_key(record: dict[str, Any], attribute: str, key_field: str, label: str) -> tuple[Any, str]:
    """Return ``(raw, normalized)`` key values of ``record``.

    Raises:
        RecordKeyMissing: the key is absent or blank.
    """
    raw = read_value(record, attribute)
    value = str(raw).strip() if raw is not None else ""
    if not value:
        raise RecordKeyMissing(f"{label} {key_field} is missing")
    return raw, value


def compute_changes(
    fragment: dict[str, Any],
    existing: dict[str, Any] | None,
    shape: ContactShape,
) -> list[FieldChange]:
    """Changes a write makes on ``existing``; base contact fields always come first."""
    base = [
        (shape.email, "Email"),
        (shape.first_name, "First Name"),
        (shape.last_name, "Last Name"),
    ]
    base_attrs = {attr for attr, _ in base}
    changes: list[FieldChange] = []

    for attr, label in base:
        if attr in fragment:
            old = existing.get(attr, "") if existing else ""
            changes.append(FieldChange(field=label, old_value=old, new_value=fragment[attr]))

    for attr, new in fragment.items():
        if attr in base_attrs:
            continue
        old = read_value(existing, attr, "") if existing else ""
        if existing is not None and old == new:
            continue
        changes.append(FieldChange(field=attr, old_value=old, new_value=new))
    return changes


class SyncEngine:
    """Runs one synchronization between IntakeQ (source) and GoHighLevel (target).

    Usage:
        async with HttpRelay() as relay:
            engine = SyncEngine(ConfigStore(), CredentialsStore(), ActivityLogStore(), relay)
            run = await engine.run()
    """

    def __init__(
        self,
        config_store,
        credentials_store,
        activity_store,
        relay,
        notifier: Notifier | None = None,
        connector_factory: Callable[[Any, Credentials], tuple[Connector, Connector]] | None = None,
    ):
        self._config_store = config_store
        self._credentials_store = credentials_store
        self._activity_store = activity_store
        self._relay = relay
        self.notifier = notifier or Notifier()
        self._connector_factory = connector_factory or default_connectors

    async def _log(
        self,
        type_: str,
        status: str,
        detail: str,
        source: str,
        destination: str,
        error: str | None = None,
        changes: list[FieldChange] | None = None,
    ) -> None:
        await self._activity_store.append(ActivityLogCreate(
            type=type_,
            status=status,
            detail=detail,
            source=source,
            destination=destination,
            error=error,
            changes=changes or None,
        ))

    async def _abort(self, run: SyncRun, detail: str, error: str, notice: str) -> SyncRun:
        logger.error("Sync aborted: %s", detail)
        run.state = "aborted"
        run.abort_reason = detail
        self.notifier.error(notice)
        await self._log(RUN_ACTIVITY_TYPE, "error", detail, SYSTEM, SYSTEM, error=error)
        return run

    async def _load(self):
        """Load config and credentials or raise the reason the run cannot start."""
        config = await self._config_store.load()
        if config is None:
            raise ConfigurationMissing("Sync configuration not found")

        credentials = await self._credentials_store.get()
        missing = credentials.missing()
        if missing:
            raise CredentialsMissing(f"Missing API keys for: {', '.join(missing)}", missing=missing)
        return config, credentials

    async def run(self, direction: Direction | str | None = None) -> SyncRun:
        """Execute one sync run. ``direction`` overrides the configured direction."""
        run = SyncRun(state="loading")
        logger.info("Sync run started (override=%s)", direction)

        try:
            try:
                config, credentials = await self._load()
            except ConfigurationMissing as e:
                return await self._abort(
                    run,
                    detail=e.message,
                    error="Missing sync configuration - please configure sync settings first",
                    notice="Sync configuration not found. Please configure your sync settings first.",
                )
            except CredentialsMissing as e:
                return await self._abort(
                    run,
                    detail=e.message,
                    error="API keys not configured - please set up API keys first",
                    notice=f"{e.message}. Please configure your API keys first.",
                )
            except InvalidFilters as e:
                return await self._abort(
                    run,
                    detail="Invalid sync filter configuration",
                    error=f"{e.message} - please check configuration",
                    notice="Invalid sync filter configuration. Please check your filter settings.",
                )
            except ConfigurationError as e:
                return await self._abort(
                    run,
                    detail="Invalid field mapping configuration",
                    error=f"{e.message} - please check configuration",
                    notice="Invalid field mapping configuration. Please check your field mapping settings.",
                )

            run.direction = Direction.parse(direction) if direction else config.direction
            run.key_fields, unresolved = resolve_key_fields(config.field_mapping)
            for category, reason in unresolved.items():
                logger.warning("Skipping category %s: %s", category, reason)
                run.skipped_categories[category] = reason

            source, target = self._connector_factory(self._relay, credentials)
            await self._execute(run, config.field_mapping, config.source_filters,
                                config.target_filters, source, target)
        except Exception as e:
            logger.exception("Sync run failed")
            run.state = "aborted"
            run.has_errors = True
            run.abort_reason = str(e)
            self.notifier.error(f"Sync failed: {e}")
            await self._log(
                RUN_ACTIVITY_TYPE, "error", "Synchronization failed with critical error",
                SYSTEM, SYSTEM, error=str(e),
            )
        return run

    async def _execute(
        self,
        run: SyncRun,
        mapping: FieldMapping,
        source_filters: SyncFilters,
        target_filters: SyncFilters,
        source: Connector,
        target: Connector,
    ) -> None:
        run.state = "running"
        message = direction_message(run.direction)
        run_source, run_destination = _run_endpoints(run.direction)

        self.notifier.info(f"Starting synchronization: {message}")
        await self._log(
            RUN_ACTIVITY_TYPE, "pending", f"Starting {message} synchronization",
            run_source, run_destination,
        )

        for leg in run.direction.legs():
            if leg is Direction.SOURCE_TO_TARGET:
                reader, writer, filters = source, target, source_filters
            else:
                reader, writer, filters = target, source, target_filters
            try:
                await self._sync_leg(run, mapping, leg, reader, writer, filters)
            except Exception as e:
                run.has_errors = True
                if isinstance(e, SyncError):
                    error = e.message
                    logger.error("%s to %s sync failed: %s", reader.system, writer.system, error)
                else:
                    error = str(e) or type(e).__name__
                    logger.exception("%s to %s sync failed", reader.system, writer.system)
                await self._log(
                    RUN_ACTIVITY_TYPE, "error", f"{reader.system} to {writer.system} sync failed",
                    reader.system, writer.system, error=error,
                )

        run.state = "completed"
        if run.has_errors:
            self.notifier.warning(
                "Synchronization completed with some errors. Check activity logs for details."
            )
            await self._log(
                RUN_ACTIVITY_TYPE, "error", f"Completed {message} synchronization with errors",
                run_source, run_destination,
            )
        else:
            self.notifier.success("Synchronization completed successfully")
            await self._log(
                RUN_ACTIVITY_TYPE, "success", f"Completed {message} synchronization successfully",
                run_source, run_destination,
            )
        logger.info(
            "Sync run completed: %d created, %d updated, %d skipped, %d failed",
            run.count("created"), run.count("updated"), run.count("skipped"), run.count("failed"),
        )

    async def _sync_leg(
        self,
        run: SyncRun,
        mapping: FieldMapping,
        leg: Direction,
        reader: Connector,
        writer: Connector,
        filters: SyncFilters,
    ) -> None:
        for category, key_field in run.key_fields.items():
            if not (reader.supports(category) and writer.supports(category)):
                reason = f"{category} records are not synced between {reader.system} and {writer.system}"
                if category not in run.skipped_categories:
                    logger.warning("Skipping category %s: %s", category, reason)
                    run.skipped_categories[category] = reason
                continue

            cat_mapping = mapping[category]
            records = await reader.fetch(category, filters)
            label = category.capitalize()
            if not records:
                await self._log(
                    f"{label} Sync", "success",
                    f"No matching {reader.system} {category} records found to sync",
                    reader.system, writer.system,
                )
                continue

            logger.info("Syncing %d %s records from %s to %s",
                        len(records), category, reader.system, writer.system)
            key_spec = cat_mapping.fields.get(key_field)
            read_attr = key_attribute(key_field, key_spec, read_side(leg))
            write_attr = key_attribute(key_field, key_spec, write_side(leg))

            for record in records:
                outcome = await self._sync_record(
                    category, cat_mapping, leg, reader, writer, filters,
                    key_field, read_attr, write_attr, record,
                )
                if outcome is not None:
                    run.outcomes.append(outcome)

    async def _sync_record(
        self,
        category: str,
        cat_mapping: CategoryMapping,
        leg: Direction,
        reader: Connector,
        writer: Connector,
        filters: SyncFilters,
        key_field: str,
        read_attr: str,
        write_attr: str,
        record: dict[str, Any],
    ) -> RecordOutcome | None:
        label = category.capitalize()
        try:
            raw_key, key_value = record_key(record, read_attr, key_field, label)
        except RecordKeyMissing as e:
            logger.warning("Skipping %s %s with no %s", reader.system, category, key_field)
            await self._log(
                f"{label} Sync", "error",
                f"Skipped {reader.system} {category} with missing {key_field}",
                reader.system, writer.system,
                error=e.message,
            )
            return RecordOutcome(category, leg, None, "skipped", error="missing key field")

        if filters.ids and not matches_id_filter(record, filters.ids, reader.shape):
            logger.debug("Skipping %s: not in the %s id filter", key_value, reader.system)
            return None

        type_ = f"{label} Sync"
        verb = "sync"
        try:
            fragment = apply_mapping(category, cat_mapping, leg, record)
            # The key travels with every write so the next run finds this record.
            write_value(fragment, write_attr, raw_key, replace=False)

            existing = await writer.find(category, write_attr, key_value)
            if existing is not None:
                type_, verb = f"{label} Update", "update"
                record_id = writer.record_id(existing)
                if not record_id:
                    raise UpstreamStatusError(f"Matched {writer.system} {category} has no id")
                changes = compute_changes(fragment, existing, writer.shape)
                await writer.update(category, record_id, fragment)
                await self._log(
                    type_, "success", f"Updated {key_value} in {writer.system}",
                    reader.system, writer.system, changes=changes,
                )
                return RecordOutcome(category, leg, key_value, "updated", changes=changes)

            type_, verb = f"{label} Creation", "create"
            await writer.create(category, fragment)
            changes = compute_changes(fragment, None, writer.shape)
            await self._log(
                type_, "success", f"Created new {category} {key_value} in {writer.system}",
                reader.system, writer.system, changes=changes,
            )
            return RecordOutcome(category, leg, key_value, "created", changes=changes)

        except Exception as e:
            if isinstance(e, SyncError):
                error = e.message
                logger.warning("Failed to %s %s in %s: %s", verb, key_value, writer.system, error)
            else:
                error = str(e) or type(e).__name__
                logger.exception("Failed to %s %s in %s", verb, key_value, writer.system)
            await self._log(
                type_, "error", f"Failed to {verb} {key_value} in {writer.system}",
                reader.system, writer.system, error=error,
            )
            return RecordOutcome(category, leg, key_value, "failed", error=error)
