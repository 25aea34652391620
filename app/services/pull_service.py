"""
Pull coordinator.

Builds the changeset a client needs to go from its checkpoint
(`last_pulled_at`) to the server's current state, for every registered
table.

Consistency model: a single timestamp watermark. `timestamp` is captured
before any table is read and records stamped after it are left for the next
pull, so the client can safely adopt `timestamp` as its new checkpoint. The
clock keeps `timestamp` below the stamp of any push that has not committed
yet, so such a push is delivered by the next pull instead of being skipped.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.schemas.sync import SyncPullResponse, TableChanges
from app.services.change_classifier import classify
from app.services.sync_clock import SyncClock, default_clock
from app.services.sync_errors import SyncStorageError
from app.services.table_registry import TableRegistry, TableSpec, default_registry


@dataclass
class PullResult:
    """
    Outcome of a pull.

    Exactly one of `changes` / `sync_json` is set: `sync_json` is the
    pre-rendered response body of a turbo first sync.
    """
    timestamp: int
    changes: Optional[Dict[str, TableChanges]] = None
    sync_json: Optional[str] = None

    @property
    def is_turbo(self) -> bool:
        return self.sync_json is not None

    def to_response(self) -> SyncPullResponse:
        if self.is_turbo:
            return SyncPullResponse.model_validate_json(self.sync_json)
        return SyncPullResponse(changes=self.changes, timestamp=self.timestamp)


def get_table_changes(
    db: Session,
    spec: TableSpec,
    last_pulled_at: int,
    server_timestamp: int,
) -> TableChanges:
    """Fetch candidate records of one table and classify them."""
    model = spec.model
    is_first_sync = last_pulled_at == 0

    query = select(model).where(model.last_modified <= server_timestamp)
    if not is_first_sync:
        query = query.where(model.last_modified > last_pulled_at)
    query = query.order_by(model.last_modified, model.id)

    records = db.execute(query).scalars().all()
    created, updated, deleted = classify(records, last_pulled_at, is_first_sync)

    return TableChanges(
        created=[spec.to_wire(r) for r in created],
        updated=[spec.to_wire(r) for r in updated],
        deleted=deleted,
    )


def pull_changes(
    db: Session,
    last_pulled_at: int,
    turbo: bool = False,
    registry: TableRegistry = default_registry,
    clock: SyncClock = default_clock,
) -> PullResult:
    """
    Compute the pull response for a client checkpoint.

    Args:
        db: Database session (read-only use)
        last_pulled_at: Client checkpoint in epoch ms, 0 for first sync
        turbo: Ask for a pre-serialized body; honoured on first sync only
        registry: Tables to include
        clock: Source of the server timestamp (the write-aware watermark)

    Returns:
        PullResult with every registered table, empty ones included

    Raises:
        SyncStorageError: the store could not be read
    """
    # Captured before any read and kept below open pushes: the snapshot boundary
    server_timestamp = clock.watermark()
    is_first_sync = last_pulled_at == 0

    changes: Dict[str, TableChanges] = {}
    try:
        for spec in registry:
            table_changes = get_table_changes(db, spec, last_pulled_at, server_timestamp)
            changes[spec.name] = table_changes
            logger.info(
                "Sync Pull [{}]: {} created, {} updated, {} deleted",
                spec.name,
                len(table_changes.created),
                len(table_changes.updated),
                len(table_changes.deleted),
            )
    except SQLAlchemyError as e:
        logger.exception("Sync Pull failed reading the record store")
        raise SyncStorageError(f"Failed to read changes: {e}") from e
    finally:
        # Read-only: release whatever the SELECTs opened
        db.rollback()

    if is_first_sync and turbo:
        response = SyncPullResponse(changes=changes, timestamp=server_timestamp)
        return PullResult(timestamp=server_timestamp, sync_json=response.model_dump_json())

    return PullResult(timestamp=server_timestamp, changes=changes)
