"""
Push coordinator.

Applies a client's batch of mutations in one all-or-nothing transaction:

1. Validate every table and record in the batch (nothing written yet)
2. For each table, upsert created/updated records, then soft-delete
3. Commit; any error anywhere rolls back every table

Conflict rule: an existing record whose last_modified is newer than the
client's checkpoint rejects the whole batch. The check is a conditional
UPDATE evaluated by the database, so two concurrent pushes cannot both pass
it for the same row.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import SYNC_PUSH_ISOLATION_LEVEL
from app.schemas.records import SyncPayload
from app.schemas.sync import TableChanges
from app.services.sync_clock import SyncClock, default_clock
from app.services.sync_errors import (
    SyncConflictError,
    SyncError,
    SyncStorageError,
    SyncValidationError,
)
from app.services.table_registry import TableRegistry, TableSpec, default_registry


@dataclass
class PushResult:
    """Summary of a committed push."""
    timestamp: int
    upserted: Dict[str, int] = field(default_factory=dict)
    deleted: Dict[str, int] = field(default_factory=dict)


# ============ VALIDATION ============

def _validation_issue(table: str, section: str, index: int, record_id: Any, errors: Any) -> dict:
    return {"table": table, "section": section, "index": index, "id": record_id, "errors": errors}


def validate_batch(
    changes: Mapping[str, TableChanges],
    registry: TableRegistry,
) -> List[Tuple[TableSpec, List[SyncPayload], List[str]]]:
    """
    Validate a whole batch before anything is written.

    Returns:
        (spec, payloads, deleted_ids) per table, in batch order

    Raises:
        SyncValidationError: with every problem found, not just the first
    """
    issues: List[dict] = []
    plan = []

    for table_name, table_changes in changes.items():
        spec = registry.find(table_name)
        if spec is None:
            issues.append(_validation_issue(table_name, "table", -1, None, ["unknown table"]))
            continue

        payloads = []
        for section in ("created", "updated"):
            for index, raw in enumerate(getattr(table_changes, section)):
                try:
                    payloads.append(spec.parse(raw))
                except ValidationError as e:
                    record_id = raw.get("id") if isinstance(raw, dict) else None
                    errors = [
                        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                        for err in e.errors()
                    ]
                    issues.append(_validation_issue(table_name, section, index, record_id, errors))

        deleted_ids = []
        for index, record_id in enumerate(table_changes.deleted):
            if not isinstance(record_id, str) or not record_id:
                issues.append(_validation_issue(table_name, "deleted", index, record_id, ["invalid id"]))
            else:
                deleted_ids.append(record_id)

        plan.append((spec, payloads, deleted_ids))

    if issues:
        raise SyncValidationError(f"{len(issues)} invalid entries in push", issues)

    return plan


# ============ APPLY ============

def _upsert_record(
    db: Session,
    spec: TableSpec,
    payload: SyncPayload,
    last_pulled_at: int,
    now: int,
    touched: set,
) -> None:
    """Insert or update one record, raising SyncConflictError if stale."""
    model = spec.model
    values = spec.to_values(payload)

    # Ids written earlier in this push carry our own `now`, so they skip the staleness check
    condition = [model.id == payload.id]
    if payload.id not in touched:
        condition.append(model.last_modified <= last_pulled_at)

    result = db.execute(
        update(model)
        .where(*condition)
        .values(**values, last_modified=now)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        exists = db.execute(select(model.id).where(model.id == payload.id)).first()
        if exists:
            raise SyncConflictError(spec.name, payload.id)

        # Idempotent create: a retried "create" lands in the UPDATE above
        try:
            db.execute(
                insert(model).values(
                    id=payload.id,
                    **values,
                    last_modified=now,
                    server_created_at=now,
                    is_deleted=False,
                )
            )
        except IntegrityError as e:
            # Another push created this id after our checkpoint
            raise SyncConflictError(spec.name, payload.id) from e

    touched.add(payload.id)


def _soft_delete(db: Session, spec: TableSpec, record_ids: List[str], now: int) -> int:
    """Tombstone existing ids; unknown ids are ignored."""
    if not record_ids:
        return 0

    model = spec.model
    result = db.execute(
        update(model)
        .where(model.id.in_(record_ids))
        .values(is_deleted=True, last_modified=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def push_changes(
    db: Session,
    changes: Mapping[str, TableChanges],
    last_pulled_at: int,
    registry: TableRegistry = default_registry,
    clock: SyncClock = default_clock,
    isolation_level: Optional[str] = SYNC_PUSH_ISOLATION_LEVEL,
) -> PushResult:
    """
    Apply a client batch atomically.

    Args:
        db: Database session; committed on success, rolled back otherwise
        changes: {table_name: TableChanges} from the client
        last_pulled_at: Client checkpoint in epoch ms
        registry: Tables accepted in a push
        clock: Source of the single `now` stamped on every write; pulls stay
            below it until this push commits or rolls back
        isolation_level: Optional isolation for the push transaction

    Returns:
        PushResult with per-table counts

    Raises:
        SyncConflictError: a record changed on the server after last_pulled_at
        SyncValidationError: malformed records or unknown tables
        SyncStorageError: the transaction could not be completed
    """
    now = clock.begin_write()
    result = PushResult(timestamp=now)

    try:
        if isolation_level:
            db.connection(execution_options={"isolation_level": isolation_level})

        plan = validate_batch(changes, registry)

        for spec, payloads, deleted_ids in plan:
            touched: set = set()
            for payload in payloads:
                _upsert_record(db, spec, payload, last_pulled_at, now, touched)

            result.upserted[spec.name] = len(touched)
            result.deleted[spec.name] = _soft_delete(db, spec, deleted_ids, now)

        db.commit()

    except SyncError as e:
        db.rollback()
        logger.warning("Push rejected ({}): {}. Transaction rolled back.", e.code, e.message)
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Push failed. Transaction rolled back.")
        raise SyncStorageError(f"Failed to apply changes: {e}") from e
    except Exception:
        # Nothing unexpected may leave a partial write behind
        db.rollback()
        raise
    finally:
        clock.end_write(now)

    logger.info(
        "Push successful at {}: upserted {}, deleted {}",
        now, result.upserted, result.deleted,
    )
    return result
