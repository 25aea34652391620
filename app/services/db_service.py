"""
Database service layer for synced tables.

Direct server-side writes that happen outside the push protocol
(administrative imports, seeding) and the read helpers other services need:
- upsert_record: Insert or update by id, keeping sync metadata consistent
- soft_delete_record: Tombstone a record so the deletion replicates
- list_live_records: Every non-deleted record (bootstrap export)
- bulk_insert_records: Chunk-friendly insert for seeding
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func, insert, select
from typing import Any, Iterable


# ============ SINGLE RECORD OPERATIONS ============

def get_record(db: Session, model: type, record_id: str):
    """Get a single record by id, tombstoned or not."""
    return db.get(model, record_id)


def upsert_record(
    db: Session,
    model: type,
    record_id: str,
    fields: dict[str, Any],
    now: int
):
    """
    Insert or update a record with server-assigned sync metadata.

    Writes made here are picked up by the next pull exactly like pushed
    ones:
    - new record → server_created_at = last_modified = now
    - existing record → fields applied, last_modified = now

    Args:
        db: Database session
        model: Synced SQLAlchemy model
        record_id: Record id
        fields: Business field values to apply
        now: Server timestamp in epoch ms

    Returns:
        The stored record

    Raises:
        IntegrityError: the row itself is invalid (e.g. a required field missing)
    """
    existing = db.get(model, record_id)

    if existing:
        return _apply_fields(db, existing, fields, now)

    record = model(
        id=record_id,
        last_modified=now,
        server_created_at=now,
        is_deleted=False,
        **fields
    )

    db.add(record)

    try:
        db.commit()
        db.refresh(record)
        return record
    except IntegrityError:
        db.rollback()
        # Race condition - another request created it
        existing = db.get(model, record_id)
        if existing is None:
            raise
        return _apply_fields(db, existing, fields, now)


def _apply_fields(db: Session, record, fields: dict[str, Any], now: int):
    for name, value in fields.items():
        setattr(record, name, value)
    record.last_modified = now

    db.commit()
    db.refresh(record)
    return record


def soft_delete_record(db: Session, model: type, record_id: str, now: int) -> bool:
    """
    Mark a record deleted. Rows are never removed, so other replicas
    learn about the deletion on their next pull.

    Returns:
        False if no record has that id
    """
    record = db.get(model, record_id)
    if not record:
        return False

    record.is_deleted = True
    record.last_modified = now
    db.commit()
    return True


# ============ BULK OPERATIONS ============

def bulk_insert_records(db: Session, model: type, rows: Iterable[dict[str, Any]], now: int) -> int:
    """
    Insert many new records in one statement and commit.

    Each row holds id + business fields; sync metadata is filled in.
    """
    values = [
        {**row, "last_modified": now, "server_created_at": now, "is_deleted": False}
        for row in rows
    ]
    if not values:
        return 0

    db.execute(insert(model), values)
    db.commit()
    return len(values)


# ============ QUERIES ============

def list_live_records(db: Session, model: type) -> list:
    """Get every non-deleted record, ordered by id."""
    query = select(model).where(model.is_deleted.is_(False)).order_by(model.id)
    return list(db.execute(query).scalars())


def count_records(db: Session, model: type, include_deleted: bool = False) -> int:
    """Get total count of records, tombstones excluded unless asked."""
    query = select(func.count()).select_from(model)
    if not include_deleted:
        query = query.where(model.is_deleted.is_(False))
    return db.execute(query).scalar_one()


def table_is_empty(db: Session, model: type) -> bool:
    """True when the table holds no rows at all, tombstones included."""
    return db.execute(select(model.id).limit(1)).first() is None
