"""
Bootstrap snapshot export.

Builds a ready-to-open SQLite database for a brand-new client, so it can
skip the (potentially huge) first pull. The file mirrors WatermelonDB's
on-device layout:

- one table per synced table, live records only, `_status = 'synced'`
- `local_storage` with `__watermelon_last_pulled_at`, so the client's first
  incremental pull starts from the snapshot time
- `PRAGMA user_version` = app schema version
"""

import os
import tempfile

from loguru import logger
from sqlalchemy import (
    BigInteger, Boolean, Column, Integer, MetaData, String, Table, Text,
    create_engine, event, insert,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.services import db_service
from app.services.sync_clock import SyncClock, default_clock
from app.services.sync_errors import SyncStorageError
from app.services.table_registry import TableRegistry, TableSpec, default_registry


LAST_PULLED_AT_KEY = "__watermelon_last_pulled_at"

# Rows per executemany round
INSERT_CHUNK = 5000


def _snapshot_table(metadata: MetaData, spec: TableSpec) -> Table:
    """Client-side table definition derived from the server model."""
    source = spec.model.__table__
    columns = [
        Column("id", String, primary_key=True),
        Column("_status", String),
        Column("_changed", String),
    ]
    for field in spec.fields:
        server_type = source.columns[field].type
        if isinstance(server_type, Boolean):
            column_type = Integer
        elif isinstance(server_type, (BigInteger, Integer)):
            column_type = BigInteger
        else:
            column_type = Text
        columns.append(Column(field, column_type))
    columns.append(Column("last_modified", BigInteger))
    columns.append(Column("server_created_at", BigInteger))
    return Table(spec.name, metadata, *columns)


def _snapshot_row(spec: TableSpec, record) -> dict:
    row = {"id": record.id, "_status": "synced", "_changed": ""}
    for field in spec.fields:
        value = getattr(record, field)
        row[field] = int(value) if isinstance(value, bool) else value
    row["last_modified"] = record.last_modified
    row["server_created_at"] = record.server_created_at
    return row


def build_bootstrap_snapshot(
    db: Session,
    registry: TableRegistry = default_registry,
    clock: SyncClock = default_clock,
    schema_version: int = 1,
) -> bytes:
    """
    Render every live record into a SQLite file and return its bytes.

    Args:
        db: Database session (read-only use)
        registry: Tables to export
        clock: Source of the snapshot timestamp
        schema_version: Written to PRAGMA user_version

    Returns:
        bytes: Content of the SQLite database file

    Raises:
        SyncStorageError: the store could not be read or the file written
    """
    # Same watermark rule as a pull
    snapshot_at = clock.watermark()

    fd, temp_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    engine = create_engine(f"sqlite:///{temp_path}")

    @event.listens_for(engine, "connect")
    def _fast_bulk_load(dbapi_conn, _):
        # Throwaway file, durability is irrelevant
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode = OFF")
        cursor.execute("PRAGMA synchronous = OFF")
        cursor.close()

    try:
        metadata = MetaData()
        tables = {spec.name: _snapshot_table(metadata, spec) for spec in registry}
        local_storage = Table(
            "local_storage", metadata,
            Column("key", String, primary_key=True),
            Column("value", String, nullable=False),
        )

        with engine.begin() as conn:
            metadata.create_all(conn)

            for spec in registry:
                records = db_service.list_live_records(db, spec.model)
                rows = [_snapshot_row(spec, r) for r in records]
                for start in range(0, len(rows), INSERT_CHUNK):
                    conn.execute(insert(tables[spec.name]), rows[start:start + INSERT_CHUNK])
                logger.info("Bootstrap snapshot [{}]: {} records", spec.name, len(rows))

            conn.execute(insert(local_storage), [{"key": LAST_PULLED_AT_KEY, "value": str(snapshot_at)}])
            conn.exec_driver_sql(f"PRAGMA user_version = {int(schema_version)}")

        engine.dispose()
        with open(temp_path, "rb") as f:
            return f.read()

    except SQLAlchemyError as e:
        logger.exception("Bootstrap snapshot failed")
        raise SyncStorageError(f"Failed to build snapshot: {e}") from e

    finally:
        engine.dispose()
        db.rollback()
        if os.path.exists(temp_path):
            os.remove(temp_path)
