"""
Sync API endpoints for offline-first clients (WatermelonDB protocol).

Pull: changes since the client's checkpoint, for every synced table
Push: client mutations, applied all-or-nothing
Seed DB: SQLite snapshot for a brand-new client
"""

from fastapi import APIRouter, Depends, Query, HTTPException, Response
from sqlalchemy.orm import Session

from app.config import BOOTSTRAP_SCHEMA_VERSION
from app.database import get_db
from app.schemas.sync import SyncPullResponse, SyncPushRequest, SyncPushResponse
from app.services.bootstrap_export import build_bootstrap_snapshot
from app.services.pull_service import pull_changes
from app.services.push_service import push_changes
from app.services.sync_clock import SyncClock, get_clock
from app.services.sync_errors import SyncConflictError, SyncError
from app.services.table_registry import TableRegistry, get_registry


router = APIRouter(prefix="/sync", tags=["Sync"])


def _http_error(error: SyncError) -> HTTPException:
    """409 for conflicts (client must re-pull), 400 for everything else."""
    status_code = 409 if isinstance(error, SyncConflictError) else 400
    return HTTPException(status_code=status_code, detail=error.to_detail())


# ============ PULL ============

@router.get("/pull", response_model=SyncPullResponse)
def pull(
    last_pulled_at: int = Query(0, ge=0, description="Client checkpoint in epoch ms, 0 for first sync"),
    turbo: bool = Query(False, description="Pre-serialized body for first sync"),
    db: Session = Depends(get_db),
    registry: TableRegistry = Depends(get_registry),
    clock: SyncClock = Depends(get_clock),
):
    """
    Get every change since `last_pulled_at`.

    **Query Parameters:**
    - `last_pulled_at`: `timestamp` of the previous pull (0 = never synced)
    - `turbo`: on first sync, return the body pre-rendered as raw JSON

    **Returns:**
    - 200: `{changes: {table: {created, updated, deleted}}, timestamp}`
    - 400: Store could not be read

    **Example:**
    ```
    GET /api/v1/sync/pull?last_pulled_at=1718000000000
    ```
    """
    try:
        result = pull_changes(db, last_pulled_at, turbo=turbo, registry=registry, clock=clock)
    except SyncError as e:
        raise _http_error(e)

    if result.is_turbo:
        return Response(content=result.sync_json, media_type="application/json")

    return result.to_response()


# ============ PUSH ============

@router.post("/push", response_model=SyncPushResponse)
def push(
    request: SyncPushRequest,
    db: Session = Depends(get_db),
    registry: TableRegistry = Depends(get_registry),
    clock: SyncClock = Depends(get_clock),
):
    """
    Apply a batch of client changes atomically.

    **Returns:**
    - 200: `{"ok": true}`, every change committed
    - 409: `code = CONFLICT`, a record changed on the server since
      `last_pulled_at`; pull, then push again
    - 400: `code = VALIDATION_ERROR` or `STORAGE_FAILURE`; nothing committed
    """
    try:
        push_changes(
            db,
            request.changes,
            request.last_pulled_at,
            registry=registry,
            clock=clock,
        )
    except SyncError as e:
        raise _http_error(e)

    return SyncPushResponse(ok=True)


# ============ BOOTSTRAP SNAPSHOT ============

@router.get("/seed-db")
def seed_db(
    db: Session = Depends(get_db),
    registry: TableRegistry = Depends(get_registry),
    clock: SyncClock = Depends(get_clock),
):
    """
    Download a SQLite database with every live record.

    The file already contains `__watermelon_last_pulled_at`, so the client
    continues with incremental pulls from the snapshot time.

    **Returns:**
    - 200: `application/x-sqlite3` attachment `initial.db`
    - 400: `code = STORAGE_FAILURE`, store could not be read
    """
    try:
        content = build_bootstrap_snapshot(
            db,
            registry=registry,
            clock=clock,
            schema_version=BOOTSTRAP_SCHEMA_VERSION,
        )
    except SyncError as e:
        raise _http_error(e)

    return Response(
        content=content,
        media_type="application/x-sqlite3",
        headers={"Content-Disposition": 'attachment; filename="initial.db"'}
    )
