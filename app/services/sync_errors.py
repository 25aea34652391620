"""
Failure taxonomy for pull/push.

Each error tells the client which recovery to take:
- SyncConflictError: re-pull, then retry the push
- SyncValidationError: fix the records and resubmit
- SyncStorageError: transient, safe to retry as-is
"""

from typing import Any, Optional


class SyncError(Exception):
    """Base class for every sync failure."""
    code = "SYNC_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        """Machine-readable body for the HTTP error response."""
        return {"code": self.code, "message": self.message}


class SyncConflictError(SyncError):
    """Server copy of a record changed after the client's checkpoint."""
    code = "CONFLICT"

    def __init__(self, table: str, record_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Record '{record_id}' in '{table}' was modified on the server after last_pulled_at"
        )
        self.table = table
        self.record_id = record_id

    def to_detail(self) -> dict:
        return {**super().to_detail(), "table": self.table, "id": self.record_id}


class SyncValidationError(SyncError):
    """Malformed or incomplete push input."""
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_detail(self) -> dict:
        return {**super().to_detail(), "errors": self.errors}


class SyncStorageError(SyncError):
    """Transaction or connectivity failure in the record store."""
    code = "STORAGE_FAILURE"
