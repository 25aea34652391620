"""
Synchronization metadata shared by every synced table.

Every model that takes part in pull/push inherits SyncRecordMixin. The
reconciliation services only ever touch these four columns; the rest of a
row is business payload they treat as opaque.
"""

from sqlalchemy import Column, String, BigInteger, Boolean


SYNC_METADATA_FIELDS = ("id", "last_modified", "server_created_at", "is_deleted")


class SyncRecordMixin:
    """
    Sync metadata columns.

    - id: client- or server-assigned, immutable
    - last_modified: epoch ms of the last accepted mutation (incl. soft delete)
    - server_created_at: epoch ms of first persistence, never changes
    - is_deleted: tombstone flag, rows are never purged
    """

    id = Column(String(64), primary_key=True)
    last_modified = Column(BigInteger, nullable=False, default=0, index=True)
    server_created_at = Column(BigInteger, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return (
            f"<{type(self).__name__}(id={self.id}, last_modified={self.last_modified}, "
            f"deleted={self.is_deleted})>"
        )
