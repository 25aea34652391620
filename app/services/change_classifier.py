"""
Partition changed records into created / updated / deleted.

Pure function, no database access: the caller decides which records are
candidates (see pull_service), this module only applies the rule.
"""

from typing import Iterable, List, NamedTuple, Protocol


class SyncRecord(Protocol):
    """Anything carrying the sync metadata columns."""
    id: str
    last_modified: int
    server_created_at: int
    is_deleted: bool


class Classification(NamedTuple):
    created: List[SyncRecord]
    updated: List[SyncRecord]
    deleted: List[str]


def classify(records: Iterable[SyncRecord], checkpoint: int, is_first_sync: bool) -> Classification:
    """
    Classify records relative to a client checkpoint.

    - tombstoned -> deleted (id only), whenever it was created
    - first sync, or created strictly after the checkpoint -> created
    - otherwise -> updated (client already knows the record)

    A record with server_created_at == checkpoint counts as already known.
    Input order is kept inside each bucket.
    """
    created, updated, deleted = [], [], []

    for record in records:
        if record.is_deleted:
            deleted.append(record.id)
        elif is_first_sync or record.server_created_at > checkpoint:
            created.append(record)
        else:
            updated.append(record)

    return Classification(created, updated, deleted)
