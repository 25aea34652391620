"""
Wire models for the pull/push protocol.

All keys are snake_case; records inside `created`/`updated` stay plain
dicts here because their shape depends on the table. Per-table validation
happens in app.schemas.records.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class TableChanges(BaseModel):
    """Classified delta for one table."""
    created: List[Dict[str, Any]] = Field(default_factory=list)
    updated: List[Dict[str, Any]] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)


class SyncPullResponse(BaseModel):
    """
    Response of a pull.

    `timestamp` is the server time captured before any table was read;
    the client must send it back as `last_pulled_at` next time.
    """
    changes: Dict[str, TableChanges]
    timestamp: int


class SyncPushRequest(BaseModel):
    """
    Body of a push.

    `created` and `updated` carry the same record shape; the server does not
    use the distinction to choose between insert and update.
    """
    changes: Dict[str, TableChanges] = Field(default_factory=dict)
    last_pulled_at: int = Field(..., ge=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "changes": {
                    "products": {
                        "created": [{"id": "prod_1", "name": "Premium Nike Headset 1"}],
                        "updated": [],
                        "deleted": ["prod_9"]
                    }
                },
                "last_pulled_at": 1718000000000
            }
        }
    )


class SyncPushResponse(BaseModel):
    ok: bool = True
