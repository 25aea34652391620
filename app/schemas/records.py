"""
Per-table payload schemas.

Each schema lists a table's business fields plus `id`. Incoming push
records are validated against it; unknown keys and client-supplied sync
metadata (last_modified, _status, _changed, ...) are dropped.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SyncPayload(BaseModel):
    """Base for every table payload: a non-empty string id."""
    id: str = Field(..., min_length=1, max_length=64)

    model_config = ConfigDict(extra="ignore")


class ProductPayload(SyncPayload):
    name: str = Field(..., max_length=255)
    item_id: str = ""
    bar_code: str = ""
    brand_code: str = ""
    brand_name: str = ""
    color_code: str = ""
    color_name: str = ""
    size_code: str = ""
    size_name: str = ""
    unit: str = ""
    data_area_id: str = ""
    invent_dim_id: str = ""
    is_required_batch_id: bool = False

    @field_validator(
        "item_id", "bar_code", "brand_code", "brand_name", "color_code",
        "color_name", "size_code", "size_name", "unit", "data_area_id",
        "invent_dim_id",
        mode="before",
    )
    @classmethod
    def null_to_empty(cls, value):
        # Clients send null for blank optional text
        return "" if value is None else value

    @field_validator("is_required_batch_id", mode="before")
    @classmethod
    def null_to_false(cls, value):
        return False if value is None else value


class ProductBatchPayload(SyncPayload):
    data_area_id: str = ""
    item_number: str = Field(..., max_length=64)
    batch_number: str = Field(..., max_length=64)
    vendor_batch_number: Optional[str] = None
    vendor_expiration_date: Optional[int] = None
    batch_expiration_date: Optional[int] = None

    @field_validator("data_area_id", mode="before")
    @classmethod
    def null_to_empty(cls, value):
        return "" if value is None else value
