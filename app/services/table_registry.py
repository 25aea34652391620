"""
Registry of synced tables.

Maps a logical table name (the key clients use in `changes`) to its
SQLAlchemy model and its payload schema. Pull and push iterate the registry
instead of naming tables, so adding a table means one `register` call.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Optional

from app.models import Product, ProductBatch
from app.models.sync_record import SYNC_METADATA_FIELDS
from app.schemas.records import SyncPayload, ProductPayload, ProductBatchPayload


@dataclass(frozen=True)
class TableSpec:
    """One synced table: wire name, ORM model and payload transcoder."""
    name: str
    model: type
    payload_schema: type[SyncPayload]

    @property
    def fields(self) -> tuple[str, ...]:
        """Business field names, in schema order (id excluded)."""
        return tuple(f for f in self.payload_schema.model_fields if f != "id")

    def parse(self, raw: Any) -> SyncPayload:
        """
        Validate one incoming record.

        Raises:
            pydantic.ValidationError: missing required fields or bad types
        """
        return self.payload_schema.model_validate(raw)

    def to_values(self, payload: SyncPayload) -> dict[str, Any]:
        """Column values to write for a validated payload."""
        return payload.model_dump(include=set(self.fields))

    def to_wire(self, record) -> dict[str, Any]:
        """Serialize a stored record for a pull response."""
        data = {"id": record.id}
        for field in self.fields:
            data[field] = getattr(record, field)
        data["last_modified"] = record.last_modified
        data["server_created_at"] = record.server_created_at
        data["is_deleted"] = record.is_deleted
        return data


class TableRegistry:
    """Ordered collection of TableSpec, keyed by name."""

    def __init__(self):
        self._tables: dict[str, TableSpec] = {}

    def register(self, name: str, model: type, payload_schema: type[SyncPayload]) -> TableSpec:
        if name in self._tables:
            raise ValueError(f"Table '{name}' is already registered")

        columns = set(model.__table__.columns.keys())
        missing = [c for c in SYNC_METADATA_FIELDS if c not in columns]
        if missing:
            raise ValueError(f"Model {model.__name__} lacks sync columns: {', '.join(missing)}")

        spec = TableSpec(name=name, model=model, payload_schema=payload_schema)
        unmapped = [f for f in spec.fields if f not in columns]
        if unmapped:
            raise ValueError(
                f"Payload fields not mapped on {model.__name__}: {', '.join(unmapped)}"
            )

        self._tables[name] = spec
        return spec

    def get(self, name: str) -> TableSpec:
        try:
            return self._tables[name]
        except KeyError:
            raise KeyError(f"Unknown sync table '{name}'") from None

    def find(self, name: str) -> Optional[TableSpec]:
        return self._tables.get(name)

    def names(self) -> list[str]:
        return list(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __iter__(self) -> Iterator[TableSpec]:
        return iter(list(self._tables.values()))

    def __len__(self) -> int:
        return len(self._tables)


def build_default_registry() -> TableRegistry:
    registry = TableRegistry()
    registry.register("products", Product, ProductPayload)
    registry.register("product_batches", ProductBatch, ProductBatchPayload)
    return registry


default_registry = build_default_registry()


def get_registry() -> TableRegistry:
    """FastAPI dependency returning the table registry."""
    return default_registry
