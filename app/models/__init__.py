"""
SQLAlchemy models for the sync server.

This package contains:
- SyncRecordMixin: id / last_modified / server_created_at / is_deleted,
  shared by every synced table
- Product: product catalogue
- ProductBatch: inventory lots

Note: Tables are registered for sync in app.services.table_registry.
"""

from app.models.sync_record import SyncRecordMixin
from app.models.product import Product
from app.models.product_batch import ProductBatch

__all__ = ["SyncRecordMixin", "Product", "ProductBatch"]
