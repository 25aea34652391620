"""
Product catalogue table, replicated to every client.
"""

from sqlalchemy import Column, String, Boolean
from app.database import Base
from app.models.sync_record import SyncRecordMixin


class Product(SyncRecordMixin, Base):
    """
    Sellable item variant (brand/color/size) as known to the ERP.

    One row = one product record in the client's local `products` table.
    """
    __tablename__ = "products"

    # ============ IDENTIFICATION ============
    name = Column(String(255), nullable=False)
    item_id = Column(String(64), nullable=False, default="")
    bar_code = Column(String(64), nullable=False, default="")

    # ============ VARIANT ============
    brand_code = Column(String(32), nullable=False, default="")
    brand_name = Column(String(128), nullable=False, default="")
    color_code = Column(String(32), nullable=False, default="")
    color_name = Column(String(128), nullable=False, default="")
    size_code = Column(String(32), nullable=False, default="")
    size_name = Column(String(128), nullable=False, default="")

    # ============ INVENTORY ============
    unit = Column(String(16), nullable=False, default="")
    data_area_id = Column(String(16), nullable=False, default="")
    invent_dim_id = Column(String(64), nullable=False, default="")
    is_required_batch_id = Column(Boolean, nullable=False, default=False)
