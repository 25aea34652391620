from sqlalchemy import Column, String, BigInteger
from app.database import Base
from app.models.sync_record import SyncRecordMixin


class ProductBatch(SyncRecordMixin, Base):
    """Inventory lot of a product, with vendor and expiry information."""
    __tablename__ = "product_batches"

    data_area_id = Column(String(16), nullable=False, default="")
    item_number = Column(String(64), nullable=False)
    batch_number = Column(String(64), nullable=False)
    vendor_batch_number = Column(String(64))

    # Epoch milliseconds, like the sync timestamps
    vendor_expiration_date = Column(BigInteger)
    batch_expiration_date = Column(BigInteger)
