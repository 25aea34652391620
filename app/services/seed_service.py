"""
Demo data seeding.

Fills empty product tables with random but plausible catalogue data, so a
fresh deployment has something to sync. Tables that already hold rows are
left alone.
"""

import random
import uuid
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.orm import Session

from app.models import Product, ProductBatch
from app.services import db_service
from app.services.sync_clock import default_clock


CHUNK_SIZE = 5000
DAY_MS = 24 * 60 * 60 * 1000

DATA_AREAS = ["US01", "PY01", "BR01"]
BRANDS = [("NK", "Nike"), ("AD", "Adidas"), ("AP", "Apple"), ("SN", "Sony"), ("LG", "Logitech")]
COLORS = [("01", "Black"), ("02", "White"), ("03", "Red"), ("04", "Blue"), ("05", "Silver")]
SIZES = [("S", "Small"), ("M", "Medium"), ("L", "Large"), ("XL", "Extra Large")]
ADJECTIVES = ["Premium", "Pro", "Ultra", "Classic", "Limited", "Essential"]
CATEGORIES = ["Headset", "Sneakers", "Watch", "Controller", "Bottle"]


def _random_product(rng: random.Random, i: int) -> dict:
    brand_code, brand_name = rng.choice(BRANDS)
    color_code, color_name = rng.choice(COLORS)
    size_code, size_name = rng.choice(SIZES)
    name = f"{rng.choice(ADJECTIVES)} {brand_name} {rng.choice(CATEGORIES)} {i}"

    return {
        "id": str(uuid.UUID(int=rng.getrandbits(128), version=4)),
        "name": name,
        "item_id": f"ITEM-{rng.randint(1000, 9999)}-{i:04d}",
        "bar_code": f"789{rng.randint(1000000000, 9999999999)}",
        "brand_code": brand_code,
        "brand_name": brand_name,
        "color_code": color_code,
        "color_name": color_name,
        "size_code": size_code,
        "size_name": size_name,
        "unit": "PCS",
        "data_area_id": rng.choice(DATA_AREAS),
        "invent_dim_id": f"DIM-{uuid.UUID(int=rng.getrandbits(128)).hex[:8].upper()}",
        "is_required_batch_id": rng.randint(0, 9) > 8,
    }


def _random_batch(rng: random.Random, i: int, now: int) -> dict:
    # Expires 30 to 365 days from now
    expiry = now + rng.randint(30, 364) * DAY_MS

    return {
        "id": str(uuid.UUID(int=rng.getrandbits(128), version=4)),
        "data_area_id": rng.choice(DATA_AREAS),
        "item_number": f"ITEM-{rng.randint(1000, 9999)}",
        "batch_number": f"LOT-{rng.randint(100, 999)}-{i:05d}",
        "vendor_batch_number": f"VND-{rng.randint(1000, 9999)}" if rng.randint(0, 9) > 5 else None,
        "batch_expiration_date": expiry,
        "vendor_expiration_date": expiry,
    }


def _seed_table(db: Session, model: type, count: int, make_row: Callable[[int], dict], now: int) -> int:
    if count <= 0 or not db_service.table_is_empty(db, model):
        return 0

    logger.info("Seeding {} {} rows...", count, model.__tablename__)
    inserted = 0
    chunk = []
    for i in range(1, count + 1):
        chunk.append(make_row(i))
        if len(chunk) == CHUNK_SIZE or i == count:
            inserted += db_service.bulk_insert_records(db, model, chunk, now)
            chunk = []
            logger.info("{} progress: {}/{}", model.__tablename__, inserted, count)
    return inserted


def seed_demo_data(
    db: Session,
    products: int = 100000,
    product_batches: int = 30000,
    clock: Callable[[], int] = default_clock,
    rng: Optional[random.Random] = None,
) -> dict:
    """
    Seed products and product batches into empty tables.

    Returns:
        dict: Rows inserted per table (0 for tables that were not empty)
    """
    rng = rng or random.Random()
    now = clock()

    result = {
        "products": _seed_table(db, Product, products, lambda i: _random_product(rng, i), now),
        "product_batches": _seed_table(
            db, ProductBatch, product_batches, lambda i: _random_batch(rng, i, now), now
        ),
    }
    logger.info("Seeding complete: {}", result)
    return result
