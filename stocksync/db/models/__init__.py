"""Re-export all ORM models so Base.metadata has all tables."""

from stocksync.db.models.catalog import LocationRecord, ProductRecord, VariantConfigRecord, VariationRecord
from stocksync.db.models.inventory import MovementRecord, ProductStockRecord, VariationStockRecord

__all__ = [
    "ProductRecord",
    "VariationRecord",
    "LocationRecord",
    "VariantConfigRecord",
    "ProductStockRecord",
    "VariationStockRecord",
    "MovementRecord",
]
