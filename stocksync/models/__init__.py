"""Pydantic models shared by the store, loader, mutations and CSV layers."""

from stocksync.models.catalog import (
    InventoryLocation,
    LocationType,
    OwnerType,
    Product,
    ProductType,
    ProductVariation,
    VariantConfig,
)
from stocksync.models.results import BatchResult, RowError
from stocksync.models.stock import (
    StockChange,
    StockKey,
    StockMovement,
    StockRow,
    StockSubject,
    SubjectKind,
)

__all__ = [
    "Product",
    "ProductType",
    "ProductVariation",
    "InventoryLocation",
    "VariantConfig",
    "LocationType",
    "OwnerType",
    "StockSubject",
    "SubjectKind",
    "StockKey",
    "StockRow",
    "StockMovement",
    "StockChange",
    "BatchResult",
    "RowError",
]
