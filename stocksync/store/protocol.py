"""Stock store protocol: the only boundary between the pipeline and persistence."""

from collections.abc import Sequence
from typing import Optional, Protocol

from stocksync.models import (
    InventoryLocation,
    Product,
    ProductVariation,
    StockChange,
    StockMovement,
    StockRow,
    StockSubject,
    VariantConfig,
)


class StockStore(Protocol):
    """Abstract interface for reading the catalog and mutating stock.

    Every mutation is atomic on the store side: the stock row upsert, the quantity
    write and the movement record either all commit or none do.
    """

    async def list_products(self, owner_id: str, owner_type: str = "brand") -> list[Product]:
        """Products owned by owner_id with the given ownership type."""
        ...

    async def list_locations(
        self, location_type: Optional[str] = "warehouse", active_only: bool = True
    ) -> list[InventoryLocation]:
        """Inventory locations, optionally restricted by type and active flag."""
        ...

    async def list_variations(self, product_id: str) -> list[ProductVariation]:
        """Variations of one product, oldest first."""
        ...

    async def list_product_stock(self, product_ids: Sequence[str]) -> list[StockRow]:
        """Stock rows of simple products, one query for all ids."""
        ...

    async def list_variation_stock(self, variation_ids: Sequence[str]) -> list[StockRow]:
        """Stock rows of variations, one query for all ids."""
        ...

    async def get_stock_row(self, subject: StockSubject, location_id: str) -> Optional[StockRow]:
        """The stock row for (subject, location), or None."""
        ...

    async def ensure_stock_row(
        self,
        subject: StockSubject,
        location_id: str,
        initial_quantity: int = 0,
        actor_id: Optional[str] = None,
    ) -> tuple[StockRow, bool]:
        """Insert the row if missing (conflict-ignoring upsert). Returns (row, created).

        A created row with initial_quantity > 0 gets its opening movement in the
        same transaction.
        """
        ...

    async def adjust_stock(
        self,
        subject: StockSubject,
        location_id: str,
        delta: int,
        reason: str,
        note: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StockChange:
        """Apply quantity += delta (floored at 0) and record the movement."""
        ...

    async def set_stock(
        self,
        subject: StockSubject,
        location_id: str,
        quantity: int,
        reason: str,
        note: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StockChange:
        """Write quantity = target and record the movement with delta = target - before."""
        ...

    async def list_movements(
        self, subject: StockSubject, location_id: Optional[str] = None, limit: int = 50
    ) -> list[StockMovement]:
        """Movement history for a subject, newest first."""
        ...

    async def create_location(self, name: str, location_type: str = "warehouse") -> InventoryLocation:
        """Create an active inventory location."""
        ...

    async def get_variant_config(self, owner_id: str) -> Optional[VariantConfig]:
        """The stored option ranking of an owner, or None when the owner has not set one."""
        ...

    async def upsert_variant_config(self, config: VariantConfig) -> VariantConfig:
        """Insert or replace the owner's option ranking."""
        ...

    async def delete_variant_config(self, owner_id: str) -> bool:
        """Remove the owner's ranking so defaults apply again. True if a row was deleted."""
        ...

    async def aclose(self) -> None:
        """Release connections."""
        ...
