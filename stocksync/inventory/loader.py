"""Inventory snapshot: one owner's products, variations, warehouses and stock, joined in memory."""

import asyncio
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, PrivateAttr

from stocksync.config import VARIANT_OPTION_ORDER
from stocksync.errors import (
    LocationNotFoundError,
    SnapshotLoadError,
    StockSyncError,
    StockValidationError,
    SubjectNotFoundError,
)
from stocksync.models import InventoryLocation, Product, ProductVariation, StockRow, StockSubject
from stocksync.store.protocol import StockStore
from stocksync.utils.logger import get_logger
from stocksync.utils.tracing import get_tracer

logger = get_logger("stocksync.inventory.loader")

QuantityMap = dict[str, dict[str, int]]


class InventorySnapshot(BaseModel):
    """Read-only joined view. Missing stock rows read as quantity 0.

    Only the owner's products and active warehouses are in the snapshot, so the
    require_* lookups double as the tenant check for every mutation path.
    """

    owner_id: str
    products: list[Product] = Field(default_factory=list)
    warehouses: list[InventoryLocation] = Field(default_factory=list)
    variations: dict[str, list[ProductVariation]] = Field(default_factory=dict)
    product_stock: QuantityMap = Field(default_factory=dict)
    variation_stock: QuantityMap = Field(default_factory=dict)
    option_order: tuple[str, ...] = Field(default_factory=lambda: tuple(VARIANT_OPTION_ORDER))
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    _products_by_id: dict[str, Product] = PrivateAttr(default_factory=dict)
    _variations_by_id: dict[str, ProductVariation] = PrivateAttr(default_factory=dict)
    _warehouses_by_id: dict[str, InventoryLocation] = PrivateAttr(default_factory=dict)
    _warehouses_by_name: dict[str, InventoryLocation] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._products_by_id = {p.id: p for p in self.products}
        self._variations_by_id = {v.id: v for items in self.variations.values() for v in items}
        self._warehouses_by_id = {w.id: w for w in self.warehouses}
        # first warehouse wins when two share a name
        by_name: dict[str, InventoryLocation] = {}
        for w in self.warehouses:
            by_name.setdefault(w.name.strip().casefold(), w)
        self._warehouses_by_name = by_name

    def model_copy(self, *, update: Optional[dict[str, Any]] = None, deep: bool = False) -> "InventorySnapshot":
        copied = super().model_copy(update=update, deep=deep)
        copied.model_post_init(None)
        return copied

    # --- lookups ---

    def product(self, product_id: str) -> Optional[Product]:
        return self._products_by_id.get(product_id)

    def variation(self, variation_id: str) -> Optional[ProductVariation]:
        return self._variations_by_id.get(variation_id)

    def variations_of(self, product_id: str) -> list[ProductVariation]:
        return self.variations.get(product_id, [])

    def resolve_subject(self, subject_id: str) -> Optional[StockSubject]:
        """A known variation id wins over a product id; unknown ids give None."""
        if subject_id in self._variations_by_id:
            return StockSubject.variation(subject_id)
        if subject_id in self._products_by_id:
            return StockSubject.product(subject_id)
        return None

    def require_subject(self, subject_id: str) -> StockSubject:
        """resolve_subject, but ids outside this owner's catalog raise SubjectNotFoundError."""
        if not subject_id.strip():
            raise StockValidationError("Please select an item")
        subject = self.resolve_subject(subject_id.strip())
        if subject is None:
            raise SubjectNotFoundError(f"Product or variation not found: {subject_id}")
        return subject

    def owns(self, subject: StockSubject) -> bool:
        return self.resolve_subject(subject.id) == subject

    def subjects(self, products: Optional[Iterable[Product]] = None) -> list[StockSubject]:
        """Stock subjects in display order: each variation of a variable product, else the product."""
        out: list[StockSubject] = []
        for p in self.products if products is None else products:
            if p.is_variable:
                out.extend(StockSubject.variation(v.id) for v in self.variations_of(p.id))
            else:
                out.append(StockSubject.product(p.id))
        return out

    def warehouse_by_id(self, location_id: str) -> Optional[InventoryLocation]:
        return self._warehouses_by_id.get(location_id)

    def warehouse_by_name(self, name: str) -> Optional[InventoryLocation]:
        wanted = name.strip().casefold()
        if not wanted:
            return None
        return self._warehouses_by_name.get(wanted)

    def require_warehouse(self, warehouse: str) -> InventoryLocation:
        """Match an active warehouse by id, then by case-insensitive name; anything else raises."""
        if not warehouse.strip():
            raise StockValidationError("Please select a warehouse")
        match = self.warehouse_by_id(warehouse.strip()) or self.warehouse_by_name(warehouse)
        if match is None:
            raise LocationNotFoundError(f"Warehouse not found: {warehouse}")
        return match

    # --- quantities ---

    def quantity(self, subject: StockSubject, location_id: str) -> int:
        table = self.variation_stock if subject.kind == "variation" else self.product_stock
        return table.get(subject.id, {}).get(location_id, 0)

    def subject_total(self, subject: StockSubject, warehouse_ids: Optional[Sequence[str]] = None) -> int:
        ids = warehouse_ids if warehouse_ids is not None else [w.id for w in self.warehouses]
        return sum(self.quantity(subject, wid) for wid in ids)

    def product_total(self, product_id: str, warehouse_ids: Optional[Sequence[str]] = None) -> int:
        """Total across warehouses; for variable products, the sum over its variations."""
        product = self.product(product_id)
        if product is None:
            return 0
        return sum(self.subject_total(s, warehouse_ids) for s in self.subjects([product]))


def _index_rows(rows: Iterable[StockRow], location_ids: set[str]) -> QuantityMap:
    """subject_id -> {location_id: quantity}, restricted to the given locations."""
    out: QuantityMap = {}
    for row in rows:
        if row.location_id in location_ids:
            out.setdefault(row.subject.id, {})[row.location_id] = row.quantity
    return out


async def load_snapshot(store: StockStore, owner_id: str) -> InventorySnapshot:
    """Load brand-owned products, active warehouses and all their stock rows.

    Reads run concurrently where independent: products with locations, then the
    variation lists of all variable products, then one batched stock query per
    subject kind alongside the owner's variant option ranking (VARIANT_OPTION_ORDER
    when none is stored). Any store failure raises SnapshotLoadError.
    """
    tracer = get_tracer()
    log = logger.bind(owner_id=owner_id)
    log.info("loader.start")
    with tracer.start_as_current_span("load_snapshot", attributes={"inventory.owner_id": owner_id}) as span:
        try:
            products, warehouses = await asyncio.gather(
                store.list_products(owner_id, owner_type="brand"),
                store.list_locations(location_type="warehouse", active_only=True),
            )

            variable = [p for p in products if p.is_variable]
            simple = [p for p in products if not p.is_variable]
            variation_lists = await asyncio.gather(*(store.list_variations(p.id) for p in variable))
            variations = {p.id: list(vs) for p, vs in zip(variable, variation_lists)}
            variation_ids = [v.id for vs in variations.values() for v in vs]

            product_rows, variation_rows, variant_config = await asyncio.gather(
                store.list_product_stock([p.id for p in simple]),
                store.list_variation_stock(variation_ids),
                store.get_variant_config(owner_id),
            )
        except (StockSyncError, ValueError) as e:
            span.record_exception(e)
            log.error("loader.failed", error=str(e), error_type=type(e).__name__)
            raise SnapshotLoadError(f"Failed to load inventory: {e}") from e

        location_ids = {w.id for w in warehouses}
        snapshot = InventorySnapshot(
            owner_id=owner_id,
            products=products,
            warehouses=warehouses,
            variations=variations,
            product_stock=_index_rows(product_rows, location_ids),
            variation_stock=_index_rows(variation_rows, location_ids),
            option_order=variant_config.option_order if variant_config else tuple(VARIANT_OPTION_ORDER),
        )
        span.set_attribute("inventory.products", len(products))
        span.set_attribute("inventory.variations", len(variation_ids))
        span.set_attribute("inventory.warehouses", len(warehouses))
        span.set_attribute("inventory.option_order", ",".join(snapshot.option_order))

    log.info(
        "loader.done",
        products=len(products),
        variations=len(variation_ids),
        warehouses=len(warehouses),
    )
    return snapshot
