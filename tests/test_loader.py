"""Tests for the inventory snapshot loader."""

import asyncio
import os
import sys
import tempfile
import unittest
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STOCKSYNC_OUTPUT_DIR", tempfile.mkdtemp(prefix="stocksync-test-"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from stocksync.db import create_session_factory
from stocksync.errors import (
    LocationNotFoundError,
    SnapshotLoadError,
    StockValidationError,
    StoreError,
    SubjectNotFoundError,
)
from stocksync.inventory.loader import load_snapshot
from stocksync.models import StockSubject, VariantConfig
from stocksync.store import SqlStockStore

OWNER = "brand-demo"


class BrokenStockStore:
    """Delegates reads to a real store but fails the variation stock query."""

    def __init__(self, inner, error):
        self.inner = inner
        self.error = error

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def list_variation_stock(self, variation_ids):
        raise self.error


class TestLoadSnapshot(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.store = SqlStockStore(create_session_factory("sqlite://", seed=True))
        cls.snapshot = asyncio.run(load_snapshot(cls.store, OWNER))

    def test_brand_products_and_active_warehouses(self):
        self.assertEqual(
            [p.id for p in self.snapshot.products],
            ["prod-tote", "prod-cap", "prod-launch", "prod-tee"],
        )
        self.assertEqual({w.id for w in self.snapshot.warehouses}, {"wh-main", "wh-east"})

    def test_variations_loaded_for_variable_products_only(self):
        self.assertEqual(set(self.snapshot.variations), {"prod-tee", "prod-cap"})
        self.assertEqual(len(self.snapshot.variations_of("prod-tee")), 3)
        self.assertEqual(self.snapshot.variations_of("prod-tote"), [])

    def test_quantities_default_to_zero(self):
        self.assertEqual(self.snapshot.quantity(StockSubject.product("prod-tote"), "wh-main"), 40)
        self.assertEqual(self.snapshot.quantity(StockSubject.variation("var-tee-red-l"), "wh-east"), 0)
        self.assertEqual(self.snapshot.quantity(StockSubject.product("prod-launch"), "wh-main"), 0)

    def test_product_total_sums_variations(self):
        self.assertEqual(self.snapshot.product_total("prod-tee"), 23)
        self.assertEqual(self.snapshot.product_total("prod-tee", ["wh-east"]), 3)
        self.assertEqual(self.snapshot.product_total("prod-tote"), 45)
        self.assertEqual(self.snapshot.product_total("missing"), 0)

    def test_resolve_subject(self):
        self.assertEqual(self.snapshot.resolve_subject("var-tee-red-m"), StockSubject.variation("var-tee-red-m"))
        self.assertEqual(self.snapshot.resolve_subject("prod-tote"), StockSubject.product("prod-tote"))
        self.assertIsNone(self.snapshot.resolve_subject("nope"))

    def test_require_subject_only_accepts_own_catalog(self):
        self.assertEqual(self.snapshot.require_subject(" var-cap-olive "), StockSubject.variation("var-cap-olive"))
        for item_id in ("prod-venue-mug", "nope"):
            with self.subTest(item_id=item_id):
                with self.assertRaises(SubjectNotFoundError):
                    self.snapshot.require_subject(item_id)
        with self.assertRaises(StockValidationError):
            self.snapshot.require_subject("  ")

    def test_owns(self):
        self.assertTrue(self.snapshot.owns(StockSubject.variation("var-tee-blue-m")))
        self.assertFalse(self.snapshot.owns(StockSubject.product("var-tee-blue-m")))
        self.assertFalse(self.snapshot.owns(StockSubject.product("prod-venue-mug")))

    def test_require_warehouse_only_accepts_active_warehouses(self):
        self.assertEqual(self.snapshot.require_warehouse("east side storage").id, "wh-east")
        self.assertEqual(self.snapshot.require_warehouse("wh-main").id, "wh-main")
        for value in ("wh-old", "venue-loft", "The Loft", "wh-nowhere"):
            with self.subTest(value=value):
                with self.assertRaises(LocationNotFoundError):
                    self.snapshot.require_warehouse(value)
        with self.assertRaises(StockValidationError):
            self.snapshot.require_warehouse("")

    def test_copies_keep_working_lookups(self):
        copied = self.snapshot.model_copy(update={"warehouses": self.snapshot.warehouses[:1]})
        self.assertEqual(len(copied.warehouses), 1)
        kept = copied.warehouses[0]
        self.assertEqual(copied.require_warehouse(kept.id), kept)
        dropped = self.snapshot.warehouses[1]
        self.assertIsNone(copied.warehouse_by_id(dropped.id))
        self.assertEqual(copied.resolve_subject("prod-tote"), StockSubject.product("prod-tote"))

    def test_default_option_order(self):
        self.assertEqual(self.snapshot.option_order, ("Color", "Size"))

    def test_subjects_expand_variable_products(self):
        ids = [s.id for s in self.snapshot.subjects()]
        self.assertIn("prod-tote", ids)
        self.assertIn("prod-launch", ids)
        self.assertIn("var-cap-olive", ids)
        self.assertNotIn("prod-tee", ids)

    def test_warehouse_by_name_ignores_case(self):
        self.assertEqual(self.snapshot.warehouse_by_name("  main WAREHOUSE ").id, "wh-main")
        self.assertIsNone(self.snapshot.warehouse_by_name("Old Depot"))
        self.assertIsNone(self.snapshot.warehouse_by_name(""))

    def test_unknown_owner_gives_empty_snapshot(self):
        snapshot = asyncio.run(load_snapshot(self.store, "nobody"))
        self.assertEqual(snapshot.products, [])
        self.assertEqual(snapshot.subjects(), [])

    def test_stored_variant_config_sets_option_order(self):
        store = SqlStockStore(create_session_factory("sqlite://", seed=True))
        asyncio.run(store.upsert_variant_config(VariantConfig(owner_id=OWNER, rank1="Size", rank2="Color")))
        snapshot = asyncio.run(load_snapshot(store, OWNER))
        self.assertEqual(snapshot.option_order, ("Size", "Color"))
        other = asyncio.run(load_snapshot(store, "venue-demo"))
        self.assertEqual(other.option_order, ("Color", "Size"))

    def test_store_failure_raises_snapshot_load_error(self):
        for error in (StoreError("connection refused", code="network"), ValueError("bad row")):
            with self.subTest(error=type(error).__name__):
                with self.assertRaises(SnapshotLoadError):
                    asyncio.run(load_snapshot(BrokenStockStore(self.store, error), OWNER))


if __name__ == "__main__":
    unittest.main()
