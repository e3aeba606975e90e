"""Tests for the SQLAlchemy stock store: atomic adjust/set, movements, upserts."""

import asyncio
import inspect
import os
import sys
import tempfile
import threading
import unittest
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STOCKSYNC_OUTPUT_DIR", tempfile.mkdtemp(prefix="stocksync-test-"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from stocksync.db import create_session_factory
from stocksync.errors import LocationNotFoundError, StoreError, SubjectNotFoundError
from stocksync.models import StockSubject, VariantConfig
from stocksync.store import SqlStockStore

TOTE = StockSubject.product("prod-tote")
RED_M = StockSubject.variation("var-tee-red-m")


class TestSqlStockStore(unittest.TestCase):
    def setUp(self):
        # Fresh in-memory database seeded from data/*.csv for every test
        self.store = SqlStockStore(create_session_factory("sqlite://", seed=True))

    def run_async(self, coro):
        return asyncio.run(coro)

    def test_reads_seeded_catalog(self):
        products = self.run_async(self.store.list_products("brand-demo"))
        self.assertIn("prod-tote", [p.id for p in products])
        self.assertNotIn("prod-venue-mug", [p.id for p in products])
        warehouses = self.run_async(self.store.list_locations())
        self.assertEqual({w.id for w in warehouses}, {"wh-main", "wh-east"})

    def test_variation_attributes_are_canonical(self):
        variations = self.run_async(self.store.list_variations("prod-tee"))
        by_id = {v.id: v for v in variations}
        self.assertEqual(by_id["var-tee-red-m"].attributes, {"Color": "Red", "Size": "M"})
        self.assertEqual(by_id["var-tee-blue-m"].attributes, {"Color": "Blue", "Size": "M"})

    def test_adjust_writes_quantity_and_movement(self):
        change = self.run_async(self.store.adjust_stock(TOTE, "wh-main", 10, "restock", note="delivery"))
        self.assertEqual(change.row.quantity, 50)
        self.assertEqual(change.movement.delta, 10)
        self.assertEqual(change.movement.quantity_before, 40)
        self.assertEqual(change.movement.quantity_after, 50)
        self.assertFalse(change.created_row)
        movements = self.run_async(self.store.list_movements(TOTE, "wh-main"))
        self.assertEqual(len(movements), 1)
        self.assertEqual(movements[0].reason, "restock")
        self.assertEqual(movements[0].note, "delivery")

    def test_adjust_floors_at_zero_and_keeps_requested_delta(self):
        change = self.run_async(self.store.adjust_stock(TOTE, "wh-east", -8, "sale"))
        self.assertEqual(change.row.quantity, 0)
        self.assertEqual(change.movement.delta, -8)
        self.assertEqual(change.movement.quantity_after, 0)

    def test_set_records_difference_and_zero_delta(self):
        first = self.run_async(self.store.set_stock(RED_M, "wh-main", 30, "correction"))
        second = self.run_async(self.store.set_stock(RED_M, "wh-main", 30, "correction"))
        self.assertEqual(first.movement.delta, 18)
        self.assertEqual(second.movement.delta, 0)
        self.assertEqual(second.row.quantity, 30)
        movements = self.run_async(self.store.list_movements(RED_M, "wh-main"))
        self.assertEqual(sorted(m.delta for m in movements), [0, 18])

    def test_set_creates_missing_row(self):
        change = self.run_async(self.store.set_stock(TOTE, "venue-loft", 7, "correction"))
        self.assertTrue(change.created_row)
        self.assertEqual(change.movement.quantity_before, 0)
        row = self.run_async(self.store.get_stock_row(TOTE, "venue-loft"))
        self.assertEqual(row.quantity, 7)

    def test_set_negative_is_rejected(self):
        with self.assertRaises(StoreError) as ctx:
            self.run_async(self.store.set_stock(TOTE, "wh-main", -1, "correction"))
        self.assertEqual(ctx.exception.code, "23514")

    def test_variation_total_tracks_location_rows(self):
        self.run_async(self.store.set_stock(RED_M, "wh-east", 5, "correction"))
        variations = self.run_async(self.store.list_variations("prod-tee"))
        red_m = next(v for v in variations if v.id == "var-tee-red-m")
        self.assertEqual(red_m.stock_quantity, 17)

    def test_unknown_subject_or_location_writes_nothing(self):
        with self.assertRaises(SubjectNotFoundError):
            self.run_async(self.store.adjust_stock(StockSubject.product("nope"), "wh-main", 1, "adjustment"))
        with self.assertRaises(LocationNotFoundError):
            self.run_async(self.store.adjust_stock(TOTE, "nope", 1, "adjustment"))
        self.assertIsNone(self.run_async(self.store.get_stock_row(TOTE, "nope")))
        self.assertEqual(self.run_async(self.store.list_movements(TOTE)), [])

    def test_ensure_stock_row_is_idempotent(self):
        row, created = self.run_async(self.store.ensure_stock_row(TOTE, "venue-loft", initial_quantity=4))
        self.assertTrue(created)
        self.assertEqual(row.quantity, 4)
        row, created = self.run_async(self.store.ensure_stock_row(TOTE, "venue-loft", initial_quantity=9))
        self.assertFalse(created)
        self.assertEqual(row.quantity, 4)
        movements = self.run_async(self.store.list_movements(TOTE, "venue-loft"))
        self.assertEqual(len(movements), 1)
        self.assertEqual(movements[0].reason, "initial_stock")

    def test_ensure_stock_row_without_quantity_has_no_movement(self):
        _, created = self.run_async(self.store.ensure_stock_row(RED_M, "wh-east"))
        self.assertTrue(created)
        self.assertEqual(self.run_async(self.store.list_movements(RED_M, "wh-east")), [])

    def test_stock_rows_are_batched_by_kind(self):
        rows = self.run_async(self.store.list_variation_stock(["var-tee-red-m", "var-tee-blue-m"]))
        self.assertEqual({(r.subject.id, r.location_id, r.quantity) for r in rows}, {
            ("var-tee-red-m", "wh-main", 12),
            ("var-tee-blue-m", "wh-east", 3),
        })
        self.assertEqual(self.run_async(self.store.list_product_stock([])), [])

    def test_create_location(self):
        location = self.run_async(self.store.create_location("  North Annex "))
        self.assertEqual(location.name, "North Annex")
        warehouses = self.run_async(self.store.list_locations())
        self.assertIn(location.id, [w.id for w in warehouses])

    def test_variant_config_upsert_get_delete(self):
        self.assertIsNone(self.run_async(self.store.get_variant_config("brand-demo")))
        saved = self.run_async(self.store.upsert_variant_config(VariantConfig(owner_id="brand-demo", rank1="Size", rank2="")))
        self.assertEqual(saved.option_order, ("Size",))
        self.assertIsNotNone(saved.updated_at)
        updated = self.run_async(
            self.store.upsert_variant_config(VariantConfig(owner_id="brand-demo", rank1="Size", rank2="Color"))
        )
        self.assertEqual(updated.rank2, "Color")
        self.assertEqual(self.run_async(self.store.get_variant_config("brand-demo")).option_order, ("Size", "Color"))
        self.assertIsNone(self.run_async(self.store.get_variant_config("venue-demo")))
        self.assertTrue(self.run_async(self.store.delete_variant_config("brand-demo")))
        self.assertFalse(self.run_async(self.store.delete_variant_config("brand-demo")))
        self.assertIsNone(self.run_async(self.store.get_variant_config("brand-demo")))

    def test_concurrent_writes_run_off_the_loop_and_all_apply(self):
        self.assertTrue(inspect.iscoroutinefunction(self.store.adjust_stock))

        async def work():
            loop_thread = threading.get_ident()
            seen = set()
            original = self.store._call

            def call(method, *args, **kwargs):
                seen.add(threading.get_ident())
                return original(method, *args, **kwargs)

            self.store._call = call
            changes = await asyncio.gather(*(self.store.adjust_stock(TOTE, "wh-main", 1, "restock") for _ in range(10)))
            return loop_thread, seen, changes

        loop_thread, seen, changes = self.run_async(work())
        self.assertNotIn(loop_thread, seen)
        self.assertEqual(sorted(c.row.quantity for c in changes), list(range(41, 51)))
        self.assertEqual(self.run_async(self.store.get_stock_row(TOTE, "wh-main")).quantity, 50)
        self.assertEqual(len(self.run_async(self.store.list_movements(TOTE, "wh-main", 50))), 10)


if __name__ == "__main__":
    unittest.main()
