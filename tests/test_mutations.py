"""Tests for stock mutations: input validation, reason normalization, bulk partial failure."""

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
from stocksync.errors import StockValidationError
from stocksync.inventory.loader import load_snapshot
from stocksync.inventory.mutations import (
    adjust_stock,
    bulk_adjust,
    bulk_set,
    create_inventory_bulk,
    normalize_reason,
    parse_delta,
    parse_quantity,
    set_stock,
)
from stocksync.models import StockSubject
from stocksync.store import SqlStockStore

TOTE = StockSubject.product("prod-tote")
RED_M = StockSubject.variation("var-tee-red-m")
RED_L = StockSubject.variation("var-tee-red-l")
BLUE_M = StockSubject.variation("var-tee-blue-m")


class RecordingStore:
    """Wraps a store and records which methods were called."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    def __getattr__(self, name):
        attr = getattr(self.inner, name)

        async def call(*args, **kwargs):
            self.calls.append(name)
            return await attr(*args, **kwargs)

        return call


class ExplodingStore:
    """Store whose writes fail with an unexpected error."""

    async def adjust_stock(self, *args, **kwargs):
        raise RuntimeError("boom")


class TestParsing(unittest.TestCase):
    def test_normalize_reason(self):
        self.assertEqual(normalize_reason("Physical Count"), "physical_count")
        self.assertEqual(normalize_reason(None), "adjustment")
        self.assertEqual(normalize_reason("   "), "adjustment")
        self.assertEqual(normalize_reason("", "Restock"), "restock")

    def test_parse_delta_accepts_whole_numbers(self):
        self.assertEqual(parse_delta("5"), 5)
        self.assertEqual(parse_delta(" -3 "), -3)
        self.assertEqual(parse_delta(2.0), 2)
        self.assertEqual(parse_delta("2.0"), 2)

    def test_parse_delta_rejects_invalid_input(self):
        for value in ("abc", "", 1.5, "nan", float("inf"), True, None):
            with self.subTest(value=value):
                with self.assertRaises(StockValidationError):
                    parse_delta(value)

    def test_parse_quantity_rejects_negative(self):
        self.assertEqual(parse_quantity("0"), 0)
        with self.assertRaises(StockValidationError):
            parse_quantity(-1)


class TestSingleMutations(unittest.TestCase):
    def setUp(self):
        self.store = RecordingStore(SqlStockStore(create_session_factory("sqlite://", seed=True)))

    def test_missing_warehouse_makes_no_store_call(self):
        with self.assertRaises(StockValidationError) as ctx:
            asyncio.run(adjust_stock(self.store, TOTE, None, 5))
        self.assertIn("warehouse", str(ctx.exception))
        self.assertEqual(self.store.calls, [])

    def test_invalid_delta_makes_no_store_call(self):
        with self.assertRaises(StockValidationError):
            asyncio.run(adjust_stock(self.store, TOTE, "wh-main", "abc"))
        with self.assertRaises(StockValidationError):
            asyncio.run(set_stock(self.store, TOTE, "wh-main", "-4"))
        self.assertEqual(self.store.calls, [])

    def test_adjust_normalizes_reason(self):
        change = asyncio.run(adjust_stock(self.store, TOTE, "wh-main", "5", reason="Physical Count"))
        self.assertEqual(change.row.quantity, 45)
        self.assertEqual(change.movement.reason, "physical_count")
        self.assertEqual(self.store.calls, ["adjust_stock"])

    def test_set_uses_default_reason(self):
        change = asyncio.run(set_stock(self.store, TOTE, "wh-main", 12, reason=None))
        self.assertEqual(change.movement.reason, "correction")
        self.assertEqual(change.movement.delta, -28)


class TestBulkMutations(unittest.TestCase):
    def setUp(self):
        self.store = SqlStockStore(create_session_factory("sqlite://", seed=True))

    def quantity(self, subject, location_id):
        row = asyncio.run(self.store.get_stock_row(subject, location_id))
        return row.quantity if row else 0

    def test_bulk_adjust_counts_partial_failure(self):
        subjects = [TOTE, RED_M, RED_L, StockSubject.product("ghost")]
        result = asyncio.run(bulk_adjust(self.store, subjects, "wh-main", 2))
        self.assertEqual(result.success_count, 3)
        self.assertEqual(result.error_count, 1)
        self.assertEqual(result.errors[0].row, 4)
        self.assertEqual(result.errors[0].label, "product:ghost@wh-main")
        self.assertEqual(result.errors[0].code, "not_found")
        self.assertEqual(self.quantity(TOTE, "wh-main"), 42)
        self.assertEqual(self.quantity(RED_M, "wh-main"), 14)
        self.assertEqual(self.quantity(RED_L, "wh-main"), 10)

    def test_bulk_adjust_reason_defaults_to_restock(self):
        asyncio.run(bulk_adjust(self.store, [TOTE], "wh-main", 1, reason=""))
        movements = asyncio.run(self.store.list_movements(TOTE, "wh-main"))
        self.assertEqual(movements[0].reason, "restock")

    def test_bulk_set_requires_selection(self):
        with self.assertRaises(StockValidationError):
            asyncio.run(bulk_set(self.store, [], "wh-main", 3))

    def test_bulk_set_writes_every_row(self):
        result = asyncio.run(bulk_set(self.store, [RED_M, BLUE_M], "wh-east", 6, reason="Physical Count"))
        self.assertEqual((result.success_count, result.error_count), (2, 0))
        self.assertEqual(self.quantity(RED_M, "wh-east"), 6)
        self.assertEqual(self.quantity(BLUE_M, "wh-east"), 6)
        movements = asyncio.run(self.store.list_movements(BLUE_M, "wh-east"))
        self.assertEqual(movements[0].reason, "physical_count")
        self.assertEqual(movements[0].delta, 3)

    def test_create_inventory_keeps_existing_rows(self):
        result = asyncio.run(create_inventory_bulk(self.store, [TOTE, BLUE_M], "wh-main", initial_quantity=3))
        self.assertEqual((result.success_count, result.error_count), (2, 0))
        self.assertEqual(self.quantity(TOTE, "wh-main"), 40)
        self.assertEqual(self.quantity(BLUE_M, "wh-main"), 3)

    def test_scope_rejects_other_owners_subjects_before_writing(self):
        snapshot = asyncio.run(load_snapshot(self.store, "brand-demo"))
        recording = RecordingStore(self.store)
        mug = StockSubject.product("prod-venue-mug")
        result = asyncio.run(bulk_set(recording, [mug, TOTE], "wh-main", 4, scope=snapshot))
        self.assertEqual((result.success_count, result.error_count), (1, 1))
        self.assertEqual(result.errors[0].row, 1)
        self.assertEqual(result.errors[0].code, "not_found")
        self.assertEqual(recording.calls, ["set_stock"])
        self.assertIsNone(asyncio.run(self.store.get_stock_row(mug, "wh-main")))

    def test_unexpected_error_is_counted(self):
        result = asyncio.run(bulk_adjust(ExplodingStore(), [TOTE, RED_M], "wh-main", 1))
        self.assertEqual(result.error_count, 2)
        self.assertEqual(result.errors[0].message, "boom")
        self.assertIsNone(result.errors[0].code)


if __name__ == "__main__":
    unittest.main()
