"""Tests for the inventory HTTP API: snapshot, mutations, CSV export and import."""

import csv
import io
import os
import sys
import tempfile
import unittest
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STOCKSYNC_OUTPUT_DIR", tempfile.mkdtemp(prefix="stocksync-test-"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient

from stocksync.db import create_session_factory
from stocksync.server import create_app
from stocksync.store import SqlStockStore

OWNER = "brand-demo"


class TestInventoryRoutes(unittest.TestCase):
    def setUp(self):
        store = SqlStockStore(create_session_factory("sqlite://", seed=True))
        self.client = TestClient(create_app(store=store))

    def test_health(self):
        r = self.client.get("/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"status": "ok"})

    def test_snapshot(self):
        r = self.client.get("/inventory/snapshot", params={"owner_id": OWNER})
        self.assertEqual(r.status_code, 200)
        data = r.json()
        self.assertEqual(len(data["products"]), 4)
        self.assertEqual(data["categories"], ["Apparel", "Bags", "Events"])
        tee = next(p for p in data["products"] if p["id"] == "prod-tee")
        self.assertEqual(tee["total"], 23)
        red_m = next(v for v in tee["variations"] if v["id"] == "var-tee-red-m")
        self.assertEqual(red_m["stock"], {"wh-main": 12, "wh-east": 0})

    def test_snapshot_search(self):
        r = self.client.get("/inventory/snapshot", params={"owner_id": OWNER, "q": "tote"})
        self.assertEqual([p["id"] for p in r.json()["products"]], ["prod-tote"])

    def test_owner_is_required(self):
        r = self.client.get("/inventory/snapshot")
        self.assertEqual(r.status_code, 400)

    def test_adjust_by_warehouse_name(self):
        body = {"owner_id": OWNER, "warehouse": "Main Warehouse", "item_id": "prod-tote", "delta": 5}
        r = self.client.post("/inventory/adjust", json=body)
        self.assertEqual(r.status_code, 200)
        data = r.json()
        self.assertEqual(data["row"]["quantity"], 45)
        self.assertEqual(data["movement"]["delta"], 5)
        self.assertEqual(data["movement"]["reason"], "adjustment")

    def test_invalid_delta_is_rejected(self):
        body = {"owner_id": OWNER, "warehouse": "wh-main", "item_id": "prod-tote", "delta": "abc"}
        r = self.client.post("/inventory/adjust", json=body)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "StockValidationError")

    def test_unknown_item_is_not_found(self):
        body = {"owner_id": OWNER, "warehouse": "wh-main", "item_id": "ghost", "quantity": 1}
        r = self.client.post("/inventory/set", json=body)
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json()["code"], "not_found")

    def test_other_owners_item_is_not_found(self):
        body = {"owner_id": OWNER, "warehouse": "wh-main", "item_id": "prod-venue-mug", "quantity": 99}
        r = self.client.post("/inventory/set", json=body)
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json()["error"], "SubjectNotFoundError")
        r = self.client.get("/inventory/movements", params={"owner_id": "venue-demo", "item_id": "prod-venue-mug"})
        self.assertEqual(r.json()["movements"], [])

    def test_inactive_warehouse_and_venue_are_not_found(self):
        for warehouse in ("wh-old", "venue-loft", "Nowhere"):
            body = {"owner_id": OWNER, "warehouse": warehouse, "item_id": "prod-tote", "delta": 1}
            r = self.client.post("/inventory/adjust", json=body)
            self.assertEqual(r.status_code, 404, warehouse)
            self.assertEqual(r.json()["error"], "LocationNotFoundError")

    def test_blank_warehouse_is_rejected(self):
        body = {"owner_id": OWNER, "warehouse": " ", "item_id": "prod-tote", "delta": 1}
        r = self.client.post("/inventory/adjust", json=body)
        self.assertEqual(r.status_code, 400)

    def test_bulk_set_skips_other_owners_items(self):
        body = {"owner_id": OWNER, "warehouse": "wh-main", "item_ids": ["prod-venue-mug", "prod-tote"], "quantity": 2}
        r = self.client.post("/inventory/bulk-set", json=body)
        data = r.json()
        self.assertEqual((data["success_count"], data["error_count"]), (1, 1))
        self.assertEqual(data["errors"][0]["row"], 1)
        self.assertEqual(data["errors"][0]["code"], "not_found")

    def test_bulk_set_reports_partial_failure(self):
        body = {
            "owner_id": OWNER,
            "warehouse": "wh-east",
            "item_ids": ["var-tee-red-m", "prod-tote", "ghost"],
            "quantity": 9,
            "reason": "Physical Count",
        }
        r = self.client.post("/inventory/bulk-set", json=body)
        self.assertEqual(r.status_code, 200)
        data = r.json()
        self.assertEqual((data["success_count"], data["error_count"]), (2, 1))
        self.assertEqual(data["errors"][0]["row"], 3)

    def test_add_to_warehouse_and_movements(self):
        body = {"owner_id": OWNER, "warehouse": "wh-east", "item_ids": ["var-cap-olive"], "initial_quantity": 6}
        r = self.client.post("/inventory/add-to-warehouse", json=body)
        self.assertEqual(r.json()["success_count"], 1)
        r = self.client.get(
            "/inventory/movements", params={"owner_id": OWNER, "item_id": "var-cap-olive", "warehouse": "wh-east"}
        )
        movements = r.json()["movements"]
        self.assertEqual(len(movements), 1)
        self.assertEqual(movements[0]["reason"], "initial_stock")
        self.assertEqual(movements[0]["quantity_after"], 6)

    def test_export_csv(self):
        r = self.client.get("/inventory/export.csv", params={"owner_id": OWNER, "warehouse": ["wh-main"]})
        self.assertEqual(r.status_code, 200)
        self.assertIn('filename="inventory-', r.headers["content-disposition"])
        rows = list(csv.DictReader(io.StringIO(r.text)))
        self.assertEqual(len(rows), 6)
        self.assertEqual({row["warehouse_id"] for row in rows}, {"wh-main"})

    def test_export_with_no_match_returns_template(self):
        r = self.client.get("/inventory/export.csv", params={"owner_id": OWNER, "q": "zzz"})
        self.assertIn("inventory-import-template.csv", r.headers["content-disposition"])
        self.assertIn("your-product-id", r.text)

    def test_import_csv(self):
        text = (
            "product_id,product_name,warehouse_id,warehouse_name,stock_quantity\n"
            "prod-tote,Canvas Tote,,Main Warehouse,33\n"
            "prod-tote,Canvas Tote,wh-nowhere,,1\n"
        )
        r = self.client.post(
            "/inventory/import",
            files={"file": ("stock.csv", text.encode("utf-8"), "text/csv")},
            data={"owner_id": OWNER},
        )
        self.assertEqual(r.status_code, 200)
        data = r.json()
        self.assertEqual((data["success_count"], data["error_count"]), (1, 1))
        snapshot = self.client.get("/inventory/snapshot", params={"owner_id": OWNER, "q": "tote"}).json()
        self.assertEqual(snapshot["products"][0]["stock"]["wh-main"], 33)

    def test_import_rejects_other_owners_rows(self):
        text = (
            "product_id,product_name,warehouse_id,warehouse_name,stock_quantity\n"
            "prod-venue-mug,Mug,wh-main,,7\n"
            "prod-tote,Canvas Tote,wh-old,,7\n"
        )
        r = self.client.post(
            "/inventory/import",
            files={"file": ("stock.csv", text.encode("utf-8"), "text/csv")},
            data={"owner_id": OWNER},
        )
        data = r.json()
        self.assertEqual((data["success_count"], data["error_count"]), (0, 2))
        self.assertEqual([e["code"] for e in data["errors"]], ["not_found", "not_found"])

    def test_variant_config_lifecycle(self):
        r = self.client.get("/inventory/variant-config", params={"owner_id": OWNER})
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()["is_default"])
        self.assertEqual(r.json()["rank1"], "Color")

        r = self.client.put("/inventory/variant-config", json={"owner_id": OWNER, "rank1": "Size", "rank2": "color"})
        self.assertEqual(r.status_code, 200)
        data = r.json()
        self.assertEqual((data["rank1"], data["rank2"]), ("Size", "Color"))
        self.assertFalse(data["is_default"])

        snapshot = self.client.get("/inventory/snapshot", params={"owner_id": OWNER}).json()
        self.assertEqual(snapshot["option_order"], ["Size", "Color"])

        r = self.client.delete("/inventory/variant-config", params={"owner_id": OWNER})
        self.assertTrue(r.json()["is_default"])
        snapshot = self.client.get("/inventory/snapshot", params={"owner_id": OWNER}).json()
        self.assertEqual(snapshot["option_order"], ["Color", "Size"])

    def test_variant_config_ranks_must_differ(self):
        r = self.client.put("/inventory/variant-config", json={"owner_id": OWNER, "rank1": "Size", "rank2": "SIZE"})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "StockValidationError")

    def test_import_rejects_non_csv(self):
        r = self.client.post(
            "/inventory/import",
            files={"file": ("stock.txt", b"hello", "text/plain")},
            data={"owner_id": OWNER},
        )
        self.assertEqual(r.status_code, 400)

    def test_import_rejects_unusable_csv(self):
        r = self.client.post(
            "/inventory/import",
            files={"file": ("stock.csv", b"product_id\n", "text/csv")},
            data={"owner_id": OWNER},
        )
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "CsvFormatError")


if __name__ == "__main__":
    unittest.main()
