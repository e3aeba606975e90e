"""Inventory pipeline: snapshot loader, view state, stock mutations, CSV import/export, variant ranking."""

from stocksync.inventory.csv_io import export_csv, export_filename, import_csv, parse_csv, template_csv
from stocksync.inventory.loader import InventorySnapshot, load_snapshot
from stocksync.inventory.mutations import (
    adjust_stock,
    bulk_adjust,
    bulk_set,
    create_inventory_bulk,
    set_stock,
)
from stocksync.inventory.variant_config import get_variant_config, reset_variant_config, save_variant_config
from stocksync.inventory.view_state import InventoryWorkspace, ViewState, initial_state

__all__ = [
    "InventorySnapshot",
    "load_snapshot",
    "adjust_stock",
    "set_stock",
    "bulk_adjust",
    "bulk_set",
    "create_inventory_bulk",
    "export_csv",
    "export_filename",
    "template_csv",
    "parse_csv",
    "import_csv",
    "InventoryWorkspace",
    "ViewState",
    "initial_state",
    "get_variant_config",
    "save_variant_config",
    "reset_variant_config",
]
