"""Load demo catalog data from CSV files."""

import csv
from pathlib import Path
from typing import Any

from stocksync.config import DATA_DIR


def _read_csv(path: Path) -> list[dict[str, Any]]:
    """Read a CSV file and return list of row dicts."""
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        return list(reader)


def load_locations(csv_path: Path | None = None) -> list[dict[str, Any]]:
    """Load inventory locations from locations.csv."""
    path = csv_path or DATA_DIR / "locations.csv"
    return _read_csv(path)


def load_products(csv_path: Path | None = None) -> list[dict[str, Any]]:
    """Load products from products.csv."""
    path = csv_path or DATA_DIR / "products.csv"
    return _read_csv(path)


def load_variations(csv_path: Path | None = None) -> list[dict[str, Any]]:
    """Load product variations from variations.csv (attributes as "Color=Red;Size=M")."""
    path = csv_path or DATA_DIR / "variations.csv"
    return _read_csv(path)


def load_stock(csv_path: Path | None = None) -> list[dict[str, Any]]:
    """Load opening stock from stock.csv."""
    path = csv_path or DATA_DIR / "stock.csv"
    return _read_csv(path)
