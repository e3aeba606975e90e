"""Seed DB from CSV files when tables are first created."""

from typing import Any

from sqlalchemy.orm import Session

from stocksync.db.models import (
    LocationRecord,
    ProductRecord,
    ProductStockRecord,
    VariationRecord,
    VariationStockRecord,
)
from stocksync.utils.attributes import canonicalize_attributes
from stocksync.utils.csv_loader import load_locations, load_products, load_stock, load_variations
from stocksync.utils.logger import get_logger

logger = get_logger("stocksync.db.seed_data")


def _parse_bool(val: Any, default: bool = True) -> bool:
    if isinstance(val, bool):
        return val
    if isinstance(val, str) and val.strip():
        return val.strip().lower() in ("true", "1", "yes")
    return default


def _parse_int(val: Any, default: int = 0) -> int:
    try:
        return int(val) if val is not None and str(val).strip() else default
    except (TypeError, ValueError):
        return default


def _parse_attributes(val: Any) -> dict[str, str]:
    """Parse "Color=Red;Size=M" into {"Color": "Red", "Size": "M"}."""
    out: dict[str, str] = {}
    for part in str(val or "").split(";"):
        key, sep, value = part.partition("=")
        if sep and key.strip() and value.strip():
            out[key.strip()] = value.strip()
    return canonicalize_attributes(out)


def _clean(val: Any) -> str | None:
    return (val or "").strip() or None


def seed_demo_data(session: Session) -> None:
    """Read demo data from CSV files under data/ and insert it. FK order: locations, products, variations, stock."""
    # 1) Locations
    loc_rows = load_locations()
    location_ids: set[str] = set()
    for r in loc_rows:
        loc_id = _clean(r.get("id"))
        name = _clean(r.get("name"))
        if not loc_id or not name:
            continue
        session.add(
            LocationRecord(
                id=loc_id,
                name=name,
                type=_clean(r.get("type")) or "warehouse",
                is_active=_parse_bool(r.get("is_active")),
            )
        )
        location_ids.add(loc_id)
    session.flush()
    if loc_rows:
        logger.info("seed_data.locations", count=len(location_ids))

    # 2) Products
    prod_rows = load_products()
    product_ids: set[str] = set()
    for r in prod_rows:
        product_id = _clean(r.get("id"))
        name = _clean(r.get("name"))
        if not product_id or not name:
            continue
        session.add(
            ProductRecord(
                id=product_id,
                name=name,
                type=_clean(r.get("type")) or "simple",
                owner_user_id=_clean(r.get("owner_user_id")),
                owner_type=_clean(r.get("owner_type")) or "brand",
                sku=_clean(r.get("sku")),
                category=_clean(r.get("category")),
                is_active=_parse_bool(r.get("is_active")),
            )
        )
        product_ids.add(product_id)
    session.flush()
    if prod_rows:
        logger.info("seed_data.products", count=len(product_ids))

    # 3) Variations
    var_rows = load_variations()
    variation_ids: set[str] = set()
    for r in var_rows:
        variation_id = _clean(r.get("id"))
        product_id = _clean(r.get("product_id"))
        if not variation_id or product_id not in product_ids:
            continue
        session.add(
            VariationRecord(
                id=variation_id,
                product_id=product_id,
                attributes=_parse_attributes(r.get("attributes")),
                sku=_clean(r.get("sku")),
            )
        )
        variation_ids.add(variation_id)
    session.flush()
    if var_rows:
        logger.info("seed_data.variations", count=len(variation_ids))

    # 4) Opening stock; subject_id is a product id or a variation id
    stock_rows = load_stock()
    totals: dict[str, int] = {}
    seeded = 0
    for r in stock_rows:
        subject_id = _clean(r.get("subject_id"))
        location_id = _clean(r.get("location_id"))
        quantity = max(0, _parse_int(r.get("quantity")))
        if location_id not in location_ids:
            continue
        if subject_id in variation_ids:
            session.add(
                VariationStockRecord(
                    variation_id=subject_id,
                    inventory_location_id=location_id,
                    stock_quantity=quantity,
                )
            )
            totals[subject_id] = totals.get(subject_id, 0) + quantity
        elif subject_id in product_ids:
            session.add(
                ProductStockRecord(
                    product_id=subject_id,
                    inventory_location_id=location_id,
                    stock_quantity=quantity,
                )
            )
        else:
            continue
        seeded += 1
    for variation_id, total in totals.items():
        session.get(VariationRecord, variation_id).stock_quantity = total
    session.flush()
    if stock_rows:
        logger.info("seed_data.stock_rows", count=seeded)
