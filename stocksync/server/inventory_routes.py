"""Inventory API: snapshot, single and bulk stock mutations, CSV export and import, variant ranking.

Every item and warehouse is resolved against the owner's snapshot before any
store call: ids of other owners' products and of inactive or non-warehouse
locations are rejected with 404.
"""

from typing import Any, Optional, Union

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, Response, UploadFile
from pydantic import BaseModel, Field

from stocksync.config import DEFAULT_ACTOR_ID, DEFAULT_OWNER_ID
from stocksync.inventory import mutations
from stocksync.inventory.csv_io import TEMPLATE_FILENAME, export_csv, export_filename, import_csv
from stocksync.inventory.loader import InventorySnapshot, load_snapshot
from stocksync.inventory.variant_config import (
    get_variant_config,
    is_default,
    reset_variant_config,
    save_variant_config,
)
from stocksync.inventory.view_state import categories, filter_products
from stocksync.models import BatchResult, StockSubject, VariantConfig
from stocksync.store import StockStore
from stocksync.utils.logger import get_logger
from stocksync.utils.variant_parser import variation_display_name

logger = get_logger("stocksync.server.inventory")

router = APIRouter(prefix="/inventory", tags=["inventory"])

Number = Union[int, float, str]


class StockTarget(BaseModel):
    owner_id: Optional[str] = None
    warehouse: str = Field(..., description="Warehouse id or name")
    reason: Optional[str] = None
    note: Optional[str] = None
    actor_id: Optional[str] = None


class AdjustBody(StockTarget):
    item_id: str
    delta: Number


class SetBody(StockTarget):
    item_id: str
    quantity: Number


class BulkAdjustBody(StockTarget):
    item_ids: list[str]
    delta: Number


class BulkSetBody(StockTarget):
    item_ids: list[str]
    quantity: Number


class AddToWarehouseBody(BaseModel):
    owner_id: Optional[str] = None
    warehouse: str
    item_ids: list[str]
    initial_quantity: Number = 0
    actor_id: Optional[str] = None


class VariantConfigBody(BaseModel):
    owner_id: Optional[str] = None
    rank1: str
    rank2: Optional[str] = None


def _store(request: Request) -> StockStore:
    return request.app.state.store


def _owner(owner_id: Optional[str]) -> str:
    owner = (owner_id or DEFAULT_OWNER_ID).strip()
    if not owner:
        raise HTTPException(status_code=400, detail="owner_id is required")
    return owner


def _subject(snapshot: InventorySnapshot, item_id: str) -> StockSubject:
    return snapshot.require_subject(item_id)


def _bulk_subjects(snapshot: InventorySnapshot, item_ids: list[str]) -> list[StockSubject]:
    """Unknown ids stay in place as product subjects; the batch scope check turns them into row errors."""
    return [snapshot.resolve_subject(i) or StockSubject.product(i) for i in item_ids]


def _warehouse(snapshot: InventorySnapshot, warehouse: str) -> str:
    return snapshot.require_warehouse(warehouse).id


def _snapshot_payload(snapshot: InventorySnapshot, products) -> dict[str, Any]:
    items = []
    for p in products:
        entry: dict[str, Any] = {
            "id": p.id,
            "name": p.name,
            "type": p.type,
            "sku": p.sku,
            "category": p.category,
            "total": snapshot.product_total(p.id),
        }
        if p.is_variable:
            entry["variations"] = [
                {
                    "id": v.id,
                    "name": variation_display_name(v.attributes, snapshot.option_order),
                    "attributes": v.attributes,
                    "sku": v.sku,
                    "stock": {
                        w.id: snapshot.quantity(StockSubject.variation(v.id), w.id) for w in snapshot.warehouses
                    },
                }
                for v in snapshot.variations_of(p.id)
            ]
        else:
            entry["stock"] = {
                w.id: snapshot.quantity(StockSubject.product(p.id), w.id) for w in snapshot.warehouses
            }
        items.append(entry)
    return {
        "owner_id": snapshot.owner_id,
        "loaded_at": snapshot.loaded_at.isoformat(),
        "warehouses": [w.model_dump() for w in snapshot.warehouses],
        "option_order": list(snapshot.option_order),
        "categories": categories(snapshot),
        "products": items,
    }


def _change_payload(change) -> dict[str, Any]:
    return {
        "row": change.row.model_dump(),
        "movement": change.movement.model_dump(mode="json"),
        "created_row": change.created_row,
    }


@router.get("/snapshot")
async def get_snapshot(
    request: Request,
    owner_id: Optional[str] = None,
    q: str = "",
    category: Optional[str] = None,
) -> dict[str, Any]:
    """Products with per-warehouse stock (variations nested). Optional ?q= search and ?category=."""
    snapshot = await load_snapshot(_store(request), _owner(owner_id))
    return _snapshot_payload(snapshot, filter_products(snapshot, q, category))


@router.post("/adjust")
async def post_adjust(request: Request, body: AdjustBody) -> dict[str, Any]:
    store = _store(request)
    snapshot = await load_snapshot(store, _owner(body.owner_id))
    change = await mutations.adjust_stock(
        store,
        _subject(snapshot, body.item_id),
        _warehouse(snapshot, body.warehouse),
        body.delta,
        reason=body.reason,
        note=body.note,
        actor_id=body.actor_id or DEFAULT_ACTOR_ID,
    )
    return _change_payload(change)


@router.post("/set")
async def post_set(request: Request, body: SetBody) -> dict[str, Any]:
    store = _store(request)
    snapshot = await load_snapshot(store, _owner(body.owner_id))
    change = await mutations.set_stock(
        store,
        _subject(snapshot, body.item_id),
        _warehouse(snapshot, body.warehouse),
        body.quantity,
        reason=body.reason,
        note=body.note,
        actor_id=body.actor_id or DEFAULT_ACTOR_ID,
    )
    return _change_payload(change)


@router.post("/bulk-adjust")
async def post_bulk_adjust(request: Request, body: BulkAdjustBody) -> BatchResult:
    store = _store(request)
    snapshot = await load_snapshot(store, _owner(body.owner_id))
    return await mutations.bulk_adjust(
        store,
        _bulk_subjects(snapshot, body.item_ids),
        _warehouse(snapshot, body.warehouse),
        body.delta,
        reason=body.reason,
        note=body.note,
        actor_id=body.actor_id or DEFAULT_ACTOR_ID,
        scope=snapshot,
    )


@router.post("/bulk-set")
async def post_bulk_set(request: Request, body: BulkSetBody) -> BatchResult:
    store = _store(request)
    snapshot = await load_snapshot(store, _owner(body.owner_id))
    return await mutations.bulk_set(
        store,
        _bulk_subjects(snapshot, body.item_ids),
        _warehouse(snapshot, body.warehouse),
        body.quantity,
        reason=body.reason,
        note=body.note,
        actor_id=body.actor_id or DEFAULT_ACTOR_ID,
        scope=snapshot,
    )


@router.post("/add-to-warehouse")
async def post_add_to_warehouse(request: Request, body: AddToWarehouseBody) -> BatchResult:
    store = _store(request)
    snapshot = await load_snapshot(store, _owner(body.owner_id))
    return await mutations.create_inventory_bulk(
        store,
        _bulk_subjects(snapshot, body.item_ids),
        _warehouse(snapshot, body.warehouse),
        body.initial_quantity,
        actor_id=body.actor_id or DEFAULT_ACTOR_ID,
        scope=snapshot,
    )


@router.get("/movements")
async def get_movements(
    request: Request,
    item_id: str,
    owner_id: Optional[str] = None,
    warehouse: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
) -> dict[str, Any]:
    """Movement history of one product or variation, newest first."""
    store = _store(request)
    snapshot = await load_snapshot(store, _owner(owner_id))
    subject = _subject(snapshot, item_id)
    location_id = _warehouse(snapshot, warehouse) if warehouse else None
    rows = await store.list_movements(subject, location_id, limit)
    return {"subject": subject.model_dump(), "movements": [m.model_dump(mode="json") for m in rows]}


@router.get("/export.csv")
async def get_export(
    request: Request,
    owner_id: Optional[str] = None,
    q: str = "",
    category: Optional[str] = None,
    warehouse: Optional[list[str]] = Query(None),
) -> Response:
    """CSV download of the (filtered) view; the import template when nothing matches."""
    snapshot = await load_snapshot(_store(request), _owner(owner_id))
    products = filter_products(snapshot, q, category)
    warehouse_ids = [_warehouse(snapshot, w) for w in warehouse] if warehouse else None
    content = export_csv(snapshot, products, warehouse_ids)
    filename = export_filename() if products else TEMPLATE_FILENAME
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def post_import(
    request: Request,
    file: UploadFile = File(...),
    owner_id: Optional[str] = Form(None),
    actor_id: Optional[str] = Form(None),
) -> BatchResult:
    """Upload a CSV; each row is applied as a set-stock. Row failures are reported, not raised."""
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Please upload a CSV file")
    raw = await file.read()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded") from e
    store = _store(request)
    snapshot = await load_snapshot(store, _owner(owner_id))
    result = await import_csv(store, snapshot, text, actor_id=actor_id or DEFAULT_ACTOR_ID)
    logger.info(
        "inventory.import",
        filename=file.filename,
        success_count=result.success_count,
        error_count=result.error_count,
    )
    return result


def _variant_config_payload(config: VariantConfig) -> dict[str, Any]:
    return {
        "owner_id": config.owner_id,
        "rank1": config.rank1,
        "rank2": config.rank2,
        "option_order": list(config.option_order),
        "is_default": is_default(config),
        "updated_at": config.updated_at.isoformat() if config.updated_at else None,
    }


@router.get("/variant-config")
async def get_variant_config_route(request: Request, owner_id: Optional[str] = None) -> dict[str, Any]:
    """The owner's variant option ranking (the configured default when none is stored)."""
    config = await get_variant_config(_store(request), _owner(owner_id))
    return _variant_config_payload(config)


@router.put("/variant-config")
async def put_variant_config(request: Request, body: VariantConfigBody) -> dict[str, Any]:
    config = await save_variant_config(_store(request), _owner(body.owner_id), body.rank1, body.rank2)
    return _variant_config_payload(config)


@router.delete("/variant-config")
async def delete_variant_config_route(request: Request, owner_id: Optional[str] = None) -> dict[str, Any]:
    """Drop the stored ranking; the response is the default that now applies."""
    config = await reset_variant_config(_store(request), _owner(owner_id))
    return _variant_config_payload(config)
