"""CSV export of the inventory view and CSV import replayed as set-stock mutations."""

import csv
import io
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from stocksync.errors import CsvFormatError, StockSyncError
from stocksync.inventory.loader import InventorySnapshot
from stocksync.inventory.mutations import set_stock
from stocksync.models import BatchResult, Product, ProductVariation, StockSubject
from stocksync.store.protocol import StockStore
from stocksync.utils.logger import get_logger
from stocksync.utils.tracing import get_tracer

logger = get_logger("stocksync.inventory.csv_io")

CSV_COLUMNS = ("product_id", "product_name", "warehouse_id", "warehouse_name", "stock_quantity")
# Name columns are left untrimmed
TRIMMED_COLUMNS = ("product_id", "warehouse_id", "stock_quantity")
TEMPLATE_FILENAME = "inventory-import-template.csv"
TEMPLATE_ROW = ("your-product-id", "Example Product - Red, M", "your-warehouse-id", "Main Warehouse", "0")
IMPORT_REASON = "csv_import"


class CsvRow(BaseModel):
    """One data record of an uploaded file. `row` is the record number, header = 1."""

    row: int
    product_id: str = ""
    product_name: str = ""
    warehouse_id: str = ""
    warehouse_name: str = ""
    stock_quantity: str = ""
    error: Optional[str] = None


def export_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"inventory-{now:%Y-%m-%d}.csv"


def variation_label(product: Product, variation: ProductVariation, option_order: Sequence[str] = ()) -> str:
    """Export name of a variation, e.g. "Tee - Red, M" (attribute values in option order)."""
    order = {name: index for index, name in enumerate(option_order)}
    keys = sorted(variation.attributes, key=lambda k: order.get(k, len(order)))
    values = [variation.attributes[k] for k in keys if variation.attributes[k]]
    if not values:
        return product.name
    return f"{product.name} - {', '.join(values)}"


def _write(rows: Iterable[Sequence[str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    writer.writerows(rows)
    return buf.getvalue()


def template_csv() -> str:
    """Header plus one example row."""
    return _write([TEMPLATE_ROW])


def export_csv(
    snapshot: InventorySnapshot,
    products: Optional[Sequence[Product]] = None,
    warehouse_ids: Optional[Sequence[str]] = None,
    option_order: Optional[Sequence[str]] = None,
) -> str:
    """One row per (product or variation, selected warehouse).

    `products` is the filtered view (defaults to every product in the snapshot);
    `warehouse_ids` the selected warehouses (defaults to all). Variation rows carry
    the variation id in product_id, labelled in the owner's option order unless
    `option_order` overrides it. An empty product set exports the template.
    """
    if option_order is None:
        option_order = snapshot.option_order
    products = list(snapshot.products if products is None else products)
    if not products:
        logger.info("csv_io.export.template")
        return template_csv()

    selected = set(warehouse_ids) if warehouse_ids is not None else None
    warehouses = [w for w in snapshot.warehouses if selected is None or w.id in selected]

    rows: list[tuple[str, ...]] = []
    for product in products:
        if product.is_variable:
            entries = [
                (StockSubject.variation(v.id), variation_label(product, v, option_order))
                for v in snapshot.variations_of(product.id)
            ]
        else:
            entries = [(StockSubject.product(product.id), product.name)]
        for subject, name in entries:
            for w in warehouses:
                rows.append((subject.id, name, w.id, w.name, str(snapshot.quantity(subject, w.id))))

    logger.info("csv_io.export", products=len(products), warehouses=len(warehouses), rows=len(rows))
    return _write(rows)


def parse_csv(text: str) -> list[CsvRow]:
    """Parse uploaded CSV text (quoted commas, doubled quotes and newlines supported).

    Blank lines are skipped. Header, id and quantity fields are trimmed; name
    fields are kept as written. A file without a header and at
    least one data row, or without the required columns, raises CsvFormatError.
    Records with the wrong number of columns come back with `error` set.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    try:
        records = [r for r in csv.reader(io.StringIO(text)) if any(f.strip() for f in r)]
    except csv.Error as e:
        raise CsvFormatError(f"Could not parse CSV: {e}") from e
    if len(records) < 2:
        raise CsvFormatError("CSV file must have at least a header row and one data row")

    header = [h.strip().lower() for h in records[0]]
    missing = [c for c in ("product_id", "stock_quantity") if c not in header]
    if missing:
        raise CsvFormatError(f"CSV header is missing required column(s): {', '.join(missing)}")
    if "warehouse_id" not in header and "warehouse_name" not in header:
        raise CsvFormatError("CSV header needs a warehouse_id or warehouse_name column")

    rows: list[CsvRow] = []
    for number, record in enumerate(records[1:], 2):
        if len(record) != len(header):
            rows.append(
                CsvRow(row=number, error=f"Row {number} has {len(record)} columns, expected {len(header)}")
            )
            continue
        data = dict(zip(header, record))
        for column in TRIMMED_COLUMNS:
            if column in data:
                data[column] = data[column].strip()
        rows.append(CsvRow(row=number, **{c: data.get(c, "") for c in CSV_COLUMNS}))
    return rows


def _row_label(row: CsvRow) -> str:
    return f"{row.product_id or '?'}@{row.warehouse_id or row.warehouse_name or '?'}"


async def import_csv(
    store: StockStore,
    snapshot: InventorySnapshot,
    text: str,
    actor_id: Optional[str] = None,
    reason: str = IMPORT_REASON,
) -> BatchResult:
    """Replay each row as a set-stock mutation, sequentially. Bad rows are counted, never fatal."""
    rows = parse_csv(text)
    tracer = get_tracer()
    result = BatchResult(operation="csv_import")
    log = logger.bind(owner_id=snapshot.owner_id, rows=len(rows))
    log.info("csv_io.import.start")

    with tracer.start_as_current_span("import_csv", attributes={"inventory.rows": len(rows)}) as span:
        for row in rows:
            label = _row_label(row)
            if row.error:
                result.record_error(row.row, row.error, label=label, code="format")
                continue
            if not row.product_id:
                result.record_error(row.row, f"Row {row.row}: product_id is required", label=label, code="invalid")
                continue

            warehouse = snapshot.warehouse_by_id(row.warehouse_id) if row.warehouse_id else None
            if warehouse is None and row.warehouse_name:
                warehouse = snapshot.warehouse_by_name(row.warehouse_name)
            if warehouse is None:
                result.record_error(
                    row.row,
                    f"Row {row.row}: warehouse not found ({row.warehouse_id or row.warehouse_name or 'blank'})",
                    label=label,
                    code="not_found",
                )
                continue

            subject = snapshot.resolve_subject(row.product_id)
            if subject is None:
                result.record_error(
                    row.row,
                    f"Row {row.row}: product not found ({row.product_id})",
                    label=label,
                    code="not_found",
                )
                continue
            product = snapshot.product(subject.id) if subject.kind == "product" else None
            if product is not None and product.is_variable:
                result.record_error(
                    row.row,
                    f"Row {row.row}: {product.name} has variations; use a variation id",
                    label=label,
                    code="invalid",
                )
                continue

            try:
                await set_stock(
                    store,
                    subject,
                    warehouse.id,
                    row.stock_quantity,
                    reason=reason,
                    note=f"CSV import row {row.row}",
                    actor_id=actor_id,
                )
                result.record_success()
            except StockSyncError as e:
                result.record_error(row.row, f"Row {row.row}: {e}", label=label, code=getattr(e, "code", None))
                log.warning("csv_io.import.row_error", row=row.row, subject=label, error=str(e))
            except Exception as e:
                result.record_error(row.row, f"Row {row.row}: {str(e) or type(e).__name__}", label=label)
                log.exception("csv_io.import.row_error", row=row.row, subject=label)

        span.set_attribute("inventory.success_count", result.success_count)
        span.set_attribute("inventory.error_count", result.error_count)

    log.info("csv_io.import.complete", success_count=result.success_count, error_count=result.error_count)
    return result
