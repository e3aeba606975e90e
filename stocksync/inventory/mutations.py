"""Stock mutations: single adjust/set and the sequential bulk variants.

Validation happens here, before any store call. Atomicity of a single mutation
(row upsert, quantity write and movement) is the store's job. Bulk operations
are not transactional: each row commits on its own and failures are counted.
When a `scope` snapshot is passed, rows whose subject is not in it fail with
not_found without reaching the store.
"""

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional

from stocksync.errors import StockSyncError, StockValidationError, SubjectNotFoundError
from stocksync.models import BatchResult, StockChange, StockSubject
from stocksync.store.protocol import StockStore
from stocksync.utils.logger import get_logger
from stocksync.utils.tracing import get_tracer

if TYPE_CHECKING:
    from stocksync.inventory.loader import InventorySnapshot

logger = get_logger("stocksync.inventory.mutations")

DEFAULT_ADJUST_REASON = "adjustment"
DEFAULT_BULK_ADJUST_REASON = "Restock"
DEFAULT_SET_REASON = "Correction"

ADJUST_REASONS = ("adjustment", "sale", "purchase", "transfer", "initial_stock")
BULK_ADJUST_REASONS = ("Restock", "Sale", "Damage", "Transfer", "Correction")
BULK_SET_REASONS = ("Correction", "Restock", "Physical Count", "Transfer", "Reset")


def normalize_reason(reason: Optional[str], default: str = DEFAULT_ADJUST_REASON) -> str:
    """Lowercase with underscores, e.g. "Physical Count" -> "physical_count". Blank falls back to default."""
    text = (reason or "").strip() or default
    return text.lower().replace(" ", "_")


def _parse_integral(value: Any, field: str) -> int:
    """Accept ints, integral floats and numeric strings. Anything else is a validation error."""
    if isinstance(value, bool):
        raise StockValidationError(f"{field} must be a number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise StockValidationError(f"{field} is required")
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            raise StockValidationError(f"{field} must be a number, got {value!r}") from None
    if not isinstance(value, float):
        raise StockValidationError(f"{field} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise StockValidationError(f"{field} must be a finite number, got {value!r}")
    if not value.is_integer():
        raise StockValidationError(f"{field} must be a whole number, got {value!r}")
    return int(value)


def parse_delta(value: Any) -> int:
    """Delta for an adjust: finite, whole, any sign."""
    return _parse_integral(value, "Delta")


def parse_quantity(value: Any) -> int:
    """Target for a set: finite, whole, >= 0."""
    quantity = _parse_integral(value, "Quantity")
    if quantity < 0:
        raise StockValidationError(f"Quantity cannot be negative, got {quantity}")
    return quantity


def require_warehouse(warehouse_id: Optional[str]) -> str:
    if not warehouse_id or not str(warehouse_id).strip():
        raise StockValidationError("Please select a warehouse")
    return str(warehouse_id).strip()


def _label(subject: StockSubject, location_id: str) -> str:
    return f"{subject.kind}:{subject.id}@{location_id}"


def _check_scope(scope: Optional["InventorySnapshot"], subject: StockSubject) -> None:
    """Reject subjects outside the owner's snapshot before any store call."""
    if scope is not None and not scope.owns(subject):
        raise SubjectNotFoundError(f"Product or variation not found: {subject.id}")


async def adjust_stock(
    store: StockStore,
    subject: StockSubject,
    location_id: Optional[str],
    delta: Any,
    reason: Optional[str] = DEFAULT_ADJUST_REASON,
    note: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> StockChange:
    """quantity += delta at one location, floored at 0 by the store."""
    location_id = require_warehouse(location_id)
    delta = parse_delta(delta)
    change = await store.adjust_stock(
        subject,
        location_id,
        delta,
        normalize_reason(reason, DEFAULT_ADJUST_REASON),
        note=note or None,
        actor_id=actor_id,
    )
    logger.info(
        "mutations.adjust",
        subject=_label(subject, location_id),
        delta=delta,
        before=change.movement.quantity_before,
        after=change.movement.quantity_after,
    )
    return change


async def set_stock(
    store: StockStore,
    subject: StockSubject,
    location_id: Optional[str],
    quantity: Any,
    reason: Optional[str] = DEFAULT_SET_REASON,
    note: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> StockChange:
    """quantity = target at one location; the movement carries target - before (0 included)."""
    location_id = require_warehouse(location_id)
    quantity = parse_quantity(quantity)
    change = await store.set_stock(
        subject,
        location_id,
        quantity,
        normalize_reason(reason, DEFAULT_SET_REASON),
        note=note or None,
        actor_id=actor_id,
    )
    logger.info(
        "mutations.set",
        subject=_label(subject, location_id),
        quantity=quantity,
        delta=change.movement.delta,
        created_row=change.created_row,
    )
    return change


async def _run_batch(
    operation: str,
    subjects: Sequence[StockSubject],
    warehouse_id: str,
    apply,
) -> BatchResult:
    """Apply one coroutine per subject, sequentially, counting failures instead of raising."""
    tracer = get_tracer()
    result = BatchResult(operation=operation)
    log = logger.bind(operation=operation, warehouse_id=warehouse_id, rows=len(subjects))
    log.info(f"mutations.{operation}.start")
    with tracer.start_as_current_span(
        operation,
        attributes={"inventory.warehouse_id": warehouse_id, "inventory.rows": len(subjects)},
    ) as span:
        for index, subject in enumerate(subjects, 1):
            label = _label(subject, warehouse_id)
            try:
                await apply(subject)
                result.record_success()
            except StockSyncError as e:
                result.record_error(index, str(e), label=label, code=getattr(e, "code", None))
                log.warning(f"mutations.{operation}.row_error", row=index, subject=label, error=str(e))
            except Exception as e:
                result.record_error(index, str(e) or type(e).__name__, label=label)
                log.exception(f"mutations.{operation}.row_error", row=index, subject=label)
        span.set_attribute("inventory.success_count", result.success_count)
        span.set_attribute("inventory.error_count", result.error_count)
    log.info(
        f"mutations.{operation}.complete",
        success_count=result.success_count,
        error_count=result.error_count,
    )
    return result


async def bulk_adjust(
    store: StockStore,
    subjects: Sequence[StockSubject],
    warehouse_id: Optional[str],
    delta: Any,
    reason: Optional[str] = DEFAULT_BULK_ADJUST_REASON,
    note: Optional[str] = None,
    actor_id: Optional[str] = None,
    scope: Optional["InventorySnapshot"] = None,
) -> BatchResult:
    """Adjust every selected subject at the chosen warehouse by the same delta."""
    warehouse_id = require_warehouse(warehouse_id)
    delta = parse_delta(delta)
    if not subjects:
        raise StockValidationError("Please select at least one item")
    reason = normalize_reason(reason, DEFAULT_BULK_ADJUST_REASON)

    async def apply(subject: StockSubject) -> None:
        _check_scope(scope, subject)
        await store.adjust_stock(subject, warehouse_id, delta, reason, note=note or None, actor_id=actor_id)

    return await _run_batch("bulk_adjust", subjects, warehouse_id, apply)


async def bulk_set(
    store: StockStore,
    subjects: Sequence[StockSubject],
    warehouse_id: Optional[str],
    quantity: Any,
    reason: Optional[str] = DEFAULT_SET_REASON,
    note: Optional[str] = None,
    actor_id: Optional[str] = None,
    scope: Optional["InventorySnapshot"] = None,
) -> BatchResult:
    """Set every selected subject at the chosen warehouse to the same quantity."""
    warehouse_id = require_warehouse(warehouse_id)
    quantity = parse_quantity(quantity)
    if not subjects:
        raise StockValidationError("Please select at least one item")
    reason = normalize_reason(reason, DEFAULT_SET_REASON)

    async def apply(subject: StockSubject) -> None:
        _check_scope(scope, subject)
        await store.set_stock(subject, warehouse_id, quantity, reason, note=note or None, actor_id=actor_id)

    return await _run_batch("bulk_set", subjects, warehouse_id, apply)


async def create_inventory_bulk(
    store: StockStore,
    subjects: Sequence[StockSubject],
    warehouse_id: Optional[str],
    initial_quantity: Any = 0,
    actor_id: Optional[str] = None,
    scope: Optional["InventorySnapshot"] = None,
) -> BatchResult:
    """Add products to a warehouse: create missing rows with an opening quantity.

    Existing rows are left as they are and count as success.
    """
    warehouse_id = require_warehouse(warehouse_id)
    initial_quantity = parse_quantity(initial_quantity)
    if not subjects:
        raise StockValidationError("Please select at least one item")

    async def apply(subject: StockSubject) -> None:
        _check_scope(scope, subject)
        _, created = await store.ensure_stock_row(
            subject, warehouse_id, initial_quantity=initial_quantity, actor_id=actor_id
        )
        if not created:
            logger.debug("mutations.create_inventory.exists", subject=subject, warehouse_id=warehouse_id)

    return await _run_batch("create_inventory", subjects, warehouse_id, apply)
