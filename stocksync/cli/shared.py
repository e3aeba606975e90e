"""Shared CLI helpers: console, logger, store lifecycle, subject/warehouse resolution, result printing."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from stocksync.config import DEFAULT_OWNER_ID
from stocksync.errors import StockSyncError
from stocksync.inventory.loader import InventorySnapshot
from stocksync.models import BatchResult, StockChange, StockSubject
from stocksync.store import StockStore, build_store
from stocksync.utils.logger import get_logger
from stocksync.utils.variant_parser import variation_display_name

T = TypeVar("T")

console = Console()
logger = get_logger("stocksync.cli")


def require_owner(owner: Optional[str]) -> str:
    owner = (owner or DEFAULT_OWNER_ID).strip()
    if not owner:
        console.print("[red]No owner given. Pass --owner or set DEFAULT_OWNER_ID in .env[/red]")
        raise typer.Exit(1)
    return owner


def run_with_store(work: Callable[[StockStore], Awaitable[T]], backend: Optional[str] = None) -> T:
    """Build the configured store, run one coroutine against it, always close it.

    Pipeline errors are printed and turn into exit code 1.
    """

    async def _main() -> T:
        store = build_store(backend)
        try:
            return await work(store)
        finally:
            await store.aclose()

    try:
        return asyncio.run(_main())
    except StockSyncError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        logger.error("cli.failed", error=str(e), error_type=type(e).__name__)
        raise typer.Exit(1) from e


def resolve_subject(snapshot: InventorySnapshot, item_id: str) -> StockSubject:
    """Product or variation id from the owner's catalog; anything else raises SubjectNotFoundError."""
    return snapshot.require_subject(item_id)


def resolve_subjects(snapshot: InventorySnapshot, item_ids: list[str]) -> list[StockSubject]:
    """Bulk form: unknown ids are kept and fail as rows once the batch checks its scope."""
    return [snapshot.resolve_subject(i) or StockSubject.product(i) for i in item_ids]


def resolve_warehouse(snapshot: InventorySnapshot, warehouse: str) -> str:
    """Active warehouse by id or (case-insensitive) name; anything else raises LocationNotFoundError."""
    return snapshot.require_warehouse(warehouse).id


def subject_label(snapshot: InventorySnapshot, subject: StockSubject) -> str:
    if subject.kind == "variation":
        variation = snapshot.variation(subject.id)
        if variation is not None:
            product = snapshot.product(variation.product_id)
            values = variation_display_name(variation.attributes, snapshot.option_order)
            return f"{product.name if product else variation.product_id} - {values}"
    product = snapshot.product(subject.id)
    return product.name if product else subject.id


def print_change(snapshot: InventorySnapshot, change: StockChange) -> None:
    m = change.movement
    sign = "+" if m.delta >= 0 else ""
    console.print(
        f"[green]{subject_label(snapshot, m.subject)}[/green] @ {m.location_id}: "
        f"{m.quantity_before} -> [bold]{m.quantity_after}[/bold] ({sign}{m.delta}, {m.reason})"
    )
    if change.created_row:
        console.print("[dim]Stock row created.[/dim]")


def print_batch_result(result: BatchResult) -> None:
    """Summary line plus a table of failed rows."""
    color = "green" if result.error_count == 0 else "yellow"
    console.print(
        f"[{color}]{result.operation}: {result.success_count} succeeded, "
        f"{result.error_count} failed ({result.attempted} attempted)[/{color}]"
    )
    if not result.errors:
        return
    table = Table(title="Errors")
    table.add_column("Row", style="cyan", justify="right")
    table.add_column("Item", style="white")
    table.add_column("Error", style="red")
    for err in result.errors:
        table.add_row(str(err.row), err.label, err.message)
    console.print(table)
