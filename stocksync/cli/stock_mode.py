"""Stock commands: adjust, set, bulk-adjust, bulk-set, add-to-warehouse, movements."""

from typing import Optional

import typer
from rich.table import Table

from stocksync.config import DEFAULT_ACTOR_ID
from stocksync.inventory import mutations
from stocksync.inventory.loader import load_snapshot
from stocksync.store import StockStore
from stocksync.utils.logger import log_context

from .shared import (
    console,
    logger,
    print_batch_result,
    print_change,
    require_owner,
    resolve_subject,
    resolve_subjects,
    resolve_warehouse,
    run_with_store,
    subject_label,
)

_OWNER = typer.Option(None, "--owner", "-o", help="Owner (brand user) id; defaults to DEFAULT_OWNER_ID")
_WAREHOUSE = typer.Option(..., "--warehouse", "-w", help="Warehouse id or name")
_NOTE = typer.Option(None, "--note", "-n", help="Optional note stored on the movement")
_ACTOR = typer.Option(DEFAULT_ACTOR_ID, "--actor", help="Actor id recorded on the movement")


def adjust(
    item: str = typer.Argument(..., help="Product id (simple) or variation id"),
    delta: str = typer.Option(..., "--delta", "-d", help="Change in quantity, e.g. 10 or -3"),
    warehouse: str = _WAREHOUSE,
    reason: str = typer.Option(
        mutations.DEFAULT_ADJUST_REASON, "--reason", "-r", help=", ".join(mutations.ADJUST_REASONS)
    ),
    note: Optional[str] = _NOTE,
    owner: Optional[str] = _OWNER,
    actor: Optional[str] = _ACTOR,
) -> None:
    """Add (or with a negative delta, remove) stock at one warehouse."""
    owner_id = require_owner(owner)
    with log_context(command="adjust", owner_id=owner_id, actor_id=actor):

        async def work(store: StockStore):
            snap = await load_snapshot(store, owner_id)
            subject = resolve_subject(snap, item)
            change = await mutations.adjust_stock(
                store, subject, resolve_warehouse(snap, warehouse), delta, reason, note, actor
            )
            return snap, change

        snap, change = run_with_store(work)
        print_change(snap, change)


def set_quantity(
    item: str = typer.Argument(..., help="Product id (simple) or variation id"),
    quantity: str = typer.Argument(..., help="New absolute quantity (>= 0)"),
    warehouse: str = _WAREHOUSE,
    reason: str = typer.Option(
        mutations.DEFAULT_SET_REASON, "--reason", "-r", help=", ".join(mutations.BULK_SET_REASONS)
    ),
    note: Optional[str] = _NOTE,
    owner: Optional[str] = _OWNER,
    actor: Optional[str] = _ACTOR,
) -> None:
    """Set the stock of one item at one warehouse to an absolute quantity."""
    owner_id = require_owner(owner)
    with log_context(command="set", owner_id=owner_id, actor_id=actor):

        async def work(store: StockStore):
            snap = await load_snapshot(store, owner_id)
            subject = resolve_subject(snap, item)
            change = await mutations.set_stock(
                store, subject, resolve_warehouse(snap, warehouse), quantity, reason, note, actor
            )
            return snap, change

        snap, change = run_with_store(work)
        print_change(snap, change)


def bulk_adjust(
    items: list[str] = typer.Argument(..., help="Product and/or variation ids"),
    delta: str = typer.Option(..., "--delta", "-d", help="Change in quantity applied to every item"),
    warehouse: str = _WAREHOUSE,
    reason: str = typer.Option(
        mutations.DEFAULT_BULK_ADJUST_REASON, "--reason", "-r", help=", ".join(mutations.BULK_ADJUST_REASONS)
    ),
    note: Optional[str] = _NOTE,
    owner: Optional[str] = _OWNER,
    actor: Optional[str] = _ACTOR,
) -> None:
    """Adjust every listed item at the chosen warehouse by the same delta."""
    owner_id = require_owner(owner)
    log = logger.bind(command="bulk-adjust", owner_id=owner_id, items=len(items))
    log.info("bulk_adjust.start")

    async def work(store: StockStore):
        snap = await load_snapshot(store, owner_id)
        subjects = resolve_subjects(snap, items)
        return await mutations.bulk_adjust(
            store, subjects, resolve_warehouse(snap, warehouse), delta, reason, note, actor, scope=snap
        )

    result = run_with_store(work)
    print_batch_result(result)
    if result.error_count:
        raise typer.Exit(2)


def bulk_set(
    items: list[str] = typer.Argument(..., help="Product and/or variation ids"),
    quantity: str = typer.Option(..., "--quantity", "-q", help="Absolute quantity applied to every item"),
    warehouse: str = _WAREHOUSE,
    reason: str = typer.Option(
        mutations.DEFAULT_SET_REASON, "--reason", "-r", help=", ".join(mutations.BULK_SET_REASONS)
    ),
    note: Optional[str] = _NOTE,
    owner: Optional[str] = _OWNER,
    actor: Optional[str] = _ACTOR,
) -> None:
    """Set every listed item at the chosen warehouse to the same quantity."""
    owner_id = require_owner(owner)
    log = logger.bind(command="bulk-set", owner_id=owner_id, items=len(items))
    log.info("bulk_set.start")

    async def work(store: StockStore):
        snap = await load_snapshot(store, owner_id)
        subjects = resolve_subjects(snap, items)
        return await mutations.bulk_set(
            store, subjects, resolve_warehouse(snap, warehouse), quantity, reason, note, actor, scope=snap
        )

    result = run_with_store(work)
    print_batch_result(result)
    if result.error_count:
        raise typer.Exit(2)


def add_to_warehouse(
    items: list[str] = typer.Argument(..., help="Product and/or variation ids"),
    warehouse: str = _WAREHOUSE,
    initial_quantity: str = typer.Option("0", "--initial", "-i", help="Opening quantity for new rows"),
    owner: Optional[str] = _OWNER,
    actor: Optional[str] = _ACTOR,
) -> None:
    """Create stock rows for items not yet stocked at a warehouse. Existing rows are left alone."""
    owner_id = require_owner(owner)
    log = logger.bind(command="add-to-warehouse", owner_id=owner_id, items=len(items))
    log.info("add_to_warehouse.start")

    async def work(store: StockStore):
        snap = await load_snapshot(store, owner_id)
        subjects = resolve_subjects(snap, items)
        return await mutations.create_inventory_bulk(
            store, subjects, resolve_warehouse(snap, warehouse), initial_quantity, actor, scope=snap
        )

    result = run_with_store(work)
    print_batch_result(result)
    if result.error_count:
        raise typer.Exit(2)


def movements(
    item: str = typer.Argument(..., help="Product id (simple) or variation id"),
    warehouse: Optional[str] = typer.Option(None, "--warehouse", "-w", help="Only this warehouse"),
    limit: int = typer.Option(20, "--limit", "-l", help="Most recent N movements"),
    owner: Optional[str] = _OWNER,
) -> None:
    """Show the movement history of one item, newest first."""
    owner_id = require_owner(owner)
    logger.bind(command="movements", owner_id=owner_id).info("movements.start", item=item)

    async def work(store: StockStore):
        snap = await load_snapshot(store, owner_id)
        subject = resolve_subject(snap, item)
        location_id = resolve_warehouse(snap, warehouse) if warehouse else None
        return snap, subject, await store.list_movements(subject, location_id, limit)

    snap, subject, rows = run_with_store(work)
    if not rows:
        console.print("[yellow]No movements recorded.[/yellow]")
        return
    table = Table(title=f"Movements: {subject_label(snap, subject)}")
    table.add_column("When", style="dim")
    table.add_column("Warehouse", style="cyan")
    table.add_column("Delta", justify="right")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right", style="bold")
    table.add_column("Reason", style="green")
    table.add_column("Note")
    for m in rows:
        w = snap.warehouse_by_id(m.location_id)
        table.add_row(
            m.created_at.strftime("%Y-%m-%d %H:%M") if m.created_at else "",
            w.name if w else m.location_id,
            f"{m.delta:+d}",
            str(m.quantity_before),
            str(m.quantity_after),
            m.reason,
            m.note or "",
        )
    console.print(table)
