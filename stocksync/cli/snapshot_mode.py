"""Snapshot command: load the owner's inventory and print the hierarchical stock table."""

from typing import Optional

import typer
from rich.table import Table

from stocksync.inventory.loader import load_snapshot
from stocksync.inventory.view_state import (
    expand_all_variants,
    filter_products,
    initial_state,
    select_warehouses,
    visible_rows,
)
from stocksync.store import StockStore

from .shared import console, logger, require_owner, resolve_warehouse, run_with_store

_INDENT = "  "


def snapshot(
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner (brand user) id; defaults to DEFAULT_OWNER_ID"),
    query: str = typer.Option("", "--query", "-q", help="Search product name, variation, SKU or category"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only this category"),
    warehouse: Optional[list[str]] = typer.Option(None, "--warehouse", "-w", help="Warehouse id or name (repeatable)"),
    expand: bool = typer.Option(False, "--expand", "-x", help="Expand every variable product down to variations"),
) -> None:
    """Print stock per warehouse for every product (and variation when expanded)."""
    owner_id = require_owner(owner)
    log = logger.bind(command="snapshot", owner_id=owner_id)
    log.info("snapshot.start")

    async def work(store: StockStore):
        snap = await load_snapshot(store, owner_id)
        return snap, [resolve_warehouse(snap, w) for w in warehouse or []]

    snap, warehouse_ids = run_with_store(work)
    state = initial_state(snap)
    if warehouse_ids:
        state = select_warehouses(state, warehouse_ids)
    products = filter_products(snap, query, category)
    if expand:
        for p in products:
            if p.is_variable:
                state = expand_all_variants(state, p.id)

    if not products:
        console.print("[yellow]No products found.[/yellow]")
        log.info("snapshot.empty")
        return

    warehouses = state.selected_warehouses
    table = Table(title=f"Inventory ({owner_id})")
    table.add_column("Item", style="white")
    table.add_column("ID", style="dim")
    for w in warehouses:
        table.add_column(w.name, justify="right", style="cyan")
    table.add_column("Total", justify="right", style="bold green")
    for row in visible_rows(state, products):
        label = _INDENT * row.level + row.label
        if row.kind == "product":
            label = f"[bold]{label}[/bold]"
        ident = row.subject.id if row.subject else (row.group or row.product_id)
        table.add_row(label, ident, *(str(row.quantities.get(w.id, 0)) for w in warehouses), str(row.total))
    console.print(table)
    log.info("snapshot.complete", products=len(products), warehouses=len(warehouses))
