"""CSV commands: export the inventory view to a file, import a file as set-stock rows."""

from pathlib import Path
from typing import Optional

import typer

from stocksync.config import DEFAULT_ACTOR_ID, OUTPUT_DIR
from stocksync.inventory.csv_io import (
    TEMPLATE_FILENAME,
    export_csv,
    export_filename,
    import_csv,
    template_csv,
)
from stocksync.inventory.loader import load_snapshot
from stocksync.inventory.view_state import filter_products
from stocksync.store import StockStore

from .shared import console, logger, print_batch_result, require_owner, resolve_warehouse, run_with_store


def export(
    output: Optional[Path] = typer.Option(None, "--output", "-f", help="Output file (default: output/inventory-YYYY-MM-DD.csv)"),
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner (brand user) id; defaults to DEFAULT_OWNER_ID"),
    query: str = typer.Option("", "--query", "-q", help="Only products matching this search"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Only this category"),
    warehouse: Optional[list[str]] = typer.Option(None, "--warehouse", "-w", help="Warehouse id or name (repeatable)"),
    template: bool = typer.Option(False, "--template", help="Write the empty import template instead"),
) -> None:
    """Write one CSV row per (product or variation, warehouse)."""
    log = logger.bind(command="export")
    if template:
        path = output or OUTPUT_DIR / TEMPLATE_FILENAME
        content = template_csv()
    else:
        owner_id = require_owner(owner)
        log = log.bind(owner_id=owner_id)

        async def work(store: StockStore):
            snap = await load_snapshot(store, owner_id)
            return snap, ([resolve_warehouse(snap, w) for w in warehouse] if warehouse else None)

        snap, warehouse_ids = run_with_store(work)
        products = filter_products(snap, query, category)
        content = export_csv(snap, products, warehouse_ids)
        if not products:
            path = output or OUTPUT_DIR / TEMPLATE_FILENAME
            console.print("[yellow]No products to export; wrote the import template instead.[/yellow]")
        else:
            path = output or OUTPUT_DIR / export_filename()

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="")
    console.print(f"[green]Wrote {path}[/green]")
    log.info("export.written", path=str(path), lines=content.count("\n"))


def import_(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV file to import"),
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner (brand user) id; defaults to DEFAULT_OWNER_ID"),
    actor: Optional[str] = typer.Option(DEFAULT_ACTOR_ID, "--actor", help="Actor id recorded on the movements"),
) -> None:
    """Set stock from a CSV file (columns: product_id, product_name, warehouse_id, warehouse_name, stock_quantity)."""
    owner_id = require_owner(owner)
    log = logger.bind(command="import", owner_id=owner_id, file=str(file))
    log.info("import.start")
    if file.suffix.lower() != ".csv":
        console.print("[red]Please provide a .csv file.[/red]")
        raise typer.Exit(1)
    text = file.read_text(encoding="utf-8-sig")

    async def work(store: StockStore):
        snap = await load_snapshot(store, owner_id)
        return await import_csv(store, snap, text, actor_id=actor)

    result = run_with_store(work)
    print_batch_result(result)
    log.info("import.complete", success_count=result.success_count, error_count=result.error_count)
    if result.error_count:
        raise typer.Exit(2)
