"""Database commands: create tables (and seed demo data) for the SQL store, add warehouses."""

import typer
from rich.table import Table
from sqlalchemy import func, select

from stocksync.config import DATABASE_SEED_ON_CREATE, DATABASE_URL
from stocksync.db import get_session, init_db
from stocksync.db.models import LocationRecord, ProductRecord, VariationRecord
from stocksync.store import StockStore

from .shared import console, logger, run_with_store


def init_database() -> None:
    """Create tables in DATABASE_URL; seed data/*.csv when the database is new and seeding is on."""
    log = logger.bind(command="init-db")
    url = DATABASE_URL.split("@")[-1]
    log.info("init_db.start", database=url, seed=DATABASE_SEED_ON_CREATE)
    init_db()
    with get_session() as session:
        counts = {
            label: session.scalar(select(func.count()).select_from(model))
            for label, model in (("locations", LocationRecord), ("products", ProductRecord), ("variations", VariationRecord))
        }
    console.print(f"[green]Database ready:[/green] {url}")
    console.print(", ".join(f"{n} {label}" for label, n in counts.items()))
    if DATABASE_SEED_ON_CREATE:
        console.print("[dim]Demo data is seeded only when the tables are first created.[/dim]")
    log.info("init_db.complete", **counts)


def add_warehouse(
    name: str = typer.Argument(..., help="Warehouse display name"),
) -> None:
    """Create an active warehouse location."""
    if not name.strip():
        console.print("[red]Name is required.[/red]")
        raise typer.Exit(1)
    log = logger.bind(command="add-warehouse")

    async def work(store: StockStore):
        await store.create_location(name, location_type="warehouse")
        return await store.list_locations(location_type="warehouse", active_only=True)

    locations = run_with_store(work)
    table = Table(title="Warehouses")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    for loc in locations:
        table.add_row(loc.id, loc.name)
    console.print(table)
    log.info("add_warehouse.complete", name=name, warehouses=len(locations))
