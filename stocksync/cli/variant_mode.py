"""Variant config command: show, change or reset the owner's variant option ranking."""

from typing import Optional

import typer
from rich.table import Table

from stocksync.inventory.variant_config import (
    get_variant_config,
    is_default,
    reset_variant_config,
    save_variant_config,
)
from stocksync.store import StockStore

from .shared import console, logger, require_owner, run_with_store


def variant_config(
    rank1: Optional[str] = typer.Option(None, "--rank1", help="Option that groups variations, e.g. Color"),
    rank2: Optional[str] = typer.Option(None, "--rank2", help="Option that orders variations inside a group"),
    reset: bool = typer.Option(False, "--reset", help="Drop the stored ranking and use the default"),
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner (brand user) id; defaults to DEFAULT_OWNER_ID"),
) -> None:
    """Without options, print the ranking in effect. --rank1/--rank2 store a new one."""
    owner_id = require_owner(owner)
    if reset and (rank1 or rank2):
        console.print("[red]--reset cannot be combined with --rank1/--rank2.[/red]")
        raise typer.Exit(1)
    if rank2 and not rank1:
        console.print("[red]--rank2 needs --rank1.[/red]")
        raise typer.Exit(1)
    log = logger.bind(command="variant-config", owner_id=owner_id)

    async def work(store: StockStore):
        if reset:
            return await reset_variant_config(store, owner_id)
        if rank1:
            return await save_variant_config(store, owner_id, rank1, rank2)
        return await get_variant_config(store, owner_id)

    config = run_with_store(work)
    table = Table(title=f"Variant options ({owner_id})")
    table.add_column("Rank", style="dim")
    table.add_column("Option", style="cyan")
    table.add_row("1", config.rank1)
    table.add_row("2", config.rank2 or "-")
    console.print(table)
    if is_default(config):
        console.print("[dim]Default ranking (nothing stored for this owner).[/dim]")
    log.info("variant_config.shown", rank1=config.rank1, rank2=config.rank2, default=is_default(config))
