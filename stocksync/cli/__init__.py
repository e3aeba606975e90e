"""CLI commands: one module per concern (snapshot, stock, variant config, csv, server, db)."""

from typer import Typer

from stocksync.cli import csv_mode, db_mode, server_mode, snapshot_mode, stock_mode, variant_mode
from stocksync.utils.tracing import init_tracing

init_tracing()

app = Typer(help="Warehouse stock reconciliation and CSV import/export")


def register_commands() -> None:
    """Register all CLI commands on the global app."""
    app.command()(snapshot_mode.snapshot)
    app.command()(stock_mode.adjust)
    app.command(name="set")(stock_mode.set_quantity)
    app.command(name="bulk-adjust")(stock_mode.bulk_adjust)
    app.command(name="bulk-set")(stock_mode.bulk_set)
    app.command(name="add-to-warehouse")(stock_mode.add_to_warehouse)
    app.command()(stock_mode.movements)
    app.command(name="variant-config")(variant_mode.variant_config)
    app.command()(csv_mode.export)
    app.command(name="import")(csv_mode.import_)
    app.command()(server_mode.serve)
    app.command(name="init-db")(db_mode.init_database)
    app.command(name="add-warehouse")(db_mode.add_warehouse)


register_commands()
