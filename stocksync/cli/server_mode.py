"""Serve mode: run the inventory HTTP API with uvicorn."""

import sys

import typer
import uvicorn

from stocksync.config import SERVER_HOST, SERVER_PORT, STORE_BACKEND
from stocksync.server import create_app

from .shared import console, logger


def serve(
    port: int = typer.Option(SERVER_PORT, "--port", "-p", help="Port for the API server"),
    host: str = typer.Option(SERVER_HOST, "--host", "-h", help="Bind host"),
) -> None:
    """Start the inventory API (GET /health, /inventory/...)."""
    log = logger.bind(command="serve", port=port, backend=STORE_BACKEND)
    log.info("serve.start")
    app = create_app()
    console.print(f"[green]Starting inventory API on http://{host}:{port}[/green] [dim](store: {STORE_BACKEND})[/dim]")
    console.print("[dim]Endpoints: GET /health, GET /inventory/snapshot, POST /inventory/adjust, ... (see /docs)[/dim]")
    try:
        uvicorn.run(app, host=host, port=port, log_level="info", timeout_graceful_shutdown=15)
    except KeyboardInterrupt:
        console.print("\n[dim]Shutting down...[/dim]")
        sys.exit(0)
