"""HTTP server for the inventory pipeline."""

from stocksync.server.app import create_app

__all__ = ["create_app"]
