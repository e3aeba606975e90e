"""Stock stores: protocol, SQLAlchemy implementation and PostgREST implementation."""

from stocksync.config import (
    STORE_ACCESS_TOKEN,
    STORE_API_KEY,
    STORE_BACKEND,
    STORE_REST_URL,
    STORE_TIMEOUT_SECONDS,
)
from stocksync.errors import StoreError
from stocksync.store.protocol import StockStore
from stocksync.store.rest_store import RestStockStore
from stocksync.store.sql_store import SqlStockStore


def build_store(backend: str | None = None) -> StockStore:
    """Return the store selected by STORE_BACKEND ("sql" or "rest")."""
    backend = (backend or STORE_BACKEND).lower()
    if backend == "sql":
        return SqlStockStore()
    if backend == "rest":
        return RestStockStore(
            STORE_REST_URL,
            STORE_API_KEY,
            access_token=STORE_ACCESS_TOKEN or None,
            timeout=STORE_TIMEOUT_SECONDS,
        )
    raise StoreError(f"Unknown STORE_BACKEND: {backend!r}", code="config")


__all__ = ["StockStore", "SqlStockStore", "RestStockStore", "build_store"]
