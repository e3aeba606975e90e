"""PostgREST stock store (async httpx). Mutations go through database procedures."""

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from stocksync.errors import AccessDeniedError, LocationNotFoundError, StoreError, SubjectNotFoundError
from stocksync.models import (
    InventoryLocation,
    Product,
    ProductVariation,
    StockChange,
    StockMovement,
    StockRow,
    StockSubject,
    VariantConfig,
)
from stocksync.utils.attributes import canonicalize_attributes
from stocksync.utils.logger import get_logger

logger = get_logger("stocksync.store.rest")

# subject kind -> (stock table, subject FK column)
_STOCK_TABLES = {
    "product": ("product_inventory", "product_id"),
    "variation": ("product_variation_inventory", "variation_id"),
}

# Max ids per in.() filter; keeps the query string well under URL limits
IN_FILTER_CHUNK = 100

# Raised by the stock procedures: missing subject or location, and failed access checks
_NOT_FOUND_CODES = {"P0002", "PGRST116"}
_ACCESS_DENIED_CODES = {"42501"}


def _in_filter(values: Sequence[str]) -> str:
    quoted = ",".join('"' + v.replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


def _chunks(values: Sequence[str], size: int = IN_FILTER_CHUNK):
    for i in range(0, len(values), size):
        yield values[i : i + size]


def _error_from_response(response: httpx.Response) -> StoreError:
    """Map a PostgREST error body ({code, message, details, hint}) to a StoreError."""
    code = None
    message = response.text or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        message = body.get("message") or message
        if body.get("details"):
            message = f"{message} ({body['details']})"
    if code in _ACCESS_DENIED_CODES:
        return AccessDeniedError(message)
    if code in _NOT_FOUND_CODES:
        if "location" in message.lower():
            return LocationNotFoundError(message)
        return SubjectNotFoundError(message)
    return StoreError(message, code=code or str(response.status_code))


def _stock_row(subject: StockSubject, data: dict[str, Any]) -> StockRow:
    return StockRow(
        id=data.get("id"),
        subject=subject,
        location_id=data["inventory_location_id"],
        quantity=int(data.get("stock_quantity") or 0),
        reserved_quantity=int(data.get("reserved_quantity") or 0),
    )


class RestStockStore:
    """Stock store talking to a PostgREST endpoint (e.g. a Supabase project).

    Reads use the table endpoints with eq./in.() filters. Stock writes call the
    ensure_stock / adjust_stock / set_stock procedures (sql/stock_procedures.sql)
    so the row upsert, the quantity write and the movement record share one
    transaction. The procedures check ownership and record the authenticated user
    as the actor, so the actor_id argument is not sent.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url:
            raise StoreError("STORE_REST_URL is not set", code="config")
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )
        logger.info("store.rest.init", base_url=base_url)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty)."""
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TransportError as e:
            logger.error("store.rest.network_error", path=path, error=str(e) or repr(e))
            raise StoreError(f"Network error calling {path}: {e}", code="network") from e
        if response.is_error:
            error = _error_from_response(response)
            logger.warning(
                "store.rest.error",
                path=path,
                status=response.status_code,
                code=error.code,
                error=str(error),
            )
            raise error
        if not response.content:
            return None
        return response.json()

    async def _get(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        return await self._request("GET", path, params=params) or []

    # --- reads ---

    async def list_products(self, owner_id: str, owner_type: str = "brand") -> list[Product]:
        rows = await self._get(
            "/products",
            {
                "select": "*",
                "owner_user_id": f"eq.{owner_id}",
                "owner_type": f"eq.{owner_type}",
                "order": "name.asc",
            },
        )
        return [Product.model_validate(r) for r in rows]

    async def list_locations(
        self, location_type: Optional[str] = "warehouse", active_only: bool = True
    ) -> list[InventoryLocation]:
        params: dict[str, Any] = {"select": "*", "order": "created_at.asc"}
        if location_type:
            params["type"] = f"eq.{location_type}"
        if active_only:
            params["is_active"] = "eq.true"
        rows = await self._get("/inventory_locations", params)
        return [InventoryLocation.model_validate(r) for r in rows]

    async def list_variations(self, product_id: str) -> list[ProductVariation]:
        rows = await self._get(
            "/product_variations",
            {"select": "*", "product_id": f"eq.{product_id}", "order": "created_at.asc"},
        )
        out = []
        for r in rows:
            r = dict(r)
            r["attributes"] = canonicalize_attributes(r.get("attributes") or {})
            r["stock_quantity"] = r.get("stock_quantity") or 0
            out.append(ProductVariation.model_validate(r))
        return out

    async def list_product_stock(self, product_ids: Sequence[str]) -> list[StockRow]:
        return await self._list_stock("product", product_ids)

    async def list_variation_stock(self, variation_ids: Sequence[str]) -> list[StockRow]:
        return await self._list_stock("variation", variation_ids)

    async def _list_stock(self, kind: str, subject_ids: Sequence[str]) -> list[StockRow]:
        if not subject_ids:
            return []
        table, fk = _STOCK_TABLES[kind]
        out: list[StockRow] = []
        for chunk in _chunks(list(subject_ids)):
            rows = await self._get(f"/{table}", {"select": "*", fk: _in_filter(chunk)})
            out.extend(_stock_row(StockSubject(kind=kind, id=r[fk]), r) for r in rows)
        return out

    async def get_stock_row(self, subject: StockSubject, location_id: str) -> Optional[StockRow]:
        table, fk = _STOCK_TABLES[subject.kind]
        rows = await self._get(
            f"/{table}",
            {
                "select": "*",
                fk: f"eq.{subject.id}",
                "inventory_location_id": f"eq.{location_id}",
                "limit": "1",
            },
        )
        return _stock_row(subject, rows[0]) if rows else None

    async def list_movements(
        self, subject: StockSubject, location_id: Optional[str] = None, limit: int = 50
    ) -> list[StockMovement]:
        params: dict[str, Any] = {
            "select": "*",
            "subject_kind": f"eq.{subject.kind}",
            "subject_id": f"eq.{subject.id}",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if location_id:
            params["inventory_location_id"] = f"eq.{location_id}"
        rows = await self._get("/stock_movements", params)
        return [
            StockMovement(
                id=r.get("id"),
                subject=subject,
                location_id=r["inventory_location_id"],
                delta=r["delta"],
                quantity_before=r["quantity_before"],
                quantity_after=r["quantity_after"],
                reason=r["reason"],
                note=r.get("note"),
                actor_id=r.get("actor_id"),
                created_at=r.get("created_at"),
            )
            for r in rows
        ]

    # --- writes ---

    async def create_location(self, name: str, location_type: str = "warehouse") -> InventoryLocation:
        rows = await self._request(
            "POST",
            "/inventory_locations",
            json={"name": name.strip(), "type": location_type, "is_active": True},
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise StoreError("Location insert returned no row")
        location = InventoryLocation.model_validate(rows[0])
        logger.info("store.rest.location_created", location_id=location.id, name=location.name)
        return location

    async def ensure_stock_row(
        self,
        subject: StockSubject,
        location_id: str,
        initial_quantity: int = 0,
        actor_id: Optional[str] = None,
    ) -> tuple[StockRow, bool]:
        result = await self._rpc(
            "ensure_stock", subject, location_id, {"p_initial_quantity": initial_quantity}
        )
        row = StockRow(
            id=result.get("stock_row_id"),
            subject=subject,
            location_id=location_id,
            quantity=int(result["quantity"]),
            reserved_quantity=int(result.get("reserved_quantity") or 0),
        )
        return row, bool(result.get("created_row"))

    async def adjust_stock(
        self,
        subject: StockSubject,
        location_id: str,
        delta: int,
        reason: str,
        note: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StockChange:
        result = await self._rpc(
            "adjust_stock",
            subject,
            location_id,
            {"p_delta": delta, "p_reason": reason, "p_note": note},
        )
        return self._change_from_rpc(subject, location_id, reason, note, result)

    async def set_stock(
        self,
        subject: StockSubject,
        location_id: str,
        quantity: int,
        reason: str,
        note: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StockChange:
        result = await self._rpc(
            "set_stock",
            subject,
            location_id,
            {"p_quantity": quantity, "p_reason": reason, "p_note": note},
        )
        return self._change_from_rpc(subject, location_id, reason, note, result)

    async def _rpc(
        self, name: str, subject: StockSubject, location_id: str, args: dict[str, Any]
    ) -> dict[str, Any]:
        payload = {
            "p_subject_kind": subject.kind,
            "p_subject_id": subject.id,
            "p_location_id": location_id,
            **args,
        }
        result = await self._request("POST", f"/rpc/{name}", json=payload)
        if isinstance(result, list):
            result = result[0] if result else None
        if not isinstance(result, dict):
            raise StoreError(f"Procedure {name} returned no result")
        return result

    @staticmethod
    def _change_from_rpc(
        subject: StockSubject,
        location_id: str,
        reason: str,
        note: Optional[str],
        result: dict[str, Any],
    ) -> StockChange:
        after = int(result["quantity_after"])
        row = StockRow(
            id=result.get("stock_row_id"),
            subject=subject,
            location_id=location_id,
            quantity=after,
            reserved_quantity=int(result.get("reserved_quantity") or 0),
        )
        movement = StockMovement(
            id=result.get("movement_id"),
            subject=subject,
            location_id=location_id,
            delta=int(result["delta"]),
            quantity_before=int(result["quantity_before"]),
            quantity_after=after,
            reason=reason,
            note=note,
            actor_id=result.get("actor_id"),
            created_at=result.get("created_at"),
        )
        return StockChange(row=row, movement=movement, created_row=bool(result.get("created_row")))

    async def get_variant_config(self, owner_id: str) -> Optional[VariantConfig]:
        rows = await self._get(
            "/owner_variant_config", {"select": "*", "owner_id": f"eq.{owner_id}", "limit": "1"}
        )
        return VariantConfig.model_validate(rows[0]) if rows else None

    async def upsert_variant_config(self, config: VariantConfig) -> VariantConfig:
        rows = await self._request(
            "POST",
            "/owner_variant_config",
            params={"on_conflict": "owner_id"},
            json={
                "owner_id": config.owner_id,
                "rank1": config.rank1,
                "rank2": config.rank2,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        if not rows:
            raise StoreError("Variant config upsert returned no row")
        logger.info("store.rest.variant_config_saved", owner_id=config.owner_id)
        return VariantConfig.model_validate(rows[0])

    async def delete_variant_config(self, owner_id: str) -> bool:
        rows = await self._request(
            "DELETE",
            "/owner_variant_config",
            params={"owner_id": f"eq.{owner_id}"},
            headers={"Prefer": "return=representation"},
        )
        return bool(rows)

    async def aclose(self) -> None:
        await self._client.aclose()
