"""SQLAlchemy stock store: local SQLite or a directly reachable Postgres database.

Sessions are blocking, so every public method runs its body in a worker thread
(asyncio.to_thread). That lets the loader's gathered reads overlap on Postgres.
SQLite calls are serialized on one lock.
"""

import asyncio
import functools
import threading
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stocksync.db import get_session_factory, session_scope
from stocksync.db.base import new_id
from stocksync.db.models import (
    LocationRecord,
    MovementRecord,
    ProductRecord,
    ProductStockRecord,
    VariantConfigRecord,
    VariationRecord,
    VariationStockRecord,
)
from stocksync.errors import LocationNotFoundError, StoreError, SubjectNotFoundError
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

logger = get_logger("stocksync.store.sql")

T = TypeVar("T")

# subject kind -> (stock model, subject FK column, subject model)
_STOCK_TABLES: dict[str, tuple[Any, str, Any]] = {
    "product": (ProductStockRecord, "product_id", ProductRecord),
    "variation": (VariationStockRecord, "variation_id", VariationRecord),
}


def _dialect_insert(session: Session):
    """Return the dialect-specific insert() that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise StoreError(f"Upsert not supported for dialect {dialect!r}")
    return insert


def _to_product(r: ProductRecord) -> Product:
    return Product(
        id=r.id,
        name=r.name,
        type=r.type,
        owner_user_id=r.owner_user_id,
        owner_type=r.owner_type,
        sku=r.sku,
        category=r.category,
        is_active=r.is_active,
    )


def _to_variation(r: VariationRecord) -> ProductVariation:
    return ProductVariation(
        id=r.id,
        product_id=r.product_id,
        attributes=canonicalize_attributes(r.attributes or {}),
        sku=r.sku,
        stock_quantity=r.stock_quantity,
        is_active=r.is_active,
    )


def _to_location(r: LocationRecord) -> InventoryLocation:
    return InventoryLocation(id=r.id, name=r.name, type=r.type, is_active=r.is_active)


def _to_stock_row(subject: StockSubject, r: Any) -> StockRow:
    return StockRow(
        id=r.id,
        subject=subject,
        location_id=r.inventory_location_id,
        quantity=r.stock_quantity,
        reserved_quantity=r.reserved_quantity,
    )


def _to_movement(r: MovementRecord) -> StockMovement:
    return StockMovement(
        id=r.id,
        subject=StockSubject(kind=r.subject_kind, id=r.subject_id),
        location_id=r.inventory_location_id,
        delta=r.delta,
        quantity_before=r.quantity_before,
        quantity_after=r.quantity_after,
        reason=r.reason,
        note=r.note,
        actor_id=r.actor_id,
        created_at=r.created_at,
    )


def _to_variant_config(r: VariantConfigRecord) -> VariantConfig:
    return VariantConfig(owner_id=r.owner_id, rank1=r.rank1, rank2=r.rank2, updated_at=r.updated_at)


def _offloaded(method: Callable[..., T]) -> Callable[..., Any]:
    """Expose a blocking store method as a coroutine that runs in a worker thread."""

    @functools.wraps(method)
    async def wrapper(self: "SqlStockStore", *args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(self._call, method, *args, **kwargs)

    return wrapper


class SqlStockStore:
    """Stock store backed by SQLAlchemy sessions. Each mutation is one transaction."""

    def __init__(self, session_factory: sessionmaker | None = None):
        self._factory = session_factory or get_session_factory()
        bind = self._factory.kw.get("bind")
        self._serial = threading.Lock() if bind is not None and bind.dialect.name == "sqlite" else None

    def _call(self, method: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        if self._serial is None:
            return method(self, *args, **kwargs)
        with self._serial:
            return method(self, *args, **kwargs)

    @contextmanager
    def _transaction(self) -> Generator[Session, None, None]:
        """One session per call; SQLAlchemy errors surface as StoreError."""
        try:
            with session_scope(self._factory) as session:
                yield session
        except SQLAlchemyError as e:
            code = getattr(getattr(e, "orig", None), "pgcode", None)
            logger.error("store.sql.error", error=str(e), error_type=type(e).__name__, code=code)
            raise StoreError(f"Database error: {e}", code=code) from e

    # --- reads ---

    @_offloaded
    def list_products(self, owner_id: str, owner_type: str = "brand") -> list[Product]:
        with self._transaction() as session:
            q = (
                select(ProductRecord)
                .where(ProductRecord.owner_user_id == owner_id)
                .where(ProductRecord.owner_type == owner_type)
                .order_by(ProductRecord.name)
            )
            return [_to_product(r) for r in session.scalars(q).all()]

    @_offloaded
    def list_locations(
        self, location_type: Optional[str] = "warehouse", active_only: bool = True
    ) -> list[InventoryLocation]:
        with self._transaction() as session:
            q = select(LocationRecord).order_by(LocationRecord.created_at, LocationRecord.name)
            if location_type:
                q = q.where(LocationRecord.type == location_type)
            if active_only:
                q = q.where(LocationRecord.is_active.is_(True))
            return [_to_location(r) for r in session.scalars(q).all()]

    @_offloaded
    def list_variations(self, product_id: str) -> list[ProductVariation]:
        with self._transaction() as session:
            q = (
                select(VariationRecord)
                .where(VariationRecord.product_id == product_id)
                .order_by(VariationRecord.created_at, VariationRecord.id)
            )
            return [_to_variation(r) for r in session.scalars(q).all()]

    @_offloaded
    def list_product_stock(self, product_ids: Sequence[str]) -> list[StockRow]:
        return self._list_stock("product", product_ids)

    @_offloaded
    def list_variation_stock(self, variation_ids: Sequence[str]) -> list[StockRow]:
        return self._list_stock("variation", variation_ids)

    def _list_stock(self, kind: str, subject_ids: Sequence[str]) -> list[StockRow]:
        if not subject_ids:
            return []
        model, fk, _ = _STOCK_TABLES[kind]
        column = getattr(model, fk)
        with self._transaction() as session:
            rows = session.scalars(select(model).where(column.in_(list(subject_ids)))).all()
            return [_to_stock_row(StockSubject(kind=kind, id=getattr(r, fk)), r) for r in rows]

    @_offloaded
    def get_stock_row(self, subject: StockSubject, location_id: str) -> Optional[StockRow]:
        with self._transaction() as session:
            record = self._select_row(session, subject, location_id)
            return _to_stock_row(subject, record) if record is not None else None

    @_offloaded
    def list_movements(
        self, subject: StockSubject, location_id: Optional[str] = None, limit: int = 50
    ) -> list[StockMovement]:
        with self._transaction() as session:
            q = (
                select(MovementRecord)
                .where(MovementRecord.subject_kind == subject.kind)
                .where(MovementRecord.subject_id == subject.id)
                .order_by(MovementRecord.created_at.desc())
                .limit(limit)
            )
            if location_id:
                q = q.where(MovementRecord.inventory_location_id == location_id)
            return [_to_movement(r) for r in session.scalars(q).all()]

    # --- writes ---

    @_offloaded
    def create_location(self, name: str, location_type: str = "warehouse") -> InventoryLocation:
        with self._transaction() as session:
            record = LocationRecord(name=name.strip(), type=location_type, is_active=True)
            session.add(record)
            session.flush()
            logger.info("store.sql.location_created", location_id=record.id, name=record.name)
            return _to_location(record)

    @_offloaded
    def ensure_stock_row(
        self,
        subject: StockSubject,
        location_id: str,
        initial_quantity: int = 0,
        actor_id: Optional[str] = None,
    ) -> tuple[StockRow, bool]:
        with self._transaction() as session:
            self._check_references(session, subject, location_id)
            created = self._insert_missing(session, subject, location_id, initial_quantity)
            record = self._select_row(session, subject, location_id, for_update=True)
            if created and initial_quantity > 0:
                self._add_movement(
                    session,
                    subject,
                    location_id,
                    delta=initial_quantity,
                    before=0,
                    after=initial_quantity,
                    reason="initial_stock",
                    note="Initial stock setup",
                    actor_id=actor_id,
                )
                self._refresh_variation_total(session, subject)
            return _to_stock_row(subject, record), created

    @_offloaded
    def adjust_stock(
        self,
        subject: StockSubject,
        location_id: str,
        delta: int,
        reason: str,
        note: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StockChange:
        with self._transaction() as session:
            self._check_references(session, subject, location_id)
            created = self._insert_missing(session, subject, location_id, 0)
            record = self._select_row(session, subject, location_id, for_update=True)
            before = record.stock_quantity
            record.stock_quantity = max(0, before + delta)
            session.flush()
            movement = self._add_movement(
                session,
                subject,
                location_id,
                delta=delta,
                before=before,
                after=record.stock_quantity,
                reason=reason,
                note=note,
                actor_id=actor_id,
            )
            self._refresh_variation_total(session, subject)
            return StockChange(
                row=_to_stock_row(subject, record),
                movement=_to_movement(movement),
                created_row=created,
            )

    @_offloaded
    def set_stock(
        self,
        subject: StockSubject,
        location_id: str,
        quantity: int,
        reason: str,
        note: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StockChange:
        if quantity < 0:
            raise StoreError(f"Stock quantity cannot be negative: {quantity}", code="23514")
        with self._transaction() as session:
            self._check_references(session, subject, location_id)
            created = self._insert_missing(session, subject, location_id, 0)
            record = self._select_row(session, subject, location_id, for_update=True)
            before = record.stock_quantity
            record.stock_quantity = quantity
            session.flush()
            movement = self._add_movement(
                session,
                subject,
                location_id,
                delta=quantity - before,
                before=before,
                after=quantity,
                reason=reason,
                note=note,
                actor_id=actor_id,
            )
            self._refresh_variation_total(session, subject)
            return StockChange(
                row=_to_stock_row(subject, record),
                movement=_to_movement(movement),
                created_row=created,
            )

    @_offloaded
    def get_variant_config(self, owner_id: str) -> Optional[VariantConfig]:
        with self._transaction() as session:
            record = session.get(VariantConfigRecord, owner_id)
            return _to_variant_config(record) if record is not None else None

    @_offloaded
    def upsert_variant_config(self, config: VariantConfig) -> VariantConfig:
        with self._transaction() as session:
            record = session.get(VariantConfigRecord, config.owner_id)
            if record is None:
                record = VariantConfigRecord(owner_id=config.owner_id)
                session.add(record)
            record.rank1 = config.rank1
            record.rank2 = config.rank2
            session.flush()
            logger.info(
                "store.sql.variant_config_saved",
                owner_id=config.owner_id,
                rank1=config.rank1,
                rank2=config.rank2,
            )
            return _to_variant_config(record)

    @_offloaded
    def delete_variant_config(self, owner_id: str) -> bool:
        with self._transaction() as session:
            record = session.get(VariantConfigRecord, owner_id)
            if record is None:
                return False
            session.delete(record)
            logger.info("store.sql.variant_config_deleted", owner_id=owner_id)
            return True

    async def aclose(self) -> None:
        return None

    # --- helpers (caller holds the session/transaction) ---

    def _check_references(self, session: Session, subject: StockSubject, location_id: str) -> None:
        _, _, subject_model = _STOCK_TABLES[subject.kind]
        if session.get(subject_model, subject.id) is None:
            raise SubjectNotFoundError(f"{subject.kind.capitalize()} not found: {subject.id}")
        if session.get(LocationRecord, location_id) is None:
            raise LocationNotFoundError(f"Inventory location not found: {location_id}")

    def _select_row(self, session: Session, subject: StockSubject, location_id: str, for_update: bool = False):
        model, fk, _ = _STOCK_TABLES[subject.kind]
        q = (
            select(model)
            .where(getattr(model, fk) == subject.id)
            .where(model.inventory_location_id == location_id)
        )
        if for_update:
            q = q.with_for_update()
        return session.scalars(q).first()

    def _insert_missing(self, session: Session, subject: StockSubject, location_id: str, quantity: int) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING on (subject, location). True if a row was inserted."""
        model, fk, _ = _STOCK_TABLES[subject.kind]
        now = datetime.now(timezone.utc)
        insert = _dialect_insert(session)
        stmt = (
            insert(model)
            .values(
                id=new_id(),
                inventory_location_id=location_id,
                stock_quantity=quantity,
                reserved_quantity=0,
                created_at=now,
                updated_at=now,
                **{fk: subject.id},
            )
            .on_conflict_do_nothing(index_elements=[fk, "inventory_location_id"])
        )
        result = session.execute(stmt)
        return result.rowcount == 1

    def _add_movement(
        self,
        session: Session,
        subject: StockSubject,
        location_id: str,
        *,
        delta: int,
        before: int,
        after: int,
        reason: str,
        note: Optional[str],
        actor_id: Optional[str],
    ) -> MovementRecord:
        movement = MovementRecord(
            subject_kind=subject.kind,
            subject_id=subject.id,
            inventory_location_id=location_id,
            delta=delta,
            quantity_before=before,
            quantity_after=after,
            reason=reason,
            note=note,
            actor_id=actor_id,
        )
        session.add(movement)
        session.flush()
        return movement

    def _refresh_variation_total(self, session: Session, subject: StockSubject) -> None:
        """Keep product_variations.stock_quantity equal to the sum over locations."""
        if subject.kind != "variation":
            return
        total = session.scalar(
            select(func.coalesce(func.sum(VariationStockRecord.stock_quantity), 0)).where(
                VariationStockRecord.variation_id == subject.id
            )
        )
        variation = session.get(VariationRecord, subject.id)
        if variation is not None:
            variation.stock_quantity = int(total or 0)
