"""ORM models for stock: per-location stock rows and the movement log."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stocksync.db.base import Base, TimestampMixin, UuidPrimaryKeyMixin


class ProductStockRecord(Base, UuidPrimaryKeyMixin, TimestampMixin):
    """Stock of a simple product at one location. One row per (product, location)."""

    __tablename__ = "product_inventory"
    __table_args__ = (
        UniqueConstraint("product_id", "inventory_location_id", name="uq_product_inventory_product_location"),
        CheckConstraint("stock_quantity >= 0", name="ck_product_inventory_non_negative"),
    )

    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("inventory_locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class VariationStockRecord(Base, UuidPrimaryKeyMixin, TimestampMixin):
    """Stock of a variation at one location. One row per (variation, location)."""

    __tablename__ = "product_variation_inventory"
    __table_args__ = (
        UniqueConstraint(
            "variation_id", "inventory_location_id", name="uq_variation_inventory_variation_location"
        ),
        CheckConstraint("stock_quantity >= 0", name="ck_variation_inventory_non_negative"),
    )

    variation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_variations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inventory_location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("inventory_locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MovementRecord(Base, UuidPrimaryKeyMixin):
    """Append-only audit row; delta is positive for increases, negative for decreases."""

    __tablename__ = "stock_movements"

    subject_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    inventory_location_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_before: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(64), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    actor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, default=lambda: datetime.now(timezone.utc), index=True
    )
