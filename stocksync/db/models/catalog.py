"""ORM models for the catalog: products, variations, inventory locations, variant option ranking."""

from typing import Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stocksync.db.base import Base, TimestampMixin, UuidPrimaryKeyMixin


class ProductRecord(Base, UuidPrimaryKeyMixin, TimestampMixin):
    """Product row. type is simple | variable | event; owner_type is brand | venue."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="simple")
    owner_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    owner_type: Mapped[str] = mapped_column(String(16), nullable=False, default="brand", index=True)
    sku: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    variations: Mapped[list["VariationRecord"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )


class VariationRecord(Base, UuidPrimaryKeyMixin, TimestampMixin):
    """Variation of a variable product; attributes is a JSON object such as {"Color": "Red"}."""

    __tablename__ = "product_variations"

    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attributes: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    sku: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    product: Mapped[ProductRecord] = relationship(back_populates="variations")


class LocationRecord(Base, UuidPrimaryKeyMixin, TimestampMixin):
    """Inventory location (warehouse or venue)."""

    __tablename__ = "inventory_locations"

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="warehouse", index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class VariantConfigRecord(Base, TimestampMixin):
    """Variant option ranking of one owner; owners without a row use VARIANT_OPTION_ORDER."""

    __tablename__ = "owner_variant_config"

    owner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    rank1: Mapped[str] = mapped_column(String(64), nullable=False, default="Color")
    rank2: Mapped[str] = mapped_column(String(64), nullable=False, default="Size")
