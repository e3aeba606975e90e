"""Catalog models: products, variations, inventory locations, variant option ranking."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

ProductType = Literal["simple", "variable", "event"]
OwnerType = Literal["brand", "venue"]
LocationType = Literal["warehouse", "venue"]


class Product(BaseModel):
    """A product owned by a brand or venue. `type` decides where its stock lives."""

    id: str
    name: str
    type: ProductType = "simple"
    owner_user_id: Optional[str] = None
    owner_type: OwnerType = "brand"
    sku: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def is_variable(self) -> bool:
        return self.type == "variable"


class ProductVariation(BaseModel):
    """One purchasable configuration of a variable product, e.g. {"Color": "Red", "Size": "M"}."""

    id: str
    product_id: str
    attributes: dict[str, str] = Field(default_factory=dict)
    sku: Optional[str] = None
    stock_quantity: int = 0
    is_active: bool = True

    model_config = {"frozen": True, "extra": "ignore"}


class InventoryLocation(BaseModel):
    """A warehouse or venue that can hold stock."""

    id: str
    name: str
    type: LocationType = "warehouse"
    is_active: bool = True

    model_config = {"frozen": True, "extra": "ignore"}


class VariantConfig(BaseModel):
    """Per-owner ranking of variant options: rank1 groups variations, rank2 orders within a group."""

    owner_id: str
    rank1: str = "Color"
    rank2: str = "Size"
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def option_order(self) -> tuple[str, ...]:
        return tuple(name for name in (self.rank1, self.rank2) if name)
