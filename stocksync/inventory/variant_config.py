"""Per-owner variant option ranking: read with fallback, validated save, reset to defaults."""

from typing import Optional

from stocksync.config import VARIANT_OPTION_ORDER
from stocksync.errors import StockValidationError
from stocksync.models import VariantConfig
from stocksync.store.protocol import StockStore
from stocksync.utils.attributes import canonical_option_name
from stocksync.utils.logger import get_logger

logger = get_logger("stocksync.inventory.variant_config")


def default_variant_config(owner_id: str) -> VariantConfig:
    """Ranking from VARIANT_OPTION_ORDER. updated_at stays None: nothing is stored."""
    order = list(VARIANT_OPTION_ORDER) or ["Color", "Size"]
    return VariantConfig(owner_id=owner_id, rank1=order[0], rank2=order[1] if len(order) > 1 else "")


def is_default(config: VariantConfig) -> bool:
    return config.updated_at is None


async def get_variant_config(store: StockStore, owner_id: str) -> VariantConfig:
    """The owner's stored ranking, else the configured default."""
    stored = await store.get_variant_config(owner_id)
    return stored if stored is not None else default_variant_config(owner_id)


async def save_variant_config(
    store: StockStore, owner_id: str, rank1: str, rank2: Optional[str] = None
) -> VariantConfig:
    """Validate and store a ranking. Known option names are stored in canonical spelling."""
    first = canonical_option_name(rank1 or "")
    second = canonical_option_name(rank2 or "")
    if not first:
        raise StockValidationError("rank1 is required")
    if second and second.casefold() == first.casefold():
        raise StockValidationError(f"rank1 and rank2 must differ, got {first!r} twice")
    config = await store.upsert_variant_config(VariantConfig(owner_id=owner_id, rank1=first, rank2=second))
    logger.info("variant_config.saved", owner_id=owner_id, rank1=config.rank1, rank2=config.rank2)
    return config


async def reset_variant_config(store: StockStore, owner_id: str) -> VariantConfig:
    """Delete the stored ranking and return the default that now applies."""
    deleted = await store.delete_variant_config(owner_id)
    logger.info("variant_config.reset", owner_id=owner_id, deleted=deleted)
    return default_variant_config(owner_id)
