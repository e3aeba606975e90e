"""Inventory view state: immutable state plus pure transitions.

A ViewState wraps one InventorySnapshot together with what the user has
expanded, selected and is editing. Every transition returns a new state.
InventoryWorkspace is the one mutable holder: it swaps states in after a
successful reload or commit.
"""

from collections.abc import Sequence
from typing import Literal, Optional

from pydantic import BaseModel, Field

from stocksync.errors import StockValidationError
from stocksync.inventory.loader import InventorySnapshot, load_snapshot
from stocksync.inventory.mutations import DEFAULT_SET_REASON, parse_quantity, set_stock
from stocksync.models import Product, StockChange, StockKey, StockSubject
from stocksync.store.protocol import StockStore
from stocksync.utils.logger import get_logger
from stocksync.utils.variant_parser import group_by_option, variant_hierarchy, variation_display_name

logger = get_logger("stocksync.inventory.view_state")


class EditEntry(BaseModel):
    """An open edit for one (subject, location): the quantity shown when it started and the typed value."""

    key: StockKey
    original: int
    value: str

    model_config = {"frozen": True}


class EditCommit(BaseModel):
    """A confirmed edit, ready to be written with set_stock."""

    key: StockKey
    quantity: int
    previous: int

    model_config = {"frozen": True}


class ViewState(BaseModel):
    snapshot: InventorySnapshot
    selected_warehouse_ids: tuple[str, ...] = ()
    expanded_products: frozenset[str] = frozenset()
    expanded_groups: frozenset[str] = frozenset()
    selection: tuple[StockSubject, ...] = ()
    edits: dict[str, EditEntry] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def selected_warehouses(self):
        ids = set(self.selected_warehouse_ids)
        return [w for w in self.snapshot.warehouses if w.id in ids]


def initial_state(snapshot: InventorySnapshot) -> ViewState:
    """All warehouses selected, nothing expanded, selected or edited."""
    return ViewState(snapshot=snapshot, selected_warehouse_ids=tuple(w.id for w in snapshot.warehouses))


def with_snapshot(state: ViewState, snapshot: InventorySnapshot) -> ViewState:
    """Carry UI state over to a freshly loaded snapshot, dropping ids it no longer knows.

    Open edits survive a reload as long as their item and warehouse are still in
    the snapshot; the typed value and the original quantity are kept as they were.
    """
    known_warehouses = {w.id for w in snapshot.warehouses}
    warehouses = tuple(w for w in state.selected_warehouse_ids if w in known_warehouses)
    if not warehouses:
        warehouses = tuple(w.id for w in snapshot.warehouses)
    known_products = {p.id for p in snapshot.products}
    selection = tuple(s for s in state.selection if snapshot.owns(s))
    edits = {
        label: entry
        for label, entry in state.edits.items()
        if snapshot.owns(entry.key.subject) and entry.key.location_id in known_warehouses
    }
    return ViewState(
        snapshot=snapshot,
        selected_warehouse_ids=warehouses,
        expanded_products=frozenset(p for p in state.expanded_products if p in known_products),
        expanded_groups=frozenset(
            g for g in state.expanded_groups if g.split(":", 1)[0] in known_products
        ),
        selection=selection,
        edits=edits,
    )


# --- expansion ---


def group_key(product_id: str, option_name: str, value: str) -> str:
    """Key of a first-level variant group, e.g. "prod-1:Color:Red"."""
    return f"{product_id}:{option_name}:{value}"


def _toggle(items: frozenset[str], item: str) -> frozenset[str]:
    return items - {item} if item in items else items | {item}


def toggle_product(state: ViewState, product_id: str) -> ViewState:
    return state.model_copy(update={"expanded_products": _toggle(state.expanded_products, product_id)})


def toggle_variant_group(state: ViewState, key: str) -> ViewState:
    return state.model_copy(update={"expanded_groups": _toggle(state.expanded_groups, key)})


def _variant_names(snapshot: InventorySnapshot, product_id: str, option_order: Sequence[str]) -> dict[str, str]:
    """variation id -> display name ("Color: Red / Size: M")."""
    return {
        v.id: variation_display_name(v.attributes, option_order)
        for v in snapshot.variations_of(product_id)
    }


def expand_all_variants(
    state: ViewState, product_id: str, option_order: Optional[Sequence[str]] = None
) -> ViewState:
    """Expand the product and every first-level group of its variations."""
    if option_order is None:
        option_order = state.snapshot.option_order
    names = list(_variant_names(state.snapshot, product_id, option_order).values())
    hierarchy = variant_hierarchy(names, option_order)
    groups = set(state.expanded_groups)
    if hierarchy:
        rank1 = hierarchy[0]
        groups.update(group_key(product_id, rank1, value) for value in group_by_option(names, rank1))
    return state.model_copy(
        update={
            "expanded_products": state.expanded_products | {product_id},
            "expanded_groups": frozenset(groups),
        }
    )


# --- warehouses and selection ---


def select_warehouses(state: ViewState, warehouse_ids: Sequence[str]) -> ViewState:
    """Show only the given warehouses (unknown ids ignored, snapshot order kept)."""
    wanted = set(warehouse_ids)
    ids = tuple(w.id for w in state.snapshot.warehouses if w.id in wanted)
    return state.model_copy(update={"selected_warehouse_ids": ids})


def toggle_row_selection(state: ViewState, subject: StockSubject) -> ViewState:
    if subject in state.selection:
        selection = tuple(s for s in state.selection if s != subject)
    else:
        selection = state.selection + (subject,)
    return state.model_copy(update={"selection": selection})


def clear_selection(state: ViewState) -> ViewState:
    return state.model_copy(update={"selection": ()})


# --- filtering ---


def filter_products(
    snapshot: InventorySnapshot,
    query: str = "",
    category: Optional[str] = None,
    option_order: Optional[Sequence[str]] = None,
) -> list[Product]:
    """Products whose name, SKU, category or any variation name/SKU contains query (case-insensitive).

    category "all" or None disables the category filter.
    """
    if option_order is None:
        option_order = snapshot.option_order
    needle = (query or "").strip().casefold()
    wanted_category = (category or "").strip().casefold()
    out = []
    for p in snapshot.products:
        if wanted_category and wanted_category != "all" and (p.category or "").casefold() != wanted_category:
            continue
        if needle:
            haystack = [p.name, p.sku or "", p.category or ""]
            for v in snapshot.variations_of(p.id):
                haystack.append(variation_display_name(v.attributes, option_order))
                haystack.append(v.sku or "")
            if not any(needle in text.casefold() for text in haystack):
                continue
        out.append(p)
    return out


def categories(snapshot: InventorySnapshot) -> list[str]:
    return sorted({p.category for p in snapshot.products if p.category})


# --- edit state machine: Viewing -> Editing -> {Confirmed, Cancelled} -> Viewing ---


def is_editing(state: ViewState, key: StockKey) -> bool:
    return key.label() in state.edits


def start_edit(state: ViewState, key: StockKey, current: Optional[int] = None) -> ViewState:
    """Open an edit showing `current` (defaults to the snapshot quantity). Re-starting resets the value."""
    if current is None:
        current = state.snapshot.quantity(key.subject, key.location_id)
    edits = dict(state.edits)
    edits[key.label()] = EditEntry(key=key, original=current, value=str(current))
    return state.model_copy(update={"edits": edits})


def update_edit(state: ViewState, key: StockKey, value: str) -> ViewState:
    entry = state.edits.get(key.label())
    if entry is None:
        raise StockValidationError(f"No edit in progress for {key.label()}")
    edits = dict(state.edits)
    edits[key.label()] = entry.model_copy(update={"value": str(value)})
    return state.model_copy(update={"edits": edits})


def cancel_edit(state: ViewState, key: StockKey) -> ViewState:
    """Drop the edit without any store call. Cancelling a key that is not being edited is a no-op."""
    if key.label() not in state.edits:
        return state
    edits = {k: v for k, v in state.edits.items() if k != key.label()}
    return state.model_copy(update={"edits": edits})


def confirm_edit(state: ViewState, key: StockKey) -> tuple[ViewState, EditCommit]:
    """Validate the typed value and close the edit. An invalid value raises and leaves the edit open."""
    entry = state.edits.get(key.label())
    if entry is None:
        raise StockValidationError(f"No edit in progress for {key.label()}")
    quantity = parse_quantity(entry.value)
    return cancel_edit(state, key), EditCommit(key=key, quantity=quantity, previous=entry.original)


# --- hierarchy rows for display ---


class InventoryRow(BaseModel):
    """One line of the hierarchical inventory view."""

    level: int
    kind: Literal["product", "group", "variation"]
    label: str
    product_id: str
    subject: Optional[StockSubject] = None
    group: Optional[str] = None
    quantities: dict[str, int] = Field(default_factory=dict)
    total: int = 0


def visible_rows(
    state: ViewState,
    products: Optional[Sequence[Product]] = None,
    option_order: Optional[Sequence[str]] = None,
) -> list[InventoryRow]:
    """Rows honoring expansion: product, then first-level option groups, then variations.

    Grouping follows the owner's option order from the snapshot unless overridden.
    """
    snapshot = state.snapshot
    if option_order is None:
        option_order = snapshot.option_order
    warehouse_ids = list(state.selected_warehouse_ids)

    def quantities(subjects: Sequence[StockSubject]) -> dict[str, int]:
        return {w: sum(snapshot.quantity(s, w) for s in subjects) for w in warehouse_ids}

    rows: list[InventoryRow] = []
    for product in snapshot.products if products is None else products:
        subjects = snapshot.subjects([product])
        q = quantities(subjects)
        rows.append(
            InventoryRow(
                level=0,
                kind="product",
                label=product.name,
                product_id=product.id,
                subject=None if product.is_variable else StockSubject.product(product.id),
                quantities=q,
                total=sum(q.values()),
            )
        )
        if not product.is_variable or product.id not in state.expanded_products:
            continue

        names = _variant_names(snapshot, product.id, option_order)
        hierarchy = variant_hierarchy(names.values(), option_order)
        by_name: dict[str, list[str]] = {}
        for variation_id, name in names.items():
            by_name.setdefault(name, []).append(variation_id)

        def variation_rows(variation_ids: Sequence[str], level: int) -> list[InventoryRow]:
            out = []
            for variation_id in variation_ids:
                subject = StockSubject.variation(variation_id)
                vq = quantities([subject])
                out.append(
                    InventoryRow(
                        level=level,
                        kind="variation",
                        label=names[variation_id] or variation_id,
                        product_id=product.id,
                        subject=subject,
                        quantities=vq,
                        total=sum(vq.values()),
                    )
                )
            return out

        if not hierarchy:
            rows.extend(variation_rows(list(names), 1))
            continue

        rank1 = hierarchy[0]
        grouped = group_by_option(names.values(), rank1)
        grouped_ids: set[str] = set()
        for value, group_names in grouped.items():
            ids = [vid for name in dict.fromkeys(group_names) for vid in by_name[name]]
            grouped_ids.update(ids)
            key = group_key(product.id, rank1, value)
            gq = quantities([StockSubject.variation(vid) for vid in ids])
            rows.append(
                InventoryRow(
                    level=1,
                    kind="group",
                    label=f"{rank1}: {value}",
                    product_id=product.id,
                    group=key,
                    quantities=gq,
                    total=sum(gq.values()),
                )
            )
            if key in state.expanded_groups:
                rows.extend(variation_rows(ids, 2))
        rows.extend(variation_rows([vid for vid in names if vid not in grouped_ids], 1))
    return rows


class InventoryWorkspace:
    """Mutable holder of the current ViewState for one owner."""

    def __init__(self, store: StockStore, owner_id: str):
        self.store = store
        self.owner_id = owner_id
        self.state: Optional[ViewState] = None

    async def reload(self) -> ViewState:
        """Load a fresh snapshot. On failure the current state stays in place and the error propagates."""
        snapshot = await load_snapshot(self.store, self.owner_id)
        self.state = initial_state(snapshot) if self.state is None else with_snapshot(self.state, snapshot)
        return self.state

    def _require_state(self) -> ViewState:
        if self.state is None:
            raise StockValidationError("Inventory has not been loaded yet")
        return self.state

    def apply(self, transition, *args, **kwargs) -> ViewState:
        """Run a pure transition against the current state and keep the result."""
        self.state = transition(self._require_state(), *args, **kwargs)
        return self.state

    async def commit_edit(
        self,
        key: StockKey,
        reason: Optional[str] = DEFAULT_SET_REASON,
        note: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> StockChange:
        """Confirm the edit, write it with set_stock, then reload. A failed write keeps the edit open."""
        state, commit = confirm_edit(self._require_state(), key)
        change = await set_stock(
            self.store,
            commit.key.subject,
            commit.key.location_id,
            commit.quantity,
            reason=reason,
            note=note,
            actor_id=actor_id,
        )
        logger.info("view_state.edit_committed", key=key, previous=commit.previous, quantity=commit.quantity)
        self.state = state
        await self.reload()
        return change
