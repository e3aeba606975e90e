"""Variant name parsing: "Color: Orange / Size: M" -> [("Color", "Orange"), ("Size", "M")].

Used to build the variant hierarchy (rank1 option, rank2 option, ...) and to group
variations for display.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import NamedTuple

from stocksync.errors import VariantNameError


class VariantOption(NamedTuple):
    name: str
    value: str


def parse_variant_name(variant_name: str, strict: bool = False) -> list[VariantOption]:
    """Parse a variant name into ordered (name, value) options.

    Segments are separated by "/" and split on their first ":". Segments with no
    colon, or with an empty name or value, are dropped. Duplicate names are kept.
    With strict=True a segment lacking a colon raises VariantNameError instead.
    """
    if not variant_name or not variant_name.strip():
        return []

    options: list[VariantOption] = []
    for segment in (s.strip() for s in variant_name.split("/")):
        name, sep, value = segment.partition(":")
        if not sep:
            if strict and segment:
                raise VariantNameError(f"Variant segment without ':' in {variant_name!r}: {segment!r}")
            continue
        name, value = name.strip(), value.strip()
        if name and value:
            options.append(VariantOption(name, value))
    return options


def unique_option_names(variant_names: Iterable[str]) -> set[str]:
    """Return the set of option names used across the given variants."""
    return {opt.name for name in variant_names for opt in parse_variant_name(name)}


def option_value(variant_name: str, option_name: str) -> str | None:
    """Value of the first option called option_name, or None."""
    for opt in parse_variant_name(variant_name):
        if opt.name == option_name:
            return opt.value
    return None


def group_by_option(variant_names: Iterable[str], option_name: str) -> dict[str, list[str]]:
    """Group variant names by their value for option_name, preserving input order.

    Variants without the option are left out.
    """
    groups: dict[str, list[str]] = {}
    for variant_name in variant_names:
        value = option_value(variant_name, option_name)
        if value:
            groups.setdefault(value, []).append(variant_name)
    return groups


def sort_option_names(option_names: Iterable[str], custom_order: Sequence[str]) -> list[str]:
    """Sort names by their index in custom_order; names not listed follow, alphabetically."""
    order = {name: index for index, name in enumerate(custom_order)}

    def sort_key(name: str) -> tuple[int, int, str]:
        if name in order:
            return (0, order[name], "")
        return (1, 0, name)

    return sorted(option_names, key=sort_key)


def variant_hierarchy(variant_names: Iterable[str], custom_order: Sequence[str] = ()) -> list[str]:
    """Option names in the order they nest in the inventory hierarchy."""
    return sort_option_names(unique_option_names(variant_names), custom_order)


def variation_display_name(attributes: Mapping[str, str], custom_order: Sequence[str] = ()) -> str:
    """Build "Color: Red / Size: M" from an attribute mapping.

    Keys listed in custom_order come first; the rest keep their mapping order.
    """
    order = {name: index for index, name in enumerate(custom_order)}
    keys = sorted(
        (k for k, v in attributes.items() if str(k).strip() and str(v).strip()),
        key=lambda k: order.get(k, len(order)),
    )
    return " / ".join(f"{k}: {attributes[k]}" for k in keys)
