"""Tests for variant name parsing, grouping and hierarchy ordering."""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from stocksync.errors import VariantNameError
from stocksync.utils.attributes import canonical_option_name, canonicalize_attributes
from stocksync.utils.variant_parser import (
    VariantOption,
    group_by_option,
    option_value,
    parse_variant_name,
    sort_option_names,
    unique_option_names,
    variant_hierarchy,
    variation_display_name,
)


class TestParseVariantName(unittest.TestCase):
    def test_two_options_in_order(self):
        self.assertEqual(
            parse_variant_name("Color: Orange / Size: M"),
            [VariantOption("Color", "Orange"), VariantOption("Size", "M")],
        )

    def test_blank_name_gives_no_options(self):
        self.assertEqual(parse_variant_name(""), [])
        self.assertEqual(parse_variant_name("   "), [])

    def test_segment_without_colon_is_dropped(self):
        self.assertEqual(parse_variant_name("Red / Size: M"), [VariantOption("Size", "M")])

    def test_strict_rejects_segment_without_colon(self):
        with self.assertRaises(VariantNameError):
            parse_variant_name("Red / Size: M", strict=True)

    def test_strict_accepts_well_formed_name(self):
        self.assertEqual(parse_variant_name("Size: M", strict=True), [VariantOption("Size", "M")])

    def test_splits_on_first_colon_only(self):
        self.assertEqual(parse_variant_name("Note: 10:30 slot"), [VariantOption("Note", "10:30 slot")])

    def test_empty_name_or_value_is_dropped(self):
        self.assertEqual(parse_variant_name("Color: / : Red / Size: M"), [VariantOption("Size", "M")])

    def test_duplicate_names_are_kept(self):
        options = parse_variant_name("Color: Red / Color: Blue")
        self.assertEqual([o.value for o in options], ["Red", "Blue"])
        self.assertEqual(option_value("Color: Red / Color: Blue", "Color"), "Red")


class TestGrouping(unittest.TestCase):
    names = [
        "Color: Red / Size: M",
        "Color: Red / Size: L",
        "Color: Blue / Size: M",
        "Size: S",
    ]

    def test_group_by_option_preserves_input_order(self):
        groups = group_by_option(self.names, "Color")
        self.assertEqual(list(groups), ["Red", "Blue"])
        self.assertEqual(groups["Red"], ["Color: Red / Size: M", "Color: Red / Size: L"])
        self.assertEqual(groups["Blue"], ["Color: Blue / Size: M"])

    def test_variants_without_option_are_left_out(self):
        groups = group_by_option(self.names, "Color")
        self.assertNotIn("Size: S", [n for members in groups.values() for n in members])

    def test_unique_option_names(self):
        self.assertEqual(unique_option_names(self.names), {"Color", "Size"})


class TestHierarchy(unittest.TestCase):
    def test_custom_order_first_then_alphabetical(self):
        self.assertEqual(
            sort_option_names(["Material", "Size", "Color", "Fit"], ["Color", "Size"]),
            ["Color", "Size", "Fit", "Material"],
        )

    def test_hierarchy_follows_custom_order(self):
        self.assertEqual(variant_hierarchy(["Size: M / Color: Red"], ["Color", "Size"]), ["Color", "Size"])
        self.assertEqual(variant_hierarchy(["Size: M / Color: Red"], ["Size", "Color"]), ["Size", "Color"])

    def test_hierarchy_without_custom_order_is_alphabetical(self):
        self.assertEqual(variant_hierarchy(["Size: M / Material: Wool"]), ["Material", "Size"])

    def test_display_name_orders_keys_and_skips_blank_values(self):
        name = variation_display_name({"Size": "M", "Fit": "", "Color": "Red"}, ["Color", "Size"])
        self.assertEqual(name, "Color: Red / Size: M")

    def test_display_name_round_trips_through_parser(self):
        name = variation_display_name({"Color": "Red", "Size": "M"})
        self.assertEqual(option_value(name, "Size"), "M")


class TestAttributes(unittest.TestCase):
    def test_known_keys_are_canonicalized(self):
        self.assertEqual(canonicalize_attributes({"color": "Red", "SIZE": " M "}), {"Color": "Red", "Size": "M"})

    def test_first_occurrence_wins_on_collision(self):
        self.assertEqual(canonicalize_attributes({"Color": "Red", "color": "Blue"}), {"Color": "Red"})

    def test_unknown_keys_are_trimmed_not_renamed(self):
        self.assertEqual(canonical_option_name(" material "), "material")


if __name__ == "__main__":
    unittest.main()
