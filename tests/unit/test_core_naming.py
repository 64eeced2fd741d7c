"""
Unit tests for core/naming.py

Tests attribute name parsing, canonicalization and value coercion.
"""

import math

import pytest

from sheetcascade.core.naming import (
    action_button_name,
    action_input_name,
    apply_row_id,
    capitalize,
    coerce_number,
    comma_array,
    generic_prefix,
    is_invalid_value,
    is_section_name,
    order_section,
    parse_html_name,
    parse_repeat_name,
    parse_trigger_name,
    replace_spaces,
    row_order_name,
    row_order_section,
    sanitize_for_regex,
    section_of,
    strip_type_prefix,
    templatize,
    to_number,
    to_section_name,
)


class TestCanonicalization:
    """Test name canonicalization helpers."""

    def test_replace_spaces(self):
        """Test whitespace runs become single underscores."""
        assert replace_spaces("hit  points") == "hit_points"
        assert replace_spaces("strength") == "strength"

    def test_action_button_name(self):
        """Test underscores and spaces become dashes."""
        assert action_button_name("roll_attack now") == "roll-attack-now"

    def test_action_input_name(self):
        """Test the hidden input name of a roller."""
        assert action_input_name("attack") == "attack_action"
        assert action_input_name("attack_roll") == "attack_action"

    def test_strip_type_prefix(self):
        """Test registry key prefixes are removed."""
        assert strip_type_prefix("attr_strength") == "strength"
        assert strip_type_prefix("act_roll-it") == "roll-it"
        assert strip_type_prefix("fieldset_repeating_gear") == "repeating_gear"
        assert strip_type_prefix("strength") == "strength"

    def test_parse_html_name(self):
        """Test attribute name extraction from an html name."""
        assert parse_html_name("attr_attribute_1") == "attribute_1"
        assert parse_html_name("plain") is None


class TestRepeatingNames:
    """Test repeating section name handling."""

    def test_to_section_name(self):
        """Test section names are prefixed once."""
        assert to_section_name("gear") == "repeating_gear"
        assert to_section_name("repeating_gear") == "repeating_gear"
        assert to_section_name("repeating_gear_$X_") == "repeating_gear"

    def test_is_section_name(self):
        """Test only bare section names match."""
        assert is_section_name("repeating_gear")
        assert not is_section_name("repeating_gear_r1_weight")
        assert not is_section_name("gear")

    def test_generic_prefix(self):
        """Test templated row prefix."""
        assert generic_prefix("gear") == "repeating_gear_$X_"

    def test_parse_repeat_name(self):
        """Test splitting into section, row and field."""
        assert parse_repeat_name("repeating_equipment_-8908asdf_name") == (
            "repeating_equipment", "-8908asdf", "name",
        )
        assert parse_repeat_name("repeating_equipment_-8908asdf") == (
            "repeating_equipment", "-8908asdf", None,
        )
        assert parse_repeat_name("strength") is None

    def test_parse_repeat_name_keeps_field_underscores(self):
        """Test the field part may contain underscores."""
        assert parse_repeat_name("repeating_gear_r1_attack_action")[2] == "attack_action"

    def test_parse_trigger_name(self):
        """Test click trigger parsing."""
        assert parse_trigger_name("clicked:repeating_attack_-234lkj_some-button") == (
            "repeating_attack", "-234lkj", "some-button",
        )
        assert parse_trigger_name("clicked:some-button") == (None, None, "some-button")

    def test_section_of(self):
        """Test section lookup for concrete and templated names."""
        assert section_of("repeating_gear_r1_weight") == "repeating_gear"
        assert section_of("repeating_gear_$X_weight") == "repeating_gear"
        assert section_of("strength") is None

    def test_templatize_and_apply_row_id(self):
        """Test swapping the row segment."""
        assert templatize("repeating_gear_-abc_weight") == "repeating_gear_$X_weight"
        assert apply_row_id("repeating_gear_$X_weight", "-abc") == "repeating_gear_-abc_weight"
        assert templatize("strength") == "strength"

    def test_row_order_names(self):
        """Test row-order pseudo-attribute names."""
        assert row_order_name("gear") == "_reporder_repeating_gear"
        assert row_order_section("_reporder_repeating_gear") == "repeating_gear"
        assert row_order_section("repeating_gear") == "repeating_gear"
        assert row_order_section("repeating_gear_r1_weight") is None


class TestValues:
    """Test value coercion helpers."""

    def test_coerce_number(self):
        """Test lossless numeric conversion."""
        assert coerce_number("12") == 12
        assert coerce_number("-1.5") == -1.5
        assert coerce_number(" 3 ") == 3
        assert coerce_number(True) == 1

    def test_coerce_number_rejects_non_numbers(self):
        """Test empty strings and words are not numbers."""
        assert coerce_number("") is None
        assert coerce_number("   ") is None
        assert coerce_number("12abc") is None
        assert coerce_number(None) is None
        assert coerce_number(float("nan")) is None

    def test_to_number(self):
        """Test fallback to a default."""
        assert to_number("100") == 100
        assert to_number("abc", 5) == 5
        assert to_number(None) == 0

    def test_is_invalid_value(self):
        """Test only None and NaN are invalid."""
        assert is_invalid_value(None)
        assert is_invalid_value(math.nan)
        assert not is_invalid_value("")
        assert not is_invalid_value(0)

    def test_comma_array(self):
        """Test comma splitting drops empty items."""
        assert comma_array("Fire, Cold,,acid ") == ["fire", "cold", "acid"]
        assert comma_array("") == []
        assert comma_array(None) == []

    @pytest.mark.parametrize("stored,ids,expected", [
        (["b", "a"], ["a", "b", "c"], ["b", "a", "c"]),
        ([], ["a", "b"], ["a", "b"]),
        (["C", "a"], ["a", "c"], ["c", "a"]),
    ])
    def test_order_section(self, stored, ids, expected):
        """Test ids follow the stored order, unknown ids last."""
        assert order_section(stored, ids) == expected

    def test_capitalize(self):
        """Test each word is capitalized."""
        assert capitalize("a word") == "A Word"

    def test_sanitize_for_regex(self):
        """Test special characters are escaped."""
        assert sanitize_for_regex("a.b(c)") == "a\\.b\\(c\\)"
