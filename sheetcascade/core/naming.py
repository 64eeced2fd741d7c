"""
core/naming.py - Attribute and trigger name helpers

Parsing and rewriting of host attribute names:
    weight                                 plain attribute
    repeating_gear_-Mxy12_weight           repeating attribute (section, row, field)
    repeating_gear_$X_weight               templated repeating attribute
    _reporder_repeating_gear               row-order pseudo-attribute
    clicked:repeating_gear_-Mxy12_roll     click trigger name
"""

from __future__ import annotations
from typing import Any, List, Optional, Tuple, Union
import math
import re

ROW_PLACEHOLDER = "$X"
ROW_ORDER_PREFIX = "_reporder_"
REPEATING_PREFIX = "repeating_"

Number = Union[int, float]

_TYPE_PREFIX_RE = re.compile(r"^(?:attr_|act_|roll_|fieldset_)")
_HTML_NAME_RE = re.compile(r"(?:attr|act|roll)_(.+)")
_REPEAT_NAME_RE = re.compile(r"(repeating_[^_]+)_([^_]+)(?:_(.+))?")
_TRIGGER_NAME_RE = re.compile(r"(?:(repeating_[^_]+)_([^_]+)_)?(.+)")
_ROW_SEGMENT_RE = re.compile(r"^(repeating_[^_]+_)[^_]+(_.+)$")
_SECTION_NAME_RE = re.compile(r"^repeating_[^_]+$")
_NUMERIC_RE = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?$")
_CAPITALIZE_RE = re.compile(r"(?:^|\s+|/)[a-z]", re.IGNORECASE)
_REGEX_SPECIALS_RE = re.compile(r"[.|()\[\]\-+?/{}^$*]")


# =============================================================================
# CANONICALIZATION
# =============================================================================

def replace_spaces(name: str) -> str:
    """Replace runs of whitespace with underscores."""
    return re.sub(r"\s+", "_", name)


def action_button_name(name: str) -> str:
    """Action button names use dashes in place of underscores and whitespace."""
    return re.sub(r"_|\s+", "-", name)


def action_input_name(name: str) -> str:
    """Name of the hidden input that stores a button's ability call."""
    return f"{name}_action".replace("roll_action", "action")


def strip_type_prefix(name: str) -> str:
    """Remove a leading attr_/act_/roll_/fieldset_ prefix."""
    return _TYPE_PREFIX_RE.sub("", name)


def parse_html_name(name: str) -> Optional[str]:
    """
    Attribute name from an html name.

    >>> parse_html_name("attr_attribute_1")
    'attribute_1'
    """
    match = _HTML_NAME_RE.search(name)
    return match.group(1) if match else None


# =============================================================================
# REPEATING NAMES
# =============================================================================

def to_section_name(section: str) -> str:
    """Full section name: "gear" -> "repeating_gear"."""
    if section.endswith(f"_{ROW_PLACEHOLDER}_"):
        return section[: -len(ROW_PLACEHOLDER) - 2]
    if section.startswith(REPEATING_PREFIX):
        return section
    return f"{REPEATING_PREFIX}{section}"


def is_section_name(name: str) -> bool:
    """True for a bare section name such as repeating_gear."""
    return bool(_SECTION_NAME_RE.match(name))


def generic_prefix(section: str) -> str:
    """Templated row prefix: "gear" -> "repeating_gear_$X_"."""
    return f"{to_section_name(section)}_{ROW_PLACEHOLDER}_"


def parse_repeat_name(name: str) -> Optional[Tuple[str, str, Optional[str]]]:
    """
    Split a repeating name into (section, row id, field).

    >>> parse_repeat_name("repeating_equipment_-8908asdf_name")
    ('repeating_equipment', '-8908asdf', 'name')
    >>> parse_repeat_name("repeating_equipment_-8908asdf")
    ('repeating_equipment', '-8908asdf', None)
    """
    match = _REPEAT_NAME_RE.search(name)
    if not match:
        return None
    return match.group(1), match.group(2), match.group(3)


def parse_trigger_name(name: str) -> Optional[Tuple[Optional[str], Optional[str], str]]:
    """
    Split a trigger or click name into (section, row id, field).

    >>> parse_trigger_name("clicked:repeating_attack_-234lkj_some-button")
    ('repeating_attack', '-234lkj', 'some-button')
    >>> parse_trigger_name("clicked:some-button")
    (None, None, 'some-button')
    """
    match = _TRIGGER_NAME_RE.match(re.sub(r"^clicked:", "", name))
    if not match:
        return None
    return match.group(1), match.group(2), match.group(3)


parse_click_trigger = parse_trigger_name


def section_of(name: str) -> Optional[str]:
    """Repeating section a (concrete or templated) field name belongs to."""
    if not name.startswith(REPEATING_PREFIX):
        return None
    parsed = parse_repeat_name(name)
    return parsed[0] if parsed else None


def templatize(name: str) -> str:
    """Replace the row id of a repeating field name with the $X placeholder."""
    return _ROW_SEGMENT_RE.sub(lambda m: f"{m.group(1)}{ROW_PLACEHOLDER}{m.group(2)}", name)


def apply_row_id(name: str, row_id: str) -> str:
    """Substitute a concrete row id into a repeating field name."""
    return _ROW_SEGMENT_RE.sub(lambda m: f"{m.group(1)}{row_id}{m.group(2)}", name)


def row_order_name(section: str) -> str:
    return f"{ROW_ORDER_PREFIX}{to_section_name(section)}"


def row_order_section(name: str) -> Optional[str]:
    """Section addressed by a row-order pseudo-attribute, if name is one."""
    if name.startswith(ROW_ORDER_PREFIX):
        return name[len(ROW_ORDER_PREFIX):]
    if is_section_name(name):
        return name
    return None


# =============================================================================
# VALUES
# =============================================================================

def coerce_number(value: Any) -> Optional[Number]:
    """
    Numeric value of value when the conversion is lossless, else None.

    Empty and whitespace-only strings are not numbers.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or not _NUMERIC_RE.match(text):
        return None
    if re.search(r"[.eE]", text):
        return float(text)
    return int(text)


def to_number(value: Any, default: Number = 0) -> Number:
    """
    Convert a value to a number, falling back to default (or 0).

    >>> to_number("100")
    100
    >>> to_number("abc", 5)
    5
    """
    number = coerce_number(value)
    return number or default or 0


def is_invalid_value(value: Any) -> bool:
    """None and NaN can never be stored as attribute values."""
    return value is None or (isinstance(value, float) and math.isnan(value))


def comma_array(text: Optional[str] = "") -> List[str]:
    """Split a comma delimited string into lowercased, non-empty items."""
    if not text:
        return []
    return [item for item in re.split(r"\s*,\s*", text.lower().strip()) if item]


def order_section(rep_order: List[str], ids: List[str]) -> List[str]:
    """
    Order row ids to match a stored row order.

    Ids present in rep_order come first in that order; unknown ids keep their
    relative order at the end. Comparison is case-insensitive.
    """
    positions = {row_id.lower(): index for index, row_id in enumerate(rep_order)}
    return sorted(
        ids,
        key=lambda row_id: positions.get(row_id.lower(), len(positions)),
    )


def capitalize(text: str) -> str:
    """
    Capitalize each word in a string.

    >>> capitalize("a word")
    'A Word'
    """
    return _CAPITALIZE_RE.sub(lambda m: m.group(0).upper(), text)


def sanitize_for_regex(text: str) -> str:
    """Escape characters that are special in a regular expression."""
    return _REGEX_SPECIALS_RE.sub(lambda m: "\\" + m.group(0), text)
