"""
Tests for the Canonical JSON Module

These tests pin the byte contract every seal and identity depends on:
- Same logical value always produces identical bytes
- Key ordering is by code point, insertion order is discarded
- Only quote, backslash and control characters are escaped
- canonicalize() is total: cycles and odd objects degrade to strings
"""

import dataclasses
from decimal import Decimal
from enum import Enum

import pytest

from sigilmint.canon import (
    CIRCULAR_SENTINEL,
    UNSERIALIZABLE_SENTINEL,
    canonicalize,
    canonical_json_bytes,
    canonical_json_string,
    parse_canonical,
)


# ============================================================================
# TEST: KEY ORDERING
# ============================================================================

class TestKeyOrdering:
    """Keys must be sorted by code point at every depth."""

    def test_simple_key_ordering(self):
        """Keys sorted alphabetically for ASCII."""
        assert canonical_json_string({"b": 1, "a": 2, "c": 3}) == '{"a":2,"b":1,"c":3}'

    def test_insertion_order_irrelevant(self):
        """Two dicts with the same items in different order give the same bytes."""
        first = {"side": "YES", "marketId": "m1", "lockedStakeMicro": "1500000"}
        second = {"lockedStakeMicro": "1500000", "marketId": "m1", "side": "YES"}
        assert canonical_json_bytes(first) == canonical_json_bytes(second)

    def test_nested_key_ordering(self):
        """Nested objects also have sorted keys."""
        assert canonical_json_string({"z": {"b": 1, "a": 2}, "a": 1}) == '{"a":1,"z":{"a":2,"b":1}}'

    def test_case_sensitive_ordering(self):
        """Uppercase letters sort before lowercase."""
        assert canonical_json_string({"a": 1, "B": 2, "A": 3}) == '{"A":3,"B":2,"a":1}'

    def test_astral_keys_sort_by_code_point(self):
        """U+FFFF sorts before U+1F600 (code point order, not UTF-16 order)."""
        result = canonical_json_string({"\U0001F600": 1, "\uffff": 2})
        assert result == '{"\uffff":2,"\U0001F600":1}'

    def test_non_string_keys_are_stringified(self):
        """Integer keys become their decimal text."""
        assert canonical_json_string({2: "b", 1: "a"}) == '{"1":"a","2":"b"}'

    def test_colliding_keys_ignore_insertion_order(self):
        """A str key wins over a non-str key with the same text."""
        forward = {1: "int", "1": "str"}
        backward = {"1": "str", 1: "int"}
        assert canonical_json_string(forward) == '{"1":"str"}'
        assert canonical_json_string(backward) == '{"1":"str"}'

    def test_colliding_non_str_keys_ignore_insertion_order(self):
        """Between non-str keys the type name decides."""
        forward = {0.1: "float", Decimal("0.1"): "decimal"}
        backward = {Decimal("0.1"): "decimal", 0.1: "float"}
        assert canonical_json_string(forward) == canonical_json_string(backward) == '{"0.1":"decimal"}'

    def test_array_order_preserved(self):
        """Arrays keep their order."""
        assert canonical_json_string([3, 1, 2]) == '[3,1,2]'


# ============================================================================
# TEST: STRING ESCAPING
# ============================================================================

class TestStringEscaping:
    """Only quote, backslash and U+0000..U+001F are escaped."""

    def test_quote_and_backslash(self):
        assert canonical_json_string('a"b\\c') == '"a\\"b\\\\c"'

    def test_short_control_escapes(self):
        assert canonical_json_string("\b\t\n\f\r") == '"\\b\\t\\n\\f\\r"'

    def test_other_controls_use_unicode_escape(self):
        assert canonical_json_string("\x01\x1f") == '"\\u0001\\u001f"'

    def test_non_ascii_written_literally(self):
        """Non-ASCII characters stay literal UTF-8."""
        assert canonical_json_bytes("Φ é") == '"Φ é"'.encode("utf-8")

    def test_line_separator_not_escaped(self):
        assert canonical_json_string("\u2028") == '"\u2028"'

    def test_no_whitespace_between_tokens(self):
        assert canonical_json_string({"a": [1, {"b": None}]}) == '{"a":[1,{"b":null}]}'


# ============================================================================
# TEST: SCALARS
# ============================================================================

class TestScalars:
    """Scalar encoding rules."""

    def test_literals(self):
        assert canonical_json_string([True, False, None]) == '[true,false,null]'

    def test_integral_float_prints_as_int(self):
        assert canonical_json_string(1.0) == '1'

    def test_fractional_float(self):
        assert canonical_json_string(1.5) == '1.5'

    def test_large_int_exact(self):
        """Big integers are written exactly, never through a float."""
        assert canonical_json_string(10 ** 30) == '1' + '0' * 30

    def test_decimal_becomes_string(self):
        """Decimals keep their exact text as strings."""
        assert canonical_json_string(Decimal("1.50")) == '"1.50"'

    def test_non_finite_float_becomes_string(self):
        assert canonicalize(float("inf")) == "inf"
        assert canonicalize(float("nan")) == "nan"

    def test_bool_is_not_int(self):
        assert canonical_json_string({"zkOk": True}) == '{"zkOk":true}'


# ============================================================================
# TEST: TOTALITY
# ============================================================================

class Side(Enum):
    YES = "YES"
    NO = "NO"


@dataclasses.dataclass
class Moment:
    pulse: int
    beat: int


class Unprintable:
    def __str__(self):
        raise RuntimeError("no text form")


class Named:
    def __str__(self):
        return "named-object"


class TestTotality:
    """canonicalize() never raises."""

    def test_self_referencing_dict(self):
        loop = {"name": "x"}
        loop["self"] = loop
        assert canonicalize(loop) == {"name": "x", "self": CIRCULAR_SENTINEL}

    def test_self_referencing_list(self):
        loop = []
        loop.append(loop)
        assert canonicalize(loop) == [CIRCULAR_SENTINEL]

    def test_shared_sibling_is_not_a_cycle(self):
        """The same list referenced twice side by side is expanded twice."""
        shared = [1, 2]
        assert canonicalize({"a": shared, "b": shared}) == {"a": [1, 2], "b": [1, 2]}

    def test_tuple_becomes_list(self):
        assert canonicalize((1, (2, 3))) == [1, [2, 3]]

    def test_enum_becomes_value(self):
        assert canonicalize({"side": Side.NO}) == {"side": "NO"}

    def test_dataclass_becomes_mapping(self):
        assert canonical_json_string(Moment(pulse=5, beat=2)) == '{"beat":2,"pulse":5}'

    def test_unknown_object_is_stringified(self):
        assert canonicalize([Named()]) == ["named-object"]

    def test_unstringifiable_object(self):
        assert canonicalize(Unprintable()) == UNSERIALIZABLE_SENTINEL

    def test_lone_surrogate_fails_only_at_encoding(self):
        """The string form is produced; UTF-8 encoding is what fails."""
        assert canonical_json_string("\ud800") == '"\ud800"'
        with pytest.raises(UnicodeEncodeError):
            canonical_json_bytes("\ud800")


# ============================================================================
# TEST: ROUND TRIP
# ============================================================================

class TestRoundTrip:
    """parse_canonical inverts the writer for JSON-shaped values."""

    def test_payload_round_trip(self):
        payload = {
            "lockedStakeMicro": "123456789012345678901234567890",
            "openedAt": {"pulse": 1, "beat": 2, "stepIndex": 3},
            "label": "tab\there ]]> <end>",
            "flags": [True, None],
        }
        data = canonical_json_bytes(payload)
        assert parse_canonical(data) == payload
        assert canonical_json_bytes(parse_canonical(data)) == data

    def test_parse_accepts_text(self):
        assert parse_canonical('{"a":1}') == {"a": 1}

    def test_idempotent(self):
        value = {"b": [1.5, "x"], "a": {"d": None, "c": False}}
        once = canonical_json_string(value)
        assert canonical_json_string(parse_canonical(once)) == once
