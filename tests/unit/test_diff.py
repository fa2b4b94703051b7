"""
Unit tests for the structural differ (rpc_compare/comparison/diff.py).

Tests covering:
- Reflexivity and key-order independence
- Missing/extra symmetry when operands are swapped
- Hex zero-value normalization
- Array length and type mismatches
- Multi-endpoint merge against the reference endpoint
"""

import pytest

from rpc_compare.comparison.diff import (
    deep_compare,
    diff_responses,
    format_differences,
    hex_zero_equivalent,
    is_zero_hex,
    json_kind,
    JsonKind,
)
from rpc_compare.domain.models import DiffEntry, DiffKind, EndpointResponse


BLOCK = {
    "number": "0x10",
    "hash": "0xabc",
    "transactions": ["0x1", "0x2"],
    "baseFeePerGas": "0x7",
    "uncles": [],
    "extra": {"nested": [1, {"deep": True}], "flag": None},
}


class TestJsonKind:
    """Tests for JSON value tagging."""

    def test_bool_is_not_number(self):
        assert json_kind(True) is JsonKind.BOOLEAN
        assert json_kind(0) is JsonKind.NUMBER
        assert json_kind(1.5) is JsonKind.NUMBER

    def test_containers(self):
        assert json_kind([]) is JsonKind.ARRAY
        assert json_kind(()) is JsonKind.ARRAY
        assert json_kind({}) is JsonKind.OBJECT
        assert json_kind(None) is JsonKind.NULL

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            json_kind(object())


class TestHexZero:
    """Tests for zero-value hex normalization helpers."""

    @pytest.mark.parametrize("value", ["0x", "0x0", "0x0000"])
    def test_zero_hex(self, value):
        assert is_zero_hex(value)

    @pytest.mark.parametrize("value", ["0x1", "0x01", "00", "", "0xz"])
    def test_not_zero_hex(self, value):
        assert not is_zero_hex(value)

    def test_equivalence_requires_bare_prefix_on_one_side(self):
        assert hex_zero_equivalent("0x", "0x0000")
        assert hex_zero_equivalent("0x00", "0x")
        assert not hex_zero_equivalent("0x0", "0x00")
        assert not hex_zero_equivalent("0x", "0x1")


class TestDeepCompare:
    """Tests for recursive comparison of decoded JSON values."""

    def test_identical_values_have_no_diffs(self):
        assert deep_compare(BLOCK, BLOCK) == []

    def test_key_order_does_not_matter(self):
        reordered = dict(reversed(list(BLOCK.items())))
        assert deep_compare(BLOCK, reordered) == []

    def test_both_null(self):
        assert deep_compare(None, None) == []

    def test_one_null_is_value_mismatch(self):
        diffs = deep_compare({"a": None}, {"a": "0x1"})
        assert diffs == [DiffEntry("a", DiffKind.VALUE_MISMATCH, None, "0x1")]

    def test_hex_zero_normalized_in_both_orders(self):
        assert deep_compare({"v": "0x"}, {"v": "0x0000"}) == []
        assert deep_compare({"v": "0x0000"}, {"v": "0x"}) == []

    def test_nonzero_hex_against_zero_padding_differs(self):
        diffs = deep_compare("0x1", "0x0000")
        assert diffs == [DiffEntry("", DiffKind.VALUE_MISMATCH, "0x1", "0x0000")]

    def test_nonzero_hex_against_bare_prefix_differs(self):
        diffs = deep_compare({"v": "0x1"}, {"v": "0x"})
        assert len(diffs) == 1
        assert diffs[0].kind is DiffKind.VALUE_MISMATCH
        assert diffs[0].path == "v"

    def test_missing_and_extra_are_symmetric(self):
        a = {"shared": 1, "only_a": "x"}
        b = {"shared": 1, "only_b": "y"}

        forward = deep_compare(a, b)
        backward = deep_compare(b, a)

        assert [(d.path, d.kind) for d in forward] == [
            ("only_a", DiffKind.FIELD_EXTRA),
            ("only_b", DiffKind.FIELD_MISSING),
        ]
        assert [(d.path, d.kind) for d in backward] == [
            ("only_a", DiffKind.FIELD_MISSING),
            ("only_b", DiffKind.FIELD_EXTRA),
        ]

    def test_array_length_mismatch_with_matching_prefix(self):
        diffs = deep_compare({"txs": ["0x1", "0x2"]}, {"txs": ["0x1", "0x2", "0x3"]})
        assert diffs == [DiffEntry("txs", DiffKind.ARRAY_LENGTH_MISMATCH, 2, 3)]

    def test_array_prefix_elements_are_compared(self):
        diffs = deep_compare([1, 2, 3], [1, 5])
        assert [(d.path, d.kind) for d in diffs] == [
            ("", DiffKind.ARRAY_LENGTH_MISMATCH),
            ("[1]", DiffKind.VALUE_MISMATCH),
        ]

    def test_nested_paths(self):
        other = {**BLOCK, "extra": {"nested": [1, {"deep": False}], "flag": None}}
        diffs = deep_compare(BLOCK, other)
        assert len(diffs) == 1
        assert diffs[0].path == "extra.nested[1].deep"
        assert diffs[0].value_a is True
        assert diffs[0].value_b is False

    def test_type_mismatch_reports_kind_names(self):
        diffs = deep_compare({"gas": "0x5208"}, {"gas": 21000})
        assert diffs == [DiffEntry("gas", DiffKind.TYPE_MISMATCH, "string", "number")]

    def test_bool_against_number_is_type_mismatch(self):
        diffs = deep_compare(True, 1)
        assert diffs[0].kind is DiffKind.TYPE_MISMATCH

    def test_integer_and_float_compare_numerically(self):
        assert deep_compare(1, 1.0) == []


class TestDiffResponses:
    """Tests for merging per-endpoint diffs against the reference."""

    def test_compares_against_first_successful_endpoint(self):
        responses = [
            EndpointResponse("down", None, "down: connection refused"),
            EndpointResponse("geth", {"result": "0x1"}),
            EndpointResponse("nethermind", {"result": "0x2"}),
            EndpointResponse("erigon", {"result": "0x1"}),
        ]

        diffs = diff_responses(responses)

        assert len(diffs) == 1
        assert diffs[0].path == "result"
        assert diffs[0].endpoint == "nethermind"
        assert diffs[0].reference == "geth"

    def test_single_success_has_no_diffs(self):
        responses = [
            EndpointResponse("geth", {"result": "0x1"}),
            EndpointResponse("nethermind", None, "timeout"),
        ]
        assert diff_responses(responses) == []


class TestFormatDifferences:
    def test_no_differences(self):
        assert format_differences([]) == "No differences found."

    def test_renders_each_kind(self):
        diffs = [
            DiffEntry("result", DiffKind.VALUE_MISMATCH, "0x1", "0x2", "b", "a"),
            DiffEntry("", DiffKind.ARRAY_LENGTH_MISMATCH, 1, 2),
        ]
        text = format_differences(diffs)
        assert text.startswith("Found 2 differences:")
        assert "Path: result" in text
        assert "Path: <root>" in text
        assert "Reference: a vs b" in text
