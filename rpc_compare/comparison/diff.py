"""
Structural differ for decoded JSON-RPC response bodies.

Values are classified into JSON kinds and compared recursively with path
tracking. The only normalization applied is the blockchain zero-value rule:
``"0x"`` and ``"0x000..."`` are the same value.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Sequence

from rpc_compare.domain.models import DiffEntry, DiffKind, EndpointResponse


class JsonKind(Enum):
    """Tag of a decoded JSON value."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


def json_kind(value: Any) -> JsonKind:
    """
    Tag a decoded JSON value.

    ``bool`` is checked before numbers because it subclasses ``int``.
    Tuples are treated as arrays.
    """
    if value is None:
        return JsonKind.NULL
    if isinstance(value, bool):
        return JsonKind.BOOLEAN
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    raise TypeError(f"Unsupported JSON value type: {type(value).__name__}")


def is_zero_hex(value: str) -> bool:
    """True if ``value`` is ``0x`` followed only by ``0`` digits (possibly none)."""
    if not value.startswith("0x"):
        return False
    return all(char == "0" for char in value[2:])


def hex_zero_equivalent(value_a: str, value_b: str) -> bool:
    """``"0x"`` equals any all-zero hex string, in either order."""
    return (value_a == "0x" and is_zero_hex(value_b)) or (
        value_b == "0x" and is_zero_hex(value_a)
    )


def join_key(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def join_index(path: str, index: int) -> str:
    return f"{path}[{index}]"


def deep_compare(value_a: Any, value_b: Any, path: str = "") -> List[DiffEntry]:
    """
    Recursively compare two decoded JSON values.

    Args:
        value_a: Baseline value
        value_b: Value compared against the baseline
        path: Dotted/bracketed path of these values ("" for the root)

    Returns:
        Ordered list of DiffEntry; empty when the values are equivalent
    """
    kind_a = json_kind(value_a)
    kind_b = json_kind(value_b)

    if kind_a is JsonKind.NULL and kind_b is JsonKind.NULL:
        return []

    if kind_a is JsonKind.NULL or kind_b is JsonKind.NULL:
        return [DiffEntry(path, DiffKind.VALUE_MISMATCH, value_a, value_b)]

    if kind_a is not kind_b:
        return [DiffEntry(path, DiffKind.TYPE_MISMATCH, kind_a.value, kind_b.value)]

    if kind_a is JsonKind.OBJECT:
        return _compare_objects(path, value_a, value_b)

    if kind_a is JsonKind.ARRAY:
        return _compare_arrays(path, value_a, value_b)

    return _compare_scalars(path, kind_a, value_a, value_b)


def _compare_objects(path: str, obj_a: Dict[str, Any], obj_b: Dict[str, Any]) -> List[DiffEntry]:
    differences: List[DiffEntry] = []

    # Sorted for stable output; key order is not part of equality
    for key in sorted(set(obj_a) | set(obj_b)):
        key_path = join_key(path, key)

        if key not in obj_a:
            differences.append(DiffEntry(key_path, DiffKind.FIELD_MISSING, None, obj_b[key]))
            continue

        if key not in obj_b:
            differences.append(DiffEntry(key_path, DiffKind.FIELD_EXTRA, obj_a[key], None))
            continue

        differences.extend(deep_compare(obj_a[key], obj_b[key], key_path))

    return differences


def _compare_arrays(path: str, arr_a: Sequence[Any], arr_b: Sequence[Any]) -> List[DiffEntry]:
    differences: List[DiffEntry] = []

    if len(arr_a) != len(arr_b):
        differences.append(
            DiffEntry(path, DiffKind.ARRAY_LENGTH_MISMATCH, len(arr_a), len(arr_b))
        )

    # Shared prefix only; extra trailing items are covered by the length entry
    for index in range(min(len(arr_a), len(arr_b))):
        differences.extend(deep_compare(arr_a[index], arr_b[index], join_index(path, index)))

    return differences


def _compare_scalars(path: str, kind: JsonKind, value_a: Any, value_b: Any) -> List[DiffEntry]:
    if kind is JsonKind.STRING and hex_zero_equivalent(value_a, value_b):
        return []

    if value_a != value_b:
        return [DiffEntry(path, DiffKind.VALUE_MISMATCH, value_a, value_b)]

    return []


def diff_responses(responses: Sequence[EndpointResponse]) -> List[DiffEntry]:
    """
    Diff every successful endpoint against the first successful one.

    Responses carrying a transport error are skipped. Each entry is tagged with
    the endpoint it came from and the reference it was compared against.
    """
    successful = [response for response in responses if response.ok]
    if len(successful) < 2:
        return []

    reference = successful[0]
    merged: List[DiffEntry] = []
    for other in successful[1:]:
        for entry in deep_compare(reference.raw_body, other.raw_body):
            merged.append(
                DiffEntry(
                    path=entry.path,
                    kind=entry.kind,
                    value_a=entry.value_a,
                    value_b=entry.value_b,
                    endpoint=other.endpoint_name,
                    reference=reference.endpoint_name,
                )
            )
    return merged


def format_differences(diffs: Sequence[DiffEntry]) -> str:
    """Render differences in a human-readable block."""
    if not diffs:
        return "No differences found."

    lines = [f"Found {len(diffs)} differences:"]

    for number, entry in enumerate(diffs, start=1):
        lines.append(f"{number}. Path: {entry.path or '<root>'}")
        lines.append(f"   Type: {entry.kind.value}")

        if entry.kind is DiffKind.VALUE_MISMATCH:
            lines.append(f"   Value 1: {entry.value_a}")
            lines.append(f"   Value 2: {entry.value_b}")
        elif entry.kind is DiffKind.TYPE_MISMATCH:
            lines.append(f"   Type 1: {entry.value_a}")
            lines.append(f"   Type 2: {entry.value_b}")
        elif entry.kind is DiffKind.FIELD_MISSING:
            lines.append("   Field missing in first response")
            lines.append(f"   Value in second: {entry.value_b}")
        elif entry.kind is DiffKind.FIELD_EXTRA:
            lines.append("   Field extra in first response")
            lines.append(f"   Value in first: {entry.value_a}")
        elif entry.kind is DiffKind.ARRAY_LENGTH_MISMATCH:
            lines.append(f"   Length 1: {entry.value_a}")
            lines.append(f"   Length 2: {entry.value_b}")

        if entry.reference:
            lines.append(f"   Reference: {entry.reference} vs {entry.endpoint}")

        lines.append("")

    return "\n".join(lines)
