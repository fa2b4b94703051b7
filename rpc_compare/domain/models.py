"""
Domain models for JSON-RPC response comparison.

Call descriptors flow from variant expansion into the dispatcher; endpoint
responses flow from the dispatcher into the differ and schema validator;
comparison records are the unit of output handed to report writers.
"""

import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

VARIANT_LABEL = re.compile(r"^(.*)_variant(\d+)$")


class DiffKind(Enum):
    """Kinds of structural discrepancy between two response bodies."""

    VALUE_MISMATCH = "value_mismatch"
    TYPE_MISMATCH = "type_mismatch"
    FIELD_MISSING = "field_missing"
    FIELD_EXTRA = "field_extra"
    ARRAY_LENGTH_MISMATCH = "array_length_mismatch"


class Classification(Enum):
    """Final verdict for one call descriptor."""

    MATCH = "match"
    DIFFER = "differ"
    SCHEMA_ERROR = "schema_error"
    CALL_ERROR = "call_error"


@dataclass(frozen=True)
class CallDescriptor:
    """One concrete (method, params) unit of comparison work."""

    method: str
    params: Tuple[Any, ...] = ()
    variant_label: str = ""

    def __post_init__(self):
        if not self.variant_label:
            object.__setattr__(self, "variant_label", self.method)
        if not isinstance(self.params, tuple):
            object.__setattr__(self, "params", tuple(self.params))

    def params_list(self) -> List[Any]:
        """Return params as a JSON-serializable list."""
        return list(self.params)

    def sort_key(self) -> Tuple[str, str, int, str]:
        """Order by method, then variant number (variant10 after variant2)."""
        match = VARIANT_LABEL.match(self.variant_label)
        if match:
            return (self.method, match.group(1), int(match.group(2)), self.variant_label)
        return (self.method, self.variant_label, 0, self.variant_label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "params": self.params_list(),
            "variant_label": self.variant_label,
        }


@dataclass(frozen=True)
class EndpointResponse:
    """Decoded body (or transport failure) from one endpoint for one descriptor."""

    endpoint_name: str
    raw_body: Any = None
    transport_error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.transport_error is None


@dataclass(frozen=True)
class DiffEntry:
    """
    One discrepancy at a dotted/bracketed path.

    ``value_a`` belongs to the baseline (reference) endpoint and ``value_b`` to
    the endpoint compared against it. ``endpoint`` and ``reference`` carry the
    endpoint names once the differ has merged per-pair lists.
    """

    path: str
    kind: DiffKind
    value_a: Any = None
    value_b: Any = None
    endpoint: str = ""
    reference: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.kind.value
        return data


@dataclass
class SchemaViolation:
    """Validation errors for one endpoint's response."""

    endpoint_name: str
    messages: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.messages)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ComparisonRecord:
    """Classified outcome of comparing all endpoints for one descriptor."""

    descriptor: CallDescriptor
    responses: Dict[str, Any]
    diffs: Tuple[DiffEntry, ...]
    schema_violations: Dict[str, SchemaViolation]
    classification: Classification
    transport_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return self.descriptor.method

    @property
    def variant_label(self) -> str:
        return self.descriptor.variant_label

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "method": self.descriptor.method,
            "variant_label": self.descriptor.variant_label,
            "params": self.descriptor.params_list(),
            "classification": self.classification.value,
            "responses": self.responses,
            "diffs": [entry.to_dict() for entry in self.diffs],
            "schema_violations": {
                name: violation.to_dict()
                for name, violation in sorted(self.schema_violations.items())
            },
            "transport_errors": dict(sorted(self.transport_errors.items())),
        }


@dataclass
class ComparisonSummary:
    """Counts folded over a set of comparison records."""

    total_methods: int = 0
    total_comparisons: int = 0
    matches: int = 0
    differences: int = 0
    schema_errors: int = 0
    call_errors: int = 0

    def match_percentage(self) -> float:
        if self.total_comparisons == 0:
            return 100.0
        return (self.matches / self.total_comparisons) * 100.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["match_percentage"] = round(self.match_percentage(), 2)
        return data
