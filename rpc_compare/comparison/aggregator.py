"""
Result aggregation - classify comparisons and fold them into summaries.

Completed comparisons may arrive in any order from the worker pool; the
collector sorts on (method, variant label) before handing records out.
"""

import threading
from collections import OrderedDict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from rpc_compare.domain.models import (
    CallDescriptor,
    Classification,
    ComparisonRecord,
    ComparisonSummary,
    DiffEntry,
    EndpointResponse,
    SchemaViolation,
)

OTHER_NAMESPACE = "other"


def classify(
    endpoint_names: Sequence[str],
    responses: Mapping[str, object],
    diffs: Sequence[DiffEntry],
    schema_violations: Mapping[str, SchemaViolation],
) -> Classification:
    """
    Classify in priority order: call_error, schema_error, differ, match.

    Schema errors outrank diffs because they are the more actionable signal.
    """
    if any(name not in responses for name in endpoint_names):
        return Classification.CALL_ERROR
    if any(violation.messages for violation in schema_violations.values()):
        return Classification.SCHEMA_ERROR
    if diffs:
        return Classification.DIFFER
    return Classification.MATCH


def build_record(
    descriptor: CallDescriptor,
    endpoint_names: Sequence[str],
    endpoint_responses: Sequence[EndpointResponse],
    diffs: Sequence[DiffEntry],
    schema_violations: Optional[Mapping[str, SchemaViolation]] = None,
) -> ComparisonRecord:
    """Fold differ and validator output into one classified record."""
    responses: Dict[str, object] = {}
    transport_errors: Dict[str, str] = {}

    for response in endpoint_responses:
        if response.ok:
            responses[response.endpoint_name] = response.raw_body
        else:
            transport_errors[response.endpoint_name] = response.transport_error

    # Endpoints that never reported back count as call errors too
    for name in endpoint_names:
        if name not in responses and name not in transport_errors:
            transport_errors[name] = "no response recorded"

    violations = {
        name: violation
        for name, violation in (schema_violations or {}).items()
        if violation.messages
    }

    return ComparisonRecord(
        descriptor=descriptor,
        responses=responses,
        diffs=tuple(diffs),
        schema_violations=violations,
        classification=classify(endpoint_names, responses, diffs, violations),
        transport_errors=transport_errors,
    )


def method_namespace(method: str) -> str:
    """Text before the first underscore: ``eth_call`` -> ``eth``; else ``other``."""
    prefix, separator, _ = method.partition("_")
    if not separator or not prefix:
        return OTHER_NAMESPACE
    return prefix


def sort_records(records: Iterable[ComparisonRecord]) -> List[ComparisonRecord]:
    return sorted(records, key=lambda record: record.descriptor.sort_key())


def bucket_by_namespace(
    records: Iterable[ComparisonRecord],
) -> "OrderedDict[str, OrderedDict[str, List[ComparisonRecord]]]":
    """Group records as namespace -> method -> records, all keys sorted."""
    buckets: Dict[str, Dict[str, List[ComparisonRecord]]] = {}
    for record in sort_records(records):
        scope = buckets.setdefault(method_namespace(record.method), {})
        scope.setdefault(record.method, []).append(record)

    return OrderedDict(
        (namespace, OrderedDict(sorted(methods.items())))
        for namespace, methods in sorted(buckets.items())
    )


def summarize(records: Iterable[ComparisonRecord]) -> ComparisonSummary:
    """Fold records into global counters."""
    summary = ComparisonSummary()
    methods = set()

    for record in records:
        methods.add(record.method)
        summary.total_comparisons += 1
        if record.classification is Classification.MATCH:
            summary.matches += 1
        elif record.classification is Classification.DIFFER:
            summary.differences += 1
        elif record.classification is Classification.SCHEMA_ERROR:
            summary.schema_errors += 1
        elif record.classification is Classification.CALL_ERROR:
            summary.call_errors += 1

    summary.total_methods = len(methods)
    return summary


class ResultCollector:
    """Lock-protected sink for records produced by concurrent workers."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[ComparisonRecord] = []

    def add(self, record: ComparisonRecord) -> None:
        with self._lock:
            self._records.append(record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> List[ComparisonRecord]:
        """Snapshot of all records in deterministic (method, variant) order."""
        with self._lock:
            snapshot = list(self._records)
        return sort_records(snapshot)

    def summary(self) -> ComparisonSummary:
        return summarize(self.records())
