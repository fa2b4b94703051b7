"""Response comparison engine: expansion, dispatch, diffing, validation, aggregation."""

from rpc_compare.comparison.aggregator import (
    ResultCollector,
    bucket_by_namespace,
    build_record,
    classify,
    method_namespace,
    summarize,
)
from rpc_compare.comparison.comparator import Comparator, ComparisonRun
from rpc_compare.comparison.diff import deep_compare, diff_responses, format_differences
from rpc_compare.comparison.dispatcher import Dispatcher
from rpc_compare.comparison.schema_validator import SchemaValidator
from rpc_compare.comparison.variants import expand_method, expand_specification

__all__ = [
    "ResultCollector",
    "bucket_by_namespace",
    "build_record",
    "classify",
    "method_namespace",
    "summarize",
    "Comparator",
    "ComparisonRun",
    "deep_compare",
    "diff_responses",
    "format_differences",
    "Dispatcher",
    "SchemaValidator",
    "expand_method",
    "expand_specification",
]
