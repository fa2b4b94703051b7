"""Domain models for response comparison."""

from .endpoints import Endpoint, EndpointRegistry
from .models import (
    CallDescriptor,
    Classification,
    ComparisonRecord,
    ComparisonSummary,
    DiffEntry,
    DiffKind,
    EndpointResponse,
    SchemaViolation,
)

__all__ = [
    "Endpoint",
    "EndpointRegistry",
    "CallDescriptor",
    "Classification",
    "ComparisonRecord",
    "ComparisonSummary",
    "DiffEntry",
    "DiffKind",
    "EndpointResponse",
    "SchemaViolation",
]
