"""
Comparator - run the full expand / dispatch / diff / validate / aggregate flow.

Per-endpoint failures end up on the records; only configuration problems
detected before dispatch (including a chain id mismatch) raise.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from rpc_compare.api.jsonrpc import JsonRpcClient
from rpc_compare.api.openrpc import ApiSpecification
from rpc_compare.comparison.aggregator import ResultCollector, bucket_by_namespace, build_record, summarize
from rpc_compare.comparison.diff import diff_responses
from rpc_compare.comparison.dispatcher import Dispatcher
from rpc_compare.comparison.schema_validator import SchemaValidator
from rpc_compare.comparison.variants import (
    expand_configured_methods,
    expand_specification,
    filter_descriptors,
)
from rpc_compare.config.settings import ComparisonSettings
from rpc_compare.domain.endpoints import EndpointRegistry
from rpc_compare.domain.models import (
    CallDescriptor,
    ComparisonRecord,
    ComparisonSummary,
    EndpointResponse,
)
from rpc_compare.exceptions import ConfigurationError, TransportError
from rpc_compare.utils.logger import get_logger, StructuredLogger


def _get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ComparisonRun:
    """Ordered records and summary produced by one comparison run."""

    name: str
    endpoints: List[str]
    records: List[ComparisonRecord] = field(default_factory=list)
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)
    started_at: str = field(default_factory=_get_iso_timestamp)
    duration_ms: float = 0.0

    def scopes(self):
        return bucket_by_namespace(self.records)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "metadata": {
                "name": self.name,
                "endpoints": self.endpoints,
                "started_at": self.started_at,
                "duration_ms": round(self.duration_ms, 2),
            },
            "summary": self.summary.to_dict(),
            "scopes": {
                namespace: {
                    method: [record.variant_label for record in records]
                    for method, records in methods.items()
                }
                for namespace, methods in self.scopes().items()
            },
            "records": [record.to_dict() for record in self.records],
        }


class Comparator:
    """
    Compare JSON-RPC responses across every configured endpoint.

    Attributes:
        settings: Run configuration
        registry: Endpoints under comparison
        specification: Optional OpenRPC document (params and result schemas)
        variants: Optional method -> parameter-variant table
    """

    def __init__(
        self,
        settings: ComparisonSettings,
        registry: Optional[EndpointRegistry] = None,
        specification: Optional[ApiSpecification] = None,
        variants: Optional[Dict[str, List[List[Any]]]] = None,
        client: Optional[JsonRpcClient] = None,
        validator: Optional[SchemaValidator] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self.settings = settings
        self.registry = registry if registry is not None else settings.build_registry()
        self.specification = specification
        self.variants = variants or {}
        self.logger = logger or get_logger(__name__)
        self.client = client or JsonRpcClient(
            timeout_seconds=settings.timeout_seconds, verbose=settings.verbose
        )
        self.dispatcher = Dispatcher(self.registry, self.client, settings.concurrency)
        self.collector = ResultCollector()

        if settings.validate_schema and validator is None:
            if specification is None:
                raise ConfigurationError(
                    "Schema validation requested but no API specification was provided"
                )
            validator = SchemaValidator.from_specification(specification)
        self.validator = validator if settings.validate_schema else None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def build_descriptors(self, method_filter: Optional[Iterable[str]] = None) -> List[CallDescriptor]:
        """
        Expand configured methods (or every specification method) into descriptors.

        Raises:
            ConfigurationError: If there is nothing to compare
        """
        if self.settings.methods:
            descriptors = expand_configured_methods(
                self.settings.methods,
                self.settings.custom_parameters,
                self.variants,
                self.specification,
            )
        elif self.specification is not None:
            descriptors = expand_specification(self.specification, self.variants)
        else:
            raise ConfigurationError("No methods configured and no API specification provided")

        return filter_descriptors(descriptors, method_filter)

    def verify_network_consistency(self) -> Optional[str]:
        """
        Check that every reachable endpoint reports the same ``eth_chainId``.

        Unreachable endpoints are skipped; they classify as call errors later.

        Returns:
            The shared chain id, or None when fewer than two endpoints answered

        Raises:
            ConfigurationError: If two endpoints report different chain ids
        """
        if len(self.registry) <= 1:
            return None

        chain_ids: Dict[str, Any] = {}
        for endpoint in self.registry:
            try:
                body = self.client.call(endpoint.name, endpoint.url, "eth_chainId", [])
            except TransportError as exc:
                self.logger.warning(
                    "Skipping unreachable endpoint in network check",
                    operation="verify_network",
                    context={"endpoint": endpoint.name},
                    error=str(exc),
                )
                continue

            if not isinstance(body, dict) or "result" not in body:
                self.logger.warning(
                    "Endpoint returned no chain id",
                    operation="verify_network",
                    context={"endpoint": endpoint.name},
                )
                continue
            chain_ids[endpoint.name] = body["result"]

        if len(chain_ids) < 2:
            return None

        reference_name, reference_id = next(iter(chain_ids.items()))
        for name, chain_id in chain_ids.items():
            if chain_id != reference_id:
                raise ConfigurationError(
                    f"Network mismatch: {reference_name} has chainId {reference_id}, "
                    f"but {name} has chainId {chain_id}"
                )

        self.logger.info(
            "Network consistency verified",
            operation="verify_network",
            context={"chain_id": reference_id, "endpoints": list(chain_ids)},
        )
        return reference_id

    def evaluate(
        self, descriptor: CallDescriptor, responses: Sequence[EndpointResponse]
    ) -> ComparisonRecord:
        """Diff, validate and classify one descriptor's responses."""
        diffs = diff_responses(responses)
        violations = (
            self.validator.validate_all(descriptor.method, list(responses))
            if self.validator is not None
            else {}
        )
        return build_record(descriptor, self.registry.names(), responses, diffs, violations)

    def compare(self, descriptor: CallDescriptor) -> ComparisonRecord:
        """Dispatch and evaluate a single descriptor."""
        record = self.evaluate(descriptor, self.dispatcher.dispatch(descriptor))
        self.collector.add(record)
        return record

    def run(
        self,
        descriptors: Optional[Sequence[CallDescriptor]] = None,
        verify_network: bool = True,
        method_filter: Optional[Iterable[str]] = None,
    ) -> ComparisonRun:
        """
        Run every comparison and return the ordered result set.

        Raises:
            ConfigurationError: Before dispatch, for configuration problems
        """
        if descriptors is None:
            descriptors = self.build_descriptors(method_filter)

        if verify_network:
            self.verify_network_consistency()

        # Each run starts from an empty collector; results() reflects the latest run
        self.collector = ResultCollector()
        run = ComparisonRun(name=self.settings.name, endpoints=self.registry.names())
        start_time = time.time()
        self.logger.info(
            "Starting JSON-RPC response comparison",
            operation="run_comparisons",
            context={
                "descriptors": len(descriptors),
                "endpoints": len(self.registry),
                "concurrency": self.dispatcher.concurrency,
            },
        )

        for descriptor, responses in self.dispatcher.dispatch_all(descriptors):
            record = self.evaluate(descriptor, responses)
            self.collector.add(record)
            self.logger.debug(
                "Comparison classified",
                operation="run_comparisons",
                context={
                    "variant": descriptor.variant_label,
                    "classification": record.classification.value,
                    "diffs": len(record.diffs),
                },
            )

        run.records = self.collector.records()
        run.summary = summarize(run.records)
        run.duration_ms = (time.time() - start_time) * 1000

        self.logger.info(
            f"Comparison completed with {run.summary.total_comparisons} comparisons",
            operation="run_comparisons",
            context=run.summary.to_dict(),
            duration_ms=run.duration_ms,
        )
        return run

    def results(self) -> List[ComparisonRecord]:
        return self.collector.records()

    def save_results(self, path: str) -> Path:
        """Write the collected records to ``path`` as a JSON array."""
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        records = [record.to_dict() for record in self.results()]
        output_path.write_text(json.dumps(records, indent=2, default=str), encoding="utf-8")
        return output_path
