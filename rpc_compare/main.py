"""
Command-line entry point for JSON-RPC response comparison.

Usage:
    rpc-compare --clients geth:http://localhost:8545,nethermind:http://localhost:8546 \
        --spec https://raw.githubusercontent.com/ethereum/execution-apis/main/openrpc.json \
        --variations config/param_variations.yaml --validate

    rpc-compare --config config/compare.yaml

Exit status:
    0  run completed (whatever the classifications)
    1  run completed with non-matching records and --fail-on-diff was given
    2  configuration error, nothing was dispatched
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rpc_compare.api.openrpc import load_openrpc_spec
from rpc_compare.comparison.comparator import Comparator
from rpc_compare.comparison.reporter import ReportWriter
from rpc_compare.config.settings import (
    ComparisonSettings,
    load_comparison_config,
    load_param_variations,
    setup_logging_redaction,
)
from rpc_compare.domain.endpoints import EndpointRegistry
from rpc_compare.exceptions import ConfigurationError
from rpc_compare.utils.logger import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_DIFFERENCES = 1
EXIT_CONFIGURATION_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpc-compare",
        description="Compare JSON-RPC responses across blockchain node implementations",
    )
    parser.add_argument("--config", help="Path to comparison YAML configuration")
    parser.add_argument("--spec", help="Path or URL to an OpenRPC specification")
    parser.add_argument("--variations", help="Path to parameter variations YAML file")
    parser.add_argument(
        "--clients", help="Comma-separated list of client endpoints in format name:url"
    )
    parser.add_argument("--output", help="Output directory for results")
    parser.add_argument(
        "--validate",
        action="store_true",
        default=None,
        help="Validate responses against the OpenRPC result schemas",
    )
    parser.add_argument("--concurrency", type=int, help="Number of concurrent requests")
    parser.add_argument("--timeout", type=int, help="Request timeout in seconds")
    parser.add_argument(
        "--filter", help="Comma-separated list of methods to include (default: all)"
    )
    parser.add_argument(
        "--curl",
        action="store_true",
        default=None,
        help="Log curl equivalent commands for each JSON-RPC request",
    )
    parser.add_argument(
        "--skip-network-check",
        action="store_true",
        help="Do not verify that all clients report the same eth_chainId",
    )
    parser.add_argument(
        "--fail-on-diff",
        action="store_true",
        help="Exit with status 1 when any comparison is not a match",
    )
    parser.add_argument(
        "--schema-cache",
        help="Directory used to cache a downloaded OpenRPC specification",
    )
    return parser


def resolve_settings(args: argparse.Namespace) -> ComparisonSettings:
    """Config file first, then environment overrides, then command-line flags."""
    settings = load_comparison_config(args.config) if args.config else ComparisonSettings()
    settings.apply_env_overrides()

    if args.clients:
        registry = EndpointRegistry.from_client_string(args.clients)
        settings.endpoints = {endpoint.name: endpoint.url for endpoint in registry}
    if args.spec:
        settings.spec_source = args.spec
    if args.variations:
        settings.variations_path = args.variations
    if args.output:
        settings.output_dir = args.output
    if args.validate is not None:
        settings.validate_schema = args.validate
    if args.concurrency is not None:
        settings.concurrency = args.concurrency
    if args.timeout is not None:
        settings.timeout_seconds = args.timeout
    if args.curl is not None:
        settings.verbose = args.curl

    settings.normalize()
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = resolve_settings(args)
        registry = settings.build_registry()
        setup_logging_redaction(registry)

        specification = None
        if settings.spec_source:
            cache_dir = Path(args.schema_cache) if args.schema_cache else None
            specification = load_openrpc_spec(settings.spec_source, cache_dir=cache_dir)

        variants = (
            load_param_variations(settings.variations_path) if settings.variations_path else {}
        )

        comparator = Comparator(
            settings, registry=registry, specification=specification, variants=variants
        )
        method_filter = args.filter.split(",") if args.filter else None
        descriptors = comparator.build_descriptors(method_filter)
        logger.info(
            f"Loaded {len(descriptors)} call descriptors (including variations)",
            operation="main",
        )

        run = comparator.run(descriptors, verify_network=not args.skip_network_check)
    except ConfigurationError as e:
        logger.error("Configuration error; no comparisons were run", operation="main", error=str(e))
        return EXIT_CONFIGURATION_ERROR

    json_path, md_path = ReportWriter(settings.output_dir).write_reports(run)
    logger.info(
        "Comparison reports written",
        operation="main",
        context={"json": str(json_path), "markdown": str(md_path)},
    )

    if args.fail_on_diff and run.summary.matches != run.summary.total_comparisons:
        return EXIT_DIFFERENCES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
