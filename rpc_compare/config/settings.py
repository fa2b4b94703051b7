"""
Configuration loader for JSON-RPC response comparison.

Loads the comparison config and parameter-variation table from YAML,
validates the config against a JSON Schema, applies environment overrides,
and installs log redaction for endpoint credentials.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import parse_qsl, urlsplit

import jsonschema
import yaml

from rpc_compare.config.env_substitution import substitute_env_vars
from rpc_compare.domain.endpoints import Endpoint, EndpointRegistry
from rpc_compare.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_SCHEMA_PATH = Path(__file__).resolve().parent / "comparison.schema.json"

DEFAULT_CONCURRENCY = 5
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_OUTPUT_DIR = "comparison-results"

# Environment overrides, evaluated per call so tests can monkeypatch them
ENV_CONCURRENCY = "RPC_COMPARE_CONCURRENCY"
ENV_TIMEOUT = "RPC_COMPARE_TIMEOUT"
ENV_OUTPUT_DIR = "RPC_COMPARE_OUTPUT_DIR"
ENV_VERBOSE = "RPC_COMPARE_VERBOSE"


@dataclass
class ComparisonSettings:
    """Everything a comparison run needs from configuration."""

    name: str = "JSON-RPC Response Comparison"
    description: str = ""
    endpoints: Dict[str, str] = field(default_factory=dict)
    methods: List[str] = field(default_factory=list)
    custom_parameters: Dict[str, List[Any]] = field(default_factory=dict)
    validate_schema: bool = False
    concurrency: int = DEFAULT_CONCURRENCY
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    output_dir: str = DEFAULT_OUTPUT_DIR
    verbose: bool = False
    spec_source: Optional[str] = None
    variations_path: Optional[str] = None

    def __post_init__(self):
        self.normalize()

    def normalize(self) -> None:
        """Non-positive concurrency or timeout fall back to defaults."""
        if not self.concurrency or self.concurrency <= 0:
            self.concurrency = DEFAULT_CONCURRENCY
        if not self.timeout_seconds or self.timeout_seconds <= 0:
            self.timeout_seconds = DEFAULT_TIMEOUT_SECONDS
        if not self.output_dir:
            self.output_dir = DEFAULT_OUTPUT_DIR

    def build_registry(self) -> EndpointRegistry:
        """
        Raises:
            ConfigurationError: If no endpoints are configured or any is invalid
        """
        return EndpointRegistry.from_mapping(self.endpoints)

    def apply_env_overrides(self, environ: Optional[Dict[str, str]] = None) -> None:
        """Override numeric and path settings from RPC_COMPARE_* variables."""
        env = os.environ if environ is None else environ

        concurrency = env.get(ENV_CONCURRENCY)
        if concurrency:
            self.concurrency = _parse_int(ENV_CONCURRENCY, concurrency)
        timeout = env.get(ENV_TIMEOUT)
        if timeout:
            self.timeout_seconds = _parse_int(ENV_TIMEOUT, timeout)
        output_dir = env.get(ENV_OUTPUT_DIR)
        if output_dir:
            self.output_dir = output_dir
        verbose = env.get(ENV_VERBOSE)
        if verbose:
            self.verbose = verbose.lower() == "true"

        self.normalize()


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _load_yaml(path: str, what: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError as e:
        logger.error(f"{what} file not found: {path}")
        raise ConfigurationError(f"{what} file not found: {path}") from e

    try:
        return yaml.safe_load(substitute_env_vars(content))
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in {what.lower()}: {e}")
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e


def load_config_schema() -> Dict[str, Any]:
    with open(CONFIG_SCHEMA_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


def settings_from_dict(config: Dict[str, Any]) -> ComparisonSettings:
    """
    Validate a decoded config mapping and convert it to settings.

    Raises:
        ConfigurationError: If the mapping does not match the config schema
    """
    try:
        jsonschema.validate(instance=config, schema=load_config_schema())
    except jsonschema.ValidationError as e:
        logger.error(f"Comparison configuration failed schema validation: {e.message}")
        raise ConfigurationError(f"Comparison configuration validation failed: {e.message}") from e

    endpoints: Dict[str, str] = {}
    for client in config.get("clients", []):
        if client["name"] in endpoints:
            raise ConfigurationError(f"Duplicate client name in configuration: {client['name']}")
        endpoints[client["name"]] = client["url"]

    methods: List[str] = []
    custom_parameters: Dict[str, List[Any]] = {}
    for entry in config.get("methods", []):
        if isinstance(entry, str):
            methods.append(entry)
            continue
        methods.append(entry["name"])
        if entry.get("params"):
            custom_parameters[entry["name"]] = entry["params"]

    return ComparisonSettings(
        name=config.get("name") or ComparisonSettings.name,
        description=config.get("description", ""),
        endpoints=endpoints,
        methods=methods,
        custom_parameters=custom_parameters,
        validate_schema=config.get("validate_schema", False),
        concurrency=config.get("concurrency", DEFAULT_CONCURRENCY),
        timeout_seconds=config.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        output_dir=config.get("output_dir", DEFAULT_OUTPUT_DIR),
        verbose=config.get("verbose", False),
        spec_source=config.get("spec"),
        variations_path=config.get("variations"),
    )


def load_comparison_config(config_path: str) -> ComparisonSettings:
    """
    Load the comparison configuration from YAML.

    Args:
        config_path: Path to the comparison YAML file

    Raises:
        ConfigurationError: If the file is missing, malformed, or invalid
    """
    config = _load_yaml(config_path, "Comparison configuration")
    if config is None:
        logger.warning(f"Empty comparison configuration: {config_path}")
        config = {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Comparison configuration must be a mapping: {config_path}")

    settings = settings_from_dict(config)
    logger.info(
        f"Loaded comparison configuration with {len(settings.endpoints)} clients "
        f"and {len(settings.methods)} methods from {config_path}"
    )
    return settings


def load_param_variations(variations_path: str) -> Dict[str, List[List[Any]]]:
    """
    Load the parameter-variation table: method name -> list of param arrays.

    Raises:
        ConfigurationError: If the file is missing or not shaped as a table
    """
    variations = _load_yaml(variations_path, "Parameter variations")
    if variations is None:
        return {}
    if not isinstance(variations, dict):
        raise ConfigurationError(f"Parameter variations must be a mapping: {variations_path}")

    for method, entries in variations.items():
        if not isinstance(entries, list) or not all(isinstance(p, list) for p in entries):
            raise ConfigurationError(
                f"Parameter variations for {method} must be a list of parameter arrays"
            )

    logger.info(f"Loaded parameter variations for {len(variations)} methods")
    return {str(method): entries for method, entries in variations.items()}


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent API key leakage.
    """

    def __init__(self, secrets: Optional[Iterable[str]] = None):
        """
        Args:
            secrets: Secret strings to redact; values of 3 chars or fewer are ignored
        """
        super().__init__()
        self.redacted_values: set[str] = {
            secret for secret in (secrets or []) if secret and len(secret) > 3
        }

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        try:
            record.msg = self._redact_string(str(record.msg))
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
                elif isinstance(record.args, (list, tuple)):
                    record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Error during secret redaction: {e}")
        return True

    def _redact_string(self, text: str) -> str:
        # Longest first so a secret containing another is redacted whole
        for secret in sorted(self.redacted_values, key=len, reverse=True):
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


def secrets_from_endpoints(registry: Iterable[Endpoint]) -> List[str]:
    """Extract credential fragments embedded in endpoint URLs."""
    secrets: List[str] = []
    for endpoint in registry:
        parts = urlsplit(endpoint.url)
        if parts.password:
            secrets.append(parts.password)
        secrets.extend(value for _, value in parse_qsl(parts.query) if value)
        secrets.extend(segment for segment in parts.path.split("/") if len(segment) >= 20)
    return secrets


def setup_logging_redaction(
    registry: Iterable[Endpoint], logger_instance: Optional[logging.Logger] = None
) -> SecretRedactionFilter:
    """
    Attach a redaction filter for endpoint secrets.

    Without an explicit logger the filter goes on the root logger and on every
    handler owned by an ``rpc_compare`` logger, since structured loggers emit
    through their own handlers.
    """
    redaction_filter = SecretRedactionFilter(secrets_from_endpoints(registry))

    if logger_instance is not None:
        targets = [logger_instance]
    else:
        targets = [logging.getLogger()]
        for name, candidate in list(logging.Logger.manager.loggerDict.items()):
            if name.startswith("rpc_compare") and isinstance(candidate, logging.Logger):
                targets.append(candidate)

    for target in targets:
        target.addFilter(redaction_filter)
        for handler in target.handlers:
            handler.addFilter(redaction_filter)
    return redaction_filter
