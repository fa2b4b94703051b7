"""
OpenRPC specification loader.

Reads an OpenRPC document from a local file or an http(s) URL and exposes the
per-method parameter schemas (with defaults) and result schemas consumed by
variant expansion and schema validation.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from rpc_compare.exceptions import ConfigurationError
from rpc_compare.utils.logger import get_logger, log_operation

logger = get_logger(__name__)

ETHEREUM_EXECUTION_APIS_URL = (
    "https://raw.githubusercontent.com/ethereum/execution-apis/main/openrpc.json"
)
DOWNLOAD_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class ParamSpec:
    """One declared method parameter."""

    name: str
    schema: Dict[str, Any] = field(default_factory=dict)
    required: bool = False

    @property
    def schema_type(self) -> Optional[str]:
        declared = self.schema.get("type")
        # "type" may be a list such as ["string", "null"]; the first entry wins
        if isinstance(declared, list):
            return declared[0] if declared else None
        return declared

    @property
    def has_default(self) -> bool:
        return "default" in self.schema and self.schema["default"] is not None


@dataclass(frozen=True)
class MethodSpec:
    """Declared parameters and result schema for one method."""

    name: str
    params: List[ParamSpec] = field(default_factory=list)
    result_schema: Optional[Dict[str, Any]] = None
    description: str = ""


@dataclass
class ApiSpecification:
    """Parsed OpenRPC document, read-only after load."""

    title: str = ""
    description: str = ""
    version: str = ""
    methods: Dict[str, MethodSpec] = field(default_factory=dict)
    components: Dict[str, Any] = field(default_factory=dict)

    def method_names(self) -> List[str]:
        return list(self.methods.keys())

    def get(self, method: str) -> Optional[MethodSpec]:
        return self.methods.get(method)

    def result_schema_for(self, method: str) -> Optional[Dict[str, Any]]:
        """
        Return a self-contained result schema for ``method``.

        The document's ``components`` are attached at the schema root so
        ``#/components/schemas/...`` references resolve during validation.
        """
        method_spec = self.methods.get(method)
        if method_spec is None or method_spec.result_schema is None:
            return None

        schema = copy.deepcopy(method_spec.result_schema)
        if self.components and "components" not in schema:
            schema["components"] = copy.deepcopy(self.components)
        return schema

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ApiSpecification":
        """Build from a decoded OpenRPC document."""
        if not isinstance(document, dict):
            raise ConfigurationError("Invalid OpenRPC spec: document is not a JSON object")

        raw_methods = document.get("methods")
        if not isinstance(raw_methods, list):
            raise ConfigurationError("Invalid OpenRPC spec: methods not found or invalid format")

        info = document.get("info") or {}
        spec = cls(
            title=info.get("title", ""),
            description=info.get("description", ""),
            version=str(info.get("version", "")),
            components=document.get("components") or {},
        )

        for raw_method in raw_methods:
            if not isinstance(raw_method, dict):
                continue
            name = raw_method.get("name")
            if not isinstance(name, str) or not name:
                continue
            if name in spec.methods:
                logger.debug(
                    "Skipping duplicate method in OpenRPC spec",
                    operation="parse_openrpc",
                    context={"method": name},
                )
                continue
            spec.methods[name] = _parse_method(raw_method)

        return spec


def _parse_method(raw_method: Dict[str, Any]) -> MethodSpec:
    params = []
    for raw_param in raw_method.get("params") or []:
        if not isinstance(raw_param, dict):
            continue
        schema = raw_param.get("schema")
        params.append(
            ParamSpec(
                name=raw_param.get("name", ""),
                schema=schema if isinstance(schema, dict) else {},
                required=bool(raw_param.get("required", False)),
            )
        )

    result_schema = None
    result = raw_method.get("result")
    if isinstance(result, dict) and isinstance(result.get("schema"), dict):
        result_schema = result["schema"]

    return MethodSpec(
        name=raw_method["name"],
        params=params,
        result_schema=result_schema,
        description=raw_method.get("description", "") or raw_method.get("summary", ""),
    )


def is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


@log_operation("load_openrpc_spec")
def load_openrpc_spec(
    source: str,
    cache_dir: Optional[Path] = None,
    http_client: Optional[requests.Session] = None,
) -> ApiSpecification:
    """
    Load an OpenRPC specification from a path or URL.

    Args:
        source: Local file path or http(s) URL
        cache_dir: When set, a downloaded document is written to
            ``cache_dir/openrpc.json`` and reused on later loads
        http_client: Optional requests-like session (useful for testing)

    Returns:
        ApiSpecification

    Raises:
        ConfigurationError: If the document cannot be read or parsed
    """
    if is_url(source):
        cached = Path(cache_dir) / "openrpc.json" if cache_dir is not None else None
        if cached is not None and cached.exists():
            logger.info("Using cached OpenRPC spec", context={"path": str(cached)})
            text = _read_file(cached)
        else:
            text = _download(source, http_client or requests.Session())
            if cached is not None:
                cached.parent.mkdir(parents=True, exist_ok=True)
                cached.write_text(text, encoding="utf-8")
    else:
        text = _read_file(Path(source))

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse OpenRPC spec {source}: {e}") from e

    spec = ApiSpecification.from_document(document)
    logger.info(
        f"Loaded {len(spec.methods)} methods from OpenRPC spec",
        operation="load_openrpc_spec",
        context={"title": spec.title, "version": spec.version},
    )
    return spec


def _read_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"OpenRPC spec file not found: {path}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read OpenRPC spec file {path}: {e}") from e


def _download(url: str, http_client: requests.Session) -> str:
    try:
        response = http_client.get(url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        raise ConfigurationError(f"Failed to download OpenRPC spec: {e}") from e

    if response.status_code != 200:
        raise ConfigurationError(
            f"Failed to download OpenRPC spec: HTTP {response.status_code}"
        )
    return response.text
