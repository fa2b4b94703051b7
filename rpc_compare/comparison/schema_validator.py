"""
Schema validation of JSON-RPC responses against declared result schemas.

Validators are compiled once at construction and only read afterwards, so a
single SchemaValidator can be shared by every worker.
"""

from typing import Any, Dict, Iterator, List, Optional

import jsonschema
from jsonschema import Draft7Validator
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT7

from rpc_compare.api.openrpc import ApiSpecification
from rpc_compare.domain.models import EndpointResponse, SchemaViolation
from rpc_compare.exceptions import ConfigurationError
from rpc_compare.utils.logger import get_logger

logger = get_logger(__name__)


def _format_error(error: jsonschema.ValidationError) -> str:
    location = "result"
    for part in error.absolute_path:
        location += f"[{part}]" if isinstance(part, int) else f".{part}"
    return f"{location}: {error.message}"


def _iter_refs(node: Any) -> Iterator[str]:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            yield ref
        for value in node.values():
            yield from _iter_refs(value)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_refs(item)


def _check_refs(method: str, schema: Dict[str, Any]) -> None:
    """Resolve every $ref up front so a dangling reference fails at startup."""
    resolver = Registry().resolver_with_root(
        Resource.from_contents(schema, default_specification=DRAFT7)
    )
    for ref in _iter_refs(schema):
        try:
            resolver.lookup(ref)
        except Unresolvable as e:
            raise ConfigurationError(
                f"Result schema for method {method} has unresolvable reference {ref}: {e}"
            ) from e


class SchemaValidator:
    """Validate endpoint responses against per-method result schemas."""

    def __init__(self, result_schemas: Dict[str, Dict[str, Any]]):
        """
        Args:
            result_schemas: Mapping of method name to a self-contained JSON Schema

        Raises:
            ConfigurationError: If any schema is itself invalid or holds a
                reference that cannot be resolved
        """
        self._validators: Dict[str, Any] = {}
        for method, schema in result_schemas.items():
            validator_cls = jsonschema.validators.validator_for(schema, default=Draft7Validator)
            try:
                validator_cls.check_schema(schema)
            except jsonschema.SchemaError as e:
                raise ConfigurationError(
                    f"Result schema for method {method} is invalid: {e.message}"
                ) from e
            _check_refs(method, schema)
            self._validators[method] = validator_cls(schema)

        logger.debug(
            "Compiled result schemas",
            operation="compile_schemas",
            context={"methods": len(self._validators)},
        )

    @classmethod
    def from_specification(cls, specification: ApiSpecification) -> "SchemaValidator":
        schemas = {}
        for method in specification.method_names():
            schema = specification.result_schema_for(method)
            if schema is not None:
                schemas[method] = schema
        return cls(schemas)

    def supported_methods(self) -> List[str]:
        return sorted(self._validators)

    def has_schema(self, method: str) -> bool:
        return method in self._validators

    def validate_body(self, method: str, body: Any) -> List[str]:
        """
        Validate one decoded JSON-RPC response body.

        A body carrying ``error`` instead of ``result`` is a valid JSON-RPC
        answer and produces no messages. Methods without a declared result
        schema are not validated.

        Returns:
            Ordered list of human-readable violation messages
        """
        validator = self._validators.get(method)
        if validator is None:
            return []

        if not isinstance(body, dict):
            return [f"response is not a JSON-RPC object (got {type(body).__name__})"]

        if "result" not in body:
            if "error" in body:
                return []
            return ["response missing both result and error fields"]

        try:
            errors = sorted(
                validator.iter_errors(body["result"]),
                key=lambda error: ([str(part) for part in error.absolute_path], error.message),
            )
        except Unresolvable as e:
            return [f"result: schema reference could not be resolved: {e}"]
        return [_format_error(error) for error in errors]

    def validate(self, method: str, response: EndpointResponse) -> Optional[SchemaViolation]:
        """Validate one endpoint's response; None when it conforms or failed transport."""
        if not response.ok:
            return None

        messages = self.validate_body(method, response.raw_body)
        if not messages:
            return None

        logger.debug(
            "Schema violation",
            operation="validate_schema",
            context={
                "method": method,
                "endpoint": response.endpoint_name,
                "violations": len(messages),
            },
        )
        return SchemaViolation(endpoint_name=response.endpoint_name, messages=messages)

    def validate_all(self, method: str, responses: List[EndpointResponse]) -> Dict[str, SchemaViolation]:
        """Validate each endpoint independently."""
        violations: Dict[str, SchemaViolation] = {}
        for response in responses:
            violation = self.validate(method, response)
            if violation is not None:
                violations[response.endpoint_name] = violation
        return violations
