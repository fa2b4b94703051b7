"""
Variant expansion - turn method names into concrete call descriptors.

Expansion is deterministic and order-preserving: the same inputs always yield
the same descriptors in the same order, so diffs are reproducible across runs.
"""

import copy
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from rpc_compare.api.openrpc import ApiSpecification, MethodSpec, ParamSpec
from rpc_compare.domain.models import CallDescriptor

VARIANT_SUFFIX = re.compile(r"_variant\d+$")

_WELL_KNOWN_PARAMS: Dict[str, List[Any]] = {
    "eth_getBalance": ["0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045", "latest"],
    "eth_call": [
        {
            "to": "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
            "data": "0x70a08231000000000000000000000000000000000000000000000000000000000000000a",
        },
        "latest",
    ],
    "eth_getBlockByNumber": ["latest", False],
    "eth_getTransactionCount": ["0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045", "latest"],
}


def zero_value_for_type(schema_type: Optional[str]) -> Any:
    """Type-appropriate zero value for a JSON Schema ``type``."""
    if schema_type == "string":
        return ""
    if schema_type in ("number", "integer"):
        return 0
    if schema_type == "boolean":
        return False
    if schema_type == "array":
        return []
    if schema_type == "object":
        return {}
    return None


def default_param_value(param: ParamSpec) -> Any:
    """Schema default when declared, otherwise the zero value for its type."""
    if param.has_default:
        return copy.deepcopy(param.schema["default"])
    return zero_value_for_type(param.schema_type)


def default_params_for(method: str) -> List[Any]:
    """Known-good parameters for common Ethereum methods; empty list otherwise."""
    return copy.deepcopy(_WELL_KNOWN_PARAMS.get(method, []))


def base_method(label: str) -> str:
    """Strip a ``_variantN`` suffix: ``eth_call_variant2`` -> ``eth_call``."""
    return VARIANT_SUFFIX.sub("", label)


def expand_method(
    method: str,
    variants: Optional[Dict[str, Sequence[Sequence[Any]]]] = None,
    method_spec: Optional[MethodSpec] = None,
) -> List[CallDescriptor]:
    """
    Expand one method into its call descriptors.

    - Listed variants: one descriptor per variant, labeled ``{method}_variant{N}``
      (1-indexed).
    - No variants but declared parameters: one descriptor with default values.
    - Neither: one descriptor with an empty parameter list.
    """
    method_variants = (variants or {}).get(method) or []
    if method_variants:
        return [
            CallDescriptor(
                method=method,
                params=tuple(copy.deepcopy(list(params))),
                variant_label=f"{method}_variant{index}",
            )
            for index, params in enumerate(method_variants, start=1)
        ]

    if method_spec is not None and method_spec.params:
        params = tuple(default_param_value(param) for param in method_spec.params)
        return [CallDescriptor(method=method, params=params, variant_label=method)]

    return [CallDescriptor(method=method, params=(), variant_label=method)]


def expand_specification(
    specification: ApiSpecification,
    variants: Optional[Dict[str, Sequence[Sequence[Any]]]] = None,
) -> List[CallDescriptor]:
    """Expand every method declared in an OpenRPC document, in document order."""
    descriptors: List[CallDescriptor] = []
    for name, method_spec in specification.methods.items():
        descriptors.extend(expand_method(name, variants, method_spec))
    return descriptors


def expand_configured_methods(
    methods: Sequence[str],
    custom_params: Optional[Dict[str, Sequence[Any]]] = None,
    variants: Optional[Dict[str, Sequence[Sequence[Any]]]] = None,
    specification: Optional[ApiSpecification] = None,
) -> List[CallDescriptor]:
    """
    Expand an explicitly configured method list.

    Per-method custom parameters from the config file win over the variant
    table; with neither, the specification's declared parameters are used and
    finally the well-known defaults for common methods.
    """
    custom_params = custom_params or {}
    descriptors: List[CallDescriptor] = []

    for method in methods:
        if method in custom_params:
            descriptors.append(
                CallDescriptor(
                    method=method,
                    params=tuple(copy.deepcopy(list(custom_params[method]))),
                    variant_label=method,
                )
            )
            continue

        method_spec = specification.get(method) if specification is not None else None
        if (variants or {}).get(method) or method_spec is not None:
            descriptors.extend(expand_method(method, variants, method_spec))
            continue

        descriptors.append(
            CallDescriptor(
                method=method, params=tuple(default_params_for(method)), variant_label=method
            )
        )

    return descriptors


def filter_descriptors(
    descriptors: Iterable[CallDescriptor], methods: Optional[Iterable[str]]
) -> List[CallDescriptor]:
    """Keep descriptors whose method or variant label is in ``methods``."""
    if not methods:
        return list(descriptors)
    wanted = {name.strip() for name in methods if name.strip()}
    return [
        descriptor
        for descriptor in descriptors
        if descriptor.method in wanted or descriptor.variant_label in wanted
    ]
