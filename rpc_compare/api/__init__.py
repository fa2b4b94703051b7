"""JSON-RPC transport and OpenRPC specification loading."""

from .jsonrpc import JsonRpcClient, build_envelope, format_curl_command
from .openrpc import ApiSpecification, MethodSpec, ParamSpec, load_openrpc_spec

__all__ = [
    "JsonRpcClient",
    "build_envelope",
    "format_curl_command",
    "ApiSpecification",
    "MethodSpec",
    "ParamSpec",
    "load_openrpc_spec",
]
