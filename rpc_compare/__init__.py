"""Cross-validate JSON-RPC responses across blockchain node implementations."""

__version__ = "0.1.0"
