"""
Exception hierarchy for the comparison engine.

Transport failures are recorded per endpoint and never abort a run.
Configuration failures happen before any dispatch and halt the run.
"""

from typing import Optional


class RpcCompareError(Exception):
    """Base exception for all comparison engine errors."""

    pass


class ConfigurationError(RpcCompareError):
    """
    Raised for a missing or invalid endpoint registry, config file,
    variant table, or API specification.

    Fatal at startup: aborts before any request is dispatched.
    """

    pass


class TransportError(RpcCompareError):
    """
    Raised when a JSON-RPC call fails at the network level.

    Covers connection failures, timeouts and non-2xx HTTP status codes.
    The dispatcher records it on the endpoint's response instead of raising.
    """

    def __init__(
        self,
        endpoint: str,
        message: str,
        status_code: Optional[int] = None,
        timed_out: bool = False,
    ) -> None:
        status_fragment = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{endpoint}: {message}{status_fragment}")
        self.endpoint = endpoint
        self.status_code = status_code
        self.timed_out = timed_out


class DecodeError(TransportError):
    """
    Raised when an endpoint answers with a body that is not valid JSON.

    Classified the same way as any other transport failure.
    """

    pass
