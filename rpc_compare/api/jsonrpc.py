"""
JSON-RPC 2.0 HTTP client.

Posts single or batched envelopes and decodes the body into a generic JSON
value (dict/list/str/number/bool/None) so arbitrary result shapes can be
diffed without a fixed schema.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from rpc_compare.exceptions import DecodeError, TransportError
from rpc_compare.utils.logger import get_logger, mask_url, StructuredLogger

JSONRPC_VERSION = "2.0"
DEFAULT_TIMEOUT_SECONDS = 30


def build_envelope(method: str, params: Sequence[Any], request_id: int = 1) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 request envelope."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "method": method,
        "params": list(params),
        "id": request_id,
    }


def format_curl_command(url: str, request_json: str) -> str:
    """Format a JSON-RPC request as an equivalent curl command for tracing."""
    return (
        f"curl -X POST -H 'Content-Type: application/json' -d {json.dumps(request_json)} {url}"
    )


class JsonRpcClient:
    """
    Thin JSON-RPC transport over a requests session.

    Every failure mode (connection error, timeout, non-2xx status, malformed
    body) surfaces as a TransportError so callers can record it per endpoint.
    """

    def __init__(
        self,
        http_client: Optional[requests.Session] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        verbose: bool = False,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """
        Args:
            http_client: Optional requests-like session (useful for testing)
            timeout_seconds: Per-call timeout
            verbose: Log an equivalent curl command for every request
            logger: Optional structured logger instance
        """
        self.http_client = http_client or requests.Session()
        self.timeout_seconds = timeout_seconds
        self.verbose = verbose
        self.logger = logger or get_logger(__name__)

    def call(
        self,
        endpoint: str,
        url: str,
        method: str,
        params: Sequence[Any],
        request_id: int = 1,
    ) -> Any:
        """
        Issue one JSON-RPC call and return the decoded body.

        Raises:
            TransportError: network failure, timeout, or non-2xx status
            DecodeError: body is not valid JSON
        """
        body = json.dumps(build_envelope(method, params, request_id))
        return self._post(endpoint, url, body, operation="jsonrpc_call")

    def call_batch(
        self,
        endpoint: str,
        url: str,
        calls: Sequence[Tuple[str, Sequence[Any]]],
    ) -> List[Any]:
        """
        Issue a batched JSON-RPC request.

        Request ids are assigned 1..n in submission order. The returned list is
        aligned with ``calls``: items are matched back by id when the server
        echoes the ids it was sent, and by array position otherwise. A call with
        no matching response item gets ``None`` in its slot.

        Raises:
            TransportError: network failure, timeout, or non-2xx status
            DecodeError: body is not valid JSON or not a JSON array
        """
        envelopes = [
            build_envelope(method, params, request_id=index + 1)
            for index, (method, params) in enumerate(calls)
        ]
        body = json.dumps(envelopes)
        decoded = self._post(endpoint, url, body, operation="jsonrpc_batch")

        if not isinstance(decoded, list):
            raise DecodeError(endpoint, "batch response is not a JSON array")

        return match_batch_responses(len(envelopes), decoded)

    def _post(self, endpoint: str, url: str, body: str, operation: str) -> Any:
        if self.verbose:
            self.logger.info(
                f"JSON-RPC request to {endpoint}: {format_curl_command(url, body)}",
                operation=operation,
                context={"endpoint": endpoint},
            )

        try:
            response = self.http_client.post(
                url,
                headers={"Content-Type": "application/json"},
                data=body,
                timeout=self.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise TransportError(
                endpoint, f"request timed out after {self.timeout_seconds}s", timed_out=True
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(endpoint, f"HTTP request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            snippet = (response.text or "")[:200]
            raise TransportError(
                endpoint,
                f"HTTP request failed: {snippet}".rstrip(": "),
                status_code=response.status_code,
            )

        try:
            return json.loads(response.text, parse_constant=_reject_constant)
        except (TypeError, ValueError) as exc:
            self.logger.warning(
                "Malformed JSON-RPC response body",
                operation=operation,
                context={"endpoint": endpoint, "url_masked": mask_url(url)},
                error=str(exc),
            )
            raise DecodeError(endpoint, f"failed to parse response: {exc}") from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def match_batch_responses(expected: int, items: List[Any]) -> List[Any]:
    """
    Align batch response items with request ids 1..expected.

    Servers may reorder batch responses. When every item carries an id that was
    sent, items are placed by id; otherwise they are placed by array position.
    """
    slots: List[Any] = [None] * expected
    wanted = set(range(1, expected + 1))
    ids = [item.get("id") if isinstance(item, dict) else None for item in items]

    by_id = bool(ids)
    for item_id in ids:
        if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id not in wanted:
            by_id = False
            break
    if by_id and len(set(ids)) != len(ids):
        by_id = False

    if by_id:
        for item_id, item in zip(ids, items):
            slots[item_id - 1] = item
    else:
        for index, item in enumerate(items[:expected]):
            slots[index] = item

    return slots
