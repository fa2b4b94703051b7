"""
Dispatcher - fan each call descriptor out to every endpoint.

Calls run on a bounded thread pool so rate-limited endpoints are not saturated
by the client itself. Results fan back in on the calling thread; a failing
endpoint is recorded on its response and never affects sibling calls.
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from rpc_compare.api.jsonrpc import JsonRpcClient
from rpc_compare.domain.endpoints import Endpoint, EndpointRegistry
from rpc_compare.domain.models import CallDescriptor, EndpointResponse
from rpc_compare.exceptions import TransportError
from rpc_compare.utils.logger import get_logger, mask_url, StructuredLogger

DEFAULT_CONCURRENCY = 5


class Dispatcher:
    """
    Issue JSON-RPC calls for (descriptor x endpoint) pairs.

    Attributes:
        registry: Endpoints to call, in reference order
        client: JSON-RPC transport (carries the per-call timeout)
        concurrency: Maximum number of in-flight calls
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        client: JsonRpcClient,
        concurrency: int = DEFAULT_CONCURRENCY,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self.registry = registry
        self.client = client
        self.concurrency = concurrency if concurrency > 0 else DEFAULT_CONCURRENCY
        self.logger = logger or get_logger(__name__)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def call_endpoint(self, endpoint: Endpoint, descriptor: CallDescriptor) -> EndpointResponse:
        """Call one endpoint; transport failures are captured, not raised."""
        start_time = time.time()
        try:
            body = self.client.call(
                endpoint.name, endpoint.url, descriptor.method, descriptor.params_list()
            )
        except TransportError as exc:
            return self._failed(endpoint, descriptor, str(exc), start_time)
        except Exception as exc:  # noqa: BLE001
            return self._failed(endpoint, descriptor, f"unexpected error: {exc}", start_time)

        duration_ms = (time.time() - start_time) * 1000
        self.logger.debug(
            "Endpoint responded",
            operation="dispatch",
            context={"endpoint": endpoint.name, "variant": descriptor.variant_label},
        )
        return EndpointResponse(
            endpoint_name=endpoint.name, raw_body=body, duration_ms=duration_ms
        )

    def dispatch(self, descriptor: CallDescriptor) -> List[EndpointResponse]:
        """Call every endpoint for one descriptor; responses in registry order."""
        for _, responses in self.dispatch_all([descriptor]):
            return responses
        return []

    def dispatch_all(
        self, descriptors: Sequence[CallDescriptor]
    ) -> Iterator[Tuple[CallDescriptor, List[EndpointResponse]]]:
        """
        Dispatch every (descriptor x endpoint) pair through one bounded pool.

        Yields ``(descriptor, responses)`` as soon as all endpoints for a
        descriptor have reported. Yield order across descriptors follows
        completion order; responses within one descriptor follow registry order.
        """
        endpoints = list(self.registry)
        if not descriptors or not endpoints:
            return

        pending: Dict[int, Dict[int, EndpointResponse]] = {
            index: {} for index in range(len(descriptors))
        }

        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="rpc-dispatch"
        ) as executor:
            futures = {}
            for index, descriptor in enumerate(descriptors):
                for position, endpoint in enumerate(endpoints):
                    future = executor.submit(self.call_endpoint, endpoint, descriptor)
                    futures[future] = (index, position)

            for future in as_completed(futures):
                index, position = futures[future]
                collected = pending[index]
                collected[position] = future.result()
                if len(collected) == len(endpoints):
                    del pending[index]
                    yield descriptors[index], [collected[p] for p in range(len(endpoints))]

    def dispatch_batch(
        self, endpoint: Endpoint, descriptors: Sequence[CallDescriptor]
    ) -> List[EndpointResponse]:
        """
        Send descriptors to one endpoint as a single batched request.

        The returned list is aligned with ``descriptors``. A failed batch marks
        every descriptor with the same transport error.
        """
        if not descriptors:
            return []

        start_time = time.time()
        calls = [(descriptor.method, descriptor.params_list()) for descriptor in descriptors]
        try:
            bodies = self.client.call_batch(endpoint.name, endpoint.url, calls)
        except TransportError as exc:
            self.logger.warning(
                "Batch call failed",
                operation="dispatch_batch",
                context={"endpoint": endpoint.name, "size": len(descriptors)},
                error=str(exc),
            )
            duration_ms = (time.time() - start_time) * 1000
            return [
                EndpointResponse(endpoint.name, None, str(exc), duration_ms)
                for _ in descriptors
            ]

        duration_ms = (time.time() - start_time) * 1000
        responses = []
        for descriptor, body in zip(descriptors, bodies):
            if body is None:
                responses.append(
                    EndpointResponse(
                        endpoint.name,
                        None,
                        f"{endpoint.name}: no response for {descriptor.variant_label} in batch",
                        duration_ms,
                    )
                )
            else:
                responses.append(EndpointResponse(endpoint.name, body, None, duration_ms))
        return responses

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _failed(
        self, endpoint: Endpoint, descriptor: CallDescriptor, error: str, start_time: float
    ) -> EndpointResponse:
        duration_ms = (time.time() - start_time) * 1000
        self.logger.warning(
            "Endpoint call failed",
            operation="dispatch",
            context={
                "endpoint": endpoint.name,
                "url_masked": mask_url(endpoint.url),
                "variant": descriptor.variant_label,
            },
            error=error,
        )
        return EndpointResponse(
            endpoint_name=endpoint.name,
            raw_body=None,
            transport_error=error,
            duration_ms=duration_ms,
        )
