"""Endpoint registry - the named JSON-RPC services under comparison."""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence
from urllib.parse import urlsplit

from rpc_compare.exceptions import ConfigurationError


@dataclass(frozen=True)
class Endpoint:
    """One named, reachable JSON-RPC service instance."""

    name: str
    url: str


class EndpointRegistry:
    """
    Ordered, read-only set of endpoints.

    Declaration order matters: the first endpoint that answers a call is the
    reference the others are diffed against.
    """

    def __init__(self, endpoints: Sequence[Endpoint]):
        if not endpoints:
            raise ConfigurationError("Endpoint registry is empty; at least one client is required")

        seen: Dict[str, Endpoint] = {}
        for endpoint in endpoints:
            if not endpoint.name:
                raise ConfigurationError(f"Endpoint with URL {endpoint.url!r} has no name")
            if endpoint.name in seen:
                raise ConfigurationError(f"Duplicate endpoint name: {endpoint.name}")
            scheme = urlsplit(endpoint.url).scheme
            if scheme not in ("http", "https"):
                raise ConfigurationError(
                    f"Endpoint {endpoint.name} has unsupported URL {endpoint.url!r}; "
                    f"expected http:// or https://"
                )
            seen[endpoint.name] = endpoint

        self._endpoints: List[Endpoint] = list(endpoints)
        self._by_name = seen

    @classmethod
    def from_mapping(cls, mapping: Dict[str, str]) -> "EndpointRegistry":
        return cls([Endpoint(name=name, url=url) for name, url in mapping.items()])

    @classmethod
    def from_client_string(cls, clients: str) -> "EndpointRegistry":
        """
        Parse a comma-separated ``name:url`` list.

        Example:
            "geth:http://10.0.0.1:8545,nethermind:http://10.0.0.2:8545"
        """
        endpoints = []
        for pair in clients.split(","):
            if not pair.strip():
                continue
            parts = pair.split(":", 1)
            if len(parts) != 2:
                raise ConfigurationError(
                    f"Invalid client format: {pair}. Expected format: name:url"
                )
            endpoints.append(Endpoint(name=parts[0].strip(), url=parts[1].strip()))
        return cls(endpoints)

    def names(self) -> List[str]:
        return [endpoint.name for endpoint in self._endpoints]

    def get(self, name: str) -> Optional[Endpoint]:
        return self._by_name.get(name)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)
