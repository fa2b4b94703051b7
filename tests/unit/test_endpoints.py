"""
Unit tests for EndpointRegistry (rpc_compare/domain/endpoints.py).
"""

import pytest

from rpc_compare.domain.endpoints import Endpoint, EndpointRegistry
from rpc_compare.exceptions import ConfigurationError


class TestEndpointRegistry:
    def test_preserves_declaration_order(self):
        registry = EndpointRegistry.from_mapping(
            {"nethermind": "http://b:8545", "geth": "http://a:8545"}
        )
        assert registry.names() == ["nethermind", "geth"]
        assert len(registry) == 2
        assert registry.get("geth") == Endpoint("geth", "http://a:8545")
        assert registry.get("besu") is None

    def test_empty_registry_rejected(self):
        with pytest.raises(ConfigurationError, match="empty"):
            EndpointRegistry([])

    def test_duplicate_name_rejected(self):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            EndpointRegistry([Endpoint("geth", "http://a"), Endpoint("geth", "http://b")])

    def test_unsupported_scheme_rejected(self):
        with pytest.raises(ConfigurationError, match="unsupported URL"):
            EndpointRegistry([Endpoint("geth", "ws://localhost:8546")])

    def test_missing_name_rejected(self):
        with pytest.raises(ConfigurationError, match="no name"):
            EndpointRegistry([Endpoint("", "http://localhost:8545")])


class TestFromClientString:
    def test_parses_name_url_pairs(self):
        registry = EndpointRegistry.from_client_string(
            "geth:http://10.0.0.1:8545, nethermind:https://node.example.com/rpc"
        )
        assert [(e.name, e.url) for e in registry] == [
            ("geth", "http://10.0.0.1:8545"),
            ("nethermind", "https://node.example.com/rpc"),
        ]

    def test_trailing_comma_ignored(self):
        assert len(EndpointRegistry.from_client_string("geth:http://a:8545,")) == 1

    def test_missing_separator_rejected(self):
        with pytest.raises(ConfigurationError, match="Expected format: name:url"):
            EndpointRegistry.from_client_string("geth")
