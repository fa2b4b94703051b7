"""
Unit tests for the OpenRPC loader (rpc_compare/api/openrpc.py).
"""

import json
from unittest.mock import Mock

import pytest
import requests

from rpc_compare.api.openrpc import ApiSpecification, is_url, load_openrpc_spec
from rpc_compare.exceptions import ConfigurationError


DOCUMENT = {
    "openrpc": "1.2.4",
    "info": {"title": "Ethereum JSON-RPC", "version": "0.0.0"},
    "methods": [
        {
            "name": "eth_getBalance",
            "summary": "Returns the balance of the account of given address.",
            "params": [
                {"name": "Address", "required": True, "schema": {"type": "string"}},
                {"name": "Block", "schema": {"type": "string", "default": "latest"}},
            ],
            "result": {"name": "Balance", "schema": {"$ref": "#/components/schemas/uint"}},
        },
        {"name": "eth_blockNumber", "params": [], "result": {"name": "n", "schema": {}}},
        {"name": "eth_getBalance", "params": []},
        {"description": "nameless"},
    ],
    "components": {"schemas": {"uint": {"type": "string"}}},
}


def _mock_response(text, status_code=200):
    response = Mock()
    response.text = text
    response.status_code = status_code
    return response


class TestApiSpecification:
    """Tests for parsing decoded OpenRPC documents."""

    def test_from_document(self):
        spec = ApiSpecification.from_document(DOCUMENT)

        assert spec.title == "Ethereum JSON-RPC"
        assert spec.method_names() == ["eth_getBalance", "eth_blockNumber"]

        method = spec.get("eth_getBalance")
        assert [p.name for p in method.params] == ["Address", "Block"]
        assert method.params[0].required is True
        assert method.params[1].has_default
        assert method.description.startswith("Returns the balance")

    def test_duplicate_method_keeps_first(self):
        spec = ApiSpecification.from_document(DOCUMENT)
        assert len(spec.get("eth_getBalance").params) == 2

    def test_result_schema_carries_components(self):
        spec = ApiSpecification.from_document(DOCUMENT)

        schema = spec.result_schema_for("eth_getBalance")

        assert schema["$ref"] == "#/components/schemas/uint"
        assert schema["components"] == DOCUMENT["components"]
        schema["components"]["schemas"]["uint"]["type"] = "number"
        assert spec.components["schemas"]["uint"]["type"] == "string"

    def test_result_schema_absent(self):
        spec = ApiSpecification.from_document(DOCUMENT)
        assert spec.result_schema_for("missing_method") is None

    def test_methods_must_be_list(self):
        with pytest.raises(ConfigurationError, match="methods not found"):
            ApiSpecification.from_document({"openrpc": "1.2.4"})

    def test_document_must_be_object(self):
        with pytest.raises(ConfigurationError):
            ApiSpecification.from_document([])


class TestLoadOpenRpcSpec:
    """Tests for loading from files and URLs."""

    def test_is_url(self):
        assert is_url("https://example.com/openrpc.json")
        assert not is_url("specs/openrpc.json")

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "openrpc.json"
        path.write_text(json.dumps(DOCUMENT))

        spec = load_openrpc_spec(str(path))

        assert "eth_blockNumber" in spec.methods

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_openrpc_spec(str(tmp_path / "nope.json"))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "openrpc.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            load_openrpc_spec(str(path))

    def test_download_and_cache(self, tmp_path):
        session = Mock(spec=requests.Session)
        session.get.return_value = _mock_response(json.dumps(DOCUMENT))
        url = "https://example.com/openrpc.json"

        first = load_openrpc_spec(url, cache_dir=tmp_path, http_client=session)
        second = load_openrpc_spec(url, cache_dir=tmp_path, http_client=session)

        assert first.method_names() == second.method_names()
        assert session.get.call_count == 1
        assert (tmp_path / "openrpc.json").exists()

    def test_download_http_error(self):
        session = Mock(spec=requests.Session)
        session.get.return_value = _mock_response("", status_code=404)

        with pytest.raises(ConfigurationError, match="HTTP 404"):
            load_openrpc_spec("https://example.com/openrpc.json", http_client=session)

    def test_download_network_error(self):
        session = Mock(spec=requests.Session)
        session.get.side_effect = requests.ConnectionError("dns failure")

        with pytest.raises(ConfigurationError, match="Failed to download"):
            load_openrpc_spec("https://example.com/openrpc.json", http_client=session)
