"""Shared fixtures for integration tests: in-process fake JSON-RPC nodes."""

import json
from unittest.mock import Mock

import pytest
import requests


class FakeNodeSession:
    """
    requests.Session stand-in that routes POSTs to per-URL handlers.

    A handler receives the decoded request envelope and returns the ``result``
    value, a full response dict (when it contains ``error``), or raises a
    requests exception to simulate a transport failure.
    """

    def __init__(self, handlers):
        self.handlers = handlers
        self.requests = []

    def post(self, url, headers=None, data=None, timeout=None):
        envelope = json.loads(data)
        self.requests.append((url, envelope))
        handler = self.handlers[url]

        if isinstance(envelope, list):
            body = [self._answer(handler, item) for item in envelope]
        else:
            body = self._answer(handler, envelope)

        response = Mock()
        response.status_code = 200
        response.text = json.dumps(body)
        return response

    @staticmethod
    def unreachable(envelope):
        raise requests.ConnectionError("connection refused")

    @staticmethod
    def _answer(handler, envelope):
        outcome = handler(envelope)
        if isinstance(outcome, dict) and "error" in outcome:
            return {"jsonrpc": "2.0", "id": envelope["id"], "error": outcome["error"]}
        return {"jsonrpc": "2.0", "id": envelope["id"], "result": outcome}


@pytest.fixture
def fake_nodes():
    """Factory: ``fake_nodes({url: handler})`` -> FakeNodeSession."""
    return FakeNodeSession
