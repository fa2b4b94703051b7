"""
Integration tests for the rpc-compare command line (rpc_compare/main.py).

HTTP traffic is routed to in-process fake nodes by patching
``requests.Session.post``.
"""

import json

import pytest
import requests

from rpc_compare.main import (
    build_parser,
    EXIT_CONFIGURATION_ERROR,
    EXIT_DIFFERENCES,
    EXIT_OK,
    main,
    resolve_settings,
)


GETH = "http://geth:8545"
NETHERMIND = "http://nethermind:8545"

CONFIG = """
name: CLI run
clients:
  - name: geth
    url: http://geth:8545
  - name: nethermind
    url: http://nethermind:8545
methods:
  - eth_blockNumber
  - net_version
"""


def _handler(block_number, chain_id="0x1"):
    def handler(envelope):
        return {
            "eth_chainId": chain_id,
            "eth_blockNumber": block_number,
            "net_version": "1",
        }[envelope["method"]]

    return handler


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "compare.yaml"
    path.write_text(CONFIG)
    return path


@pytest.fixture
def route(monkeypatch, fake_nodes):
    """Install fake nodes behind every requests.Session.post call."""

    def install(handlers):
        session = fake_nodes(handlers)
        monkeypatch.setattr(
            requests.Session, "post", lambda self, url, **kwargs: session.post(url, **kwargs)
        )
        return session

    return install


class TestMain:
    """Tests for exit codes and written artifacts."""

    def test_matching_run_writes_reports(self, tmp_path, config_path, route):
        route({GETH: _handler("0x10"), NETHERMIND: _handler("0x10")})
        output = tmp_path / "results"

        exit_code = main(["--config", str(config_path), "--output", str(output)])

        assert exit_code == EXIT_OK
        report = json.loads((output / "comparison-results.json").read_text())
        assert report["summary"]["matches"] == 2
        assert (output / "SUMMARY.md").exists()

    def test_differences_exit_zero_without_flag(self, tmp_path, config_path, route):
        route({GETH: _handler("0x10"), NETHERMIND: _handler("0x11")})

        exit_code = main(["--config", str(config_path), "--output", str(tmp_path / "out")])

        assert exit_code == EXIT_OK

    def test_fail_on_diff(self, tmp_path, config_path, route):
        route({GETH: _handler("0x10"), NETHERMIND: _handler("0x11")})

        exit_code = main(
            [
                "--config",
                str(config_path),
                "--output",
                str(tmp_path / "out"),
                "--fail-on-diff",
            ]
        )

        assert exit_code == EXIT_DIFFERENCES

    def test_filter_limits_methods(self, tmp_path, config_path, route):
        session = route({GETH: _handler("0x10"), NETHERMIND: _handler("0x11")})
        output = tmp_path / "out"

        exit_code = main(
            [
                "--config",
                str(config_path),
                "--output",
                str(output),
                "--filter",
                "net_version",
                "--fail-on-diff",
            ]
        )

        assert exit_code == EXIT_OK
        methods = {envelope["method"] for _, envelope in session.requests}
        assert methods == {"eth_chainId", "net_version"}

    def test_chain_id_mismatch_is_configuration_error(self, tmp_path, config_path, route):
        route({GETH: _handler("0x10", "0x1"), NETHERMIND: _handler("0x10", "0x5")})
        output = tmp_path / "out"

        exit_code = main(["--config", str(config_path), "--output", str(output)])

        assert exit_code == EXIT_CONFIGURATION_ERROR
        assert not (output / "comparison-results.json").exists()

    def test_skip_network_check(self, tmp_path, config_path, route):
        route({GETH: _handler("0x10", "0x1"), NETHERMIND: _handler("0x10", "0x5")})

        exit_code = main(
            [
                "--config",
                str(config_path),
                "--output",
                str(tmp_path / "out"),
                "--skip-network-check",
            ]
        )

        assert exit_code == EXIT_OK

    def test_no_clients_is_configuration_error(self):
        assert main([]) == EXIT_CONFIGURATION_ERROR

    def test_no_methods_and_no_spec_is_configuration_error(self):
        assert main(["--clients", f"geth:{GETH}"]) == EXIT_CONFIGURATION_ERROR

    def test_validate_without_spec_is_configuration_error(self, config_path):
        assert main(["--config", str(config_path), "--validate"]) == EXIT_CONFIGURATION_ERROR

    def test_missing_config_file(self, tmp_path):
        assert main(["--config", str(tmp_path / "absent.yaml")]) == EXIT_CONFIGURATION_ERROR


class TestResolveSettings:
    """Precedence: config file, then environment, then flags."""

    def test_flags_override_config_and_env(self, config_path, monkeypatch):
        monkeypatch.setenv("RPC_COMPARE_CONCURRENCY", "9")
        monkeypatch.setenv("RPC_COMPARE_TIMEOUT", "7")
        args = build_parser().parse_args(
            [
                "--config",
                str(config_path),
                "--concurrency",
                "3",
                "--clients",
                "besu:http://besu:8545",
                "--curl",
            ]
        )

        settings = resolve_settings(args)

        assert settings.concurrency == 3
        assert settings.timeout_seconds == 7
        assert settings.endpoints == {"besu": "http://besu:8545"}
        assert settings.methods == ["eth_blockNumber", "net_version"]
        assert settings.verbose is True
        assert settings.validate_schema is False

    def test_env_output_dir(self, monkeypatch):
        monkeypatch.setenv("RPC_COMPARE_OUTPUT_DIR", "/tmp/rpc-out")
        settings = resolve_settings(build_parser().parse_args([]))
        assert settings.output_dir == "/tmp/rpc-out"
