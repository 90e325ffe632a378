"""
tests/test_cli.py

End-to-end through the `sessionpay` command group.
"""

import json

import pytest
from click.testing import CliRunner

from sessionpay.cli import cli


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "sessionpay.yaml"
    path.write_text(
        "state_path: state.json\n"
        "journal_path: journal\n"
        "operator_key_path: operator.pem\n"
        "log_level: WARNING\n"
    )
    return path


@pytest.fixture
def run(config_file):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ["--config", str(config_file), *args])

    return _run


@pytest.fixture
def node(run, tmp_path):
    """Generate a node key, register it; returns (key_path, address)."""
    key_path = tmp_path / "node.key"
    result = run("keygen", "--out", str(key_path))
    assert result.exit_code == 0, result.output
    address = next(
        line.split()[1] for line in result.output.splitlines() if line.startswith("address")
    )
    result = run("node", "register", "--as", address, "--label", "192.168.1.1")
    assert result.exit_code == 0, result.output
    assert "node 1" in result.output
    return key_path, address


class TestSessionFlow:

    def test_full_settlement(self, run, node):
        key_path, address = node

        assert run("deposit", "--as", "alice", "1ether").exit_code == 0
        result = run("open", "--as", "alice", "--node", "1", "--limit", "0.5ether")
        assert result.exit_code == 0, result.output
        assert "session 1" in result.output

        result = run("sign", "--key", str(key_path), "1", "0.3ether")
        assert result.exit_code == 0, result.output
        signature = result.output.strip().splitlines()[-1]
        assert signature.startswith("0x") and len(signature) == 132

        result = run("close", "--as", "alice", "1", "0.3ether", signature)
        assert result.exit_code == 0, result.output

        result = run("balance", "alice")
        assert str(7 * 10 ** 17) in result.output

        result = run("session", "1", "--format", "json")
        details = json.loads(result.output.strip().splitlines()[-1])
        assert details["is_active"] is False
        assert details["claimable_amount"] == 3 * 10 ** 17

        result = run("claim", "--as", address, "1")
        assert result.exit_code == 0, result.output
        assert f"claimed {3 * 10 ** 17}" in result.output

        result = run("journal", "verify", "--format", "json")
        report = json.loads(result.output.strip().splitlines()[-1])
        assert report["valid"] is True
        assert report["total_entries"] == 2

    def test_rejected_operation_exits_1(self, run, node):
        result = run("open", "--as", "alice", "--node", "1", "--limit", "5")
        assert result.exit_code == 1
        assert "Insufficient balance" in result.output

    def test_wrong_signature_exits_1(self, run, node):
        key_path, _ = node
        run("deposit", "--as", "alice", "100")
        run("open", "--as", "alice", "--node", "1", "--limit", "100")
        signature = run("sign", "--key", str(key_path), "1", "50").output.strip().splitlines()[-1]
        result = run("close", "--as", "alice", "1", "51", signature)
        assert result.exit_code == 1
        assert "Signature does not authorize" in result.output

    def test_timeout_claim(self, run, node):
        _, address = node
        run("deposit", "--as", "alice", "100")
        run("open", "--as", "alice", "--node", "1", "--limit", "100", "--now", "1000")
        result = run("claim", "--as", address, "1", "--now", str(1000 + 48 * 3600 + 1))
        assert result.exit_code == 0, result.output
        assert "claimed 0" in result.output

    def test_missing_session(self, run):
        result = run("session", "9")
        assert result.exit_code == 1


class TestNodeCommands:

    def test_deactivate_blocks_open(self, run, node):
        _, address = node
        assert run("node", "deactivate", "--as", address, "1").exit_code == 0
        run("deposit", "--as", "alice", "100")
        result = run("open", "--as", "alice", "--node", "1", "--limit", "10")
        assert result.exit_code == 1
        assert "not active" in result.output

    def test_only_owner_can_relabel(self, run, node):
        result = run("node", "label", "--as", "mallory", "1", "10.0.0.9")
        assert result.exit_code == 1

    def test_show(self, run, node):
        _, address = node
        result = run("node", "show", "1")
        assert result.exit_code == 0
        assert address in result.output
        assert "192.168.1.1" in result.output


class TestAmountParsing:

    def test_fractional_wei_rejected(self, run):
        result = run("deposit", "--as", "alice", "0.0000000000000000001ether")
        assert result.exit_code == 2

    def test_garbage_rejected(self, run):
        result = run("deposit", "--as", "alice", "lots")
        assert result.exit_code == 2
