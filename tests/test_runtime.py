"""
tests/test_runtime.py

Configuration loading and state persistence across processes.
"""

from pathlib import Path

import pytest

from sessionpay import ETHER, NodeKeyManager
from sessionpay.core.exceptions import ValidationError
from sessionpay.runtime import RuntimeContext, SessionPayConfig


def make_config(tmp_path: Path, **overrides) -> SessionPayConfig:
    values = {
        "state_path":        tmp_path / "state.json",
        "journal_path":      tmp_path / "journal",
        "operator_key_path": tmp_path / "operator.pem",
    }
    values.update(overrides)
    return SessionPayConfig(**values)


class TestConfig:

    def test_defaults(self):
        config = SessionPayConfig()
        assert config.session_timeout_seconds == 48 * 3600
        assert config.require_active_node is True
        assert config.log_level == "INFO"

    def test_from_yaml_resolves_relative_paths(self, tmp_path):
        path = tmp_path / "sessionpay.yaml"
        path.write_text(
            "session_timeout_seconds: 60\n"
            "require_active_node: false\n"
            "state_path: data/state.json\n"
            "log_level: debug\n"
        )
        config = SessionPayConfig.from_yaml(path)
        assert config.session_timeout_seconds == 60
        assert config.require_active_node is False
        assert config.state_path == tmp_path / "data" / "state.json"
        assert config.log_level == "DEBUG"

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("session_timout: 5\n")
        with pytest.raises(ValidationError):
            SessionPayConfig.from_yaml(path)

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValidationError):
            SessionPayConfig(session_timeout_seconds=-1)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert SessionPayConfig.from_yaml(path).session_timeout_seconds == 48 * 3600


class TestRuntimeContext:

    def test_operator_key_generated_once(self, tmp_path):
        config = make_config(tmp_path)
        first = RuntimeContext.from_config(config)
        second = RuntimeContext.from_config(config)
        assert config.operator_key_path.exists()
        assert first.operator_key.public_key_hex == second.operator_key.public_key_hex

    def test_state_survives_restart(self, tmp_path):
        config = make_config(tmp_path)
        node_key = NodeKeyManager.generate()

        ctx = RuntimeContext.from_config(config)
        node_id = ctx.registry.register_node(node_key.address, "10.0.0.1")
        ctx.manager.deposit("alice", ETHER)
        sid = ctx.manager.open_session("alice", ETHER // 2, node_id)
        ctx.manager.close_session("alice", sid, 100, node_key.sign_settlement(sid, 100))
        ctx.save()

        ctx = RuntimeContext.from_config(config)
        assert ctx.manager.get_balance("alice") == ETHER - 100
        assert ctx.manager.get_session_details(sid).claimable_amount == 100
        assert ctx.registry.get_node_details(node_id).label == "10.0.0.1"
        assert ctx.manager.claim_payment(node_key.address, sid) == 100
        ctx.save()

        ctx = RuntimeContext.from_config(config)
        assert ctx.wallets.received(node_key.address) == 100
        assert ctx.manager.open_session("alice", 1, node_id) == sid + 1

    def test_events_reach_journal(self, tmp_path):
        ctx = RuntimeContext.from_config(make_config(tmp_path))
        node_id = ctx.registry.register_node(NodeKeyManager.generate().address)
        ctx.manager.deposit("alice", 10)
        ctx.manager.open_session("alice", 10, node_id)
        assert ctx.journal.entries() == []
        ctx.save()
        assert [e.event_type for e in ctx.journal.entries()] == ["session_opened"]
        assert ctx.pending == []
        assert ctx.journal.verify()

    def test_failed_save_keeps_journal_behind_state(self, tmp_path):
        config = make_config(tmp_path)
        ctx = RuntimeContext.from_config(config)
        node_id = ctx.registry.register_node(NodeKeyManager.generate().address)
        ctx.manager.deposit("alice", 10)
        ctx.manager.open_session("alice", 10, node_id)

        config.state_path.mkdir()
        with pytest.raises(OSError):
            ctx.save()
        assert ctx.journal.entries() == []
        assert len(ctx.pending) == 1

        config.state_path.rmdir()
        ctx.save()
        restarted = RuntimeContext.from_config(config)
        opened = restarted.journal.get_entries_by_type("session_opened")
        assert [e.data["session_id"] for e in opened] == [1]
        assert restarted.manager.open_session("alice", 10, node_id) == 2

    def test_config_applied_to_manager(self, tmp_path):
        ctx = RuntimeContext.from_config(
            make_config(tmp_path, session_timeout_seconds=5, require_active_node=False)
        )
        assert ctx.manager.session_timeout == 5
        assert ctx.manager.require_active_node is False

    def test_corrupt_state_rejected(self, tmp_path):
        config = make_config(tmp_path)
        config.state_path.write_text("{not json")
        with pytest.raises(ValidationError):
            RuntimeContext.from_config(config)

    @pytest.mark.parametrize("content", ["[]", "42", "null", '"state"'])
    def test_non_object_state_rejected(self, tmp_path, content):
        config = make_config(tmp_path)
        config.state_path.write_text(content)
        with pytest.raises(ValidationError):
            RuntimeContext.from_config(config)
