"""
Runtime context: wires a SessionManager to its collaborators and
persists protocol state between processes.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from sessionpay.core.crypto import OperatorKeyManager
from sessionpay.core.exceptions import ValidationError
from sessionpay.directory.registry import NodeRegistry
from sessionpay.journal.journal import EventJournal
from sessionpay.ledger.balances import BalanceLedger
from sessionpay.ledger.transfers import WalletBook
from sessionpay.runtime.config import SessionPayConfig
from sessionpay.settlement.engine import SessionEvent, SessionManager


logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass
class RuntimeContext:
    """Everything a process needs to run the session protocol."""

    config: SessionPayConfig
    manager: SessionManager
    registry: NodeRegistry
    wallets: WalletBook
    journal: EventJournal
    operator_key: OperatorKeyManager
    pending: List[SessionEvent] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: SessionPayConfig) -> "RuntimeContext":
        """Create a runtime context, restoring persisted state if present."""
        key_path = config.operator_key_path
        if key_path.exists():
            operator_key = OperatorKeyManager.from_file(key_path)
        else:
            operator_key = OperatorKeyManager.generate()
            operator_key.save(key_path)
            logger.info("generated operator key at %s", key_path)

        state = _read_state(config.state_path)

        registry = NodeRegistry.from_dict(state.get("nodes", {}))
        wallets = WalletBook.from_dict(state.get("wallets", {}))
        manager = SessionManager(
            directory=registry,
            ledger=BalanceLedger(transfer=wallets),
            session_timeout=config.session_timeout_seconds,
            require_active_node=config.require_active_node,
        )
        manager.restore(state.get("protocol", {}))

        journal = EventJournal(config.journal_path, operator_key)
        pending: List[SessionEvent] = []
        manager.subscribe(pending.append)

        return cls(
            config=config,
            manager=manager,
            registry=registry,
            wallets=wallets,
            journal=journal,
            operator_key=operator_key,
            pending=pending,
        )

    def save(self) -> Path:
        """
        Atomically write the state snapshot, then journal the events
        queued since the last save. Returns the state path.

        Events reach the journal only once the state that produced them
        is on disk; if the write fails they stay queued.
        """
        path = self.config.state_path
        path.parent.mkdir(parents=True, exist_ok=True)
        state = {
            "version":  STATE_VERSION,
            "protocol": self.manager.snapshot(),
            "nodes":    self.registry.to_dict(),
            "wallets":  self.wallets.to_dict(),
        }
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        finally:
            if temp_path.exists():
                temp_path.unlink()
        self.flush_journal()
        return path

    def flush_journal(self) -> int:
        """Append queued events to the journal. Returns how many were written."""
        written = 0
        while self.pending:
            self.journal.record(self.pending[0])
            self.pending.pop(0)
            written += 1
        return written

    def __repr__(self) -> str:
        return (
            f"RuntimeContext("
            f"state_path={str(self.config.state_path)!r}, "
            f"sessions={len(self.manager.store)})"
        )


def _read_state(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            state = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"State file is not valid JSON: {exc}", {"path": str(path)})
    if not isinstance(state, dict):
        raise ValidationError(
            "State file must contain a JSON object",
            {"path": str(path), "type": type(state).__name__},
        )
    if state.get("version") != STATE_VERSION:
        raise ValidationError(
            "Unsupported state file version",
            {"path": str(path), "version": state.get("version")},
        )
    return state
