"""
Event journal for SessionPay.

Append-only JSONL record of protocol notifications. Each entry is bound
to its predecessor by hash and signed with the operator's Ed25519 key:

    data_hash     = SHA-256(JCS(data))
    entry_hash    = SHA-256(JCS({index, previous_hash, timestamp,
                                 event_type, data_hash, signer_public_key}))
    previous_hash = entry_hash of the previous entry, GENESIS_HASH for the first
    signature     = Ed25519(bytes.fromhex(entry_hash))
"""

import json
import os
import threading
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from sessionpay.core.canonical import canonical_hash
from sessionpay.core.crypto import OperatorKeyManager
from sessionpay.core.exceptions import JournalError
from sessionpay.core.time import utc_timestamp


GENESIS_HASH = "0" * 64


@dataclass
class JournalEntry:
    """A single entry in the journal"""
    index:             int
    previous_hash:     str
    timestamp:         str
    event_type:        str
    data:              Dict[str, Any]
    data_hash:         str
    signer_public_key: str
    signature:         str = ""

    def to_dict(self) -> dict:
        return {
            "index":             self.index,
            "previous_hash":     self.previous_hash,
            "timestamp":         self.timestamp,
            "event_type":        self.event_type,
            "data":              self.data,
            "data_hash":         self.data_hash,
            "signer_public_key": self.signer_public_key,
            "signature":         self.signature,
        }

    @staticmethod
    def from_dict(data: dict) -> "JournalEntry":
        return JournalEntry(
            index=             data["index"],
            previous_hash=     data["previous_hash"],
            timestamp=         data["timestamp"],
            event_type=        data["event_type"],
            data=              data["data"],
            data_hash=         data["data_hash"],
            signer_public_key= data["signer_public_key"],
            signature=         data.get("signature", ""),
        )

    def compute_hash(self) -> str:
        """Hash of this entry for chaining (signature excluded)"""
        return canonical_hash({
            "index":             self.index,
            "previous_hash":     self.previous_hash,
            "timestamp":         self.timestamp,
            "event_type":        self.event_type,
            "data_hash":         self.data_hash,
            "signer_public_key": self.signer_public_key,
        })


class EventJournal:
    """
    Append-only, hash-chained, signed journal.

    Usable directly as a SessionManager subscriber: calling the journal
    with an event appends it.

    Thread-safe via internal lock (single-process only).
    State survives process restart by reloading the journal file on __init__.
    """

    FILE_NAME = "journal.jsonl"

    def __init__(self, journal_path: Path, key_manager: OperatorKeyManager):
        self.key_manager = key_manager
        self._lock = threading.Lock()
        self._entries: List[JournalEntry] = []

        self._journal_dir = Path(journal_path)
        self._journal_dir.mkdir(parents=True, exist_ok=True)
        self._journal_file = self._journal_dir / self.FILE_NAME

        self._restore_state()

    @property
    def path(self) -> Path:
        return self._journal_file

    # ── Public API ────────────────────────────────────────────

    def __call__(self, event) -> JournalEntry:
        return self.record(event)

    def record(self, event) -> JournalEntry:
        """Append a SessionOpened / SessionClosed notification."""
        return self.append(event.event_type, event.to_dict())

    def append(self, event_type: str, data: Dict[str, Any]) -> JournalEntry:
        """
        Append one signed entry.

        Raises JournalError on write failure; in-memory state does not
        advance unless the line reached disk.
        """
        with self._lock:
            previous_hash = (
                self._entries[-1].compute_hash() if self._entries else GENESIS_HASH
            )
            entry = JournalEntry(
                index=             len(self._entries),
                previous_hash=     previous_hash,
                timestamp=         utc_timestamp(),
                event_type=        event_type,
                data=              data,
                data_hash=         canonical_hash(data),
                signer_public_key= self.key_manager.public_key_hex,
            )
            entry.signature = self.key_manager.sign(bytes.fromhex(entry.compute_hash()))

            self._write_entry(entry)
            self._entries.append(entry)
            return entry

    def entries(self) -> List[JournalEntry]:
        with self._lock:
            return list(self._entries)

    def get_entries_by_type(self, event_type: str) -> List[JournalEntry]:
        return [e for e in self.entries() if e.event_type == event_type]

    def get_stats(self) -> dict:
        entries = self.entries()
        type_counts: Dict[str, int] = {}
        for entry in entries:
            type_counts[entry.event_type] = type_counts.get(entry.event_type, 0) + 1
        return {
            "total_entries":    len(entries),
            "by_type":          type_counts,
            "first_entry_time": entries[0].timestamp if entries else None,
            "last_entry_time":  entries[-1].timestamp if entries else None,
            "journal_file":     str(self._journal_file),
        }

    def verify(self, public_key_hex: Optional[str] = None) -> bool:
        """True if the on-disk journal is intact. Never raises."""
        try:
            self.verify_or_raise(public_key_hex)
            return True
        except JournalError:
            return False

    def verify_or_raise(self, public_key_hex: Optional[str] = None) -> None:
        """
        Re-read the journal file and check every entry.

        Checks, per entry: index is sequential from 0, previous_hash links
        to the prior entry, data_hash matches data, and the signature
        verifies against `public_key_hex` (default: this journal's key).
        """
        key_hex = public_key_hex or self.key_manager.public_key_hex
        entries = self._read_entries(strict=True)

        previous_hash = GENESIS_HASH
        for i, entry in enumerate(entries):
            if entry.index != i:
                raise JournalError(
                    f"Index gap at line {i + 1}", {"expected": i, "got": entry.index}
                )
            if entry.previous_hash != previous_hash:
                raise JournalError(f"Chain break at index {i}")
            if canonical_hash(entry.data) != entry.data_hash:
                raise JournalError(f"Data hash mismatch at index {i}")
            entry_hash = entry.compute_hash()
            if not OperatorKeyManager.verify_detached(
                bytes.fromhex(entry_hash), entry.signature, key_hex
            ):
                raise JournalError(f"Invalid signature at index {i}")
            previous_hash = entry_hash

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Load entries from an existing journal.
        If a line is corrupted, entries before it are kept and a
        RuntimeWarning is issued.
        """
        try:
            self._entries = self._read_entries(strict=True)
        except JournalError as exc:
            self._entries = self._read_entries(strict=False)
            warnings.warn(
                f"EventJournal: could not fully restore {self._journal_file}: {exc}. "
                "Call verify() before appending.",
                RuntimeWarning,
                stacklevel=3,
            )

    def _read_entries(self, strict: bool) -> List[JournalEntry]:
        entries: List[JournalEntry] = []
        if not self._journal_file.exists():
            return entries
        with open(self._journal_file, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(JournalEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError) as exc:
                    if strict:
                        raise JournalError(f"Invalid entry at line {line_num}: {exc}")
                    break
        return entries

    def _write_entry(self, entry: JournalEntry) -> None:
        try:
            with open(self._journal_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as exc:
            raise JournalError(f"Failed to write journal entry: {exc}") from exc
