"""
SessionPay Journal - append-only signed record of protocol notifications.
"""

from sessionpay.journal.journal import GENESIS_HASH, EventJournal, JournalEntry

__all__ = ["EventJournal", "JournalEntry", "GENESIS_HASH"]
