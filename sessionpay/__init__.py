"""
sessionpay/__init__.py

SessionPay: pre-funded usage sessions settled by node signatures.

A user deposits a balance, opens a session against a node with a cost
limit, and closes it with the node's secp256k1 signature over
(session_id, amount_paid). The node owner then claims the settled amount.
"""

__version__ = "0.1.0"

from sessionpay.core.crypto import NodeKeyManager, SignatureAuthority, settlement_hash
from sessionpay.core.exceptions import SessionPayError
from sessionpay.core.models import (
    ETHER,
    SESSION_TIMEOUT,
    NodeDetails,
    Session,
    SessionClosed,
    SessionOpened,
)
from sessionpay.directory import NodeDirectory, NodeRegistry
from sessionpay.ledger import BalanceLedger, WalletBook
from sessionpay.sessions import SessionStore
from sessionpay.settlement import SessionManager

__all__ = [
    # Protocol
    "SessionManager",
    "BalanceLedger",
    "SessionStore",
    "WalletBook",
    "NodeDirectory",
    "NodeRegistry",
    # Crypto
    "SignatureAuthority",
    "NodeKeyManager",
    "settlement_hash",
    # Model
    "Session",
    "NodeDetails",
    "SessionOpened",
    "SessionClosed",
    # Errors
    "SessionPayError",
    # Constants
    "ETHER",
    "SESSION_TIMEOUT",
]
