"""
SessionPay Ledger - principal balances and outbound transfers.
"""

from sessionpay.ledger.balances import BalanceLedger, require_amount
from sessionpay.ledger.transfers import ValueTransfer, WalletBook

__all__ = ["BalanceLedger", "ValueTransfer", "WalletBook", "require_amount"]
