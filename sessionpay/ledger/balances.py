"""
Balance ledger: per-principal pre-funded balances.

Invariants:
    - balances are never negative
    - a balance only grows through deposit()
    - a balance only shrinks through withdraw() or debit() (close-session settlement)

withdraw() does not look at open sessions. A user can withdraw below the
sum of the cost limits they have committed, which can leave a later
close_session() unable to settle.
"""

import logging
from typing import Dict, Optional

from sessionpay.core.exceptions import (
    InsufficientBalance,
    InvalidAmount,
    TransferFailed,
)
from sessionpay.ledger.transfers import ValueTransfer, WalletBook


logger = logging.getLogger(__name__)


def require_amount(amount, field: str = "amount") -> int:
    """Return `amount` if it is a non-negative int wei value, else raise InvalidAmount."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(
            f"{field} must be an integer number of wei",
            {field: repr(amount)},
        )
    if amount < 0:
        raise InvalidAmount(f"{field} must not be negative", {field: amount})
    return amount


class BalanceLedger:
    """Principal → balance mapping with deposit / withdraw / debit."""

    def __init__(
        self,
        transfer: Optional[ValueTransfer] = None,
        balances: Optional[Dict[str, int]] = None,
    ):
        self.transfer = transfer if transfer is not None else WalletBook()
        self._balances: Dict[str, int] = dict(balances or {})

    def balance_of(self, principal: str) -> int:
        return self._balances.get(principal, 0)

    def deposit(self, principal: str, amount: int) -> int:
        """Credit `amount` (> 0) to `principal`. Returns the new balance."""
        require_amount(amount)
        if amount == 0:
            raise InvalidAmount(
                "Deposit amount must be greater than zero",
                {"amount": amount},
            )
        self._balances[principal] = self.balance_of(principal) + amount
        logger.info("deposit principal=%s amount=%d", principal, amount)
        return self._balances[principal]

    def withdraw(self, principal: str, amount: int) -> int:
        """
        Debit `amount` and send it to `principal`.

        Returns the new balance. The debit is undone if the transfer fails.
        """
        self.debit(principal, amount)
        try:
            self.transfer.send(principal, amount)
        except Exception as exc:
            self._balances[principal] = self.balance_of(principal) + amount
            raise TransferFailed(
                f"Withdrawal transfer failed: {exc}",
                {"principal": principal, "amount": amount},
            ) from exc
        logger.info("withdraw principal=%s amount=%d", principal, amount)
        return self.balance_of(principal)

    def debit(self, principal: str, amount: int) -> None:
        require_amount(amount)
        balance = self.balance_of(principal)
        if amount > balance:
            raise InsufficientBalance(
                "Insufficient balance",
                {"principal": principal, "balance": balance, "amount": amount},
            )
        self._balances[principal] = balance - amount

    def total(self) -> int:
        return sum(self._balances.values())

    def to_dict(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self._balances.items()}

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, str],
        transfer: Optional[ValueTransfer] = None,
    ) -> "BalanceLedger":
        return cls(transfer=transfer, balances={k: int(v) for k, v in data.items()})
