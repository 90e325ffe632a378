"""
Outbound value transfers.

The protocol never moves money out of its own books directly; withdrawals
and node claims go through a ValueTransfer collaborator. WalletBook is the
in-process implementation: it records what each recipient has been sent.
"""

from typing import Dict, Protocol

from sessionpay.core.exceptions import InvalidAmount


class ValueTransfer(Protocol):
    def send(self, recipient: str, amount: int) -> None:
        ...


class WalletBook:
    """Records outbound payments per recipient."""

    def __init__(self, received: Dict[str, int] = None):
        self._received: Dict[str, int] = dict(received or {})

    def send(self, recipient: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount("Cannot send a negative amount", {"amount": amount})
        self._received[recipient] = self._received.get(recipient, 0) + amount

    def received(self, recipient: str) -> int:
        return self._received.get(recipient, 0)

    def total_sent(self) -> int:
        return sum(self._received.values())

    def to_dict(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self._received.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "WalletBook":
        return cls({k: int(v) for k, v in data.items()})
