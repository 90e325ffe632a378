"""
sessionpay/core/models.py

SessionPay Data Model

Session lifecycle:
    open   → Active   (is_active=True,  claimable_amount=0)
    close  → Closed   (is_active=False, claimable_amount=amount_paid, user debited)
    claim  → Settled  (claimable_amount=0, funds sent to the node owner)

Sessions are never deleted. Amounts are integers in the smallest
monetary unit (wei).
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict


ETHER = 10 ** 18

# A session may be claimed unilaterally once this many seconds have
# passed since it was opened.
SESSION_TIMEOUT = 48 * 60 * 60

# Session ids start at 1; 0 is never allocated.
FIRST_SESSION_ID = 1


@dataclass
class Session:
    """A bounded commitment by `user` to pay up to `cost_limit` to a node's owner."""

    session_id:       int
    start_time:       int
    cost_limit:       int
    user:             str
    node_id:          int
    is_active:        bool = True
    claimable_amount: int  = 0

    @property
    def is_settled(self) -> bool:
        return not self.is_active and self.claimable_amount == 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            session_id=       int(data["session_id"]),
            start_time=       int(data["start_time"]),
            cost_limit=       int(data["cost_limit"]),
            user=             data["user"],
            node_id=          int(data["node_id"]),
            is_active=        bool(data["is_active"]),
            claimable_amount= int(data["claimable_amount"]),
        )


@dataclass(frozen=True)
class NodeDetails:
    """What the node directory reports about a node."""
    label:     str
    owner:     str
    is_active: bool


# ─────────────────────────────────────────────────────────────
# Notifications
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SessionOpened:
    session_id: int
    user:       str
    node_id:    int

    event_type = "session_opened"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SessionClosed:
    session_id:  int
    user:        str
    node_id:     int
    amount_paid: int

    event_type = "session_closed"

    def to_dict(self) -> Dict[str, Any]:
        # JSON numbers lose precision above 2**53; wei amounts travel as strings.
        data = asdict(self)
        data["amount_paid"] = str(self.amount_paid)
        return data
