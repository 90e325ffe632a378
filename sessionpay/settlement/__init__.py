"""
SessionPay Settlement Engine

The engine runs the session protocol:
- open_session:  commit up to a cost limit against a registered node
- close_session: settle for an amount the node has signed for
- claim_payment: node owner collects what was settled

Critical Invariants:
- A node owner never receives more than the amount it signed for
- The signed message binds exactly (session_id, amount_paid)
- Every rejected call leaves all state unchanged
"""

from sessionpay.settlement.engine import SessionManager

__all__ = ["SessionManager"]
