"""
Session settlement engine: open / close / claim over pre-funded balances.
"""

import logging
import threading
from typing import Callable, List, Optional, Union

from sessionpay.core.crypto import SignatureAuthority, SignatureLike, same_address, settlement_hash
from sessionpay.core.exceptions import (
    AmountExceedsLimit,
    InsufficientBalance,
    InvalidSignature,
    NodeInactive,
    NodeNotFound,
    NoClaimableAmount,
    NotNodeOwner,
    NotSessionOwner,
    SessionNotActive,
    SessionNotClaimable,
    SessionNotFound,
    SessionPayError,
    TransferFailed,
)
from sessionpay.core.models import SESSION_TIMEOUT, Session, SessionClosed, SessionOpened
from sessionpay.core.time import unix_now
from sessionpay.directory.registry import NodeDirectory
from sessionpay.ledger.balances import BalanceLedger, require_amount
from sessionpay.sessions.store import SessionStore


logger = logging.getLogger(__name__)

SessionEvent = Union[SessionOpened, SessionClosed]
Subscriber = Callable[[SessionEvent], None]


class SessionManager:
    """
    Session protocol over a BalanceLedger, a SessionStore and a NodeDirectory.

    Every public operation:
    - takes the calling principal explicitly
    - runs to completion under one coarse lock
    - checks every precondition before mutating anything, so a raised
      SessionPayError leaves balances and sessions unchanged

    Money only moves in three ways:
    - close_session: user balance → session claimable amount
    - claim_payment: claimable amount → node owner (outbound transfer)
    - withdraw:      user balance → user (outbound transfer)
    """

    def __init__(
        self,
        directory: NodeDirectory,
        ledger: Optional[BalanceLedger] = None,
        store: Optional[SessionStore] = None,
        authority: Optional[SignatureAuthority] = None,
        clock: Callable[[], int] = unix_now,
        session_timeout: int = SESSION_TIMEOUT,
        require_active_node: bool = True,
    ):
        """
        Initialize the session manager.

        Args:
            directory: Read-only node directory
            ledger: Balance ledger (a fresh one if omitted)
            store: Session store (a fresh one if omitted)
            authority: Settlement signature verifier
            clock: Returns the current unix time in seconds
            session_timeout: Seconds after which an open session becomes claimable
            require_active_node: Reject open_session against inactive nodes
        """
        self.directory = directory
        self.ledger = ledger if ledger is not None else BalanceLedger()
        self.store = store if store is not None else SessionStore()
        self.authority = authority if authority is not None else SignatureAuthority()
        self.clock = clock
        self.session_timeout = session_timeout
        self.require_active_node = require_active_node

        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []

    # ── Notifications ─────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback for SessionOpened / SessionClosed."""
        with self._lock:
            self._subscribers.append(callback)

    def _notify(self, event: SessionEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "subscriber %r failed on %s", callback, event.event_type
                )

    # ── Balances ──────────────────────────────────────────────

    def deposit(self, caller: str, amount: int) -> int:
        with self._lock:
            try:
                return self.ledger.deposit(caller, amount)
            except SessionPayError as exc:
                logger.warning("deposit rejected caller=%s: %s", caller, exc)
                raise

    def withdraw(self, caller: str, amount: int) -> int:
        with self._lock:
            try:
                return self.ledger.withdraw(caller, amount)
            except SessionPayError as exc:
                logger.warning("withdraw rejected caller=%s: %s", caller, exc)
                raise

    def get_balance(self, principal: str) -> int:
        with self._lock:
            return self.ledger.balance_of(principal)

    # ── Sessions ──────────────────────────────────────────────

    def get_session_details(self, session_id: int) -> Optional[Session]:
        with self._lock:
            return self.store.get(session_id)

    def open_session(
        self,
        caller: str,
        cost_limit: int,
        node_id: int,
        now: Optional[int] = None,
    ) -> int:
        """
        Open a session committing up to `cost_limit` to `node_id`.

        Returns:
            The new session id
        """
        with self._lock:
            try:
                self._check_open(caller, cost_limit, node_id)
            except SessionPayError as exc:
                logger.warning("open_session rejected caller=%s: %s", caller, exc)
                raise

            session_id = self.store.allocate(Session(
                session_id=0,
                start_time=self._now(now),
                cost_limit=cost_limit,
                user=caller,
                node_id=node_id,
            ))
            logger.info(
                "session opened session_id=%d user=%s node_id=%d cost_limit=%d",
                session_id, caller, node_id, cost_limit,
            )
            self._notify(SessionOpened(session_id, caller, node_id))
            return session_id

    def close_session(
        self,
        caller: str,
        session_id: int,
        amount_paid: int,
        signature: SignatureLike,
    ) -> Session:
        """
        Settle a session for `amount_paid`, authorized by the node's signature
        over exactly (session_id, amount_paid).

        Returns:
            The closed session
        """
        with self._lock:
            try:
                session = self._check_close(caller, session_id, amount_paid, signature)
            except SessionPayError as exc:
                logger.warning(
                    "close_session rejected session_id=%s caller=%s: %s",
                    session_id, caller, exc,
                )
                raise

            def settle(record: Session) -> None:
                record.is_active = False
                record.claimable_amount = amount_paid

            self.ledger.debit(caller, amount_paid)
            closed = self.store.update(session_id, settle)
            logger.info(
                "session closed session_id=%d user=%s amount_paid=%d",
                session_id, caller, amount_paid,
            )
            self._notify(SessionClosed(session_id, caller, session.node_id, amount_paid))
            return closed

    def claim_payment(
        self,
        caller: str,
        session_id: int,
        now: Optional[int] = None,
    ) -> int:
        """
        Send a session's claimable amount to the node owner.

        A session that was never closed becomes claimable once the timeout
        has elapsed, but nothing was ever made claimable for it: the claim
        succeeds and transfers 0, and the session stays active.

        Returns:
            The amount transferred
        """
        with self._lock:
            try:
                session = self._check_claim(caller, session_id, self._now(now))
            except SessionPayError as exc:
                logger.warning(
                    "claim_payment rejected session_id=%s caller=%s: %s",
                    session_id, caller, exc,
                )
                raise

            amount = session.claimable_amount

            def consume(record: Session) -> None:
                record.claimable_amount = 0

            def refund(record: Session) -> None:
                record.claimable_amount = amount

            self.store.update(session_id, consume)
            try:
                self.ledger.transfer.send(caller, amount)
            except Exception as exc:
                self.store.update(session_id, refund)
                raise TransferFailed(
                    f"Claim transfer failed: {exc}",
                    {"session_id": session_id, "amount": amount},
                ) from exc

            if session.is_active:
                logger.warning(
                    "timeout claim on unsettled session session_id=%d transferred %d",
                    session_id, amount,
                )
            else:
                logger.info(
                    "payment claimed session_id=%d owner=%s amount=%d",
                    session_id, caller, amount,
                )
            return amount

    # ── Preconditions ─────────────────────────────────────────

    def _check_open(self, caller: str, cost_limit: int, node_id: int) -> None:
        require_amount(cost_limit, "cost_limit")
        balance = self.ledger.balance_of(caller)
        if balance < cost_limit:
            raise InsufficientBalance(
                "Insufficient balance",
                {"principal": caller, "balance": balance, "amount": cost_limit},
            )
        if not self.directory.node_exists(node_id):
            raise NodeNotFound("Node not found", {"node_id": node_id})
        if self.require_active_node and not self.directory.is_node_active(node_id):
            raise NodeInactive("Node is not active", {"node_id": node_id})

    def _check_close(
        self,
        caller: str,
        session_id: int,
        amount_paid: int,
        signature: SignatureLike,
    ) -> Session:
        session = self._require_session(session_id)
        if not session.is_active:
            raise SessionNotActive("Session is not active", {"session_id": session_id})
        if caller != session.user:
            raise NotSessionOwner(
                "Only the session user can close it",
                {"session_id": session_id, "caller": caller},
            )
        require_amount(amount_paid, "amount_paid")
        if amount_paid > session.cost_limit:
            raise AmountExceedsLimit(
                "Amount exceeds session cost limit",
                {"amount": amount_paid, "cost_limit": session.cost_limit},
            )
        balance = self.ledger.balance_of(caller)
        if balance < amount_paid:
            raise InsufficientBalance(
                "Insufficient balance",
                {"principal": caller, "balance": balance, "amount": amount_paid},
            )
        node_owner = self.directory.get_node_details(session.node_id).owner
        message = settlement_hash(session_id, amount_paid)
        if not self.authority.verify(node_owner, message, signature):
            raise InvalidSignature(
                "Signature does not authorize this settlement",
                {"session_id": session_id, "amount": amount_paid},
            )
        return session

    def _check_claim(self, caller: str, session_id: int, now: int) -> Session:
        session = self._require_session(session_id)
        if not self.directory.node_exists(session.node_id):
            raise NodeNotFound("Node not found", {"node_id": session.node_id})
        if session.is_active:
            if now - session.start_time <= self.session_timeout:
                raise SessionNotClaimable(
                    "Session is still open and has not timed out",
                    {"session_id": session_id},
                )
        elif session.claimable_amount == 0:
            raise NoClaimableAmount("Nothing to claim", {"session_id": session_id})
        node_owner = self.directory.get_node_details(session.node_id).owner
        if not same_address(caller, node_owner):
            raise NotNodeOwner(
                "Only the node owner can claim payment",
                {"session_id": session_id, "caller": caller},
            )
        return session

    def _require_session(self, session_id: int) -> Session:
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFound("Session not found", {"session_id": session_id})
        return session

    def _now(self, now: Optional[int]) -> int:
        return self.clock() if now is None else now

    # ── Persistence ───────────────────────────────────────────

    def snapshot(self) -> dict:
        """JSON-safe view of balances, sessions and the id counter."""
        with self._lock:
            return {
                "balances": self.ledger.to_dict(),
                "sessions": self.store.to_dict(),
            }

    def restore(self, data: dict) -> None:
        with self._lock:
            self.ledger = BalanceLedger.from_dict(
                data.get("balances", {}), transfer=self.ledger.transfer
            )
            self.store = SessionStore.from_dict(data.get("sessions", {}))

    def get_stats(self) -> dict:
        with self._lock:
            sessions = self.store.all()
            return {
                "sessions":          len(sessions),
                "active":            sum(1 for s in sessions if s.is_active),
                "awaiting_claim":    sum(1 for s in sessions if s.claimable_amount > 0),
                "total_balances":    self.ledger.total(),
                "total_claimable":   sum(s.claimable_amount for s in sessions),
                "next_session_id":   self.store.next_id,
            }
