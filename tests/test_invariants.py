"""
tests/test_invariants.py

Protocol laws that must hold after every call, accepted or rejected.

    CONSERVATION     balances + claimable + sent out == deposited
    NON-NEGATIVE     no balance ever drops below zero
    MONOTONIC IDS    session ids are 1, 2, 3, ... with no gaps
    BINDING          a signature authorizes exactly one (session, amount)
    SINGLE CLAIM     a settled amount is paid out once
"""

import random

import pytest

from sessionpay import ETHER, SESSION_TIMEOUT, NodeKeyManager, NodeRegistry, SessionManager
from sessionpay.core.exceptions import InvalidSignature, NoClaimableAmount, SessionPayError
from sessionpay.ledger import BalanceLedger, WalletBook


USERS = ["alice", "bob", "carol"]
T0 = 1_700_000_000


class World:
    """A manager with two nodes and a running total of deposits."""

    def __init__(self, seed: int):
        self.rng = random.Random(seed)
        self.keys = [NodeKeyManager.generate(), NodeKeyManager.generate()]
        self.registry = NodeRegistry()
        self.node_ids = [self.registry.register_node(k.address) for k in self.keys]
        self.wallets = WalletBook()
        self.now = T0
        self.manager = SessionManager(
            directory=self.registry,
            ledger=BalanceLedger(transfer=self.wallets),
            clock=lambda: self.now,
        )
        self.deposited = 0
        self.opened_ids = []

    def key_for(self, node_id):
        return self.keys[self.node_ids.index(node_id)]

    def step(self):
        op = self.rng.choice(["deposit", "open", "close", "claim", "withdraw", "tick"])
        user = self.rng.choice(USERS)
        amount = self.rng.randint(0, 2 * ETHER)
        sessions = self.manager.store.all()
        try:
            if op == "deposit":
                self.manager.deposit(user, amount)
                self.deposited += amount
            elif op == "open":
                sid = self.manager.open_session(user, amount, self.rng.choice(self.node_ids + [99]))
                self.opened_ids.append(sid)
            elif op == "close" and sessions:
                s = self.rng.choice(sessions)
                pay = self.rng.randint(0, max(s.cost_limit, 1))
                signer = self.key_for(s.node_id) if self.rng.random() < 0.8 else NodeKeyManager.generate()
                self.manager.close_session(
                    self.rng.choice([s.user, user]), s.session_id, pay,
                    signer.sign_settlement(s.session_id, pay),
                )
            elif op == "claim" and sessions:
                s = self.rng.choice(sessions)
                owner = self.key_for(s.node_id).address
                self.manager.claim_payment(self.rng.choice([owner, user]), s.session_id)
            elif op == "withdraw":
                self.manager.withdraw(user, amount)
            elif op == "tick":
                self.now += self.rng.choice([60, 3600, SESSION_TIMEOUT])
        except SessionPayError:
            pass

    def check(self):
        ledger = self.manager.ledger
        sessions = self.manager.store.all()
        claimable = sum(s.claimable_amount for s in sessions)
        assert ledger.total() + claimable + self.wallets.total_sent() == self.deposited
        assert all(ledger.balance_of(u) >= 0 for u in USERS)
        assert [s.session_id for s in sessions] == list(range(1, len(sessions) + 1))
        assert self.opened_ids == list(range(1, len(self.opened_ids) + 1))


class TestLaws:

    @pytest.mark.parametrize("seed", range(5))
    def test_random_walk_preserves_invariants(self, seed):
        world = World(seed)
        for _ in range(300):
            world.step()
            world.check()

    def test_signature_binds_session_and_amount(self):
        world = World(0)
        key = world.keys[0]
        world.manager.deposit("alice", ETHER)
        s1 = world.manager.open_session("alice", ETHER, world.node_ids[0])
        s2 = world.manager.open_session("alice", ETHER, world.node_ids[0])
        sig = key.sign_settlement(s1, 100)

        for sid, amount in [(s1, 99), (s1, 101), (s2, 100)]:
            with pytest.raises(InvalidSignature):
                world.manager.close_session("alice", sid, amount, sig)
        world.manager.close_session("alice", s1, 100, sig)

    def test_settled_amount_paid_once(self):
        world = World(0)
        key = world.keys[0]
        world.manager.deposit("alice", ETHER)
        world.deposited += ETHER
        sid = world.manager.open_session("alice", ETHER, world.node_ids[0])
        world.opened_ids.append(sid)
        world.manager.close_session("alice", sid, 500, key.sign_settlement(sid, 500))
        world.manager.claim_payment(key.address, sid)
        with pytest.raises(NoClaimableAmount):
            world.manager.claim_payment(key.address, sid)
        assert world.wallets.received(key.address) == 500
        world.check()
