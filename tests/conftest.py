"""
Shared fixtures: a registry with one active node, a node key that owns
it, and a SessionManager on a frozen clock.
"""

import pytest

from sessionpay import ETHER, NodeKeyManager, NodeRegistry, SessionManager, WalletBook
from sessionpay.ledger import BalanceLedger


T0 = 1_700_000_000

USER = "0x1111111111111111111111111111111111111111"
OTHER_USER = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def node_key():
    """secp256k1 key of the node owner."""
    return NodeKeyManager.generate()


@pytest.fixture
def registry(node_key):
    registry = NodeRegistry()
    registry.register_node(node_key.address, "192.168.1.1")
    return registry


@pytest.fixture
def node_id(registry, node_key):
    return registry.nodes_of(node_key.address)[0]


@pytest.fixture
def wallets():
    return WalletBook()


@pytest.fixture
def manager(registry, wallets):
    return SessionManager(
        directory=registry,
        ledger=BalanceLedger(transfer=wallets),
        clock=lambda: T0,
    )


@pytest.fixture
def funded(manager):
    """Manager where USER has deposited 1 ether."""
    manager.deposit(USER, ETHER)
    return manager


@pytest.fixture
def user():
    return USER


@pytest.fixture
def other_user():
    return OTHER_USER


@pytest.fixture
def t0():
    return T0
