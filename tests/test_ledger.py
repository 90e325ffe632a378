"""
tests/test_ledger.py

Balance ledger and outbound transfers.
"""

import pytest

from sessionpay.core.exceptions import InsufficientBalance, InvalidAmount, TransferFailed
from sessionpay.ledger import BalanceLedger, WalletBook


class _BrokenTransfer:
    def send(self, recipient, amount):
        raise RuntimeError("network down")


@pytest.fixture
def wallets():
    return WalletBook()


@pytest.fixture
def ledger(wallets):
    return BalanceLedger(transfer=wallets)


class TestDeposit:

    def test_deposit_credits_balance(self, ledger):
        assert ledger.deposit("alice", 100) == 100
        assert ledger.deposit("alice", 50) == 150
        assert ledger.balance_of("alice") == 150

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_deposit_rejected(self, ledger, amount):
        with pytest.raises(InvalidAmount):
            ledger.deposit("alice", amount)
        assert ledger.balance_of("alice") == 0

    @pytest.mark.parametrize("amount", [0.5, 1.0, "100", True, None])
    def test_non_integer_deposit_rejected(self, ledger, amount):
        with pytest.raises(InvalidAmount):
            ledger.deposit("alice", amount)
        assert ledger.balance_of("alice") == 0
        assert BalanceLedger.from_dict(ledger.to_dict()).total() == 0

    def test_unknown_principal_has_zero(self, ledger):
        assert ledger.balance_of("nobody") == 0


class TestWithdraw:

    def test_withdraw_debits_and_transfers(self, ledger, wallets):
        ledger.deposit("alice", 100)
        assert ledger.withdraw("alice", 40) == 60
        assert wallets.received("alice") == 40

    def test_withdraw_entire_balance(self, ledger):
        ledger.deposit("alice", 100)
        assert ledger.withdraw("alice", 100) == 0

    def test_overdraw_rejected(self, ledger, wallets):
        ledger.deposit("alice", 100)
        with pytest.raises(InsufficientBalance):
            ledger.withdraw("alice", 101)
        assert ledger.balance_of("alice") == 100
        assert wallets.total_sent() == 0

    def test_failed_transfer_rolls_back(self):
        ledger = BalanceLedger(transfer=_BrokenTransfer())
        ledger.deposit("alice", 100)
        with pytest.raises(TransferFailed):
            ledger.withdraw("alice", 30)
        assert ledger.balance_of("alice") == 100


class TestDebit:

    def test_debit_never_goes_negative(self, ledger):
        ledger.deposit("alice", 10)
        with pytest.raises(InsufficientBalance):
            ledger.debit("alice", 11)
        ledger.debit("alice", 10)
        assert ledger.balance_of("alice") == 0

    @pytest.mark.parametrize("amount", [2.5, "3", False])
    def test_non_integer_debit_rejected(self, ledger, wallets, amount):
        ledger.deposit("alice", 10)
        with pytest.raises(InvalidAmount):
            ledger.debit("alice", amount)
        with pytest.raises(InvalidAmount):
            ledger.withdraw("alice", amount)
        assert ledger.balance_of("alice") == 10
        assert wallets.total_sent() == 0

    def test_round_trip_dict(self, ledger, wallets):
        ledger.deposit("alice", 10 ** 20)
        restored = BalanceLedger.from_dict(ledger.to_dict(), transfer=wallets)
        assert restored.balance_of("alice") == 10 ** 20
        assert restored.total() == ledger.total()


class TestWalletBook:

    def test_negative_send_rejected(self, wallets):
        with pytest.raises(InvalidAmount):
            wallets.send("bob", -1)

    def test_zero_send_recorded(self, wallets):
        wallets.send("bob", 0)
        assert wallets.received("bob") == 0
