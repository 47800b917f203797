"""
In-memory host ledger tests.
"""

import threading

import pytest

from ledgermart.errors import ErrorCode, InsufficientBalance
from ledgermart.host import HostLedger, InMemoryLedger


class TestInMemoryLedger:

    def test_block_height(self):
        host = InMemoryLedger(block_height=10)
        assert host.block_height == 10
        assert host.mine() == 11
        assert host.mine(9) == 20
        assert host.block_height == 20

    def test_invalid_heights(self):
        with pytest.raises(ValueError):
            InMemoryLedger(block_height=-1)
        with pytest.raises(ValueError):
            InMemoryLedger().mine(0)

    def test_credit_and_balance(self):
        host = InMemoryLedger(balances={"SP-A": 5})
        assert host.credit("SP-A", 10) == 15
        assert host.balance_of("SP-A") == 15
        assert host.balance_of("SP-UNKNOWN") == 0
        with pytest.raises(ValueError):
            host.credit("SP-A", 0)

    def test_transfer(self):
        host = InMemoryLedger(balances={"SP-A": 100})
        host.transfer(40, "SP-A", "SP-B")
        assert host.balance_of("SP-A") == 60
        assert host.balance_of("SP-B") == 40

    def test_insufficient_balance(self):
        host = InMemoryLedger(balances={"SP-A": 10})
        with pytest.raises(InsufficientBalance) as exc_info:
            host.transfer(11, "SP-A", "SP-B")
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_BALANCE
        assert exc_info.value.context["available"] == 10
        assert host.balance_of("SP-A") == 10
        assert host.balance_of("SP-B") == 0

    @pytest.mark.parametrize("amount", [0, -1, 1.5, True])
    def test_rejects_bad_amounts(self, amount):
        host = InMemoryLedger(balances={"SP-A": 10})
        with pytest.raises(ValueError):
            host.transfer(amount, "SP-A", "SP-B")

    def test_savepoint_rollback(self):
        host = InMemoryLedger(balances={"SP-A": 100})
        token = host.savepoint()
        host.transfer(30, "SP-A", "SP-B")
        host.transfer(20, "SP-B", "SP-C")
        host.rollback(token)

        assert host.balance_of("SP-A") == 100
        assert host.balance_of("SP-B") == 0
        assert host.balance_of("SP-C") == 0

    def test_release_keeps_transfers(self):
        host = InMemoryLedger(balances={"SP-A": 100})
        token = host.savepoint()
        host.transfer(30, "SP-A", "SP-B")
        host.release(token)
        assert host.balance_of("SP-B") == 30

    def test_is_a_host_ledger(self):
        assert isinstance(InMemoryLedger(), HostLedger)

    def test_abstract_interface(self):
        with pytest.raises(TypeError):
            HostLedger()


class TestSavepoints:
    """Rollback reverses only the transfers journaled on the savepoint."""

    def test_credit_survives_rollback(self):
        host = InMemoryLedger()
        token = host.savepoint()
        host.credit("SP-X", 5)
        host.rollback(token)
        assert host.balance_of("SP-X") == 5

    def test_rollback_after_spending_credited_funds(self):
        host = InMemoryLedger(balances={"SP-A": 10})
        token = host.savepoint()
        host.credit("SP-A", 50)
        host.transfer(40, "SP-A", "SP-B")
        host.rollback(token)

        assert host.balance_of("SP-A") == 60
        assert host.balance_of("SP-B") == 0

    def test_released_inner_savepoint_is_final(self):
        host = InMemoryLedger(balances={"SP-A": 100, "SP-C": 100})
        outer = host.savepoint()
        host.transfer(10, "SP-A", "SP-B")

        inner = host.savepoint()
        host.transfer(30, "SP-C", "SP-D")
        host.release(inner)

        host.rollback(outer)
        assert host.balance_of("SP-A") == 100
        assert host.balance_of("SP-B") == 0
        assert host.balance_of("SP-C") == 70
        assert host.balance_of("SP-D") == 30

    def test_outer_rollback_also_reverses_open_inner_savepoint(self):
        host = InMemoryLedger(balances={"SP-A": 100})
        outer = host.savepoint()
        host.savepoint()
        host.transfer(25, "SP-A", "SP-B")
        host.rollback(outer)
        assert host.balance_of("SP-A") == 100

    def test_other_threads_transfers_survive_rollback(self):
        host = InMemoryLedger(balances={"SP-A": 100, "SP-C": 100})
        token = host.savepoint()
        host.transfer(10, "SP-A", "SP-B")

        def other():
            t = host.savepoint()
            host.transfer(40, "SP-C", "SP-D")
            host.release(t)

        worker = threading.Thread(target=other)
        worker.start()
        worker.join()

        host.rollback(token)
        assert host.balance_of("SP-A") == 100
        assert host.balance_of("SP-B") == 0
        assert host.balance_of("SP-D") == 40

    def test_closed_savepoint_cannot_be_reused(self):
        host = InMemoryLedger()
        token = host.savepoint()
        host.release(token)
        with pytest.raises(ValueError):
            host.rollback(token)
