"""Tests for the balance ledger."""

import itertools
from datetime import datetime
from decimal import Decimal

import pytest

from split_ledger.balances import (
    compute_balances,
    is_settled,
    outstanding_balances,
)
from split_ledger.models import Expense, SplitMethod
from split_ledger.splits import compute_shares


def make_expense(
    id: int,
    payer_id: int,
    total: str,
    participant_ids: list[int],
    method: SplitMethod = SplitMethod.EQUAL,
    raw_inputs: list[str] | None = None,
) -> Expense:
    """Create an Expense with shares computed by the split calculator."""
    shares = compute_shares(
        method,
        Decimal(total),
        participant_ids,
        [Decimal(v) for v in raw_inputs or []],
    )
    return Expense(
        id=id,
        description=f"Test expense {id}",
        total_amount=Decimal(total),
        method=method,
        payer_id=payer_id,
        created_at=datetime(2025, 1, 15, 12, 0, 0),
        shares=shares,
    )


@pytest.fixture
def history():
    """A mixed history between four actors."""
    return [
        make_expense(1, payer_id=1, total="100.00", participant_ids=[1, 2, 3]),
        make_expense(
            2,
            payer_id=2,
            total="60.00",
            participant_ids=[2, 1],
            method=SplitMethod.EXACT,
            raw_inputs=["15.00", "45.00"],
        ),
        make_expense(
            3,
            payer_id=3,
            total="80.00",
            participant_ids=[3, 4, 1],
            method=SplitMethod.PERCENTAGE,
            raw_inputs=["50", "25", "25"],
        ),
        make_expense(4, payer_id=4, total="10.00", participant_ids=[4, 2, 3]),
        make_expense(5, payer_id=1, total="7.77", participant_ids=[1, 4]),
    ]


class TestComputeBalances:
    """Tests for compute_balances."""

    def test_dinner_scenario(self):
        """Actor 1 pays $100 split equally with actors 2 and 3."""
        dinner = make_expense(1, payer_id=1, total="100.00", participant_ids=[1, 2, 3])

        assert compute_balances(1, [dinner]) == {
            2: Decimal("33.33"),
            3: Decimal("33.33"),
        }
        assert compute_balances(2, [dinner]) == {1: Decimal("-33.33")}
        assert compute_balances(3, [dinner]) == {1: Decimal("-33.33")}

    def test_uninvolved_actor_has_no_balances(self):
        """An actor outside every expense sees an empty mapping."""
        dinner = make_expense(1, payer_id=1, total="100.00", participant_ids=[1, 2])

        assert compute_balances(9, [dinner]) == {}

    def test_paying_only_for_yourself_has_no_effect(self):
        """A payer who is the only participant owes and is owed nothing."""
        solo = make_expense(1, payer_id=1, total="20.00", participant_ids=[1])

        assert compute_balances(1, [solo]) == {}

    def test_empty_history(self):
        """No expenses, no balances."""
        assert compute_balances(1, []) == {}

    def test_settled_entries_are_retained(self):
        """Debts that cancel out stay in the raw mapping as zero."""
        expenses = [
            make_expense(
                1,
                payer_id=1,
                total="10.00",
                participant_ids=[2, 1],
                method=SplitMethod.EXACT,
                raw_inputs=["10.00", "0.00"],
            ),
            make_expense(
                2,
                payer_id=2,
                total="10.00",
                participant_ids=[1, 2],
                method=SplitMethod.EXACT,
                raw_inputs=["10.00", "0.00"],
            ),
        ]

        assert compute_balances(1, expenses) == {2: Decimal("0.00")}

    def test_chains_are_not_netted(self):
        """A owes B and B owes C does not become A owes C."""
        expenses = [
            make_expense(1, payer_id=2, total="20.00", participant_ids=[1, 2]),
            make_expense(2, payer_id=3, total="20.00", participant_ids=[2, 3]),
        ]

        assert compute_balances(1, expenses) == {2: Decimal("-10.00")}
        assert compute_balances(3, expenses) == {2: Decimal("10.00")}

    def test_pairwise_conservation(self, history):
        """What A sees from B is the negation of what B sees from A."""
        actors = [1, 2, 3, 4]
        views = {actor: compute_balances(actor, history) for actor in actors}

        for a, b in itertools.permutations(actors, 2):
            assert views[a].get(b, Decimal("0")) == -views[b].get(a, Decimal("0"))

    def test_order_independent(self, history):
        """Permuting the history never changes the result."""
        expected = {actor: compute_balances(actor, history) for actor in [1, 2, 3, 4]}

        for permutation in itertools.permutations(history):
            for actor, balances in expected.items():
                assert compute_balances(actor, permutation) == balances

    def test_accepts_any_iterable(self, history):
        """A generator works as the expense history."""
        assert compute_balances(1, (e for e in history)) == compute_balances(
            1, history
        )


class TestOutstandingBalances:
    """Tests for the settled filter."""

    def test_settled_entries_hidden(self):
        """Entries within one cent of zero are dropped."""
        balances = {
            2: Decimal("0.01"),
            3: Decimal("-0.005"),
            4: Decimal("0.02"),
            5: Decimal("-5.00"),
            6: Decimal("0"),
        }

        assert outstanding_balances(balances) == {
            4: Decimal("0.02"),
            5: Decimal("-5.00"),
        }

    @pytest.mark.parametrize(
        "amount, settled",
        [("0", True), ("0.01", True), ("-0.01", True), ("0.011", False), ("-3", False)],
    )
    def test_is_settled(self, amount, settled):
        """The settled tolerance is inclusive of one cent."""
        assert is_settled(Decimal(amount)) is settled
