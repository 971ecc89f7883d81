"""Tests for the settlement engine."""

from decimal import Decimal

import pytest

from splitvit.models import Expense, ExpenseRecord, Transfer
from splitvit.settlement import (
    SETTLE_TOLERANCE,
    calc_settlements,
    compute_balances,
    compute_transfers,
    round_money,
    to_decimal,
    total_spent,
)


def make_expense(amount, paid_by: str, split: list[str]) -> Expense:
    """Create an Expense for testing."""
    return Expense(
        title="Test", amount=Decimal(str(amount)), paid_by=paid_by, split_between=split
    )


def apply_transfers(
    balance: dict[str, Decimal], transfers: list[Transfer]
) -> dict[str, Decimal]:
    """Pay every transfer and return the resulting balances."""
    result = dict(balance)
    for t in transfers:
        result[t.from_member] += t.amount
        result[t.to_member] -= t.amount
    return result


class TestConcreteScenarios:
    """Worked examples with known answers."""

    def test_two_members_one_expense(self):
        result = calc_settlements(["A", "B"], [make_expense(100, "A", ["A", "B"])])

        assert result.balance == {"A": Decimal("50"), "B": Decimal("-50")}
        assert result.settlements == [
            Transfer(from_member="B", to_member="A", amount=Decimal("50"))
        ]

    def test_three_way_split_pays_back_the_payer(self):
        result = calc_settlements(
            ["A", "B", "C"], [make_expense(90, "A", ["A", "B", "C"])]
        )

        assert result.balance == {
            "A": Decimal("60"),
            "B": Decimal("-30"),
            "C": Decimal("-30"),
        }
        assert len(result.settlements) == 2
        assert all(t.to_member == "A" for t in result.settlements)
        assert sum(t.amount for t in result.settlements) == Decimal("60")
        assert [t.from_member for t in result.settlements] == ["B", "C"]

    def test_no_expenses(self):
        result = calc_settlements(["A", "B"], [])

        assert result.balance == {"A": Decimal("0"), "B": Decimal("0")}
        assert result.settlements == []
        assert result.is_settled

    def test_cancelling_expenses_settle(self):
        expenses = [
            make_expense(30, "A", ["A", "B"]),
            make_expense(30, "B", ["A", "B"]),
        ]

        result = calc_settlements(["A", "B", "C"], expenses)

        assert all(abs(v) <= SETTLE_TOLERANCE for v in result.balance.values())
        assert result.settlements == []

    def test_empty_split_is_skipped(self):
        result = calc_settlements(["A", "B"], [make_expense(50, "A", [])])

        assert result.balance == {"A": Decimal("0"), "B": Decimal("0")}
        assert result.settlements == []

    def test_no_members(self):
        result = calc_settlements([], [])

        assert result.balance == {}
        assert result.settlements == []


class TestBalances:
    """Tests for compute_balances."""

    def test_payer_outside_split(self):
        """The payer is credited in full even when not sharing the cost."""
        balance = compute_balances(["A", "B", "C"], [make_expense(40, "A", ["B", "C"])])

        assert balance == {"A": Decimal("40"), "B": Decimal("-20"), "C": Decimal("-20")}

    def test_duplicate_split_member_debited_twice(self):
        balance = compute_balances(["A", "B"], [make_expense(90, "A", ["A", "B", "B"])])

        assert balance == {"A": Decimal("60"), "B": Decimal("-60")}

    def test_unknown_names_are_admitted_in_first_seen_order(self):
        balance = compute_balances(["A"], [make_expense(10, "X", ["A", "Y"])])

        assert list(balance) == ["A", "X", "Y"]
        assert balance == {"A": Decimal("-5"), "X": Decimal("10"), "Y": Decimal("-5")}

    def test_uneven_division_conserves_within_tolerance(self):
        balance = compute_balances(
            ["A", "B", "C"], [make_expense(100, "A", ["A", "B", "C"])]
        )

        assert abs(sum(balance.values())) <= SETTLE_TOLERANCE
        assert round_money(balance["A"]) == Decimal("66.67")
        assert round_money(balance["B"]) == Decimal("-33.33")

    @pytest.mark.parametrize(
        "record",
        [
            ExpenseRecord(amount=None, paid_by="A", split_between=["A", "B"]),
            ExpenseRecord(amount=Decimal("10"), paid_by=None, split_between=["A", "B"]),
            ExpenseRecord(amount=Decimal("10"), paid_by="A", split_between=None),
            ExpenseRecord(amount=Decimal("10"), paid_by="", split_between=["B"]),
        ],
    )
    def test_incomplete_records_are_skipped(self, record):
        """Half-filled form state contributes nothing and raises nothing."""
        balance = compute_balances(["A", "B"], [record])

        assert balance == {"A": Decimal("0"), "B": Decimal("0")}

    def test_accepts_aliased_records(self):
        record = ExpenseRecord.model_validate(
            {"amount": 20, "paidBy": "B", "splitBetween": ["A", "B"]}
        )

        balance = compute_balances(["A", "B"], [record])

        assert balance == {"A": Decimal("-10"), "B": Decimal("10")}


class TestTransfers:
    """Tests for compute_transfers."""

    def test_balances_within_tolerance_produce_nothing(self):
        balance = {"A": Decimal("0.01"), "B": Decimal("-0.01"), "C": Decimal("0")}

        assert compute_transfers(balance) == []

    def test_greedy_matching_order(self):
        balance = {
            "A": Decimal("70"),
            "B": Decimal("30"),
            "C": Decimal("-50"),
            "D": Decimal("-50"),
        }

        transfers = compute_transfers(balance)

        assert [(t.from_member, t.to_member, t.amount) for t in transfers] == [
            ("C", "A", Decimal("50")),
            ("D", "A", Decimal("20")),
            ("D", "B", Decimal("30")),
        ]

    def test_custom_tolerance(self):
        balance = {"A": Decimal("0.5"), "B": Decimal("-0.5")}

        assert compute_transfers(balance, tolerance=Decimal("1")) == []
        assert len(compute_transfers(balance)) == 1


GROUP_CASES = [
    (
        ["A", "B", "C", "D"],
        [
            make_expense(120, "A", ["A", "B", "C", "D"]),
            make_expense(45.5, "B", ["B", "C"]),
            make_expense(10, "D", ["A"]),
        ],
    ),
    (
        ["Aarav", "Priya", "Rohan"],
        [
            make_expense(100, "Aarav", ["Aarav", "Priya", "Rohan"]),
            make_expense(33.33, "Priya", ["Rohan"]),
            make_expense(7, "Rohan", ["Aarav", "Priya", "Rohan"]),
        ],
    ),
    (
        ["P", "Q", "R", "S", "T"],
        [
            make_expense(1000, "P", ["Q", "R", "S", "T"]),
            make_expense(250, "Q", ["P", "Q"]),
            make_expense(99.99, "T", ["P", "Q", "R", "S", "T"]),
            make_expense(12.34, "S", ["R"]),
        ],
    ),
]


class TestProperties:
    """Invariants that hold for any group."""

    @pytest.mark.parametrize("members,expenses", GROUP_CASES)
    def test_conservation(self, members, expenses):
        result = calc_settlements(members, expenses)

        assert abs(sum(result.balance.values())) <= SETTLE_TOLERANCE

    @pytest.mark.parametrize("members,expenses", GROUP_CASES)
    def test_transfers_clear_all_balances(self, members, expenses):
        result = calc_settlements(members, expenses)

        after = apply_transfers(result.balance, result.settlements)

        assert all(abs(v) <= SETTLE_TOLERANCE for v in after.values())
        assert all(t.amount > 0 for t in result.settlements)

    @pytest.mark.parametrize("members,expenses", GROUP_CASES)
    def test_transfer_count_bound(self, members, expenses):
        result = calc_settlements(members, expenses)

        creditors = sum(1 for v in result.balance.values() if v > SETTLE_TOLERANCE)
        debtors = sum(1 for v in result.balance.values() if v < -SETTLE_TOLERANCE)
        assert len(result.settlements) <= max(0, creditors + debtors - 1)

    @pytest.mark.parametrize("members,expenses", GROUP_CASES)
    def test_idempotent(self, members, expenses):
        assert calc_settlements(members, expenses) == calc_settlements(
            members, expenses
        )

    def test_inputs_not_mutated(self):
        members = ["A", "B"]
        expenses = [make_expense(10, "A", ["A", "B"])]

        calc_settlements(members, expenses)

        assert members == ["A", "B"]
        assert expenses[0].split_between == ["A", "B"]


class TestHelpers:
    """Tests for money helpers."""

    def test_total_spent(self):
        expenses = [make_expense(10.5, "A", ["A"]), make_expense(4.5, "B", ["A"])]

        assert total_spent(expenses) == Decimal("15.0")

    def test_total_spent_ignores_missing_amounts(self):
        records = [ExpenseRecord(amount=None), ExpenseRecord(amount=Decimal("3"))]

        assert total_spent(records) == Decimal("3")

    def test_round_money_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("-2.345")) == Decimal("-2.35")

    def test_to_decimal_avoids_float_artifacts(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(Decimal("5")) == Decimal("5")
