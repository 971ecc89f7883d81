"""Settlement engine: net balances and the transfers that clear them.

Everything in this module is a pure function of its inputs. Callers re-run
``calc_settlements`` after every change to a group's members or expenses.
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from .models import SettlementResult, Transfer

logger = logging.getLogger(__name__)

# Balances within this distance of zero count as settled. It absorbs the
# remainders left by dividing an amount between members.
SETTLE_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")


class SplitLike(Protocol):
    """Anything shaped like an expense record."""

    amount: Decimal | None
    paid_by: str | None
    split_between: Sequence[str] | None


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    """Convert an amount to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal) -> Decimal:
    """
    Round an amount to whole cents for display.

    Uses ROUND_HALF_UP for consistency. Never used inside the algorithm.
    """
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def total_spent(expenses: Iterable[SplitLike]) -> Decimal:
    """Sum of all expense amounts, ignoring records without an amount."""
    return sum(
        (to_decimal(exp.amount) for exp in expenses if exp.amount is not None), ZERO
    )


def compute_balances(
    members: Sequence[str], expenses: Iterable[SplitLike]
) -> dict[str, Decimal]:
    """
    Compute each member's net position.

    Positive means the member is owed money, negative means they owe.
    Every declared member gets an entry. Names referenced by an expense but
    missing from ``members`` are admitted with an implicit zero start.

    Expenses with no split members, no amount or no payer are skipped:
    this runs against half-filled forms while the user is still typing.

    Args:
        members: Member names, in display order
        expenses: Expense records (amount, paid_by, split_between)

    Returns:
        Mapping of member name to signed balance
    """
    balance: dict[str, Decimal] = {name: ZERO for name in members}

    for expense in expenses:
        split = expense.split_between
        if not split or expense.amount is None or not expense.paid_by:
            logger.debug(f"Skipping incomplete expense: {expense!r}")
            continue

        amount = to_decimal(expense.amount)
        share = amount / len(split)

        if expense.paid_by not in balance:
            logger.debug(f"Payer '{expense.paid_by}' is not a declared member")
        balance[expense.paid_by] = balance.get(expense.paid_by, ZERO) + amount

        # Duplicates in the split are debited once per occurrence
        for name in split:
            if name not in balance:
                logger.debug(f"Split member '{name}' is not a declared member")
            balance[name] = balance.get(name, ZERO) - share

    return balance


def compute_transfers(
    balance: dict[str, Decimal], tolerance: Decimal = SETTLE_TOLERANCE
) -> list[Transfer]:
    """
    Greedily match debtors to creditors.

    Creditors and debtors are walked in balance-map order with one cursor
    each. Every step moves the smaller of the two outstanding amounts, so
    at most ``creditors + debtors - 1`` transfers are produced.

    Args:
        balance: Signed balance per member
        tolerance: Magnitudes at or below this are treated as settled

    Returns:
        Transfers from debtor to creditor, in emission order
    """
    creditors = [[name, amt] for name, amt in balance.items() if amt > tolerance]
    debtors = [[name, -amt] for name, amt in balance.items() if amt < -tolerance]

    transfers: list[Transfer] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        send = min(creditor[1], debtor[1])
        transfers.append(
            Transfer(from_member=debtor[0], to_member=creditor[0], amount=send)
        )
        creditor[1] -= send
        debtor[1] -= send
        if creditor[1] < tolerance:
            i += 1
        if debtor[1] < tolerance:
            j += 1

    return transfers


def calc_settlements(
    members: Sequence[str],
    expenses: Iterable[SplitLike],
    tolerance: Decimal = SETTLE_TOLERANCE,
) -> SettlementResult:
    """
    Turn members and expenses into balances and settling transfers.

    Args:
        members: Member names
        expenses: Expense records
        tolerance: Settled-balance threshold

    Returns:
        SettlementResult with a balance for every member and the transfers
    """
    balance = compute_balances(members, expenses)
    settlements = compute_transfers(balance, tolerance)
    return SettlementResult(balance=balance, settlements=settlements)
