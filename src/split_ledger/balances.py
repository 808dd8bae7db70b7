"""Net balance computation between a viewpoint actor and everyone else."""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from .models import Expense

# Balances this close to zero are treated as settled when displayed.
SETTLED_TOLERANCE = Decimal("0.01")


def compute_balances(
    viewpoint_actor_id: int, expenses: Iterable[Expense]
) -> dict[int, Decimal]:
    """
    Compute what every counterparty owes the viewpoint actor.

    For each share of each expense:
    - viewpoint paid, someone else owes a share: that actor owes the viewpoint
    - someone else paid, viewpoint owes a share: the viewpoint owes the payer
    - anything else (viewpoint not involved, or paying its own share) is ignored

    This is a pure fold over the history, so the order of ``expenses`` does
    not matter. Chains of debt are not netted (A owes B owes C stays as is).

    Args:
        viewpoint_actor_id: Actor whose balances are computed
        expenses: Full expense history

    Returns:
        Mapping of counterparty id to signed amount. Positive means the
        counterparty owes the viewpoint, negative means the viewpoint owes
        the counterparty. Entries that net to zero are kept.
    """
    balances: defaultdict[int, Decimal] = defaultdict(Decimal)

    for expense in expenses:
        for share in expense.shares:
            if (
                expense.payer_id == viewpoint_actor_id
                and share.actor_id != viewpoint_actor_id
            ):
                balances[share.actor_id] += share.amount
            elif (
                share.actor_id == viewpoint_actor_id
                and expense.payer_id != viewpoint_actor_id
            ):
                balances[expense.payer_id] -= share.amount

    return dict(balances)


def is_settled(amount: Decimal) -> bool:
    """True if a balance is within the settled tolerance of zero."""
    return abs(amount) <= SETTLED_TOLERANCE


def outstanding_balances(balances: dict[int, Decimal]) -> dict[int, Decimal]:
    """Drop settled entries, keeping only balances worth showing."""
    return {
        actor_id: amount
        for actor_id, amount in balances.items()
        if not is_settled(amount)
    }
