"""Split calculation: turn an expense total into per-participant shares.

Every function here is pure. Amounts are Decimal and shares are rounded to
whole cents, so the result survives the two-decimal record format unchanged.
"""

import logging
from collections.abc import Callable, Sequence
from decimal import ROUND_DOWN, Decimal

from .exceptions import (
    EmptyParticipantSetError,
    InvalidAmountError,
    PercentageSumMismatchError,
    ShareCountMismatchError,
    ShareSumMismatchError,
)
from .models import CENT, ExpenseShare, SplitMethod, to_cents

logger = logging.getLogger(__name__)

# A split is accepted only when it misses its target by strictly less than this.
SPLIT_TOLERANCE = Decimal("0.01")
HUNDRED = Decimal("100")


def _check_inputs(participant_ids: Sequence[int], raw_inputs: Sequence[Decimal]):
    if not participant_ids:
        raise EmptyParticipantSetError("At least one participant is required")
    if len(raw_inputs) != len(participant_ids):
        raise ShareCountMismatchError(
            expected=len(participant_ids), actual=len(raw_inputs)
        )
    for value in raw_inputs:
        if value < 0:
            raise InvalidAmountError(f"Split values must not be negative: {value}")


def _allocate_cents(
    total_amount: Decimal,
    participant_ids: Sequence[int],
    exact_amounts: Sequence[Decimal],
) -> list[Decimal]:
    """
    Round exact amounts to cents so they add up to ``total_amount``.

    Every amount is first rounded down to the cent. The cents still missing
    are then handed out one at a time, largest remainder first, ties going to
    the earlier participant. When the amounts overshoot the total (possible
    for percentages that sum to slightly over 100), cents are taken back
    one at a time, smallest remainder first, and only from shares that still
    have a cent to give. No share ever goes below zero.
    """
    amounts = [value.quantize(CENT, rounding=ROUND_DOWN) for value in exact_amounts]
    remainders = [value - amount for value, amount in zip(exact_amounts, amounts)]

    residual_cents = int((total_amount - sum(amounts, Decimal("0"))) / CENT)
    if not residual_cents:
        return amounts

    if residual_cents > 0:
        order = sorted(range(len(amounts)), key=lambda i: -remainders[i])
        step = CENT
    else:
        order = sorted(range(len(amounts)), key=lambda i: remainders[i])
        step = -CENT

    remaining = abs(residual_cents)
    while remaining:
        for index in order:
            if not remaining:
                break
            if step < 0 and amounts[index] < CENT:
                continue
            amounts[index] += step
            remaining -= 1

    logger.debug(
        f"Distributed rounding adjustment of {residual_cents * CENT} across "
        f"{len(participant_ids)} participants"
    )
    return amounts


def split_equal(
    total_amount: Decimal,
    participant_ids: Sequence[int],
    raw_inputs: Sequence[Decimal] = (),
) -> list[ExpenseShare]:
    """
    Split a total equally between participants.

    Every participant gets the total divided by the participant count, rounded
    down to the cent. The cents left over (fewer than the participant count)
    go one each to participants in list order, so the shares always add up
    to the total exactly.

    Args:
        total_amount: Expense total
        participant_ids: Participants, in order (duplicates allowed)
        raw_inputs: Ignored

    Returns:
        One share per participant
    """
    if not participant_ids:
        raise EmptyParticipantSetError("At least one participant is required")

    total_amount = to_cents(total_amount)
    count = len(participant_ids)
    base = (total_amount / count).quantize(CENT, rounding=ROUND_DOWN)
    leftover_cents = int((total_amount - base * count) / CENT)

    shares = []
    for index, actor_id in enumerate(participant_ids):
        amount = base + CENT if index < leftover_cents else base
        shares.append(ExpenseShare(actor_id=actor_id, amount=amount))

    if leftover_cents:
        logger.debug(
            f"Distributed {leftover_cents} leftover cent(s) of {total_amount} "
            f"across {count} participants"
        )

    return shares


def split_exact(
    total_amount: Decimal,
    participant_ids: Sequence[int],
    raw_inputs: Sequence[Decimal],
) -> list[ExpenseShare]:
    """
    Use caller-provided amounts as the shares.

    The raw amounts are checked against the total, then rounded to cents.
    Sub-cent inputs can leave the rounded shares a few cents off the total;
    those cents go to the largest remainders (see ``_allocate_cents``).

    Raises:
        ShareCountMismatchError: If there is not exactly one amount per participant
        ShareSumMismatchError: If the amounts miss the total by a cent or more
    """
    _check_inputs(participant_ids, raw_inputs)

    total = sum(raw_inputs, Decimal("0"))
    if abs(total - total_amount) >= SPLIT_TOLERANCE:
        raise ShareSumMismatchError(
            f"Sum of shares (${total:.2f}) doesn't match "
            f"total amount (${total_amount:.2f})"
        )

    amounts = _allocate_cents(to_cents(total_amount), participant_ids, raw_inputs)

    return [
        ExpenseShare(actor_id=actor_id, amount=amount)
        for actor_id, amount in zip(participant_ids, amounts)
    ]


def split_percentage(
    total_amount: Decimal,
    participant_ids: Sequence[int],
    raw_inputs: Sequence[Decimal],
) -> list[ExpenseShare]:
    """
    Split a total by percentages (0-100 scale).

    Each share is ``total * pct / 100`` rounded to the cent. If rounding leaves
    the shares short of (or over) the total, the difference is spread one cent
    at a time by remainder (see ``_allocate_cents``).

    Raises:
        ShareCountMismatchError: If there is not exactly one percentage per participant
        PercentageSumMismatchError: If the percentages miss 100 by 0.01 or more
    """
    _check_inputs(participant_ids, raw_inputs)

    total_pct = sum(raw_inputs, Decimal("0"))
    if abs(total_pct - HUNDRED) >= SPLIT_TOLERANCE:
        raise PercentageSumMismatchError(
            f"Percentages must add up to 100% (current: {total_pct}%)"
        )

    total_amount = to_cents(total_amount)
    amounts = _allocate_cents(
        total_amount,
        participant_ids,
        [total_amount * pct / HUNDRED for pct in raw_inputs],
    )

    return [
        ExpenseShare(actor_id=actor_id, amount=amount)
        for actor_id, amount in zip(participant_ids, amounts)
    ]


SPLITTERS: dict[
    SplitMethod,
    Callable[[Decimal, Sequence[int], Sequence[Decimal]], list[ExpenseShare]],
] = {
    SplitMethod.EQUAL: split_equal,
    SplitMethod.EXACT: split_exact,
    SplitMethod.PERCENTAGE: split_percentage,
}


def compute_shares(
    method: SplitMethod,
    total_amount: Decimal,
    participant_ids: Sequence[int],
    raw_inputs: Sequence[Decimal] = (),
) -> list[ExpenseShare]:
    """
    Compute shares for an expense using the given split method.

    Args:
        method: Split method
        total_amount: Expense total (positive)
        participant_ids: Participants, in order
        raw_inputs: Amounts (EXACT) or percentages (PERCENTAGE); ignored for EQUAL

    Returns:
        Validated shares, one per participant

    Raises:
        SplitError: If the inputs don't produce a valid split
    """
    return SPLITTERS[method](total_amount, participant_ids, raw_inputs)
