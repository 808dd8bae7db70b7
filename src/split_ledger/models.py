"""Pydantic domain models and their text record encoding for SplitLedger.

Each persisted record is a single line of ``|``-separated fields:

    Actor:   id|name|email|phone|credential
    Expense: id|description|totalAmount|method|payerId|createdAt|shares

``shares`` is zero or more ``actorId:amount`` pairs joined by ``,``. Amounts
are written with exactly two decimal digits and timestamps as
``YYYY-MM-DD HH:MM:SS``. Field values are never escaped, so the models refuse
text that contains a separator.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .exceptions import MalformedRecordError

FIELD_SEPARATOR = "|"
SHARE_SEPARATOR = ","
PAIR_SEPARATOR = ":"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

CENT = Decimal("0.01")
SHARE_TOLERANCE = Decimal("0.01")  # max drift between sum(shares) and total

_FORBIDDEN_CHARS = (FIELD_SEPARATOR, "\n", "\r")


def to_cents(amount: Decimal) -> Decimal:
    """
    Round a Decimal amount to whole cents.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Dollar amount as Decimal

    Returns:
        Amount quantized to two decimal places
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _check_text(value: str) -> str:
    for char in _FORBIDDEN_CHARS:
        if char in value:
            raise ValueError(f"text may not contain {char!r}")
    return value


class SplitMethod(str, Enum):
    """How an expense total is divided between participants."""

    EQUAL = "EQUAL"
    EXACT = "EXACT"
    PERCENTAGE = "PERCENTAGE"

    @classmethod
    def from_tag(cls, tag: str) -> "SplitMethod":
        """Decode a record tag, rejecting names that are not a known method."""
        try:
            return cls(tag)
        except ValueError as e:
            raise MalformedRecordError(f"Unknown split method: {tag!r}") from e


# ============================================================================
# Actor
# ============================================================================


class Actor(BaseModel):
    """A registered participant."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    name: str
    email: str
    phone: str
    credential: str  # opaque; holds a credential hash, never the secret

    @field_validator("name", "email", "phone", "credential")
    @classmethod
    def _no_separators(cls, value: str) -> str:
        return _check_text(value)

    def to_record(self) -> str:
        """Encode the actor as one record line (without newline)."""
        return FIELD_SEPARATOR.join(
            [str(self.id), self.name, self.email, self.phone, self.credential]
        )

    @classmethod
    def from_record(cls, line: str) -> "Actor":
        """
        Decode an actor from a record line.

        Raises:
            MalformedRecordError: If the line is not a valid actor record
        """
        parts = line.split(FIELD_SEPARATOR)
        if len(parts) != 5:
            raise MalformedRecordError(
                f"Actor record needs 5 fields, got {len(parts)}"
            )

        try:
            return cls(
                id=int(parts[0]),
                name=parts[1],
                email=parts[2],
                phone=parts[3],
                credential=parts[4],
            )
        except (ValueError, ValidationError) as e:
            raise MalformedRecordError(f"Invalid actor record: {e}") from e


# ============================================================================
# Expense
# ============================================================================


class ExpenseShare(BaseModel):
    """The amount one actor owes for one expense."""

    model_config = ConfigDict(frozen=True)

    actor_id: int
    amount: Decimal

    @field_validator("amount")
    @classmethod
    def _normalize_amount(cls, value: Decimal) -> Decimal:
        value = to_cents(value)
        if value < 0:
            raise ValueError("share amount must not be negative")
        return value

    def to_record(self) -> str:
        return f"{self.actor_id}{PAIR_SEPARATOR}{self.amount:.2f}"


class Expense(BaseModel):
    """A recorded bill and the resulting per-participant shares.

    The payer is always one of the participants and the shares add up to the
    total within ``SHARE_TOLERANCE``.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    description: str
    total_amount: Decimal
    method: SplitMethod
    payer_id: int
    created_at: datetime
    shares: tuple[ExpenseShare, ...]

    @field_validator("description")
    @classmethod
    def _no_separators(cls, value: str) -> str:
        return _check_text(value)

    @field_validator("total_amount")
    @classmethod
    def _normalize_total(cls, value: Decimal) -> Decimal:
        value = to_cents(value)
        if value <= 0:
            raise ValueError("total amount must be greater than 0")
        return value

    @field_validator("created_at")
    @classmethod
    def _whole_seconds(cls, value: datetime) -> datetime:
        return value.replace(microsecond=0)

    @model_validator(mode="after")
    def _check_shares(self) -> "Expense":
        if not any(share.actor_id == self.payer_id for share in self.shares):
            raise ValueError(f"payer {self.payer_id} is not a participant")

        shares_total = sum((s.amount for s in self.shares), Decimal("0"))
        drift = abs(shares_total - self.total_amount)
        if drift > SHARE_TOLERANCE:
            raise ValueError(
                f"shares differ from total {self.total_amount} by {drift}"
            )
        return self

    @property
    def participant_ids(self) -> list[int]:
        """Actor ids of every share, in order."""
        return [share.actor_id for share in self.shares]

    def involves(self, actor_id: int) -> bool:
        """True if the actor paid for or takes part in this expense."""
        return self.payer_id == actor_id or actor_id in self.participant_ids

    def share_of(self, actor_id: int) -> Decimal | None:
        """Get the total amount owed by an actor, or None if not a participant."""
        amounts = [s.amount for s in self.shares if s.actor_id == actor_id]
        if not amounts:
            return None
        return sum(amounts, Decimal("0"))

    def to_record(self) -> str:
        """Encode the expense as one record line (without newline)."""
        shares = SHARE_SEPARATOR.join(share.to_record() for share in self.shares)
        return FIELD_SEPARATOR.join(
            [
                str(self.id),
                self.description,
                f"{self.total_amount:.2f}",
                self.method.value,
                str(self.payer_id),
                self.created_at.strftime(TIMESTAMP_FORMAT),
                shares,
            ]
        )

    @classmethod
    def from_record(cls, line: str) -> "Expense":
        """
        Decode an expense from a record line.

        Raises:
            MalformedRecordError: If the line is not a valid expense record,
                including an unknown split method name
        """
        parts = line.split(FIELD_SEPARATOR)
        if len(parts) != 7:
            raise MalformedRecordError(
                f"Expense record needs 7 fields, got {len(parts)}"
            )

        method = SplitMethod.from_tag(parts[3])

        try:
            shares = []
            if parts[6]:
                for pair in parts[6].split(SHARE_SEPARATOR):
                    actor_id, amount = pair.split(PAIR_SEPARATOR)
                    shares.append(
                        ExpenseShare(actor_id=int(actor_id), amount=Decimal(amount))
                    )

            return cls(
                id=int(parts[0]),
                description=parts[1],
                total_amount=Decimal(parts[2]),
                method=method,
                payer_id=int(parts[4]),
                created_at=datetime.strptime(parts[5], TIMESTAMP_FORMAT),
                shares=shares,
            )
        except (ValueError, InvalidOperation, ValidationError) as e:
            raise MalformedRecordError(f"Invalid expense record: {e}") from e


# ============================================================================
# Session & export
# ============================================================================


class Session(BaseModel):
    """Proof that an actor authenticated; passed into every ledger operation."""

    model_config = ConfigDict(frozen=True)

    token: str
    actor_id: int
    actor_name: str
    started_at: datetime = Field(default_factory=datetime.now)


class LedgerExportRow(BaseModel):
    """One (expense, participant) row of a ledger export."""

    expense_id: int
    description: str
    total_amount: Decimal
    payer_id: int
    payer_name: str
    participant_id: int
    participant_name: str
    share: Decimal
    created_at: datetime

    def as_csv_row(self) -> list[str]:
        """Flatten to the column order of the CSV export."""
        return [
            str(self.expense_id),
            self.description,
            f"{self.total_amount:.2f}",
            str(self.payer_id),
            self.payer_name,
            str(self.participant_id),
            self.participant_name,
            f"{self.share:.2f}",
            self.created_at.strftime(TIMESTAMP_FORMAT),
        ]
