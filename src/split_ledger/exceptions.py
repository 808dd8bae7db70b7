"""Custom exceptions for SplitLedger."""

from typing import Any


class SplitLedgerError(Exception):
    """Base exception for all SplitLedger errors."""

    pass


class ConfigurationError(SplitLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


# ============================================================================
# Rejections (input refused, nothing was mutated)
# ============================================================================


class LedgerRejectedError(SplitLedgerError):
    """Base class for errors where the caller's input was rejected."""

    pass


class DuplicateEmailError(LedgerRejectedError):
    """Raised when registering an email that already belongs to an actor."""

    def __init__(self, email: str, message: str | None = None):
        self.email = email
        super().__init__(message or f"Email already registered: {email}")


class InvalidCredentialsError(LedgerRejectedError):
    """Raised when an email/credential pair does not match any actor."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Invalid email or password")


class NotAuthenticatedError(LedgerRejectedError):
    """Raised when a ledger operation is called without an active session."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Please login first")


class InvalidAmountError(LedgerRejectedError):
    """Raised when an amount is not a positive (or non-negative) number."""

    pass


class InvalidFieldError(LedgerRejectedError):
    """Raised when a text field cannot be stored in a record."""

    pass


class ParticipantNotFoundError(LedgerRejectedError):
    """Raised when an expense references an actor that does not exist."""

    def __init__(self, actor_id: int, message: str | None = None):
        self.actor_id = actor_id
        super().__init__(message or f"User with ID {actor_id} not found")


class SplitError(LedgerRejectedError):
    """Base class for split validation failures."""

    pass


class EmptyParticipantSetError(SplitError):
    """Raised when a split is requested for zero participants."""

    pass


class ShareCountMismatchError(SplitError):
    """Raised when the number of raw inputs differs from the participant count."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Number of shares ({actual}) doesn't match participants ({expected})"
        )


class ShareSumMismatchError(SplitError):
    """Raised when exact shares don't add up to the expense total."""

    pass


class PercentageSumMismatchError(SplitError):
    """Raised when percentages don't add up to 100."""

    pass


# ============================================================================
# Persistence
# ============================================================================


class MalformedRecordError(SplitLedgerError):
    """Raised when a stored line cannot be decoded into a record.

    Only used while loading; the store discards the line and moves on.
    """

    pass


class PersistenceWriteError(SplitLedgerError):
    """Raised when the ledger snapshot could not be written.

    The mutation that triggered the write has already been applied in memory,
    so ``record`` holds the accepted Actor or Expense.
    """

    def __init__(self, message: str, record: Any = None):
        self.record = record
        super().__init__(message)
