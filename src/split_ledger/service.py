"""Service layer that composes the ledger state, split calculator and store.

This is the API the CLI (or any other front end) talks to. Every operation
validates its input completely before touching the in-memory ledger, and
every successful mutation is followed by a full snapshot save.
"""

import logging
import secrets
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError

from .balances import compute_balances
from .config import Settings
from .credentials import hash_credential, verify_credential
from .exceptions import (
    DuplicateEmailError,
    InvalidAmountError,
    InvalidCredentialsError,
    InvalidFieldError,
    NotAuthenticatedError,
    ParticipantNotFoundError,
    PersistenceWriteError,
)
from .models import (
    Actor,
    Expense,
    LedgerExportRow,
    Session,
    SplitMethod,
    to_cents,
)
from .splits import compute_shares
from .state import LedgerState
from .store import LedgerStore

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"

AmountLike = Decimal | int | float | str


class LedgerService:
    """Service for registering actors, recording expenses and querying balances."""

    def __init__(self, settings: Settings, store: LedgerStore):
        """Initialize the service and load the ledger from the store."""
        self.settings = settings
        self.store = store

        loaded = store.load()
        self.state = LedgerState(
            actors=loaded.actors,
            expenses=loaded.expenses,
            next_actor_id=loaded.next_actor_id,
            next_expense_id=loaded.next_expense_id,
        )
        self._sessions: dict[str, int] = {}

    # ========================================================================
    # Actors & sessions
    # ========================================================================

    def register_actor(
        self, name: str, email: str, phone: str, credential: str
    ) -> Actor:
        """
        Register a new actor.

        Email and phone syntax are the caller's concern; uniqueness of the
        email is enforced here. The credential is stored hashed.

        Returns:
            The new actor

        Raises:
            DuplicateEmailError: If the email is already registered
            InvalidFieldError: If a field can't be stored in a record
            PersistenceWriteError: If the actor was added but not saved
        """
        if self.state.find_actor_by_email(email) is not None:
            raise DuplicateEmailError(email)

        try:
            actor = Actor(
                id=self.state.next_actor_id,
                name=name,
                email=email,
                phone=phone,
                credential=hash_credential(
                    credential, self.settings.credential_iterations
                ),
            )
        except ValidationError as e:
            raise InvalidFieldError(f"Invalid actor details: {e}") from e

        self.state.add_actor(actor)
        logger.info(f"Registered actor {actor.id} ({actor.email})")

        self._persist(actor)
        return actor

    def authenticate(self, email: str, credential: str) -> Session:
        """
        Start a session for the actor with this email and credential.

        Raises:
            InvalidCredentialsError: If no actor matches
        """
        actor = self.state.find_actor_by_email(email)
        if actor is None or not verify_credential(credential, actor.credential):
            logger.warning(f"Failed login for {email}")
            raise InvalidCredentialsError()

        session = Session(
            token=secrets.token_urlsafe(16), actor_id=actor.id, actor_name=actor.name
        )
        self._sessions[session.token] = actor.id

        logger.info(f"Actor {actor.id} signed in")
        return session

    def sign_out(self, session: Session):
        """End a session. Signing out twice is harmless."""
        if self._sessions.pop(session.token, None) is not None:
            logger.info(f"Actor {session.actor_id} signed out")

    def list_actors(self) -> list[Actor]:
        """All registered actors in id order."""
        return self.state.actors

    def get_actor(self, actor_id: int) -> Actor | None:
        return self.state.get_actor(actor_id)

    def actor_name(self, actor_id: int) -> str:
        """Display name for an actor id, or "Unknown"."""
        actor = self.state.get_actor(actor_id)
        return actor.name if actor else UNKNOWN_NAME

    # ========================================================================
    # Expenses
    # ========================================================================

    def record_expense(
        self,
        session: Session | None,
        description: str,
        total_amount: AmountLike,
        method: SplitMethod | str,
        participant_ids: Sequence[int],
        raw_inputs: Sequence[AmountLike] = (),
    ) -> Expense:
        """
        Record an expense paid by the session's actor.

        The payer is appended to the participants when not listed, before the
        shares are computed. For EXACT and PERCENTAGE splits ``raw_inputs``
        therefore needs one value per participant including the payer.

        Args:
            session: Active session of the payer
            description: What the expense was for
            total_amount: Positive total
            method: Split method (or its name)
            participant_ids: Actor ids sharing the expense
            raw_inputs: Amounts (EXACT) or percentages (PERCENTAGE)

        Returns:
            The recorded expense

        Raises:
            NotAuthenticatedError: Without an active session
            InvalidAmountError: If the total is not positive
            ParticipantNotFoundError: If a participant doesn't exist
            SplitError: If the split inputs are rejected
            InvalidFieldError: If the description can't be stored
            PersistenceWriteError: If the expense was added but not saved
        """
        payer = self._require_actor(session)

        total = _to_amount(total_amount)
        if total <= 0:
            raise InvalidAmountError("Amount must be greater than 0")

        split_method = _to_method(method)

        participants = list(participant_ids)
        if payer.id not in participants:
            participants.append(payer.id)

        for actor_id in participants:
            if not self.state.has_actor(actor_id):
                raise ParticipantNotFoundError(actor_id)

        values = [_to_decimal(value) for value in raw_inputs]
        shares = compute_shares(split_method, total, participants, values)

        try:
            expense = Expense(
                id=self.state.next_expense_id,
                description=description,
                total_amount=total,
                method=split_method,
                payer_id=payer.id,
                created_at=_now(),
                shares=shares,
            )
        except ValidationError as e:
            raise InvalidFieldError(f"Invalid expense details: {e}") from e

        self.state.add_expense(expense)
        logger.info(
            f"Recorded expense {expense.id} '{expense.description}' "
            f"${expense.total_amount:.2f} ({split_method.value}, "
            f"{len(shares)} participants)"
        )

        self._persist(expense)
        return expense

    def list_expenses(
        self, session: Session | None, involving_only: bool = True
    ) -> list[Expense]:
        """
        List expenses in id order.

        Args:
            session: Active session
            involving_only: Only expenses the session actor paid or shares in

        Raises:
            NotAuthenticatedError: Without an active session
        """
        actor = self._require_actor(session)
        expenses = self.state.expenses
        if involving_only:
            expenses = [e for e in expenses if e.involves(actor.id)]
        return expenses

    # ========================================================================
    # Balances & export
    # ========================================================================

    def query_balances(self, session: Session | None) -> dict[int, Decimal]:
        """
        Net balance of the session actor against every counterparty.

        Positive amounts are owed to the session actor, negative amounts are
        owed by it. Settled entries are included.

        Raises:
            NotAuthenticatedError: Without an active session
        """
        actor = self._require_actor(session)
        return compute_balances(actor.id, self.state.expenses)

    def export_ledger(self, session: Session | None) -> list[LedgerExportRow]:
        """
        Flatten the session actor's expenses into one row per participant.

        An expense is included when the session actor paid for it or is one of
        its participants.

        Raises:
            NotAuthenticatedError: Without an active session
        """
        actor = self._require_actor(session)

        rows = []
        for expense in self.state.expenses:
            if not expense.involves(actor.id):
                continue

            payer_name = self.actor_name(expense.payer_id)
            for share in expense.shares:
                rows.append(
                    LedgerExportRow(
                        expense_id=expense.id,
                        description=expense.description,
                        total_amount=expense.total_amount,
                        payer_id=expense.payer_id,
                        payer_name=payer_name,
                        participant_id=share.actor_id,
                        participant_name=self.actor_name(share.actor_id),
                        share=share.amount,
                        created_at=expense.created_at,
                    )
                )

        logger.debug(f"Exported {len(rows)} rows for actor {actor.id}")
        return rows

    # ========================================================================
    # Helpers
    # ========================================================================

    def _require_actor(self, session: Session | None) -> Actor:
        """Resolve the actor behind an active session."""
        if session is None:
            raise NotAuthenticatedError()
        if self._sessions.get(session.token) != session.actor_id:
            raise NotAuthenticatedError("Session has ended, please login again")

        actor = self.state.get_actor(session.actor_id)
        if actor is None:
            raise NotAuthenticatedError()
        return actor

    def _persist(self, record: Actor | Expense):
        """Save the full ledger after a mutation has been applied in memory."""
        try:
            self.store.save(self.state.actors, self.state.expenses)
        except PersistenceWriteError as e:
            logger.error(f"Record {record.id} accepted but not saved: {e}")
            raise PersistenceWriteError(str(e), record=record) from e


def _now() -> datetime:
    return datetime.now().replace(microsecond=0)


def _to_decimal(value: AmountLike) -> Decimal:
    """Convert user input to Decimal, going through str for floats."""
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Not a valid amount: {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmountError(f"Not a valid amount: {value!r}")
    return amount


def _to_amount(value: AmountLike) -> Decimal:
    """Convert user input to a Decimal rounded to cents."""
    amount = _to_decimal(value)
    try:
        return to_cents(amount)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Amount out of range: {value!r}") from e


def _to_method(method: SplitMethod | str) -> SplitMethod:
    try:
        return SplitMethod(method)
    except ValueError as e:
        raise InvalidFieldError(f"Unknown split method: {method!r}") from e
