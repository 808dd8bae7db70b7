"""In-memory owner of every actor and expense, indexed by id."""

from collections.abc import Iterable

from .models import Actor, Expense


class LedgerState:
    """Id-keyed index of actors and expenses plus the next-id counters.

    Records are only ever added. Ids handed out are always one more than the
    largest id seen, so ids are never reused even when the history has gaps.
    """

    def __init__(
        self,
        actors: Iterable[Actor] = (),
        expenses: Iterable[Expense] = (),
        next_actor_id: int = 1,
        next_expense_id: int = 1,
    ):
        """Initialize the state from previously loaded records."""
        self._actors: dict[int, Actor] = {}
        self._actor_ids_by_email: dict[str, int] = {}
        self._expenses: dict[int, Expense] = {}
        self.next_actor_id = next_actor_id
        self.next_expense_id = next_expense_id

        for actor in actors:
            self.add_actor(actor)
        for expense in expenses:
            self.add_expense(expense)

    # ========================================================================
    # Actors
    # ========================================================================

    @property
    def actors(self) -> list[Actor]:
        """All actors in id order."""
        return [self._actors[actor_id] for actor_id in sorted(self._actors)]

    def get_actor(self, actor_id: int) -> Actor | None:
        return self._actors.get(actor_id)

    def has_actor(self, actor_id: int) -> bool:
        return actor_id in self._actors

    def find_actor_by_email(self, email: str) -> Actor | None:
        actor_id = self._actor_ids_by_email.get(email)
        return self._actors[actor_id] if actor_id is not None else None

    def add_actor(self, actor: Actor):
        """Add an actor. Ids and emails must be unique."""
        if actor.id in self._actors:
            raise ValueError(f"Duplicate actor id {actor.id}")
        if actor.email in self._actor_ids_by_email:
            raise ValueError(f"Duplicate actor email {actor.email}")

        self._actors[actor.id] = actor
        self._actor_ids_by_email[actor.email] = actor.id
        self.next_actor_id = max(self.next_actor_id, actor.id + 1)

    # ========================================================================
    # Expenses
    # ========================================================================

    @property
    def expenses(self) -> list[Expense]:
        """Full expense history in id order."""
        return [self._expenses[expense_id] for expense_id in sorted(self._expenses)]

    def get_expense(self, expense_id: int) -> Expense | None:
        return self._expenses.get(expense_id)

    def add_expense(self, expense: Expense):
        """Add an expense. Ids must be unique."""
        if expense.id in self._expenses:
            raise ValueError(f"Duplicate expense id {expense.id}")

        self._expenses[expense.id] = expense
        self.next_expense_id = max(self.next_expense_id, expense.id + 1)
