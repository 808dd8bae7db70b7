"""Text-file persistence for SplitLedger."""

import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar

from .exceptions import MalformedRecordError, PersistenceWriteError
from .models import Actor, Expense

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", Actor, Expense)


@dataclass
class LoadedLedger:
    """Everything recovered from the record files."""

    actors: list[Actor] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    next_actor_id: int = 1
    next_expense_id: int = 1


class LedgerStore:
    """Reads and rewrites the actor and expense record files.

    The store holds no state of its own: ``load`` reads the whole ledger in,
    ``save`` writes the whole ledger out.
    """

    def __init__(
        self,
        data_dir: Path,
        users_filename: str = "users.txt",
        expenses_filename: str = "expenses.txt",
    ):
        """Initialize the store."""
        self.data_dir = Path(data_dir)
        self.users_path = self.data_dir / users_filename
        self.expenses_path = self.data_dir / expenses_filename

    # ========================================================================
    # Loading
    # ========================================================================

    def load(self) -> LoadedLedger:
        """
        Load all actors and expenses.

        Lines that fail to decode (or repeat an id already loaded) are
        discarded with a warning. Missing files count as empty.

        Returns:
            Loaded records and the next free actor/expense ids
        """
        decoded_actors = list(self._read_records(self.users_path, Actor.from_record))
        actors: list[Actor] = []
        emails: set[str] = set()
        for actor in decoded_actors:
            if actor.email in emails:
                logger.warning(f"Discarding actor {actor.id}: duplicate email")
                continue
            emails.add(actor.email)
            actors.append(actor)

        expenses = list(self._read_records(self.expenses_path, Expense.from_record))

        loaded = LoadedLedger(
            actors=actors,
            expenses=expenses,
            next_actor_id=max((a.id for a in decoded_actors), default=0) + 1,
            next_expense_id=max((e.id for e in expenses), default=0) + 1,
        )

        logger.info(
            f"Loaded {len(actors)} actors and {len(expenses)} expenses "
            f"from {self.data_dir}"
        )
        return loaded

    def _read_records(
        self, path: Path, decode: Callable[[str], RecordT]
    ) -> Iterator[RecordT]:
        """Decode every line of a record file, skipping malformed ones."""
        if not path.exists():
            logger.debug(f"No record file at {path}")
            return

        seen_ids: set[int] = set()
        with path.open("rb") as f:
            for line_number, raw_line in enumerate(f, start=1):
                try:
                    line = raw_line.decode("utf-8").rstrip("\r\n")
                    if not line.strip():
                        continue

                    record = decode(line)
                    if record.id in seen_ids:
                        raise MalformedRecordError(f"Duplicate id {record.id}")
                except (UnicodeDecodeError, MalformedRecordError) as e:
                    logger.warning(
                        f"Discarding malformed record {path.name}:{line_number}: {e}"
                    )
                    continue

                seen_ids.add(record.id)
                yield record

    # ========================================================================
    # Saving
    # ========================================================================

    def save(self, actors: Iterable[Actor], expenses: Iterable[Expense]):
        """
        Rewrite both record files with the full ledger.

        Each file is replaced atomically, so a failed write leaves the
        previous file intact. The two files are replaced one after the other.

        Raises:
            PersistenceWriteError: If a file could not be written
        """
        actor_lines = [actor.to_record() for actor in actors]
        expense_lines = [expense.to_record() for expense in expenses]

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self._replace_file(self.users_path, actor_lines)
            self._replace_file(self.expenses_path, expense_lines)
        except OSError as e:
            raise PersistenceWriteError(
                f"Failed to save ledger to {self.data_dir}: {e}"
            ) from e

        logger.info(
            f"Saved {len(actor_lines)} actors and {len(expense_lines)} expenses"
        )

    def _replace_file(self, path: Path, lines: list[str]):
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                for line in lines:
                    f.write(line + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
