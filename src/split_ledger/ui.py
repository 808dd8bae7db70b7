"""Interactive UI components for picking expense participants."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import Actor

logger = logging.getLogger(__name__)


def actor_label(actor: Actor) -> str:
    """Label shown for an actor in completions, e.g. ``Alice <a@x.io> #1``."""
    return f"{actor.name} <{actor.email}> #{actor.id}"


class ActorCompleter(Completer):
    """Fuzzy search completer for registered actors."""

    def __init__(self, actors: list[Actor]):
        """Initialize the completer with the selectable actors."""
        self.actors = actors
        self.label_to_id = {actor_label(actor): actor.id for actor in actors}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for label in self.label_to_id:
            if not query or fuzzy_match(query, label.lower()):
                yield Completion(
                    text=label,
                    start_position=-len(document.text),
                    display=label,
                )

    def resolve(self, text: str) -> int | None:
        """Map an entered label (or bare id) back to an actor id."""
        text = text.strip()
        if text in self.label_to_id:
            return self.label_to_id[text]
        if text.lstrip("#").isdigit():
            actor_id = int(text.lstrip("#"))
            if actor_id in self.label_to_id.values():
                return actor_id
        return None


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="alc" matches "alice <alice@example.com> #1"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


def select_participants_interactive(actors: list[Actor], payer_id: int) -> list[int]:
    """
    Interactive participant selection with fuzzy search.

    The payer is always a participant, so only the other actors are offered.

    Args:
        actors: Registered actors
        payer_id: Actor paying for the expense

    Returns:
        Selected actor ids in the order they were picked (payer excluded)
    """
    others = [actor for actor in actors if actor.id != payer_id]
    if not others:
        print("No other users registered; the expense will be yours alone.")
        return []

    print("\n👥 Add participants (you are included automatically)")
    print("   Type to search, press Enter on an empty line to finish\n")

    completer = ActorCompleter(others)
    session: PromptSession[str] = PromptSession(completer=completer)
    selected: list[int] = []

    try:
        while True:
            result = session.prompt("Participant: ", complete_while_typing=True)
            if not result.strip():
                return selected

            actor_id = completer.resolve(result)
            if actor_id is None:
                print("❌ Unknown user. Pick from the list or press Tab to complete.")
                continue

            if actor_id in selected:
                print("   Already added.")
                continue

            selected.append(actor_id)
            logger.debug(f"User selected participant {actor_id}")

    except (KeyboardInterrupt, EOFError):
        return selected
