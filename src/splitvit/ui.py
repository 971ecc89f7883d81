"""Interactive UI components for choosing members."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="aa" matches "Aarav"
        query="pr" matches "Priya"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class MemberCompleter(Completer):
    """Fuzzy search completer for group members.

    Only the text after the last comma is matched, so one prompt can collect
    several names.
    """

    def __init__(self, members: list[str]):
        """Initialize the completer with the group's members."""
        self.members = members

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        current = document.text_before_cursor.split(",")[-1]
        query = current.strip().lower()

        for name in self.members:
            if not query or fuzzy_match(query, name.lower()):
                yield Completion(
                    text=name,
                    start_position=-len(current.lstrip()),
                    display=name,
                )


def parse_member_list(text: str, members: list[str]) -> list[str] | None:
    """
    Parse comma-separated member names.

    Empty input selects everyone. Returns None if any name is unknown.
    """
    names = [part.strip() for part in text.split(",") if part.strip()]
    if not names:
        return list(members)
    if any(name not in members for name in names):
        return None
    return names


def select_member_interactive(
    members: list[str], label: str = "Paid by", default: str = ""
) -> str | None:
    """
    Pick one member with fuzzy search.

    Args:
        members: Names to choose from
        label: Prompt label
        default: Pre-filled text

    Returns:
        Selected member name, or None to skip
    """
    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt(
                f"{label}: ", default=default, complete_while_typing=True
            ).strip()

            if not result:
                return None
            if result in members:
                logger.debug(f"User selected member: {result}")
                return result

            print("❌ Not a member. Press Tab to see the list.")
            default = ""

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def select_split_interactive(
    members: list[str], default: list[str] | None = None
) -> list[str] | None:
    """
    Pick the members an expense is split between.

    Names are comma separated; an empty answer means everyone.

    Returns:
        Selected names, or None to skip
    """
    print(f"   Members: {', '.join(members)}")
    print("   Comma separated, Enter for everyone, Ctrl+C to skip\n")

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)
    default_text = ", ".join(default or [])

    try:
        while True:
            result = session.prompt(
                "Split between: ", default=default_text, complete_while_typing=True
            )
            names = parse_member_list(result, members)
            if names is not None:
                return names

            print("❌ Unknown member in list. Press Tab to complete names.")
            default_text = ""

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def confirm(message: str) -> bool:
    """Simple yes/no confirmation, defaulting to no."""
    response = input(f"{message} [y/N] ").strip().lower()
    return response in ("y", "yes")
