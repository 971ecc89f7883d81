"""Tests for member pickers."""

from prompt_toolkit.document import Document

from splitvit.ui import MemberCompleter, fuzzy_match, parse_member_list

MEMBERS = ["Aarav", "Priya", "Rohan"]


def completions(text: str) -> list[tuple[str, int]]:
    completer = MemberCompleter(MEMBERS)
    return [
        (c.text, c.start_position)
        for c in completer.get_completions(Document(text), None)
    ]


def test_fuzzy_match_in_order():
    assert fuzzy_match("pya", "priya")
    assert not fuzzy_match("ayp", "priya")
    assert fuzzy_match("", "anything")


def test_empty_query_offers_everyone():
    assert [name for name, _ in completions("")] == MEMBERS


def test_completes_last_name_in_list():
    assert completions("Aarav, ro") == [("Rohan", -2)]


def test_parse_member_list():
    assert parse_member_list("Aarav, Rohan", MEMBERS) == ["Aarav", "Rohan"]
    assert parse_member_list("  ", MEMBERS) == MEMBERS
    assert parse_member_list("Aarav, Zoya", MEMBERS) is None
