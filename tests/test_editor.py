"""Tests for editor state transitions."""

from decimal import Decimal

import pytest

from splitvit import editor
from splitvit.editor import EditorState, ExpenseForm, Step
from splitvit.exceptions import InvalidInputError
from splitvit.models import Expense, Group, Member


@pytest.fixture
def sample_group():
    """Create a stored group with members and expenses."""
    return Group(
        id="g1",
        name="Goa Trip",
        share_token="tok123",
        members=[Member(id="m1", name="Aarav"), Member(id="m2", name="Priya")],
        expenses=[
            Expense(
                id="e1",
                title="Dinner",
                amount=Decimal("100"),
                paid_by="Aarav",
                split_between=["Aarav", "Priya"],
            ),
            Expense(
                id="e2",
                title="Taxi",
                amount=Decimal("30"),
                paid_by="Priya",
                split_between=["Aarav", "Priya"],
            ),
        ],
    )


@pytest.fixture
def state(sample_group):
    return editor.open_editor(sample_group)


class TestOpenEditor:
    def test_new_group_starts_at_first_step(self):
        state = editor.open_editor(None, name="Flatmates")

        assert state.step == Step.CREATE_GROUP
        assert state.group_name == "Flatmates"
        assert state.is_new

    def test_existing_group_opens_settlement(self, state):
        assert state.step == Step.SETTLEMENT
        assert state.group_id == "g1"
        assert state.share_token == "tok123"
        assert state.members == ["Aarav", "Priya"]
        assert state.member_ids == {"Aarav": "m1", "Priya": "m2"}
        assert len(state.expenses) == 2

    def test_with_group_records_identity(self):
        state = editor.open_editor(None, name="Flatmates")
        group = Group(id="g9", name="Flatmates", share_token="abc")

        updated = editor.with_group(state, group)

        assert updated.group_id == "g9"
        assert updated.share_token == "abc"
        assert state.group_id is None


class TestMembers:
    def test_normalize_strips_whitespace(self, state):
        assert editor.normalize_member_name(state, "  Rohan ") == "Rohan"

    def test_normalize_rejects_blank(self, state):
        with pytest.raises(InvalidInputError):
            editor.normalize_member_name(state, "   ")

    def test_normalize_rejects_duplicate(self, state):
        with pytest.raises(InvalidInputError, match="already a member"):
            editor.normalize_member_name(state, "Priya")

    def test_member_added(self, state):
        updated = editor.with_member_added(state, Member(id="m3", name="Rohan"))

        assert updated.members == ["Aarav", "Priya", "Rohan"]
        assert updated.member_ids["Rohan"] == "m3"
        assert state.members == ["Aarav", "Priya"]

    def test_member_removed_keeps_expenses(self, state):
        updated = editor.with_member_removed(state, "Priya")

        assert updated.members == ["Aarav"]
        assert "Priya" not in updated.member_ids
        assert updated.expenses == state.expenses

    def test_removed_member_still_appears_in_settlement(self, state):
        updated = editor.with_member_removed(state, "Priya")

        result = editor.settlement(updated)

        assert result.balance == {"Aarav": Decimal("35"), "Priya": Decimal("-35")}


class TestExpenseForm:
    def test_valid_form(self):
        form = ExpenseForm(
            title=" Lunch ", amount="12.50", paid_by="A", split_between=["A", "B"]
        )

        payload = form.to_payload()

        assert payload.title == "Lunch"
        assert payload.amount == Decimal("12.50")
        assert payload.split_between == ["A", "B"]

    @pytest.mark.parametrize(
        "fields,message",
        [
            ({"title": ""}, "title"),
            ({"amount": "abc"}, "not a number"),
            ({"amount": ""}, "not a number"),
            ({"amount": "0"}, "positive"),
            ({"amount": "-5"}, "positive"),
            ({"amount": "NaN"}, "positive"),
            ({"paid_by": ""}, "paid"),
            ({"split_between": []}, "split"),
        ],
    )
    def test_invalid_form(self, fields, message):
        values = {
            "title": "Lunch",
            "amount": "10",
            "paid_by": "A",
            "split_between": ["A"],
            **fields,
        }

        with pytest.raises(InvalidInputError, match=message):
            ExpenseForm(**values).to_payload()


class TestExpenses:
    def test_start_edit_fills_form(self, state):
        updated = editor.start_edit(state, 1)

        assert updated.step == Step.ADD_EXPENSES
        assert updated.edit_index == 1
        assert updated.form.title == "Taxi"
        assert updated.form.amount == "30"
        assert updated.form.paid_by == "Priya"

    def test_saved_expense_is_appended(self, state):
        new = Expense(id="e3", title="Snacks", amount=Decimal("10"), paid_by="Aarav")
        state = editor.with_form(state, title="Snacks", amount="10")

        updated = editor.with_expense_saved(state, new)

        assert [e.id for e in updated.expenses] == ["e1", "e2", "e3"]
        assert updated.form == ExpenseForm()

    def test_saved_expense_replaces_edited_one(self, state):
        edited = Expense(
            id="e1",
            title="Dinner",
            amount=Decimal("120"),
            paid_by="Aarav",
            split_between=["Aarav", "Priya"],
        )

        updated = editor.with_expense_saved(editor.start_edit(state, 0), edited)

        assert updated.expenses[0].amount == Decimal("120")
        assert len(updated.expenses) == 2
        assert updated.edit_index is None

    def test_deleted_expense(self, state):
        updated = editor.with_expense_deleted(state, 0)

        assert [e.id for e in updated.expenses] == ["e2"]
        assert len(state.expenses) == 2

    def test_delete_shifts_edit_index(self, state):
        editing_second = editor.start_edit(state, 1)

        updated = editor.with_expense_deleted(editing_second, 0)

        assert updated.edit_index == 0
        assert editor.with_expense_deleted(editing_second, 1).edit_index is None

    def test_settlement_recomputes_from_state(self, state):
        result = editor.settlement(state)

        # Aarav: +100 - 50 - 15 = 35; Priya: +30 - 50 - 15 = -35
        assert result.balance == {"Aarav": Decimal("35"), "Priya": Decimal("-35")}
        assert len(result.settlements) == 1
        assert result.settlements[0].from_member == "Priya"

    def test_go_to(self):
        state = EditorState()

        assert editor.go_to(state, Step.SETTLEMENT).step == Step.SETTLEMENT
        assert state.step == Step.CREATE_GROUP
