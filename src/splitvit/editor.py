"""Group editor state and its pure transition functions.

The editor walks through three steps: create the group and its members, add
expenses, then view the settlement. All state lives in an ``EditorState``;
transitions return a new state and never touch the one passed in. Backend
calls happen in the service layer, which feeds their results through here.
"""

from decimal import Decimal, InvalidOperation
from enum import IntEnum

from pydantic import BaseModel, Field

from .exceptions import InvalidInputError
from .models import Expense, Group, Member, SettlementResult
from .settlement import calc_settlements


class Step(IntEnum):
    """Editor screens, in order."""

    CREATE_GROUP = 1
    ADD_EXPENSES = 2
    SETTLEMENT = 3


class ExpensePayload(BaseModel):
    """A validated expense ready to be stored."""

    title: str
    amount: Decimal
    paid_by: str
    split_between: list[str]


class ExpenseForm(BaseModel):
    """The expense form as the user has filled it in so far."""

    title: str = ""
    amount: str = ""  # raw text as typed
    paid_by: str = ""
    split_between: list[str] = Field(default_factory=list)

    def to_payload(self) -> ExpensePayload:
        """
        Validate the form.

        Raises:
            InvalidInputError: If any field is missing or the amount is not
                a positive number
        """
        title = self.title.strip()
        if not title:
            raise InvalidInputError("Expense title is required")

        try:
            amount = Decimal(self.amount.strip())
        except InvalidOperation:
            raise InvalidInputError(f"Amount '{self.amount}' is not a number") from None
        if not amount.is_finite() or amount <= 0:
            raise InvalidInputError("Amount must be a positive number")

        if not self.paid_by:
            raise InvalidInputError("Choose who paid")
        if not self.split_between:
            raise InvalidInputError("Choose at least one member to split between")

        return ExpensePayload(
            title=title,
            amount=amount,
            paid_by=self.paid_by,
            split_between=list(self.split_between),
        )


class EditorState(BaseModel):
    """Everything the group editor screen holds."""

    step: Step = Step.CREATE_GROUP
    group_name: str = ""
    group_id: str | None = None
    share_token: str | None = None
    members: list[str] = Field(default_factory=list)
    member_ids: dict[str, str] = Field(default_factory=dict)
    expenses: list[Expense] = Field(default_factory=list)
    form: ExpenseForm = Field(default_factory=ExpenseForm)
    edit_index: int | None = None

    @property
    def is_new(self) -> bool:
        return self.group_id is None


def open_editor(group: Group | None = None, name: str = "") -> EditorState:
    """Start editing an existing group, or a new one when ``group`` is None."""
    if group is None:
        return EditorState(step=Step.CREATE_GROUP, group_name=name)

    return EditorState(
        step=Step.SETTLEMENT,
        group_name=group.name,
        group_id=group.id,
        share_token=group.share_token,
        members=group.member_names(),
        member_ids={m.name: m.id for m in group.members if m.id is not None},
        expenses=list(group.expenses),
    )


def with_group(state: EditorState, group: Group) -> EditorState:
    """Record the identity of a freshly created group."""
    return state.model_copy(
        update={
            "group_id": group.id,
            "group_name": group.name,
            "share_token": group.share_token,
        }
    )


def normalize_member_name(state: EditorState, raw: str) -> str:
    """
    Clean up a typed member name.

    Raises:
        InvalidInputError: If the name is blank or already in the group
    """
    name = raw.strip()
    if not name:
        raise InvalidInputError("Member name is required")
    if name in state.members:
        raise InvalidInputError(f"'{name}' is already a member")
    return name


def with_member_added(state: EditorState, member: Member) -> EditorState:
    member_ids = dict(state.member_ids)
    if member.id is not None:
        member_ids[member.name] = member.id
    return state.model_copy(
        update={"members": [*state.members, member.name], "member_ids": member_ids}
    )


def with_member_removed(state: EditorState, name: str) -> EditorState:
    # Past expenses keep their references; the engine admits unknown names
    member_ids = {k: v for k, v in state.member_ids.items() if k != name}
    return state.model_copy(
        update={
            "members": [m for m in state.members if m != name],
            "member_ids": member_ids,
        }
    )


def with_form(state: EditorState, **fields) -> EditorState:
    """Update fields of the expense form."""
    return state.model_copy(update={"form": state.form.model_copy(update=fields)})


def start_edit(state: EditorState, index: int) -> EditorState:
    """Load an existing expense into the form and switch to the expense step."""
    expense = state.expenses[index]
    form = ExpenseForm(
        title=expense.title,
        amount=str(expense.amount),
        paid_by=expense.paid_by,
        split_between=list(expense.split_between),
    )
    return state.model_copy(
        update={"form": form, "edit_index": index, "step": Step.ADD_EXPENSES}
    )


def with_expense_saved(state: EditorState, expense: Expense) -> EditorState:
    """Store a saved expense, replacing the one being edited if any."""
    expenses = list(state.expenses)
    if state.edit_index is not None:
        expenses[state.edit_index] = expense
    else:
        expenses.append(expense)
    return state.model_copy(
        update={"expenses": expenses, "form": ExpenseForm(), "edit_index": None}
    )


def with_expense_deleted(state: EditorState, index: int) -> EditorState:
    expenses = [e for i, e in enumerate(state.expenses) if i != index]
    edit_index = state.edit_index
    if edit_index == index:
        edit_index = None
    elif edit_index is not None and edit_index > index:
        edit_index -= 1
    return state.model_copy(update={"expenses": expenses, "edit_index": edit_index})


def go_to(state: EditorState, step: Step) -> EditorState:
    return state.model_copy(update={"step": step})


def settlement(state: EditorState) -> SettlementResult:
    """Recompute balances and transfers for the current state."""
    return calc_settlements(state.members, state.expenses)
