"""Pydantic domain models for SplitVit."""

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ============================================================================
# Group Models
# ============================================================================


class Member(BaseModel):
    """A named participant in a group."""

    id: str | None = None  # None until persisted
    name: str


class Expense(BaseModel):
    """A payment made by one member on behalf of a subset of members."""

    id: str | None = None
    title: str = ""
    amount: Decimal
    paid_by: str
    split_between: list[str] = Field(default_factory=list)


class ExpenseRecord(BaseModel):
    """A loosely-filled expense, as found in hand-written JSON or form state.

    Any field may be missing; the settlement engine skips incomplete records.
    """

    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal | None = None
    paid_by: str | None = Field(default=None, alias="paidBy")
    split_between: list[str] | None = Field(default=None, alias="splitBetween")


class Group(BaseModel):
    """A group with its members and expenses, as stored in the backend."""

    id: str
    name: str
    owner_id: str | None = None
    share_token: str | None = None
    created_at: datetime | None = None
    members: list[Member] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    def member_names(self) -> list[str]:
        """Member names in storage order."""
        return [m.name for m in self.members]


# ============================================================================
# Settlement Models
# ============================================================================


class Transfer(BaseModel):
    """A directive for one member to pay another."""

    model_config = ConfigDict(populate_by_name=True)

    from_member: str = Field(alias="from")  # debtor
    to_member: str = Field(alias="to")  # creditor
    amount: Decimal


class SettlementResult(BaseModel):
    """Net balances plus the transfers that clear them."""

    balance: dict[str, Decimal] = Field(default_factory=dict)
    settlements: list[Transfer] = Field(default_factory=list)

    @property
    def is_settled(self) -> bool:
        return not self.settlements


class GroupSummary(BaseModel):
    """Dashboard view of a group."""

    group: Group
    member_count: int
    expense_count: int
    total: Decimal
    pending_transfers: int

    @property
    def is_settled(self) -> bool:
        return self.pending_transfers == 0


# ============================================================================
# Auth Models
# ============================================================================


class AuthUser(BaseModel):
    """The signed-in user."""

    id: str
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None

    @property
    def display_name(self) -> str:
        """Full name if known, otherwise the local part of the e-mail address."""
        if self.full_name:
            return self.full_name
        if self.email:
            return self.email.split("@")[0]
        return "User"


class AuthSession(BaseModel):
    """Tokens for an authenticated backend session."""

    access_token: str
    refresh_token: str
    expires_at: datetime
    user: AuthUser

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the access token has expired."""
        return (now or datetime.now(UTC)) >= self.expires_at
