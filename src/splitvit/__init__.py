"""SplitVit - Split group expenses and settle up with the fewest transfers."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .editor import EditorState, ExpenseForm, Step
from .models import (
    Expense,
    Group,
    Member,
    SettlementResult,
    Transfer,
)
from .service import GroupService
from .settlement import SETTLE_TOLERANCE, calc_settlements

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "EditorState",
    "ExpenseForm",
    "Step",
    "Expense",
    "Group",
    "Member",
    "SettlementResult",
    "Transfer",
    "GroupService",
    "SETTLE_TOLERANCE",
    "calc_settlements",
]
