"""SplitLedger - Track shared expenses and who owes whom."""

__version__ = "0.1.0"

from .balances import compute_balances, outstanding_balances
from .config import Settings, load_settings
from .models import (
    Actor,
    Expense,
    ExpenseShare,
    LedgerExportRow,
    Session,
    SplitMethod,
)
from .service import LedgerService
from .splits import compute_shares
from .store import LedgerStore

__all__ = [
    "Settings",
    "load_settings",
    "Actor",
    "Expense",
    "ExpenseShare",
    "LedgerExportRow",
    "Session",
    "SplitMethod",
    "compute_balances",
    "outstanding_balances",
    "compute_shares",
    "LedgerService",
    "LedgerStore",
]
