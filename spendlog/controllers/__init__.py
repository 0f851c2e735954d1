"""Resource controllers: one per record kind, each scoped to an explicit owner."""

from spendlog.controllers.auth import AuthController
from spendlog.controllers.budgets import BudgetController
from spendlog.controllers.savings import SavingsController
from spendlog.controllers.transactions import ExportResult, TransactionController

__all__ = [
    "AuthController",
    "BudgetController",
    "ExportResult",
    "SavingsController",
    "TransactionController",
]
