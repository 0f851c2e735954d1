"""API routers."""

from spendlog.api.routes.auth import router as auth_router
from spendlog.api.routes.budgets import router as budgets_router
from spendlog.api.routes.savings import router as savings_router
from spendlog.api.routes.transactions import router as transactions_router

__all__ = ["auth_router", "budgets_router", "savings_router", "transactions_router"]
