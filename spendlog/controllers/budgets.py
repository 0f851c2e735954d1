"""
Budget use cases.

A budget is unique per (user, category, month, year); setting one again
for the same key updates it in place.
"""

from typing import Optional
from uuid import UUID

from spendlog.aggregation import (
    compute_budget_usage,
    expense_by_category,
    lookback_window,
    month_window,
    recommend_budgets,
)
from spendlog.audit import AuditLogger
from spendlog.config import AppSettings, get_settings
from spendlog.controllers.common import resolve_period
from spendlog.models.finance import Budget, BudgetCreate, TransactionType
from spendlog.models.stats import BudgetRecommendation, BudgetReport
from spendlog.services.storage import (
    BudgetStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
)


class BudgetController:

    def __init__(
        self,
        budget_storage: BudgetStorageInterface,
        transaction_storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._budgets = budget_storage
        self._transactions = transaction_storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app

    async def list_with_usage(
        self,
        owner_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> BudgetReport:
        """Budgets of one month with what was spent against each."""
        month, year = resolve_period(month, year)
        start, end = month_window(year, month)

        budgets = await self._budgets.list_budgets(owner_id, month, year)
        expenses = await self._transactions.list_transactions(
            owner_id,
            date_from=start,
            date_to=end,
            transaction_type=TransactionType.EXPENSE,
        )
        return compute_budget_usage(budgets, expense_by_category(expenses))

    async def set_budget(
        self,
        owner_id: UUID,
        data: BudgetCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Insert or update the budget for (category, month, year).

        Raises:
            DuplicateError: If a concurrent request inserted the same key
        """
        budget = Budget(
            owner_id=owner_id,
            category=data.category,
            amount=data.amount,
            month=data.month,
            year=data.year,
            color=data.color or self._settings.default_budget_color,
        )
        saved = await self._budgets.upsert_budget(budget)

        if self._audit_logger:
            await self._audit_logger.log_budget_set(
                user_id=owner_id,
                budget_id=saved.id,
                category=saved.category,
                month=saved.month,
                year=saved.year,
                correlation_id=correlation_id,
            )
        return saved

    async def delete(
        self,
        owner_id: UUID,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if not await self._budgets.delete_budget(owner_id, budget_id):
            raise NotFoundError("Budget not found")

        if self._audit_logger:
            await self._audit_logger.log_budget_deleted(
                user_id=owner_id,
                budget_id=budget_id,
                correlation_id=correlation_id,
            )

    async def recommendations(
        self,
        owner_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[BudgetRecommendation]:
        """Suggested budgets from the last few months of spending."""
        month, year = resolve_period(month, year)
        lookback = self._settings.recommendation_lookback_months
        start, end = lookback_window(year, month, lookback)

        expenses = await self._transactions.list_transactions(
            owner_id,
            date_from=start,
            date_to=end,
            transaction_type=TransactionType.EXPENSE,
        )
        return recommend_budgets(expenses, lookback_months=lookback)
