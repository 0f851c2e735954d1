"""
Result Models for the Aggregation Engine

Every number here is derived from stored records; none is accepted from
clients. Ratios are percentages (0-100) and are 0 whenever their
denominator is 0.
"""

from typing import Optional

from pydantic import Field

from spendlog.models.finance import Budget, CalendarDate, CamelModel, SavingsGoal


class DailySpending(CamelModel):
    """Total expense on one calendar day."""

    date: CalendarDate
    amount: float


class MonthlyStats(CamelModel):
    """Aggregates of one user's transactions over one window."""

    total_income: float = 0.0
    total_expenses: float = 0.0
    net_savings: float = 0.0
    savings_rate: float = 0.0
    category_spending: dict[str, float] = Field(default_factory=dict)
    daily_spending: list[DailySpending] = Field(default_factory=list)
    no_spend_days: int = 0
    days_in_month: int = 0
    expense_days: int = 0


class CategoryTotal(CamelModel):
    """Expense total for one category."""

    category: str
    total_amount: float
    count: int


class BudgetUsage(Budget):
    """A budget together with what was spent against it."""

    spent: float = 0.0
    remaining: float = 0.0
    usage_percent: float = 0.0
    is_over_budget: bool = False


class BudgetSummary(CamelModel):
    total_budget: float = 0.0
    total_spent: float = 0.0
    total_remaining: float = 0.0
    overall_usage: float = 0.0


class BudgetReport(CamelModel):
    """Response of GET /api/budgets."""

    budgets: list[BudgetUsage] = Field(default_factory=list)
    summary: BudgetSummary = Field(default_factory=BudgetSummary)


class BudgetRecommendation(CamelModel):
    category: str
    recommended_amount: int
    historical_average: float


class SavingsGoalStatus(SavingsGoal):
    """A savings goal after server-side recompute, with pace figures."""

    progress: float = 0.0
    days_remaining: int = 0
    amount_needed: float = 0.0
    daily_savings_needed: float = 0.0
    is_on_track: bool = False


class SavingsProgressPoint(CamelModel):
    """One month of the cumulative savings series."""

    year: int
    month: int
    savings: float
    cumulative_savings: float
    progress: float


class CalendarDay(CamelModel):
    """One cell of the monthly heat-map."""

    day: int
    date: CalendarDate
    income: float = 0.0
    expense: float = 0.0
    intensity: float = Field(default=0.0, ge=0.0, le=1.0)


class CalendarMonth(CamelModel):
    year: int
    month: int
    leading_blank_days: int = Field(
        ...,
        ge=0,
        le=6,
        description="Empty cells before day 1 in a Sunday-first grid"
    )
    days: list[CalendarDay] = Field(default_factory=list)
    max_daily_expense: Optional[float] = None
