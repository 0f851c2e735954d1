"""Aggregation engine package."""

from spendlog.aggregation.engine import (
    RECOMMENDATION_BUFFER,
    category_breakdown,
    expense_by_category,
    compute_budget_usage,
    compute_calendar,
    compute_monthly_stats,
    compute_savings_progress,
    compute_savings_series,
    iter_days,
    lookback_window,
    month_window,
    recommend_budgets,
    savings_pace,
    shift_month,
)

__all__ = [
    "RECOMMENDATION_BUFFER",
    "category_breakdown",
    "expense_by_category",
    "compute_budget_usage",
    "compute_calendar",
    "compute_monthly_stats",
    "compute_savings_progress",
    "compute_savings_series",
    "iter_days",
    "lookback_window",
    "month_window",
    "recommend_budgets",
    "savings_pace",
    "shift_month",
]
