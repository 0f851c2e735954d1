"""
Aggregation Engine

Pure computations over transaction, budget and savings-goal records that
the caller has already fetched (and filtered by owner and date window).

Nothing in this module touches storage, the clock (unless no ``now`` is
given), or shared state. Every function is total over well-typed input:
a ratio whose denominator is zero is reported as 0, never NaN or infinity.

Grouping follows one pattern throughout: build a composite key per record,
fold amounts into a dict keyed by it, then reduce each group.
"""

import math
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from spendlog.models.finance import (
    Budget,
    SavingsGoal,
    Transaction,
    TransactionType,
)
from spendlog.models.stats import (
    BudgetRecommendation,
    BudgetReport,
    BudgetSummary,
    BudgetUsage,
    CalendarDay,
    CalendarMonth,
    CategoryTotal,
    DailySpending,
    MonthlyStats,
    SavingsGoalStatus,
    SavingsProgressPoint,
)


# Recommended budget = historical monthly average plus 10%
RECOMMENDATION_BUFFER = 1.1


# =============================================================================
# WINDOW HELPERS
# =============================================================================

def month_window(year: int, month: int) -> tuple[date, date]:
    """Return [first day of month, first day of next month)."""
    start = date(year, month, 1)
    if month == 12:
        return start, date(year + 1, 1, 1)
    return start, date(year, month + 1, 1)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move (year, month) by delta months in either direction."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def lookback_window(year: int, month: int, lookback_months: int) -> tuple[date, date]:
    """
    Window used for budget recommendations.

    Starts on the first day of the month ``lookback_months`` before
    (year, month) and ends, exclusive, on the first day of the month after.
    """
    start_year, start_month = shift_month(year, month, -lookback_months)
    _, end = month_window(year, month)
    return date(start_year, start_month, 1), end


def iter_days(start: date, end: date) -> Iterable[date]:
    """Yield every date from start up to, not including, end."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def _ratio(numerator: float, denominator: float) -> float:
    """Percentage numerator/denominator, or 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _is_income(transaction: Transaction) -> bool:
    return transaction.type == TransactionType.INCOME


def _is_expense(transaction: Transaction) -> bool:
    return transaction.type == TransactionType.EXPENSE


def _net(transactions: Iterable[Transaction]) -> tuple[float, float]:
    """Return (income, expense) totals."""
    income = 0.0
    expense = 0.0
    for transaction in transactions:
        if _is_income(transaction):
            income += transaction.amount
        elif _is_expense(transaction):
            expense += transaction.amount
    return income, expense


# =============================================================================
# MONTHLY STATISTICS
# =============================================================================

def compute_monthly_stats(
    transactions: list[Transaction],
    month_start: date,
    month_end: date,
) -> MonthlyStats:
    """
    Aggregate one user's transactions dated in [month_start, month_end).

    Produces income/expense totals, net savings and savings rate, expense
    per category, expense per day (only days that had one, ascending) and
    the number of days in the window without any expense.
    """
    total_income, total_expenses = _net(transactions)

    category_spending: dict[str, float] = defaultdict(float)
    daily: dict[date, float] = defaultdict(float)
    for transaction in transactions:
        if not _is_expense(transaction):
            continue
        category_spending[transaction.category] += transaction.amount
        daily[transaction.date] += transaction.amount

    daily_spending = [
        DailySpending(date=day, amount=amount)
        for day, amount in sorted(daily.items())
    ]

    days_in_month = sum(1 for _ in iter_days(month_start, month_end))
    expense_days = len(daily)
    net_savings = total_income - total_expenses

    return MonthlyStats(
        total_income=total_income,
        total_expenses=total_expenses,
        net_savings=net_savings,
        savings_rate=_ratio(net_savings, total_income),
        category_spending=dict(category_spending),
        daily_spending=daily_spending,
        no_spend_days=days_in_month - expense_days,
        days_in_month=days_in_month,
        expense_days=expense_days,
    )


def expense_by_category(transactions: Iterable[Transaction]) -> dict[str, float]:
    """Expense amount per category."""
    totals: dict[str, float] = defaultdict(float)
    for transaction in transactions:
        if _is_expense(transaction):
            totals[transaction.category] += transaction.amount
    return dict(totals)


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """Expense total and count per category, largest total first."""
    groups: dict[str, list[float]] = defaultdict(list)
    for transaction in transactions:
        if _is_expense(transaction):
            groups[transaction.category].append(transaction.amount)

    breakdown = [
        CategoryTotal(category=category, total_amount=sum(amounts), count=len(amounts))
        for category, amounts in groups.items()
    ]
    breakdown.sort(key=lambda item: (-item.total_amount, item.category))
    return breakdown


# =============================================================================
# BUDGETS
# =============================================================================

def compute_budget_usage(
    budgets: list[Budget],
    category_totals: dict[str, float],
) -> BudgetReport:
    """
    Combine budgets with the spending recorded against their categories.

    total_spent covers every category in category_totals, including ones
    without a budget.
    """
    usages = []
    for budget in budgets:
        spent = category_totals.get(budget.category, 0.0)
        usages.append(BudgetUsage(
            **budget.model_dump(),
            spent=spent,
            remaining=max(budget.amount - spent, 0.0),
            usage_percent=_ratio(spent, budget.amount),
            is_over_budget=spent > budget.amount,
        ))

    total_budget = sum(budget.amount for budget in budgets)
    total_spent = sum(category_totals.values())

    return BudgetReport(
        budgets=usages,
        summary=BudgetSummary(
            total_budget=total_budget,
            total_spent=total_spent,
            total_remaining=max(total_budget - total_spent, 0.0),
            overall_usage=_ratio(total_spent, total_budget),
        ),
    )


def recommend_budgets(
    past_transactions: list[Transaction],
    lookback_months: int = 3,
    as_of: Optional[date] = None,
) -> list[BudgetRecommendation]:
    """
    Suggest a budget per category from past spending.

    Expenses are summed per (category, month, year); each category's
    monthly sums are averaged and a 10% buffer is added. Months in which a
    category had no expense do not count towards its average.

    When as_of is given, only expenses inside
    lookback_window(as_of.year, as_of.month, lookback_months) are used;
    otherwise the caller is trusted to have applied the window.
    """
    expenses = [t for t in past_transactions if _is_expense(t)]
    if as_of is not None:
        start, end = lookback_window(as_of.year, as_of.month, lookback_months)
        expenses = [t for t in expenses if start <= t.date < end]

    monthly: dict[tuple[str, int, int], float] = defaultdict(float)
    for transaction in expenses:
        key = (transaction.category, transaction.date.month, transaction.date.year)
        monthly[key] += transaction.amount

    per_category: dict[str, list[float]] = defaultdict(list)
    for (category, _month, _year), spent in monthly.items():
        per_category[category].append(spent)

    recommendations = []
    for category, sums in per_category.items():
        average = sum(sums) / len(sums)
        recommendations.append(BudgetRecommendation(
            category=category,
            recommended_amount=_round_half_up(average * RECOMMENDATION_BUFFER),
            historical_average=average,
        ))

    recommendations.sort(key=lambda rec: (-rec.recommended_amount, rec.category))
    return recommendations


# =============================================================================
# SAVINGS GOAL
# =============================================================================

def compute_savings_progress(
    goal: SavingsGoal,
    year_to_date_transactions: list[Transaction],
    now: Optional[datetime] = None,
) -> SavingsGoalStatus:
    """
    Recompute a savings goal from this year's transactions.

    current_amount becomes max(income - expense, 0) over the supplied
    transactions (everything since 1 January of the current year). The
    goal completes once that reaches goal_amount; is_completed is never
    cleared here.
    """
    income, expense = _net(year_to_date_transactions)
    current_savings = max(income - expense, 0.0)

    updated = goal.model_copy(update={
        "current_amount": current_savings,
        "is_completed": goal.is_completed or current_savings >= goal.goal_amount,
    })
    return savings_pace(updated, current_savings, now)


def savings_pace(
    goal: SavingsGoal,
    current_savings: float,
    now: Optional[datetime] = None,
) -> SavingsGoalStatus:
    """
    Derive progress and pace figures for a goal.

    is_on_track compares the daily amount still required with
    current_savings spread over the remaining days. It is a rough
    heuristic, not a trend projection.
    """
    now = now or datetime.utcnow()

    target = datetime.combine(goal.target_date, time.min)
    days_remaining = math.ceil((target - now) / timedelta(days=1))

    amount_needed = max(goal.goal_amount - goal.current_amount, 0.0)
    if days_remaining > 0:
        daily_savings_needed = amount_needed / days_remaining
    else:
        daily_savings_needed = amount_needed

    return SavingsGoalStatus(
        **goal.model_dump(),
        progress=min(_ratio(goal.current_amount, goal.goal_amount), 100.0),
        days_remaining=max(days_remaining, 0),
        amount_needed=amount_needed,
        daily_savings_needed=max(daily_savings_needed, 0.0),
        is_on_track=daily_savings_needed <= current_savings / max(days_remaining, 1),
    )


def compute_savings_series(
    goal: SavingsGoal,
    transactions: list[Transaction],
) -> list[SavingsProgressPoint]:
    """
    Month-by-month cumulative savings since the goal was created.

    The running total carries negative months forward; each reported
    cumulative value and its progress are clamped to [0, goal].
    """
    since = goal.created_at.date()

    monthly: dict[tuple[int, int], float] = defaultdict(float)
    for transaction in transactions:
        if transaction.date < since:
            continue
        key = (transaction.date.year, transaction.date.month)
        if _is_income(transaction):
            monthly[key] += transaction.amount
        elif _is_expense(transaction):
            monthly[key] -= transaction.amount

    points = []
    running = 0.0
    for (year, month), savings in sorted(monthly.items()):
        running += savings
        cumulative = max(running, 0.0)
        points.append(SavingsProgressPoint(
            year=year,
            month=month,
            savings=savings,
            cumulative_savings=cumulative,
            progress=min(_ratio(cumulative, goal.goal_amount), 100.0),
        ))
    return points


# =============================================================================
# CALENDAR HEAT-MAP
# =============================================================================

def compute_calendar(
    transactions: list[Transaction],
    year: int,
    month: int,
) -> CalendarMonth:
    """
    One cell per day of the month with income and expense totals.

    intensity scales each day's expense against the month's largest daily
    expense. leading_blank_days positions day 1 in a Sunday-first grid.
    """
    start, end = month_window(year, month)

    income: dict[date, float] = defaultdict(float)
    expense: dict[date, float] = defaultdict(float)
    for transaction in transactions:
        if not start <= transaction.date < end:
            continue
        if _is_income(transaction):
            income[transaction.date] += transaction.amount
        elif _is_expense(transaction):
            expense[transaction.date] += transaction.amount

    max_expense = max(expense.values(), default=0.0)

    days = [
        CalendarDay(
            day=day.day,
            date=day,
            income=income.get(day, 0.0),
            expense=expense.get(day, 0.0),
            intensity=expense.get(day, 0.0) / max_expense if max_expense > 0 else 0.0,
        )
        for day in iter_days(start, end)
    ]

    return CalendarMonth(
        year=year,
        month=month,
        leading_blank_days=(start.weekday() + 1) % 7,
        days=days,
        max_daily_expense=max_expense,
    )
