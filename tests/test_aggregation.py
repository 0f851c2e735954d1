"""Tests for the aggregation engine."""

import pytest
from datetime import date, datetime
from uuid import uuid4

from conftest import make_transaction
from spendlog.aggregation import (
    category_breakdown,
    compute_budget_usage,
    compute_calendar,
    compute_monthly_stats,
    compute_savings_progress,
    compute_savings_series,
    expense_by_category,
    lookback_window,
    month_window,
    recommend_budgets,
    savings_pace,
    shift_month,
)
from spendlog.models.finance import Budget, SavingsGoal


OWNER = uuid4()


def goal(amount=1000.0, target=date(2024, 12, 31), created=datetime(2024, 1, 1), **kwargs):
    return SavingsGoal(
        owner_id=OWNER,
        goal_amount=amount,
        target_date=target,
        name="Emergency fund",
        created_at=created,
        **kwargs,
    )


def budget(category, amount, month=1, year=2024):
    return Budget(owner_id=OWNER, category=category, amount=amount, month=month, year=year)


class TestWindows:
    """Tests for date window helpers."""

    def test_month_window(self):
        assert month_window(2024, 1) == (date(2024, 1, 1), date(2024, 2, 1))
        assert month_window(2024, 12) == (date(2024, 12, 1), date(2025, 1, 1))

    def test_shift_month_across_years(self):
        assert shift_month(2024, 1, -3) == (2023, 10)
        assert shift_month(2024, 11, 2) == (2025, 1)
        assert shift_month(2024, 5, 0) == (2024, 5)

    def test_lookback_window_covers_previous_months_and_current(self):
        """Test the recommendation window spans lookback months plus the current one."""
        assert lookback_window(2024, 4, 3) == (date(2024, 1, 1), date(2024, 5, 1))
        assert lookback_window(2024, 2, 3) == (date(2023, 11, 1), date(2024, 3, 1))


class TestMonthlyStats:
    """Tests for compute_monthly_stats."""

    def scenario_a(self):
        return [
            make_transaction(OWNER, 100, kind="income", category="Salary", on=date(2024, 1, 1)),
            make_transaction(OWNER, 40, category="Food", on=date(2024, 1, 1)),
            make_transaction(OWNER, 20, category="Food", on=date(2024, 1, 3)),
        ]

    def test_scenario_a(self):
        """Test one income and two food expenses in January 2024."""
        start, end = month_window(2024, 1)
        stats = compute_monthly_stats(self.scenario_a(), start, end)

        assert stats.total_income == 100
        assert stats.total_expenses == 60
        assert stats.net_savings == 40
        assert stats.savings_rate == pytest.approx(40.0)
        assert stats.category_spending == {"Food": 60}
        assert [(d.date, d.amount) for d in stats.daily_spending] == [
            (date(2024, 1, 1), 40),
            (date(2024, 1, 3), 20),
        ]
        assert stats.no_spend_days == 29
        assert stats.days_in_month == 31
        assert stats.expense_days == 2

    def test_scenario_b_empty_input(self):
        """Test that no transactions gives zeros and a full month of no-spend days."""
        start, end = month_window(2024, 2)
        stats = compute_monthly_stats([], start, end)

        assert stats.total_income == 0
        assert stats.total_expenses == 0
        assert stats.net_savings == 0
        assert stats.savings_rate == 0
        assert stats.category_spending == {}
        assert stats.daily_spending == []
        assert stats.no_spend_days == 29

    def test_savings_rate_zero_without_income(self):
        """Test that expenses without income never divide by zero."""
        start, end = month_window(2024, 1)
        stats = compute_monthly_stats(
            [make_transaction(OWNER, 30, on=date(2024, 1, 5))],
            start,
            end,
        )
        assert stats.net_savings == -30
        assert stats.savings_rate == 0

    def test_totals_are_consistent(self):
        """Test the sum relationships between totals, categories and days."""
        start, end = month_window(2024, 3)
        transactions = [
            make_transaction(OWNER, 12.5, category="Food", on=date(2024, 3, 1)),
            make_transaction(OWNER, 7.25, category="Travel", on=date(2024, 3, 1)),
            make_transaction(OWNER, 99.0, category="Rent", on=date(2024, 3, 15)),
            make_transaction(OWNER, 500.0, kind="income", category="Salary", on=date(2024, 3, 2)),
            make_transaction(OWNER, 3.0, category="Food", on=date(2024, 3, 31)),
        ]
        stats = compute_monthly_stats(transactions, start, end)

        assert stats.total_income - stats.total_expenses == stats.net_savings
        assert sum(stats.category_spending.values()) == pytest.approx(stats.total_expenses)
        assert sum(d.amount for d in stats.daily_spending) == pytest.approx(stats.total_expenses)
        assert stats.no_spend_days + stats.expense_days == stats.days_in_month

    def test_income_days_are_not_expense_days(self):
        start, end = month_window(2024, 1)
        stats = compute_monthly_stats(
            [make_transaction(OWNER, 100, kind="income", on=date(2024, 1, 10))],
            start,
            end,
        )
        assert stats.expense_days == 0
        assert stats.no_spend_days == 31

    def test_idempotent(self):
        """Test that the same input always gives the same output."""
        start, end = month_window(2024, 1)
        transactions = self.scenario_a()
        assert compute_monthly_stats(transactions, start, end) == compute_monthly_stats(
            transactions, start, end
        )


class TestCategoryBreakdown:

    def test_sorted_by_total_descending(self):
        transactions = [
            make_transaction(OWNER, 10, category="Food"),
            make_transaction(OWNER, 50, category="Rent"),
            make_transaction(OWNER, 15, category="Food"),
            make_transaction(OWNER, 999, kind="income", category="Salary"),
        ]
        breakdown = category_breakdown(transactions)

        assert [(c.category, c.total_amount, c.count) for c in breakdown] == [
            ("Rent", 50, 1),
            ("Food", 25, 2),
        ]

    def test_expense_by_category_ignores_income(self):
        transactions = [
            make_transaction(OWNER, 10, category="Food"),
            make_transaction(OWNER, 99, kind="income", category="Food"),
        ]
        assert expense_by_category(transactions) == {"Food": 10}


class TestBudgetUsage:
    """Tests for compute_budget_usage."""

    def test_usage_per_budget(self):
        report = compute_budget_usage([budget("Food", 200)], {"Food": 50})
        usage = report.budgets[0]

        assert usage.spent == 50
        assert usage.remaining == 150
        assert usage.usage_percent == pytest.approx(25.0)
        assert usage.is_over_budget is False
        assert usage.category == "Food"

    def test_scenario_c_zero_budget(self):
        """Test that a zero budget with spending is over budget at 0% usage."""
        report = compute_budget_usage([budget("Food", 0)], {"Food": 50})
        usage = report.budgets[0]

        assert usage.usage_percent == 0
        assert usage.is_over_budget is True
        assert usage.remaining == 0
        assert report.summary.overall_usage == 0

    def test_over_budget(self):
        report = compute_budget_usage([budget("Food", 100)], {"Food": 150})
        usage = report.budgets[0]
        assert usage.is_over_budget is True
        assert usage.remaining == 0
        assert usage.usage_percent == pytest.approx(150.0)

    def test_budget_without_spending(self):
        report = compute_budget_usage([budget("Travel", 80)], {})
        assert report.budgets[0].spent == 0
        assert report.budgets[0].remaining == 80

    def test_summary_counts_unbudgeted_spending(self):
        """Test that totalSpent covers categories without a budget."""
        report = compute_budget_usage(
            [budget("Food", 100), budget("Rent", 300)],
            {"Food": 40, "Fun": 60},
        )
        assert report.summary.total_budget == 400
        assert report.summary.total_spent == 100
        assert report.summary.total_remaining == 300
        assert report.summary.overall_usage == pytest.approx(25.0)

    def test_no_budgets(self):
        report = compute_budget_usage([], {"Food": 40})
        assert report.budgets == []
        assert report.summary.total_budget == 0
        assert report.summary.overall_usage == 0


class TestRecommendations:
    """Tests for recommend_budgets."""

    def test_average_plus_buffer(self):
        """Test that each category gets its monthly average plus 10%."""
        transactions = [
            make_transaction(OWNER, 100, category="Food", on=date(2024, 1, 5)),
            make_transaction(OWNER, 200, category="Food", on=date(2024, 2, 5)),
            make_transaction(OWNER, 50, category="Food", on=date(2024, 2, 20)),
        ]
        recs = recommend_budgets(transactions)

        assert len(recs) == 1
        assert recs[0].category == "Food"
        assert recs[0].historical_average == pytest.approx(175.0)
        assert recs[0].recommended_amount == 193

    def test_months_without_spending_do_not_lower_average(self):
        transactions = [make_transaction(OWNER, 100, category="Gifts", on=date(2024, 3, 1))]
        recs = recommend_budgets(transactions)
        assert recs[0].historical_average == 100
        assert recs[0].recommended_amount == 110

    def test_rounds_half_up(self):
        """Test 5 * 1.1 = 5.5 rounds to 6."""
        recs = recommend_budgets([make_transaction(OWNER, 5, on=date(2024, 1, 1))])
        assert recs[0].recommended_amount == 6

    def test_sorted_by_recommendation(self):
        transactions = [
            make_transaction(OWNER, 10, category="Food", on=date(2024, 1, 1)),
            make_transaction(OWNER, 500, category="Rent", on=date(2024, 1, 1)),
        ]
        assert [r.category for r in recommend_budgets(transactions)] == ["Rent", "Food"]

    def test_as_of_applies_lookback_window(self):
        transactions = [
            make_transaction(OWNER, 100, category="Food", on=date(2023, 12, 31)),
            make_transaction(OWNER, 300, category="Food", on=date(2024, 1, 1)),
            make_transaction(OWNER, 900, category="Food", on=date(2024, 5, 1)),
        ]
        recs = recommend_budgets(transactions, lookback_months=3, as_of=date(2024, 4, 15))
        assert recs[0].historical_average == 300

    def test_income_is_ignored(self):
        recs = recommend_budgets([make_transaction(OWNER, 100, kind="income")])
        assert recs == []


class TestSavingsProgress:
    """Tests for compute_savings_progress and savings_pace."""

    def test_recomputes_current_amount(self):
        transactions = [
            make_transaction(OWNER, 600, kind="income", on=date(2024, 1, 10)),
            make_transaction(OWNER, 100, on=date(2024, 1, 12)),
        ]
        status = compute_savings_progress(goal(), transactions, now=datetime(2024, 6, 1))

        assert status.current_amount == 500
        assert status.progress == pytest.approx(50.0)
        assert status.amount_needed == 500
        assert status.is_completed is False

    def test_negative_savings_clamped_to_zero(self):
        transactions = [make_transaction(OWNER, 100, on=date(2024, 1, 12))]
        status = compute_savings_progress(goal(), transactions, now=datetime(2024, 6, 1))
        assert status.current_amount == 0
        assert status.progress == 0

    def test_scenario_d_completion_latches(self):
        """Test that a reached goal stays completed after savings drop."""
        reached = [make_transaction(OWNER, 1200, kind="income", on=date(2024, 1, 10))]
        status = compute_savings_progress(goal(), reached, now=datetime(2024, 6, 1))

        assert status.is_completed is True
        assert status.progress == 100
        assert status.amount_needed == 0

        completed = goal(is_completed=True, current_amount=1200)
        dropped = reached + [make_transaction(OWNER, 900, on=date(2024, 2, 1))]
        status = compute_savings_progress(completed, dropped, now=datetime(2024, 6, 1))

        assert status.current_amount == 300
        assert status.is_completed is True

    def test_scenario_e_past_target_date(self):
        """Test that an overdue goal needs the whole remainder now."""
        overdue = goal(target=date(2024, 1, 31), current_amount=400)
        status = savings_pace(overdue, 400, now=datetime(2024, 3, 1))

        assert status.days_remaining == 0
        assert status.amount_needed == 600
        assert status.daily_savings_needed == 600

    def test_days_remaining_rounds_up(self):
        """Test that part of a day counts as a whole day."""
        status = savings_pace(
            goal(target=date(2024, 1, 11), current_amount=0),
            0,
            now=datetime(2024, 1, 1, 12, 0),
        )
        assert status.days_remaining == 10
        assert status.daily_savings_needed == pytest.approx(100.0)

    def test_is_on_track_heuristic(self):
        """Test on-track compares needed daily savings with savings spread over the days left."""
        on_track = savings_pace(
            goal(amount=1000, target=date(2024, 1, 11), current_amount=500),
            500,
            now=datetime(2024, 1, 1),
        )
        assert on_track.daily_savings_needed == pytest.approx(50.0)
        assert on_track.is_on_track is True

        behind = savings_pace(
            goal(amount=1000, target=date(2024, 1, 11), current_amount=100),
            100,
            now=datetime(2024, 1, 1),
        )
        assert behind.daily_savings_needed == pytest.approx(90.0)
        assert behind.is_on_track is False

    def test_progress_capped_at_100(self):
        status = savings_pace(goal(current_amount=5000), 5000, now=datetime(2024, 6, 1))
        assert status.progress == 100


class TestSavingsSeries:
    """Tests for compute_savings_series."""

    def test_cumulative_series(self):
        transactions = [
            make_transaction(OWNER, 500, kind="income", on=date(2024, 1, 10)),
            make_transaction(OWNER, 200, on=date(2024, 1, 20)),
            make_transaction(OWNER, 400, kind="income", on=date(2024, 2, 1)),
        ]
        series = compute_savings_series(goal(), transactions)

        assert [(p.year, p.month) for p in series] == [(2024, 1), (2024, 2)]
        assert [p.savings for p in series] == [300, 400]
        assert [p.cumulative_savings for p in series] == [300, 700]
        assert series[1].progress == pytest.approx(70.0)

    def test_ignores_transactions_before_goal(self):
        transactions = [
            make_transaction(OWNER, 500, kind="income", on=date(2023, 12, 31)),
            make_transaction(OWNER, 100, kind="income", on=date(2024, 3, 1)),
        ]
        series = compute_savings_series(goal(created=datetime(2024, 3, 1, 15, 30)), transactions)
        assert [(p.month, p.savings) for p in series] == [(3, 100)]

    def test_negative_running_total_is_clamped_but_carried(self):
        """Test that a negative month keeps weighing on later months."""
        transactions = [
            make_transaction(OWNER, 300, on=date(2024, 1, 5)),
            make_transaction(OWNER, 200, kind="income", on=date(2024, 2, 5)),
        ]
        series = compute_savings_series(goal(), transactions)

        assert [p.cumulative_savings for p in series] == [0, 0]
        assert series[1].savings == 200

    def test_empty(self):
        assert compute_savings_series(goal(), []) == []


class TestCalendar:
    """Tests for compute_calendar."""

    def test_one_cell_per_day(self):
        calendar = compute_calendar([], 2024, 2)
        assert len(calendar.days) == 29
        assert calendar.days[0].date == date(2024, 2, 1)
        assert calendar.max_daily_expense == 0

    def test_sunday_first_offset(self):
        """Test leading blanks for a Sunday-first grid."""
        # 1 September 2024 is a Sunday, 1 January 2024 a Monday
        assert compute_calendar([], 2024, 9).leading_blank_days == 0
        assert compute_calendar([], 2024, 1).leading_blank_days == 1
        # 1 June 2024 is a Saturday
        assert compute_calendar([], 2024, 6).leading_blank_days == 6

    def test_daily_totals_and_intensity(self):
        transactions = [
            make_transaction(OWNER, 40, on=date(2024, 1, 2)),
            make_transaction(OWNER, 40, on=date(2024, 1, 2)),
            make_transaction(OWNER, 20, on=date(2024, 1, 3)),
            make_transaction(OWNER, 500, kind="income", on=date(2024, 1, 3)),
            make_transaction(OWNER, 999, on=date(2024, 2, 1)),
        ]
        calendar = compute_calendar(transactions, 2024, 1)
        by_day = {cell.day: cell for cell in calendar.days}

        assert calendar.max_daily_expense == 80
        assert by_day[2].expense == 80
        assert by_day[2].intensity == 1
        assert by_day[3].expense == 20
        assert by_day[3].income == 500
        assert by_day[3].intensity == pytest.approx(0.25)
        assert by_day[4].intensity == 0
