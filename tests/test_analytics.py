from datetime import date
from decimal import Decimal

import pytest

from analytics import (
    aggregate,
    expense_type_trend,
    monthly_insights,
    monthly_series,
    surplus_label,
)
from ledger import CategoryNode, ExpenseRecord, ExpenseTypeNode, IncomeRecord
from periods import PeriodSelector


def _groceries() -> CategoryNode:
    food = ExpenseTypeNode(
        id=10,
        name="Food",
        expenses=(
            ExpenseRecord(100, date(2024, 1, 5)),
            ExpenseRecord(50, date(2024, 2, 10)),
        ),
    )
    return CategoryNode(id=1, name="Groceries", color="#22c55e", expense_types=(food,))


def test_yearly_aggregation_buckets_by_month() -> None:
    result = aggregate([_groceries()], [], PeriodSelector.yearly(2024))

    groceries = result.categories[0]
    food = groceries.expense_types[0]
    assert food.monthly_data == {"Jan": Decimal("100"), "Feb": Decimal("50")}
    assert food.total_amount == Decimal("150")
    assert food.transaction_count == 2
    assert groceries.total_amount == Decimal("150")
    assert result.total_expenses == Decimal("150")
    assert groceries.percentage == pytest.approx(100.0)


def test_monthly_aggregation_keeps_only_selected_month() -> None:
    result = aggregate([_groceries()], [], PeriodSelector.monthly(2024, 0))

    food = result.categories[0].expense_types[0]
    assert food.total_amount == Decimal("100")
    assert food.transaction_count == 1
    assert food.monthly_data == {}


def test_income_only_produces_surplus() -> None:
    result = aggregate(
        [], [IncomeRecord(500, date(2024, 3, 1))], PeriodSelector.yearly(2024)
    )
    assert result.total_income == Decimal("500")
    assert result.total_expenses == Decimal("0")
    assert result.surplus == Decimal("500")
    assert result.surplus_label == "Surplus"
    assert result.categories == ()


def test_income_outside_window_is_ignored() -> None:
    income = [
        IncomeRecord("1200.50", "2024-02-29"),
        IncomeRecord(800, date(2024, 3, 1)),
        IncomeRecord(999, date(2023, 2, 15)),
    ]
    result = aggregate([], income, PeriodSelector.monthly(2024, 1))
    assert result.total_income == Decimal("1200.50")


def test_percentages_follow_category_share() -> None:
    rent = CategoryNode(
        id=1,
        name="Housing",
        color="#000000",
        expense_types=(
            ExpenseTypeNode(1, "Rent", (ExpenseRecord(300, date(2024, 5, 1)),)),
        ),
    )
    fun = CategoryNode(
        id=2,
        name="Fun",
        color="#ffffff",
        expense_types=(
            ExpenseTypeNode(2, "Movies", (ExpenseRecord(100, date(2024, 5, 2)),)),
        ),
    )
    result = aggregate([rent, fun], [], PeriodSelector.yearly(2024))

    assert result.total_expenses == Decimal("400")
    assert [c.percentage for c in result.categories] == pytest.approx([75.0, 25.0])
    assert sum(c.percentage for c in result.categories) == pytest.approx(100.0)
    assert sum(c.total_amount for c in result.categories) == result.total_expenses


def test_empty_categories_and_periods_are_kept_with_zero() -> None:
    empty = CategoryNode(id=3, name="Travel", color="#0ea5e9")
    result = aggregate([_groceries(), empty], [], PeriodSelector.yearly(2019))

    assert [c.name for c in result.categories] == ["Groceries", "Travel"]
    assert all(c.total_amount == 0 for c in result.categories)
    assert all(c.percentage == 0 for c in result.categories)
    assert result.categories[0].expense_types[0].transaction_count == 0
    assert result.categories[1].expense_types == ()


def test_order_is_preserved_and_inputs_untouched() -> None:
    big = CategoryNode(
        2,
        "Big",
        "#111111",
        (ExpenseTypeNode(5, "Car", (ExpenseRecord(9000, date(2024, 7, 1)),)),),
    )
    categories = [_groceries(), big]
    before = list(categories)

    result = aggregate(categories, [], PeriodSelector.yearly(2024))

    assert [c.id for c in result.categories] == [1, 2]
    assert categories == before
    assert len(categories[0].expense_types[0].expenses) == 2


def test_category_total_is_sum_of_expense_types() -> None:
    category = CategoryNode(
        1,
        "Home",
        "#123456",
        (
            ExpenseTypeNode(1, "Power", (ExpenseRecord("40.10", "2024-01-03"),)),
            ExpenseTypeNode(2, "Water", (ExpenseRecord("19.95", "2024-01-09"),)),
            ExpenseTypeNode(3, "Internet", ()),
        ),
    )
    result = aggregate([category], [], PeriodSelector.monthly(2024, 0))
    home = result.categories[0]
    assert home.total_amount == sum(et.total_amount for et in home.expense_types)
    assert home.total_amount == Decimal("60.05")


def test_deficit_label() -> None:
    assert surplus_label(Decimal("-0.01")) == "Deficit"
    assert surplus_label(Decimal("0")) == "Surplus"


def test_monthly_series_counts_active_expense_types() -> None:
    result = aggregate([_groceries()], [], PeriodSelector.yearly(2024))
    points = monthly_series(result)

    assert len(points) == 12
    assert points[0].month == "2024-01"
    assert points[0].expenses == Decimal("100")
    assert points[0].expense_count == 1
    assert points[11].expenses == 0


def test_monthly_insights_use_active_months() -> None:
    result = aggregate([_groceries()], [], PeriodSelector.yearly(2024))
    insights = monthly_insights(monthly_series(result)[:2])

    assert insights.change_percentage == pytest.approx(-50.0)
    assert insights.is_increasing is False
    assert insights.average_spending == Decimal("75")
    assert insights.highest_month.label == "Jan"
    assert insights.lowest_month.label == "Feb"


def test_expense_type_trend_in_calendar_order() -> None:
    result = aggregate([_groceries()], [], PeriodSelector.yearly(2024))
    food = result.categories[0].expense_types[0]

    trend = expense_type_trend(food, PeriodSelector.yearly(2024))
    assert trend.direction == "down"
    assert trend.percentage == pytest.approx(50.0)
    assert expense_type_trend(food, PeriodSelector.monthly(2024, 0)) is None
