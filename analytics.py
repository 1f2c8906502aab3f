"""Period-scoped aggregation of the expense ledger.

``aggregate`` is a pure function of a ledger snapshot and a period selector:
every call builds fresh totals and never touches its inputs.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledger import CategoryNode, ExpenseTypeNode, IncomeRecord
from periods import MONTH_LABELS, PeriodMode, PeriodSelector, month_label

ZERO = Decimal("0")


@dataclass(frozen=True)
class AggregatedExpenseType:
    id: int
    name: str
    total_amount: Decimal
    transaction_count: int
    # month label -> amount, filled in yearly mode only
    monthly_data: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class AggregatedCategory:
    id: int
    name: str
    color: str
    total_amount: Decimal
    expense_types: tuple[AggregatedExpenseType, ...]
    percentage: float = 0.0


@dataclass(frozen=True)
class AggregationResult:
    selector: PeriodSelector
    categories: tuple[AggregatedCategory, ...]
    total_income: Decimal
    total_expenses: Decimal

    @property
    def surplus(self) -> Decimal:
        return self.total_income - self.total_expenses

    @property
    def surplus_label(self) -> str:
        return surplus_label(self.surplus)

    @property
    def period_label(self) -> str:
        return self.selector.label


@dataclass(frozen=True)
class MonthlyPoint:
    month: str
    label: str
    expenses: Decimal
    expense_count: int


@dataclass(frozen=True)
class MonthlyInsights:
    change_percentage: Optional[float]
    is_increasing: bool
    average_spending: Decimal
    highest_month: Optional[MonthlyPoint]
    lowest_month: Optional[MonthlyPoint]


@dataclass(frozen=True)
class Trend:
    direction: str
    percentage: float


def surplus_label(surplus: Decimal) -> str:
    return "Surplus" if surplus >= 0 else "Deficit"


def in_period(value: date, selector: PeriodSelector) -> bool:
    if value.year != selector.year:
        return False
    if selector.mode == PeriodMode.monthly:
        return value.month - 1 == selector.month
    return True


def total_income(
    income_records: Iterable[IncomeRecord], selector: PeriodSelector
) -> Decimal:
    period = selector.resolve()
    return sum(
        (record.amount for record in income_records if period.contains(record.date)),
        ZERO,
    )


def aggregate_expense_type(
    expense_type: ExpenseTypeNode, selector: PeriodSelector
) -> AggregatedExpenseType:
    yearly = selector.mode == PeriodMode.yearly
    total = ZERO
    count = 0
    monthly: dict[str, Decimal] = {}
    for expense in expense_type.expenses:
        if not in_period(expense.date, selector):
            continue
        total += expense.amount
        count += 1
        if yearly:
            key = month_label(expense.date)
            monthly[key] = monthly.get(key, ZERO) + expense.amount
    return AggregatedExpenseType(
        id=expense_type.id,
        name=expense_type.name,
        total_amount=total,
        transaction_count=count,
        monthly_data=monthly,
    )


def aggregate(
    categories: Sequence[CategoryNode],
    income_records: Iterable[IncomeRecord],
    selector: PeriodSelector,
) -> AggregationResult:
    """Totals per category and expense type for the selected period.

    Categories and expense types keep the order they were given in, and every
    one of them is present even when nothing in the period matched. Percentages
    need the grand total, so they are filled in by a second pass once all
    category totals are known.
    """
    income = total_income(income_records, selector)

    totals: list[tuple[CategoryNode, tuple[AggregatedExpenseType, ...], Decimal]] = []
    for category in categories:
        expense_types = tuple(
            aggregate_expense_type(expense_type, selector)
            for expense_type in category.expense_types
        )
        category_total = sum((et.total_amount for et in expense_types), ZERO)
        totals.append((category, expense_types, category_total))

    total_expenses = sum((category_total for _, _, category_total in totals), ZERO)

    aggregated = tuple(
        AggregatedCategory(
            id=category.id,
            name=category.name,
            color=category.color,
            total_amount=category_total,
            expense_types=expense_types,
            percentage=_percentage(category_total, total_expenses),
        )
        for category, expense_types, category_total in totals
    )
    return AggregationResult(
        selector=selector,
        categories=aggregated,
        total_income=income,
        total_expenses=total_expenses,
    )


def _percentage(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return float(part / whole * 100)


def monthly_series(result: AggregationResult) -> list[MonthlyPoint]:
    """Twelve chart points for the selected year.

    ``expense_count`` is the number of expense types with spending in the
    month. Monthly-mode results carry no month buckets, so every point is zero.
    """
    points: list[MonthlyPoint] = []
    for index, label in enumerate(MONTH_LABELS):
        amount = ZERO
        active = 0
        for category in result.categories:
            for expense_type in category.expense_types:
                value = expense_type.monthly_data.get(label)
                if value:
                    amount += value
                    active += 1
        points.append(
            MonthlyPoint(
                month=f"{result.selector.year}-{index + 1:02d}",
                label=label,
                expenses=amount,
                expense_count=active,
            )
        )
    return points


def monthly_insights(points: Sequence[MonthlyPoint]) -> MonthlyInsights:
    change: Optional[float] = None
    if len(points) >= 2:
        previous, current = points[-2], points[-1]
        if previous.expenses > 0:
            change = float(
                (current.expenses - previous.expenses) / previous.expenses * 100
            )

    active = [point for point in points if point.expenses > 0]
    average = (
        sum((point.expenses for point in active), ZERO) / len(active)
        if active
        else ZERO
    )
    highest = max(points, key=lambda p: p.expenses) if points else None
    if active:
        lowest = min(active, key=lambda p: p.expenses)
    else:
        lowest = points[0] if points else None
    return MonthlyInsights(
        change_percentage=change,
        is_increasing=change is not None and change > 0,
        average_spending=average,
        highest_month=highest,
        lowest_month=lowest,
    )


def expense_type_trend(
    expense_type: AggregatedExpenseType, selector: PeriodSelector
) -> Optional[Trend]:
    """Change between the last two months with spending, in yearly mode."""
    if selector.mode != PeriodMode.yearly:
        return None
    months = [label for label in MONTH_LABELS if label in expense_type.monthly_data]
    if len(months) < 2:
        return None
    earlier = expense_type.monthly_data[months[-2]]
    latest = expense_type.monthly_data[months[-1]]
    if earlier == 0:
        return None
    change = float((latest - earlier) / earlier * 100)
    if change > 0:
        direction = "up"
    elif change < 0:
        direction = "down"
    else:
        direction = "same"
    return Trend(direction=direction, percentage=abs(change))
