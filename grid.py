import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence, Union

from analytics import ZERO, AggregatedCategory
from periods import MONTH_LABELS

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"

Cell = Union[Decimal, str]


@dataclass(frozen=True)
class GridSubrow:
    id: int
    name: str
    category_name: str
    monthly_data: dict[str, Decimal]
    year_total: Decimal


@dataclass(frozen=True)
class GridRow:
    id: int
    name: str
    color: str
    monthly_data: dict[str, Decimal]
    year_total: Decimal
    expense_types: tuple[GridSubrow, ...]


@dataclass(frozen=True)
class GridTotals:
    monthly_totals: dict[str, Decimal]
    grand_total: Decimal


def project(categories: Sequence[AggregatedCategory]) -> list[GridRow]:
    """Two-level grid: one row per category with its expense types nested.

    The full tree is always built; which rows are expanded is up to the view.
    """
    rows: list[GridRow] = []
    for category in categories:
        subrows = tuple(
            GridSubrow(
                id=expense_type.id,
                name=expense_type.name,
                category_name=category.name,
                monthly_data=dict(expense_type.monthly_data),
                year_total=expense_type.total_amount,
            )
            for expense_type in category.expense_types
        )
        monthly: dict[str, Decimal] = {}
        for label in MONTH_LABELS:
            values = [s.monthly_data[label] for s in subrows if label in s.monthly_data]
            if values:
                monthly[label] = sum(values, ZERO)
        if monthly and sum(monthly.values(), ZERO) != category.total_amount:
            logger.warning(
                "grid_month_mismatch: category=%s months=%s total=%s",
                category.id,
                sum(monthly.values(), ZERO),
                category.total_amount,
            )
        rows.append(
            GridRow(
                id=category.id,
                name=category.name,
                color=category.color,
                monthly_data=monthly,
                year_total=category.total_amount,
                expense_types=subrows,
            )
        )
    return rows


def compute_totals(rows: Sequence[GridRow]) -> GridTotals:
    monthly_totals = {
        label: sum((row.monthly_data.get(label, ZERO) for row in rows), ZERO)
        for label in MONTH_LABELS
    }
    grand_total = sum((row.year_total for row in rows), ZERO)
    return GridTotals(monthly_totals=monthly_totals, grand_total=grand_total)


def category_cells(row: GridRow) -> list[Cell]:
    return [row.monthly_data.get(label, ZERO) for label in MONTH_LABELS]


def subrow_cells(subrow: GridSubrow) -> list[Cell]:
    return [
        subrow.monthly_data[label] if subrow.monthly_data.get(label) else PLACEHOLDER
        for label in MONTH_LABELS
    ]
