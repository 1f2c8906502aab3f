import logging
from datetime import date
from decimal import Decimal

from analytics import AggregatedCategory, AggregatedExpenseType, aggregate
from csv_utils import export_filename, format_amount, serialize_grid
from grid import PLACEHOLDER, category_cells, compute_totals, project, subrow_cells
from ledger import CategoryNode, ExpenseRecord, ExpenseTypeNode
from periods import PeriodSelector


def _categories() -> list[CategoryNode]:
    return [
        CategoryNode(
            1,
            "Groceries",
            "#22c55e",
            (
                ExpenseTypeNode(
                    10,
                    "Food",
                    (
                        ExpenseRecord(100, date(2024, 1, 5)),
                        ExpenseRecord(50, date(2024, 2, 10)),
                    ),
                ),
                ExpenseTypeNode(11, "Drinks", (ExpenseRecord("12.50", "2024-02-11"),)),
            ),
        ),
        CategoryNode(
            2,
            "Transport",
            "#3b82f6",
            (ExpenseTypeNode(20, "Bus", (ExpenseRecord(30, date(2024, 3, 1)),)),),
        ),
        CategoryNode(3, "Gifts", "#f43f5e"),
    ]


def _grid():
    result = aggregate(_categories(), [], PeriodSelector.yearly(2024))
    rows = project(result.categories)
    return result, rows, compute_totals(rows)


def test_category_rows_sum_their_expense_types() -> None:
    result, rows, _ = _grid()

    groceries = rows[0]
    assert groceries.monthly_data == {"Jan": Decimal("100"), "Feb": Decimal("62.50")}
    assert groceries.year_total == result.categories[0].total_amount
    assert [s.category_name for s in groceries.expense_types] == ["Groceries"] * 2
    assert rows[2].monthly_data == {}
    assert rows[2].expense_types == ()


def test_totals_row_and_column() -> None:
    _, _, totals = _grid()

    assert len(totals.monthly_totals) == 12
    assert totals.monthly_totals["Jan"] == Decimal("100")
    assert totals.monthly_totals["Feb"] == Decimal("62.50")
    assert totals.monthly_totals["Mar"] == Decimal("30")
    assert totals.monthly_totals["Dec"] == 0
    assert totals.grand_total == Decimal("192.50")
    assert sum(totals.monthly_totals.values()) == totals.grand_total


def test_display_cells_use_zero_for_categories_and_dash_for_types() -> None:
    _, rows, _ = _grid()

    assert category_cells(rows[1])[:3] == [0, 0, Decimal("30")]
    drinks = rows[0].expense_types[1]
    assert subrow_cells(drinks)[:3] == [PLACEHOLDER, Decimal("12.50"), PLACEHOLDER]


def test_csv_layout() -> None:
    _, rows, totals = _grid()
    lines = serialize_grid(rows, totals).split("\n")

    assert lines[0] == (
        "Category/Type,Jan,Feb,Mar,Apr,May,Jun,Jul,Aug,Sep,Oct,Nov,Dec,Year Total"
    )
    assert lines[1] == "Groceries,100,62.5,0,0,0,0,0,0,0,0,0,0,162.5"
    assert lines[2] == "  Food,100,50,0,0,0,0,0,0,0,0,0,0,150"
    assert lines[3] == "  Drinks,0,12.5,0,0,0,0,0,0,0,0,0,0,12.5"
    assert lines[-1] == "TOTAL,100,62.5,30,0,0,0,0,0,0,0,0,0,192.5"

    expense_types = sum(len(row.expense_types) for row in rows)
    assert len(lines) == 2 + len(rows) + expense_types


def test_csv_does_not_quote_names() -> None:
    rows = project(
        aggregate(
            [CategoryNode(1, "Food, Drinks", "#000000")],
            [],
            PeriodSelector.yearly(2024),
        ).categories
    )
    line = serialize_grid(rows, compute_totals(rows)).split("\n")[1]
    assert line.startswith("Food, Drinks,0,")
    assert len(line.split(",")) == 15


def test_amount_formatting_and_filename() -> None:
    assert format_amount(None) == "0"
    assert format_amount(Decimal("100.00")) == "100"
    assert format_amount(Decimal("0.10")) == "0.1"
    assert format_amount(Decimal("1E+3")) == "1000"
    assert export_filename(2024) == "expense-breakdown-2024.csv"


def test_month_buckets_disagreeing_with_total_are_logged(caplog) -> None:
    category = AggregatedCategory(
        id=7,
        name="Groceries",
        color="#22c55e",
        total_amount=Decimal("100"),
        expense_types=(
            AggregatedExpenseType(
                id=70,
                name="Food",
                total_amount=Decimal("100"),
                transaction_count=2,
                monthly_data={"Jan": Decimal("40")},
            ),
        ),
        percentage=100.0,
    )

    with caplog.at_level(logging.WARNING, logger="grid"):
        rows = project([category])

    assert "grid_month_mismatch: category=7 months=40 total=100" in caplog.text
    assert rows[0].year_total == Decimal("100")
    assert rows[0].monthly_data == {"Jan": Decimal("40")}


def test_matching_month_buckets_log_nothing(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="grid"):
        _grid()
    assert "grid_month_mismatch" not in caplog.text
