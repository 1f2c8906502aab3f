from decimal import Decimal
from typing import Sequence, Union

from grid import GridRow, GridTotals
from periods import MONTH_LABELS

HEADER = ["Category/Type", *MONTH_LABELS, "Year Total"]
SUBROW_INDENT = "  "
TOTAL_LABEL = "TOTAL"


def format_amount(value: Union[Decimal, int, None]) -> str:
    """Plain number for the export: ``100.00`` -> ``100``, ``12.50`` -> ``12.5``."""
    if not value:
        return "0"
    value = Decimal(value)
    if value == value.to_integral_value():
        return str(value.quantize(Decimal("1")))
    return format(value.normalize(), "f")


def export_filename(year: int) -> str:
    return f"expense-breakdown-{year}.csv"


def grid_csv_rows(rows: Sequence[GridRow], totals: GridTotals) -> list[list[str]]:
    table: list[list[str]] = [list(HEADER)]
    for row in rows:
        table.append(
            [
                row.name,
                *(format_amount(row.monthly_data.get(m)) for m in MONTH_LABELS),
                format_amount(row.year_total),
            ]
        )
        for subrow in row.expense_types:
            table.append(
                [
                    f"{SUBROW_INDENT}{subrow.name}",
                    *(format_amount(subrow.monthly_data.get(m)) for m in MONTH_LABELS),
                    format_amount(subrow.year_total),
                ]
            )
    table.append(
        [
            TOTAL_LABEL,
            *(format_amount(totals.monthly_totals.get(m)) for m in MONTH_LABELS),
            format_amount(totals.grand_total),
        ]
    )
    return table


def serialize_grid(rows: Sequence[GridRow], totals: GridTotals) -> str:
    """Comma-joined grid export.

    Names are written as-is: a name containing a comma shifts its row's
    columns, there is no quoting.
    """
    return "\n".join(",".join(cells) for cells in grid_csv_rows(rows, totals))
