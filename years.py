import logging
from typing import Iterable, Optional, Sequence

from periods import DateLike, parse_calendar_date

logger = logging.getLogger(__name__)


def discover_years(
    expense_dates: Iterable[DateLike],
    income_dates: Iterable[DateLike],
    *,
    current_year: int,
) -> list[int]:
    """Distinct years that have any expense or income, newest first.

    Never empty: without any records the list is ``[current_year]``.
    """
    years: set[int] = set()
    for values in (expense_dates, income_dates):
        for value in values:
            if not value:
                continue
            years.add(parse_calendar_date(value).year)
    if not years:
        return [current_year]
    return sorted(years, reverse=True)


def snap_selected_year(selected_year: int, available: Sequence[int]) -> int:
    if available and selected_year not in available:
        return available[0]
    return selected_year


class YearSelection:
    """Selected year that follows the available-years list.

    The correction runs when ``update`` sees a list different from the previous
    one, so each change of the available set is checked exactly once.
    """

    def __init__(self, selected_year: int) -> None:
        self.selected_year = selected_year
        self.available: tuple[int, ...] = ()

    def select(self, year: int) -> None:
        self.selected_year = year

    def update(self, available: Iterable[int]) -> Optional[int]:
        """Record a new available list; return the corrected year if it changed."""
        available = tuple(available)
        if available == self.available:
            return None
        self.available = available
        snapped = snap_selected_year(self.selected_year, available)
        if snapped == self.selected_year:
            return None
        logger.info(
            "year_selection_snap: from=%s to=%s available=%s",
            self.selected_year,
            snapped,
            list(available),
        )
        self.selected_year = snapped
        return snapped
