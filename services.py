import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from analytics import (
    AggregationResult,
    MonthlyInsights,
    MonthlyPoint,
    aggregate,
    monthly_insights,
    monthly_series,
)
from csv_utils import export_filename, serialize_grid
from grid import GridRow, GridTotals, compute_totals, project
from ledger import LedgerFetchError, LedgerSnapshot
from periods import PeriodMode, PeriodSelector, default_selector
from years import YearSelection, discover_years, snap_selected_year

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[int], LedgerSnapshot]


def get_current_user_id() -> int:
    return 1


@dataclass(frozen=True)
class AnalyticsBundle:
    """Everything derived from one snapshot for one period, published as a unit."""

    result: AggregationResult
    available_years: tuple[int, ...]
    grid: tuple[GridRow, ...]
    totals: GridTotals
    series: tuple[MonthlyPoint, ...]
    insights: MonthlyInsights

    @property
    def selector(self) -> PeriodSelector:
        return self.result.selector

    @property
    def csv_filename(self) -> str:
        return export_filename(self.selector.year)

    def to_csv(self) -> str:
        return serialize_grid(self.grid, self.totals)


def build_bundle(
    snapshot: LedgerSnapshot,
    selector: PeriodSelector,
    available_years: tuple[int, ...],
) -> AnalyticsBundle:
    result = aggregate(snapshot.categories, snapshot.income, selector)
    rows = tuple(project(result.categories))
    # chart series always cover the whole selected year
    if selector.mode == PeriodMode.yearly:
        yearly = result
    else:
        yearly = aggregate(snapshot.categories, (), PeriodSelector.yearly(selector.year))
    series = tuple(monthly_series(yearly))
    return AnalyticsBundle(
        result=result,
        available_years=available_years,
        grid=rows,
        totals=compute_totals(rows),
        series=series,
        insights=monthly_insights(series),
    )


class AnalyticsState:
    """Published analytics for one owner.

    ``recompute`` is the only way derived state changes: it takes a ledger
    snapshot, corrects the selected year against the years found in it, and
    replaces ``bundle`` in one assignment. A failed refresh leaves the previous
    bundle in place and records ``error``.
    """

    def __init__(
        self,
        owner_id: int,
        today: date,
        selector: Optional[PeriodSelector] = None,
    ) -> None:
        self.owner_id = owner_id
        self.today = today
        self.selector = selector or default_selector(today)
        self.years = YearSelection(self.selector.year)
        self.bundle: Optional[AnalyticsBundle] = None
        self.error: Optional[str] = None
        self._in_flight = 0

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def set_period(self, selector: PeriodSelector) -> None:
        self.selector = selector
        self.years.select(selector.year)

    def recompute(
        self, snapshot: LedgerSnapshot, selector: Optional[PeriodSelector] = None
    ) -> AnalyticsBundle:
        """Aggregate ``snapshot`` for ``selector`` (default: the current one).

        A changed list of available years corrects both the state selection and
        the requested selector when their year is no longer present.
        """
        selector = selector or self.selector
        available = tuple(
            discover_years(
                snapshot.expense_dates(),
                snapshot.income_dates(),
                current_year=self.today.year,
            )
        )
        years_changed = available != self.years.available
        snapped = self.years.update(available)
        if snapped is not None:
            self.selector = self.selector.with_year(snapped)
        if years_changed:
            selector = selector.with_year(snap_selected_year(selector.year, available))
        bundle = build_bundle(snapshot, selector, available)
        self.bundle = bundle
        self.error = None
        logger.info(
            "analytics_refresh: owner=%s mode=%s year=%s month=%s categories=%s",
            self.owner_id,
            bundle.selector.mode.value,
            bundle.selector.year,
            bundle.selector.month,
            len(bundle.result.categories),
        )
        return bundle

    async def refresh(self, load: SnapshotLoader) -> AnalyticsBundle:
        """Fetch a fresh snapshot off the event loop, then recompute.

        Overlapping refreshes are not cancelled; whichever finishes last
        replaces the bundle.
        """
        selector = self.selector
        self._in_flight += 1
        try:
            snapshot = await asyncio.to_thread(load, self.owner_id)
        except LedgerFetchError as exc:
            self.error = str(exc)
            logger.exception("analytics_refresh_failed: owner=%s", self.owner_id)
            raise
        finally:
            self._in_flight -= 1
        return self.recompute(snapshot, selector)


class AnalyticsRegistry:
    def __init__(self, today_factory: Callable[[], date]) -> None:
        self.today_factory = today_factory
        self._states: dict[int, AnalyticsState] = {}

    def state_for(self, owner_id: int) -> AnalyticsState:
        state = self._states.get(owner_id)
        if state is None:
            state = AnalyticsState(owner_id, today=self.today_factory())
            self._states[owner_id] = state
        return state
