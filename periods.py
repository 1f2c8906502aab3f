import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Union
from zoneinfo import ZoneInfo

MONTH_LABELS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_ISO_DATE_PREFIX = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})")

DateLike = Union[date, str]


class PeriodMode(str, Enum):
    monthly = "monthly"
    yearly = "yearly"


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


@dataclass(frozen=True)
class PeriodSelector:
    """Which window the analytics are scoped to.

    ``month`` is zero-based (0 = January) and only meaningful in monthly mode.
    Construction rejects out-of-range values so that the resolver and the
    aggregation engine can assume a valid selector.
    """

    mode: PeriodMode
    year: int
    month: int = 0

    def __post_init__(self) -> None:
        try:
            mode = PeriodMode(self.mode)
        except ValueError as exc:
            raise ValueError(f"Unknown period mode: {self.mode!r}") from exc
        object.__setattr__(self, "mode", mode)
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise ValueError("Year must be an integer")
        if not 1 <= self.year <= 9999:
            raise ValueError("Year out of range")
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise ValueError("Month must be an integer")
        if not 0 <= self.month <= 11:
            raise ValueError("Month must be between 0 and 11")

    @classmethod
    def monthly(cls, year: int, month: int) -> "PeriodSelector":
        return cls(PeriodMode.monthly, year, month)

    @classmethod
    def yearly(cls, year: int) -> "PeriodSelector":
        return cls(PeriodMode.yearly, year, 0)

    def with_year(self, year: int) -> "PeriodSelector":
        return replace(self, year=year)

    def resolve(self) -> Period:
        return resolve_period(self.year, self.mode, self.month)

    @property
    def label(self) -> str:
        return period_label(self)


def month_end(year: int, month: int) -> date:
    """Last day of a calendar month (``month`` is 1-based)."""
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def resolve_period(year: int, mode: PeriodMode, month: int = 0) -> Period:
    if PeriodMode(mode) == PeriodMode.yearly:
        return Period(str(year), date(year, 1, 1), date(year, 12, 31))
    start = date(year, month + 1, 1)
    return Period(f"{year}-{month + 1:02d}", start, month_end(year, month + 1))


def default_selector(
    today: date, mode: PeriodMode = PeriodMode.monthly
) -> PeriodSelector:
    return PeriodSelector(mode, today.year, today.month - 1)


def today_in(timezone: str) -> date:
    return datetime.now(ZoneInfo(timezone)).date()


def parse_calendar_date(value: DateLike) -> date:
    """Read the calendar date a ledger value denotes.

    Strings are split into their ``YYYY-MM-DD`` components and never converted
    between timezones, so ``"2024-12-31T23:30:00-05:00"`` is still the last day
    of 2024. Datetimes keep their own wall-clock date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    match = _ISO_DATE_PREFIX.match(value or "")
    if not match:
        raise ValueError(f"Invalid date: {value!r}")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def month_label(value: date) -> str:
    return MONTH_LABELS[value.month - 1]


def period_label(selector: PeriodSelector) -> str:
    if selector.mode == PeriodMode.monthly:
        return f"{MONTH_NAMES[selector.month]} {selector.year}"
    return str(selector.year)

