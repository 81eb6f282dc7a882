"""Thai fiscal calendar helpers.

A fiscal year runs from July 1 to June 30 and is identified by the calendar
year in which it ends: FY 2025 covers July 1, 2024 to June 30, 2025.

Everything here is a pure function of its arguments. Callers that need
"now" take it from an injected clock so the fiscal year is recomputed on
every request and never cached.
"""

from collections.abc import Callable
from datetime import date, datetime
from typing import Final
from zoneinfo import ZoneInfo

from attrs import field, frozen
from beartype import beartype

from .config import get_settings

FISCAL_YEAR_START_MONTH: Final = 7

Clock = Callable[[], datetime]


@frozen
class FiscalYearRange:
    """Inclusive date range of one fiscal year."""

    fiscal_year: int = field()
    start: datetime = field()
    end: datetime = field()

    @beartype
    def contains(self, value: date) -> bool:
        """Check whether a date or naive datetime falls in this fiscal year."""
        if not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day)
        return self.start <= value.replace(tzinfo=None) <= self.end


@beartype
def fiscal_year_of(value: date) -> int:
    """Return the fiscal year an arbitrary date belongs to."""
    if value.month >= FISCAL_YEAR_START_MONTH:
        return value.year + 1
    return value.year


@beartype
def current_fiscal_year(now: date, tz: ZoneInfo | None = None) -> int:
    """Return the fiscal year for ``now``.

    Aware datetimes are first converted to ``tz`` so that a request made just
    after midnight on July 1 local time lands in the new fiscal year even
    when the clock reports UTC.
    """
    if isinstance(now, datetime) and now.tzinfo is not None and tz is not None:
        now = now.astimezone(tz)
    return fiscal_year_of(now)


@beartype
def fiscal_year_range(fiscal_year: int) -> FiscalYearRange:
    """Return July 1 of ``fiscal_year - 1`` through June 30 of ``fiscal_year``."""
    return FiscalYearRange(
        fiscal_year=fiscal_year,
        start=datetime(fiscal_year - 1, FISCAL_YEAR_START_MONTH, 1),
        end=datetime(fiscal_year, 6, 30, 23, 59, 59, 999000),
    )


@beartype
def is_date_in_fiscal_year(value: date, fiscal_year: int) -> bool:
    return fiscal_year_range(fiscal_year).contains(value)


@beartype
def format_fiscal_year(fiscal_year: int) -> str:
    """Format for display, e.g. ``FY 2025 (Jul 2024 - Jun 2025)``."""
    return f"FY {fiscal_year} (Jul {fiscal_year - 1} - Jun {fiscal_year})"


def system_clock() -> datetime:
    """Wall-clock time in the fiscal timezone."""
    return datetime.now(get_settings().fiscal_zone)
