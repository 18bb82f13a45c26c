"""Quick-pick date range presets."""

from dataclasses import dataclass
from datetime import date, timedelta

from app.filters.schema import DateRange


@dataclass(frozen=True)
class DatePreset:
    days: int
    label: str


DATE_PRESETS = (
    DatePreset(7, "Últimos 7 días"),
    DatePreset(30, "Últimos 30 días"),
    DatePreset(90, "Últimos 90 días"),
)


def last_n_days(days: int, today: date | None = None) -> DateRange:
    """Range covering ``days`` calendar days ending today (inclusive)."""
    end = today or date.today()
    start = end - timedelta(days=days - 1)
    return DateRange(from_=start.isoformat(), to=end.isoformat())
