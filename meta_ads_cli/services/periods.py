"""
Date presets, explicit ranges and compare-window resolution for insights.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Optional

from meta_ads_cli.errors import CliError, ErrorCode

DATE_PRESETS = (
    "today",
    "yesterday",
    "this_month",
    "last_month",
    "this_quarter",
    "maximum",
    "data_maximum",
    "last_3d",
    "last_7d",
    "last_14d",
    "last_28d",
    "last_30d",
    "last_90d",
    "last_week_mon_sun",
    "last_week_sun_sat",
    "last_quarter",
    "last_year",
    "this_week_mon_today",
    "this_week_sun_today",
    "this_year",
)

DATE_FORMAT = "%Y-%m-%d"

_LAST_N_RE = re.compile(r"^last_(\d+)d$")
_PREVIOUS_N_RE = re.compile(r"^previous_(\d+)d$")


@dataclass
class DateRange:
    """Represents a date range for API queries."""
    start_date: str  # YYYY-MM-DD format
    end_date: str    # YYYY-MM-DD format

    def to_meta_time_range(self) -> Dict[str, str]:
        """Convert to Meta API time_range format."""
        return {
            "since": self.start_date,
            "until": self.end_date
        }

    @classmethod
    def parse(cls, since: str, until: str) -> "DateRange":
        try:
            start = datetime.strptime(since, DATE_FORMAT)
            end = datetime.strptime(until, DATE_FORMAT)
        except ValueError:
            raise CliError(ErrorCode.INVALID_PARAMETER, f"Dates must be YYYY-MM-DD, got {since} / {until}.")
        if end < start:
            raise CliError(ErrorCode.INVALID_PARAMETER, f"Range end {until} is before its start {since}.")
        return cls(start_date=since, end_date=until)

    @classmethod
    def last_n_days(cls, n: int, today: Optional[date] = None) -> "DateRange":
        """The N complete days before today, as Meta's last_Nd preset counts them."""
        today = today or date.today()
        return cls(
            start_date=(today - timedelta(days=n)).strftime(DATE_FORMAT),
            end_date=(today - timedelta(days=1)).strftime(DATE_FORMAT),
        )

    def get_comparison_period(self, days: Optional[int] = None) -> "DateRange":
        """Range of ``days`` (default: same duration) ending the day before this one starts."""
        start = datetime.strptime(self.start_date, DATE_FORMAT)
        comp_end = start - timedelta(days=1)
        comp_start = comp_end - timedelta(days=(days or self.duration_days) - 1)
        return DateRange(
            start_date=comp_start.strftime(DATE_FORMAT),
            end_date=comp_end.strftime(DATE_FORMAT)
        )

    @property
    def duration_days(self) -> int:
        """Number of days in this range."""
        start = datetime.strptime(self.start_date, DATE_FORMAT)
        end = datetime.strptime(self.end_date, DATE_FORMAT)
        return (end - start).days + 1


@dataclass
class PeriodSpec:
    """One side of a comparison: a Meta preset or an explicit range."""
    preset: Optional[str] = None
    time_range: Optional[DateRange] = None

    @property
    def label(self) -> str:
        return self.preset or f"{self.time_range.start_date}..{self.time_range.end_date}"


@dataclass
class ComparePlan:
    current: PeriodSpec
    previous: PeriodSpec
    warning: Optional[str] = None


def validate_preset(preset: str) -> str:
    if preset not in DATE_PRESETS:
        raise CliError(
            ErrorCode.INVALID_PARAMETER,
            f"Unknown date preset {preset}.",
            {"allowed_presets": list(DATE_PRESETS)},
        )
    return preset


def previous_period_for(current_preset: str, days: Optional[int] = None, today: Optional[date] = None) -> Optional[DateRange]:
    """
    Explicit range before a ``last_Nd`` window.

    last_Nd covers today-N .. today-1, so the previous window ends on
    today-N-1. It spans ``days`` days, N when not given. Returns None for
    presets that are not ``last_Nd``.
    """
    match = _LAST_N_RE.match(current_preset)
    if not match:
        return None
    current = DateRange.last_n_days(int(match.group(1)), today)
    return current.get_comparison_period(days)


def parse_compare(value: str, today: Optional[date] = None) -> ComparePlan:
    """
    Resolve ``current:previous`` into two fetchable periods.

    ``last_7d:previous_7d`` gives the preset plus an explicit,
    non-overlapping range for the 7 days before it. A pair of presets is
    passed through as-is; ``last_7d:last_14d`` style overlaps only warn.
    """
    current, sep, previous = value.partition(":")
    if not sep or not current or not previous:
        raise CliError(
            ErrorCode.INVALID_PARAMETER,
            'Compare format must be "current:previous" (e.g. last_7d:previous_7d).',
        )
    validate_preset(current)

    previous_match = _PREVIOUS_N_RE.match(previous)
    if previous.startswith("previous_"):
        if not previous_match:
            raise CliError(
                ErrorCode.INVALID_PARAMETER,
                f'Invalid previous period {previous}. Use a form like "previous_7d".',
            )
        previous_days = int(previous_match.group(1))
        time_range = previous_period_for(current, previous_days, today)
        if time_range is None:
            raise CliError(
                ErrorCode.INVALID_PARAMETER,
                f"{previous} can only follow a last_Nd window, got {current}.",
            )
        current_days = int(_LAST_N_RE.match(current).group(1))
        warning = None
        if previous_days != current_days:
            warning = (
                f'"{previous}" is {previous_days} days but "{current}" is {current_days} days; '
                f"totals are not directly comparable."
            )
        return ComparePlan(PeriodSpec(preset=current), PeriodSpec(time_range=time_range), warning)

    validate_preset(previous)
    warning = None
    current_match = _LAST_N_RE.match(current)
    last_match = _LAST_N_RE.match(previous)
    if current == previous:
        warning = (
            f'"{current}" is compared with itself; both periods cover the same window.'
        )
    if current_match and last_match:
        current_days = int(current_match.group(1))
        if int(last_match.group(1)) >= current_days:
            warning = (
                f'"{previous}" overlaps with "{current}". '
                f'Consider "previous_{current_days}d" for a non-overlapping comparison.'
            )
    return ComparePlan(PeriodSpec(preset=current), PeriodSpec(preset=previous), warning)
