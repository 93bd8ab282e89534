"""
Time normalization for event submissions.

Clients send wall-clock input: the calendar date picked in the user's own
zone, an optional "HH:MM" start time, an optional duration (or an explicit
end date/time) and the browser's timezone offset. This module turns that
into a `NormalizedInterval` of two timezone-aware UTC datetimes. Nothing
else in the backend does date arithmetic on submitted times.

Offset convention: `timezone_offset_minutes` is how many minutes the
user's zone is *behind* UTC (a browser's `getTimezoneOffset()`), so
EST is +300 and CET is -60, and

    utc_instant = local_wall_clock + offset

The conversion is done in two steps: the wall-clock digits are first
placed on a UTC datetime as-is ("naive UTC"), then shifted by the offset
with `timedelta`, which rolls day, month and year boundaries correctly.

All functions here are pure apart from the degraded-mode host offset
lookup in `host_offset_minutes()`, which only runs when neither the
client nor the configuration supplied an offset.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from email.utils import format_datetime
from enum import Enum
from typing import Optional, Union
import logging
import re

from errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)

# Real-world zones sit between UTC-12 and UTC+14.
MAX_OFFSET_MINUTES = 14 * 60

_CLOCK_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


class DurationUnit(str, Enum):
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


@dataclass(frozen=True)
class ClockTime:
    """24-hour wall-clock time, 00:00 through 23:59."""

    hour: int
    minute: int

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValidationError(f"Hour out of range (0-23): {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValidationError(f"Minute out of range (0-59): {self.minute}")

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class TimeInput:
    """Raw temporal fields of a submission, before normalization.

    `is_all_day` is carried for the caller's benefit only; an all-day
    event is expressed by passing no clock time and a "1 days" duration.
    """

    local_date: date
    clock_time: Optional[ClockTime] = None
    is_all_day: bool = False
    duration_value: Optional[int] = None
    duration_unit: Optional[Union[DurationUnit, str]] = None
    explicit_end_date: Optional[date] = None
    explicit_end_time: Optional[ClockTime] = None
    timezone_offset_minutes: Optional[int] = None


@dataclass(frozen=True)
class NormalizedInterval:
    start_utc: datetime
    end_utc: datetime

    @property
    def duration(self) -> timedelta:
        return self.end_utc - self.start_utc


def parse_clock_time(text: str) -> ClockTime:
    """Parse "H:MM" / "HH:MM" (24-hour). Raises `ValidationError`."""

    m = _CLOCK_RE.match(text or "")
    if not m:
        raise ValidationError(f"Invalid time (expected HH:MM): {text!r}")
    return ClockTime(int(m.group(1)), int(m.group(2)))


def host_offset_minutes(at: Optional[datetime] = None) -> int:
    """Minutes the host process's local zone is behind UTC at `at` (default now)."""

    local = (at or datetime.now(timezone.utc)).astimezone()
    return int(-local.utcoffset().total_seconds() // 60)


def resolve_offset(explicit: Optional[int], default: Optional[int] = None) -> int:
    """Pick the effective offset: client value, configured default, host zone.

    The host-zone fallback depends on where the process runs, so it is
    logged every time it is taken.
    """

    if explicit is not None:
        offset = explicit
    elif default is not None:
        offset = default
    else:
        offset = host_offset_minutes()
        logger.warning(
            "No timezone offset supplied or configured; using host offset %d minutes",
            offset,
        )

    if isinstance(offset, bool) or not isinstance(offset, int):
        raise ValidationError(f"Timezone offset must be an integer number of minutes: {offset!r}")
    if abs(offset) > MAX_OFFSET_MINUTES:
        raise ValidationError(
            f"Timezone offset out of range (±{MAX_OFFSET_MINUTES} minutes): {offset}"
        )
    return offset


def to_utc(local_date: date, clock_time: Optional[ClockTime], offset_minutes: int) -> datetime:
    """Convert a local date + optional clock time into a UTC instant.

    A missing clock time means local midnight, which is still shifted by
    the offset.
    """

    hour, minute = (clock_time.hour, clock_time.minute) if clock_time else (0, 0)
    naive_utc = datetime(
        local_date.year, local_date.month, local_date.day, hour, minute, tzinfo=timezone.utc
    )
    try:
        return naive_utc + timedelta(minutes=offset_minutes)
    except OverflowError:
        raise ValidationError(
            f"Date out of range: {local_date.isoformat()} at offset {offset_minutes}"
        ) from None


def _coerce_unit(unit: Union[DurationUnit, str]) -> DurationUnit:
    try:
        return DurationUnit(unit)
    except ValueError:
        raise ValidationError(
            f"Invalid duration unit: {unit!r} (expected minutes, hours or days)"
        ) from None


def add_duration(start: datetime, value: int, unit: Union[DurationUnit, str]) -> datetime:
    """Add `value` `unit`s to a UTC instant.

    UTC has no daylight saving, so a day is always 24 hours and "+1 day"
    lands on the same wall-clock time the next calendar day.
    """

    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Duration must be a whole number: {value!r}")
    if value < 0:
        raise ValidationError(f"Duration cannot be negative: {value}")

    unit = _coerce_unit(unit)
    try:
        return start + timedelta(**{unit.value: value})
    except (OverflowError, ValueError):
        raise ValidationError(f"Duration out of range: {value} {unit.value}") from None


def normalize(
    time_input: TimeInput, default_offset_minutes: Optional[int] = None
) -> NormalizedInterval:
    """Normalize a submission's temporal fields into a UTC interval.

    End time precedence:
    1. explicit end date (+ optional end time), normalized with the same offset
    2. duration value + unit, added to the start
    3. start + 1 hour

    Raises `ValidationError` for malformed fields or an end before the start.
    """

    offset = resolve_offset(time_input.timezone_offset_minutes, default_offset_minutes)
    start_utc = to_utc(time_input.local_date, time_input.clock_time, offset)

    if time_input.explicit_end_date is not None:
        end_utc = to_utc(time_input.explicit_end_date, time_input.explicit_end_time, offset)
    elif time_input.duration_value is not None and time_input.duration_unit is not None:
        end_utc = add_duration(start_utc, time_input.duration_value, time_input.duration_unit)
    else:
        try:
            end_utc = start_utc + DEFAULT_DURATION
        except OverflowError:
            raise ValidationError(f"Date out of range: {isoformat_utc(start_utc)} + 1 hour") from None

    if end_utc < start_utc:
        raise ValidationError(
            f"Event ends before it starts ({isoformat_utc(end_utc)} < {isoformat_utc(start_utc)})"
        )

    return NormalizedInterval(start_utc=start_utc, end_utc=end_utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return `dt` as an aware UTC datetime; naive values are taken as UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def isoformat_utc(dt: datetime) -> str:
    """ISO-8601 with a literal `Z`, e.g. `2025-01-15T19:00:00Z`."""

    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def rfc822(dt: datetime) -> str:
    """RFC-822 date for RSS, e.g. `Wed, 15 Jan 2025 19:00:00 GMT`."""

    return format_datetime(ensure_utc(dt), usegmt=True)
