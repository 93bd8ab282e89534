"""
Monthly recurrence descriptors ("2nd Monday of Jan, Feb, Mar ...").

A descriptor is a label stored next to an event; nothing in the backend
expands it into concrete dates. It persists as two columns:

- `recurring_pattern`: `"<ordinal>-<weekday>"`, lowercase, e.g. `"last-friday"`
- `recurring_months`: compact JSON array of month numbers, ascending,
  e.g. `"[1,2,3,4,5,6,9,10,11,12]"`

`deserialize(*serialize(d)) == d` for every descriptor `validate()` returns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple, Union
import json

from errors import ValidationError


class Ordinal(str, Enum):
    FIRST = "1st"
    SECOND = "2nd"
    THIRD = "3rd"
    FOURTH = "4th"
    LAST = "last"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


@dataclass(frozen=True)
class RecurrenceDescriptor:
    ordinal: Ordinal
    weekday: Weekday
    active_months: Tuple[int, ...] = ()

    @property
    def pattern(self) -> str:
        return f"{self.ordinal.value}-{self.weekday.value}"

    @property
    def months_json(self) -> str:
        return json.dumps(list(self.active_months), separators=(",", ":"))

    @property
    def is_complete(self) -> bool:
        """False while no active months are configured (UI shows a warning)."""
        return len(self.active_months) > 0


def _parse_token(enum_cls, raw, what: str):
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str):
        raise ValidationError(f"Invalid {what}: {raw!r}")
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {what}: {raw!r} (expected one of {allowed})") from None


def _parse_months(months: Iterable) -> Tuple[int, ...]:
    if isinstance(months, (str, bytes)):
        raise ValidationError("Active months must be a list of month numbers")
    seen = set()
    for m in months:
        # bool is an int subclass; True must not pass as January.
        if isinstance(m, bool) or not isinstance(m, int):
            raise ValidationError(f"Invalid month: {m!r} (expected an integer 1-12)")
        if not 1 <= m <= 12:
            raise ValidationError(f"Month out of range (1-12): {m}")
        seen.add(m)
    return tuple(sorted(seen))


def validate(
    ordinal: Union[Ordinal, str],
    weekday: Union[Weekday, str],
    active_months: Iterable[int] = (),
) -> RecurrenceDescriptor:
    """Build a canonical descriptor or raise `ValidationError`.

    Tokens are case-insensitive; months are deduplicated and sorted. An
    empty month set is allowed here ("not configured yet").
    """

    return RecurrenceDescriptor(
        ordinal=_parse_token(Ordinal, ordinal, "ordinal"),
        weekday=_parse_token(Weekday, weekday, "weekday"),
        active_months=_parse_months(active_months),
    )


canonicalize = validate


def serialize(descriptor: RecurrenceDescriptor) -> Tuple[str, str]:
    """Return the `(pattern, months_json)` column values."""

    return descriptor.pattern, descriptor.months_json


def parse_pattern(pattern: str) -> Tuple[Ordinal, Weekday]:
    if not isinstance(pattern, str) or "-" not in pattern:
        raise ValidationError(f"Invalid recurrence pattern: {pattern!r} (expected e.g. 2nd-monday)")
    ordinal, _, weekday = pattern.strip().partition("-")
    return _parse_token(Ordinal, ordinal, "ordinal"), _parse_token(Weekday, weekday, "weekday")


def parse_months_json(months_json: Optional[str]) -> Tuple[int, ...]:
    if months_json is None or not months_json.strip():
        return ()
    try:
        months = json.loads(months_json)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid recurring months JSON: {e}") from e
    if not isinstance(months, list):
        raise ValidationError("Recurring months must be a JSON array")
    return _parse_months(months)


def deserialize(pattern: str, months_json: Optional[str]) -> RecurrenceDescriptor:
    """Inverse of `serialize()`; also accepts non-canonical case and order."""

    ordinal, weekday = parse_pattern(pattern)
    return RecurrenceDescriptor(ordinal, weekday, parse_months_json(months_json))
