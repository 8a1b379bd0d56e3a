"""Schedule expression parsing.

Two notations are accepted:

- ``every:<N>m``, ``every:<N>h``, ``every:<N>d`` - fixed interval anchored at
  the epoch of the given timezone.
- The five-field cron subset used by the built-in loops::

      */N * * * *   every N minutes, N a divisor of 60
      M * * * *     hourly at minute M
      M H * * *     daily at H:M
      M H * * D     weekly on weekday D (0 or 7 = Sunday) at H:M

Everything else raises ConfigurationError. Expressions are parsed once, at
registration; the scheduler only ever sees the resulting Schedule.
"""

import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import ConfigurationError
from ..models import Schedule

_EVERY_RE = re.compile(r"^every:(\d+)([mhd])$")
_UNITS = {"m": "minutes", "h": "hours", "d": "days"}

# 2024-01-01 was a Monday; weekday anchors are derived from it.
_ANCHOR_MONDAY = datetime(2024, 1, 1)


def _zone(timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {timezone}") from e


def _int_field(value: str, low: int, high: int, name: str, expression: str) -> int:
    if not value.isdigit():
        raise ConfigurationError(f"Unsupported {name} field '{value}' in '{expression}'")
    number = int(value)
    if not low <= number <= high:
        raise ConfigurationError(
            f"{name} field {number} out of range [{low}, {high}] in '{expression}'"
        )
    return number


def _parse_every(expression: str, tz: ZoneInfo, timezone: str) -> Schedule:
    match = _EVERY_RE.match(expression)
    if not match:
        raise ConfigurationError(f"Invalid interval expression: '{expression}'")
    amount = int(match.group(1))
    if amount <= 0:
        raise ConfigurationError(f"Interval must be positive: '{expression}'")
    interval = timedelta(**{_UNITS[match.group(2)]: amount})
    anchor = _ANCHOR_MONDAY.replace(tzinfo=tz)
    return Schedule(expression=expression, interval=interval, anchor=anchor, timezone=timezone)


def _parse_cron(expression: str, tz: ZoneInfo, timezone: str) -> Schedule:
    fields = expression.split()
    if len(fields) != 5:
        raise ConfigurationError(f"Cron expression needs 5 fields: '{expression}'")
    minute, hour, day_of_month, month, day_of_week = fields

    if day_of_month != "*" or month != "*":
        raise ConfigurationError(
            f"Day-of-month and month fields are not supported: '{expression}'"
        )

    base = _ANCHOR_MONDAY.replace(tzinfo=tz)

    # */N * * * *
    if minute.startswith("*/"):
        if hour != "*" or day_of_week != "*":
            raise ConfigurationError(f"Unsupported cron expression: '{expression}'")
        step = _int_field(minute[2:], 1, 59, "minute step", expression)
        if 60 % step:
            raise ConfigurationError(
                f"Minute step {step} does not divide the hour evenly: '{expression}'"
            )
        return Schedule(
            expression=expression,
            interval=timedelta(minutes=step),
            anchor=base,
            timezone=timezone,
        )

    at_minute = _int_field(minute, 0, 59, "minute", expression)

    # M * * * *
    if hour == "*":
        if day_of_week != "*":
            raise ConfigurationError(f"Unsupported cron expression: '{expression}'")
        return Schedule(
            expression=expression,
            interval=timedelta(hours=1),
            anchor=base + timedelta(minutes=at_minute),
            timezone=timezone,
        )

    at_hour = _int_field(hour, 0, 23, "hour", expression)
    time_of_day = timedelta(hours=at_hour, minutes=at_minute)

    # M H * * *
    if day_of_week == "*":
        return Schedule(
            expression=expression,
            interval=timedelta(days=1),
            anchor=base + time_of_day,
            timezone=timezone,
        )

    # M H * * D  (cron: 0 and 7 are Sunday, 1 is Monday)
    weekday = _int_field(day_of_week, 0, 7, "day-of-week", expression)
    days_from_monday = (weekday - 1) % 7
    return Schedule(
        expression=expression,
        interval=timedelta(weeks=1),
        anchor=base + timedelta(days=days_from_monday) + time_of_day,
        timezone=timezone,
    )


def parse_schedule(expression: str, timezone: str = "UTC") -> Schedule:
    """Parse a schedule expression into a structured Schedule.

    Raises:
        ConfigurationError: expression or timezone not supported.
    """
    if not expression or not expression.strip():
        raise ConfigurationError("Schedule expression is empty")

    expression = expression.strip()
    tz = _zone(timezone)

    if expression.startswith("every:"):
        return _parse_every(expression, tz, timezone)
    return _parse_cron(expression, tz, timezone)
