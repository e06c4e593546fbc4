"""
Age thresholds ("1 month", "2 weeks", "36h", ...).

Months and years are calendar units and are subtracted on the calendar
(day clamped to the end of the target month); everything else is a fixed
timedelta subtracted afterwards. Calendar arithmetic runs on the wall clock,
so a local cutoff on the far side of a DST change keeps its wall time.
"""

from __future__ import annotations
import calendar
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

from keeper.errors import ConfigurationError

_TOKEN = re.compile(r"(\d+)\s*([a-z]+)")

_UNITS = {
    "s": "seconds", "sec": "seconds", "secs": "seconds", "second": "seconds", "seconds": "seconds",
    "m": "minutes", "min": "minutes", "mins": "minutes", "minute": "minutes", "minutes": "minutes",
    "h": "hours", "hr": "hours", "hrs": "hours", "hour": "hours", "hours": "hours",
    "d": "days", "day": "days", "days": "days",
    "w": "weeks", "week": "weeks", "weeks": "weeks",
    "mo": "months", "month": "months", "months": "months",
    "y": "years", "yr": "years", "yrs": "years", "year": "years", "years": "years",
}


@dataclass(frozen=True)
class AgeThreshold:
    years: int = 0
    months: int = 0
    delta: timedelta = timedelta(0)

    def cutoff(self, now: datetime) -> datetime:
        total_months = now.year * 12 + (now.month - 1) - (self.years * 12 + self.months)
        year, month = divmod(total_months, 12)
        month += 1
        day = min(now.day, calendar.monthrange(year, month)[1])
        wall = now.replace(tzinfo=None, year=year, month=month, day=day)
        return _localize(wall, now) - self.delta

    def __str__(self) -> str:
        parts = []
        for n, unit in ((self.years, "year"), (self.months, "month")):
            if n:
                parts.append(f"{n} {unit}" + ("s" if n != 1 else ""))
        if self.delta:
            parts.append(str(self.delta))
        return " ".join(parts) or "0:00:00"


def _localize(wall: datetime, now: datetime) -> datetime:
    """Attach now's zone to a wall time on another date, re-resolving DST."""
    if now.tzinfo is None:
        return wall
    if isinstance(now.tzinfo, timezone) and now.utcoffset() == now.astimezone().utcoffset():
        # fixed offset taken from the local zone (datetime.now().astimezone())
        return wall.astimezone()
    return wall.replace(tzinfo=now.tzinfo)


def parse_duration(value: Union[str, int, timedelta, AgeThreshold]) -> AgeThreshold:
    if isinstance(value, AgeThreshold):
        return value
    if isinstance(value, timedelta):
        return AgeThreshold(delta=value)
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid age threshold: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ConfigurationError(f"Age threshold must not be negative: {value}")
        return AgeThreshold(delta=timedelta(seconds=value))
    if not isinstance(value, str):
        raise ConfigurationError(f"Invalid age threshold: {value!r}")

    text = value.strip().lower()
    if text.isdigit():
        return AgeThreshold(delta=timedelta(seconds=int(text)))

    amounts = {"seconds": 0, "minutes": 0, "hours": 0, "days": 0, "weeks": 0, "months": 0, "years": 0}
    pos = 0
    matched = False
    for m in _TOKEN.finditer(text):
        gap = text[pos:m.start()].strip(" ,+")
        if gap and gap != "and":
            raise ConfigurationError(f"Invalid age threshold: {value!r}")
        unit = _UNITS.get(m.group(2))
        if unit is None:
            raise ConfigurationError(f"Unknown time unit '{m.group(2)}' in age threshold {value!r}")
        amounts[unit] += int(m.group(1))
        pos = m.end()
        matched = True
    if not matched or text[pos:].strip(" ,"):
        raise ConfigurationError(f"Invalid age threshold: {value!r}")

    return AgeThreshold(
        years=amounts["years"],
        months=amounts["months"],
        delta=timedelta(
            weeks=amounts["weeks"],
            days=amounts["days"],
            hours=amounts["hours"],
            minutes=amounts["minutes"],
            seconds=amounts["seconds"],
        ),
    )
