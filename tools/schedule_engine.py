"""
Schedule Engine Tool
Decides whether a medication schedule occurs on a calendar day and at which instant
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, date, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings, engine_config
from exceptions import InvariantViolation
from tools.weekdays import WeekdaySet


logger = logging.getLogger(__name__)


class Cadence(str, Enum):
    """How often a schedule recurs"""
    DAILY = "daily"
    WEEKLY = "weekly"      # on the weekdays in the mask
    INTERVAL = "interval"  # every N days from the anchor day
    CUSTOM = "custom"      # same rule as weekly, kept distinct for display

    @classmethod
    def parse(cls, value: Any) -> "Cadence":
        """Parse a stored cadence; unknown or blank values read as daily"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.DAILY


# ==================== SCHEDULE SOURCES ====================

@dataclass(frozen=True)
class SyntheticSchedule:
    """
    Daily dose rule for a scheduled medication that has no persisted schedules.

    Quacks like a schedule row for the engine; it is never stored.
    """
    medication_id: str
    hour: int = field(default_factory=lambda: engine_config.SYNTHETIC_SCHEDULE_HOUR)
    minute: int = field(default_factory=lambda: engine_config.SYNTHETIC_SCHEDULE_MINUTE)
    cadence: Cadence = Cadence.DAILY
    interval: int = 1
    weekday_mask: int = 0
    timezone_identifier: Optional[str] = None
    start_date: Optional[date] = None
    is_active: bool = True
    label: Optional[str] = None
    amount: Any = None
    unit: Optional[str] = None

    @property
    def key(self) -> str:
        return self.medication_id


@dataclass(frozen=True)
class ExplicitSchedule:
    """A persisted schedule row"""
    schedule: Any

    @property
    def key(self) -> str:
        return self.schedule.id

    @property
    def medication_id(self) -> str:
        return self.schedule.medication_id


ScheduleSource = Union[ExplicitSchedule, SyntheticSchedule]


def rule_of(source: ScheduleSource) -> Any:
    """The object carrying cadence/hour/minute for a schedule source"""
    if isinstance(source, ExplicitSchedule):
        return source.schedule
    return source


# ==================== CALENDAR HELPERS ====================

def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative when end is earlier)"""
    return (end - start).days


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end inclusive"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def resolve_timezone(identifier: Optional[str], fallback: Optional[tzinfo] = None) -> tzinfo:
    """Resolve an IANA name, falling back to the caller's zone and then the configured default"""
    if identifier:
        try:
            return ZoneInfo(identifier)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone identifier {identifier!r}, using fallback")
    if fallback is not None:
        return fallback
    return ZoneInfo(settings.DEFAULT_TIMEZONE)


def day_bounds(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """Half-open [start, next start) of a calendar day in tz, as UTC instants"""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def local_day(instant: datetime, tz: tzinfo) -> date:
    """Calendar day an instant falls on in tz (naive instants are read as UTC)"""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz).date()


# ==================== ENGINE ====================

class ScheduleEngine:
    """
    Pure recurrence rules for medication schedules
    """

    def __init__(self, empty_mask_matches_all: Optional[bool] = None):
        if empty_mask_matches_all is None:
            empty_mask_matches_all = engine_config.EMPTY_WEEKDAY_MASK_MATCHES_ALL
        self.empty_mask_matches_all = empty_mask_matches_all

    def _anchor_day(self, schedule: Any, tz: tzinfo) -> Optional[date]:
        anchor = getattr(schedule, "start_date", None)
        if anchor is None:
            return None
        if isinstance(anchor, datetime):
            return local_day(anchor, tz)
        return anchor

    def occurs_on(self, schedule: Any, day: date, tz: Optional[tzinfo] = None) -> bool:
        """Whether the cadence rule selects this calendar day"""
        if not getattr(schedule, "is_active", True):
            return False

        cadence = Cadence.parse(getattr(schedule, "cadence", None))

        if cadence == Cadence.DAILY:
            return True
        elif cadence in (Cadence.WEEKLY, Cadence.CUSTOM):
            weekdays = WeekdaySet(getattr(schedule, "weekday_mask", 0) or 0)
            return weekdays.matches(day, empty_matches_all=self.empty_mask_matches_all)
        elif cadence == Cadence.INTERVAL:
            tz = tz or resolve_timezone(getattr(schedule, "timezone_identifier", None))
            anchor = self._anchor_day(schedule, tz)
            if anchor is None:
                logger.warning(
                    f"Interval schedule {getattr(schedule, 'id', None)} has no start date; "
                    f"no occurrences produced"
                )
                return False
            interval = max(getattr(schedule, "interval", 1) or 1, 1)
            distance = days_between(anchor, day)
            return distance >= 0 and distance % interval == 0
        else:
            raise InvariantViolation(f"Unhandled cadence: {cadence!r}")

    def occurrence(
        self,
        schedule: Any,
        day: date,
        fallback_tz: Optional[tzinfo] = None
    ) -> Optional[datetime]:
        """
        Instant at which a schedule is due on a calendar day

        Args:
            schedule: Schedule row or SyntheticSchedule
            day: Calendar day in the schedule's timezone
            fallback_tz: Zone used when the schedule has none

        Returns:
            Timezone-aware UTC datetime, or None when the schedule does not occur
        """
        if schedule is None or not getattr(schedule, "is_active", True):
            return None

        hour = getattr(schedule, "hour", None)
        minute = getattr(schedule, "minute", None)
        if hour is None or minute is None:
            return None
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            return None

        tz = resolve_timezone(getattr(schedule, "timezone_identifier", None), fallback_tz)
        if not self.occurs_on(schedule, day, tz):
            return None

        local = datetime.combine(day, time(hour, minute), tzinfo=tz)
        return local.astimezone(timezone.utc)

    def occurrences_between(
        self,
        schedule: Any,
        start: datetime,
        end: datetime,
        fallback_tz: Optional[tzinfo] = None
    ) -> List[datetime]:
        """All occurrence instants within [start, end]"""
        tz = resolve_timezone(getattr(schedule, "timezone_identifier", None), fallback_tz)
        first_day = local_day(start, tz)
        anchor = self._anchor_day(schedule, tz)
        if anchor is not None and anchor > first_day:
            first_day = anchor

        results = []
        for day in iter_days(first_day, local_day(end, tz)):
            instant = self.occurrence(schedule, day, tz)
            if instant is not None and start <= instant <= end:
                results.append(instant)
        return results


# Singleton instance
schedule_engine = ScheduleEngine()


def occurrence(schedule: Any, day: date, fallback_tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Convenience function for the scheduled instant on a day"""
    return schedule_engine.occurrence(schedule, day, fallback_tz)
