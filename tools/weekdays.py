"""
Weekday Set
Seven-bit weekday mask used by weekly and custom medication schedules
"""

from dataclasses import dataclass
from datetime import date
from enum import IntEnum
from typing import Iterable, List

from exceptions import InvariantViolation


ALL_DAYS_MASK = 0b1111111


class Weekday(IntEnum):
    """Calendar weekday; the value is the bit index in a schedule mask"""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        # date.weekday() is Monday=0
        return cls((day.weekday() + 1) % 7)

    @property
    def short_name(self) -> str:
        return self.name[:3].title()


@dataclass(frozen=True)
class WeekdaySet:
    """Immutable set of weekdays backed by a 7-bit mask (Sunday = bit 0)"""
    mask: int = 0

    def __post_init__(self):
        if not isinstance(self.mask, int) or not 0 <= self.mask <= ALL_DAYS_MASK:
            raise InvariantViolation(f"Weekday mask must be within 0..127, got {self.mask!r}")

    @classmethod
    def from_days(cls, days: Iterable[Weekday]) -> "WeekdaySet":
        mask = 0
        for day in days:
            mask |= 1 << int(Weekday(day))
        return cls(mask)

    @classmethod
    def every_day(cls) -> "WeekdaySet":
        return cls(ALL_DAYS_MASK)

    @property
    def is_empty(self) -> bool:
        return self.mask == 0

    def is_set(self, day: Weekday) -> bool:
        return bool(self.mask & (1 << int(day)))

    def set(self, day: Weekday) -> "WeekdaySet":
        return WeekdaySet(self.mask | (1 << int(day)))

    def clear(self, day: Weekday) -> "WeekdaySet":
        return WeekdaySet(self.mask & ~(1 << int(day)))

    def to_days(self) -> List[Weekday]:
        return [day for day in Weekday if self.is_set(day)]

    def matches(self, day: date, empty_matches_all: bool = True) -> bool:
        """
        Whether a calendar day falls on one of the selected weekdays.

        An empty mask places no restriction when ``empty_matches_all`` is set.
        """
        if self.is_empty:
            return empty_matches_all
        return self.is_set(Weekday.from_date(day))

    def __contains__(self, day: Weekday) -> bool:
        return self.is_set(day)

    def __len__(self) -> int:
        return bin(self.mask).count("1")

    def __str__(self) -> str:
        if self.mask == ALL_DAYS_MASK:
            return "Every day"
        return ", ".join(day.short_name for day in self.to_days())
