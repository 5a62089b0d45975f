"""
Tests for the Schedule Engine
Recurrence rules, timezone handling and occurrence ranges
"""

import pytest
from types import SimpleNamespace
from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo

from tools.schedule_engine import (
    Cadence,
    ScheduleEngine,
    SyntheticSchedule,
    ExplicitSchedule,
    day_bounds,
    iter_days,
    local_day,
    resolve_timezone,
    rule_of,
)
from tools.weekdays import Weekday, WeekdaySet


UTC = timezone.utc


def make_schedule(**overrides):
    values = {
        "id": "sched-1",
        "medication_id": "med-1",
        "cadence": "daily",
        "interval": 1,
        "weekday_mask": 0,
        "hour": 8,
        "minute": 0,
        "timezone_identifier": "UTC",
        "start_date": None,
        "is_active": True,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def engine():
    return ScheduleEngine(empty_mask_matches_all=True)


# =============================================================================
# Cadence
# =============================================================================

class TestCadence:

    @pytest.mark.unit
    @pytest.mark.parametrize("raw,expected", [
        ("daily", Cadence.DAILY),
        ("Weekly", Cadence.WEEKLY),
        (" interval ", Cadence.INTERVAL),
        ("custom", Cadence.CUSTOM),
        ("fortnightly", Cadence.DAILY),
        (None, Cadence.DAILY),
    ])
    def test_parse(self, raw, expected):
        assert Cadence.parse(raw) == expected


# =============================================================================
# Occurs On
# =============================================================================

class TestOccursOn:

    @pytest.mark.unit
    def test_daily_occurs_every_day(self, engine):
        schedule = make_schedule()
        assert all(
            engine.occurs_on(schedule, day)
            for day in iter_days(date(2024, 3, 1), date(2024, 3, 10))
        )

    @pytest.mark.unit
    def test_inactive_never_occurs(self, engine):
        schedule = make_schedule(is_active=False)
        assert not engine.occurs_on(schedule, date(2024, 3, 4))

    @pytest.mark.unit
    def test_weekly_follows_mask(self, engine):
        mask = WeekdaySet.from_days([Weekday.MONDAY, Weekday.THURSDAY]).mask
        schedule = make_schedule(cadence="weekly", weekday_mask=mask)

        assert engine.occurs_on(schedule, date(2024, 3, 4))   # Monday
        assert not engine.occurs_on(schedule, date(2024, 3, 5))
        assert engine.occurs_on(schedule, date(2024, 3, 7))   # Thursday

    @pytest.mark.unit
    def test_custom_behaves_like_weekly(self, engine):
        schedule = make_schedule(cadence="custom", weekday_mask=0b1)
        assert engine.occurs_on(schedule, date(2024, 3, 3))   # Sunday
        assert not engine.occurs_on(schedule, date(2024, 3, 4))

    @pytest.mark.unit
    def test_empty_weekly_mask_follows_engine_setting(self):
        schedule = make_schedule(cadence="weekly", weekday_mask=0)
        assert ScheduleEngine(empty_mask_matches_all=True).occurs_on(schedule, date(2024, 3, 5))
        assert not ScheduleEngine(empty_mask_matches_all=False).occurs_on(schedule, date(2024, 3, 5))

    @pytest.mark.unit
    def test_interval_every_other_day_from_anchor(self, engine):
        schedule = make_schedule(cadence="interval", interval=2, start_date=date(2024, 1, 1))

        assert engine.occurs_on(schedule, date(2024, 1, 1))
        assert not engine.occurs_on(schedule, date(2024, 1, 2))
        assert engine.occurs_on(schedule, date(2024, 1, 3))
        assert not engine.occurs_on(schedule, date(2023, 12, 30))

    @pytest.mark.unit
    def test_interval_without_anchor_never_occurs(self, engine):
        schedule = make_schedule(cadence="interval", interval=3, start_date=None)
        assert not engine.occurs_on(schedule, date(2024, 1, 1))
        assert engine.occurrence(schedule, date(2024, 1, 1)) is None


# =============================================================================
# Occurrence
# =============================================================================

class TestOccurrence:

    @pytest.mark.unit
    def test_returns_aware_utc(self, engine):
        instant = engine.occurrence(make_schedule(hour=21, minute=30), date(2024, 3, 4))
        assert instant == datetime(2024, 3, 4, 21, 30, tzinfo=UTC)
        assert instant.utcoffset().total_seconds() == 0

    @pytest.mark.unit
    def test_schedule_zone_converted_to_utc(self, engine):
        schedule = make_schedule(timezone_identifier="Europe/Berlin")
        # CET is UTC+1 in winter, CEST UTC+2 in summer
        assert engine.occurrence(schedule, date(2024, 1, 15)) == datetime(2024, 1, 15, 7, 0, tzinfo=UTC)
        assert engine.occurrence(schedule, date(2024, 7, 15)) == datetime(2024, 7, 15, 6, 0, tzinfo=UTC)

    @pytest.mark.unit
    def test_fallback_zone_used_when_schedule_has_none(self, engine):
        schedule = make_schedule(timezone_identifier=None)
        instant = engine.occurrence(schedule, date(2024, 1, 15), ZoneInfo("America/New_York"))
        assert instant == datetime(2024, 1, 15, 13, 0, tzinfo=UTC)

    @pytest.mark.unit
    def test_missing_time_has_no_occurrence(self, engine):
        assert engine.occurrence(make_schedule(hour=None), date(2024, 3, 4)) is None

    @pytest.mark.unit
    def test_none_schedule(self, engine):
        assert engine.occurrence(None, date(2024, 3, 4)) is None

    @pytest.mark.unit
    def test_synthetic_schedule_defaults_to_eight(self, engine):
        synthetic = SyntheticSchedule(medication_id="med-1")
        instant = engine.occurrence(synthetic, date(2024, 3, 4), UTC)
        assert instant == datetime(2024, 3, 4, 8, 0, tzinfo=UTC)
        assert synthetic.key == "med-1"


# =============================================================================
# Ranges
# =============================================================================

class TestOccurrencesBetween:

    @pytest.mark.unit
    def test_daily_range_is_inclusive(self, engine):
        instants = engine.occurrences_between(
            make_schedule(),
            datetime(2024, 3, 1, 0, 0, tzinfo=UTC),
            datetime(2024, 3, 5, 8, 0, tzinfo=UTC),
        )
        assert len(instants) == 5
        assert instants[0] == datetime(2024, 3, 1, 8, 0, tzinfo=UTC)
        assert instants[-1] == datetime(2024, 3, 5, 8, 0, tzinfo=UTC)

    @pytest.mark.unit
    def test_range_excludes_times_before_start(self, engine):
        instants = engine.occurrences_between(
            make_schedule(),
            datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
            datetime(2024, 3, 3, 7, 0, tzinfo=UTC),
        )
        assert instants == [datetime(2024, 3, 2, 8, 0, tzinfo=UTC)]

    @pytest.mark.unit
    def test_interval_range_starts_at_anchor(self, engine):
        schedule = make_schedule(cadence="interval", interval=2, start_date=date(2024, 1, 3))
        instants = engine.occurrences_between(
            schedule,
            datetime(2024, 1, 1, 0, 0, tzinfo=UTC),
            datetime(2024, 1, 9, 23, 0, tzinfo=UTC),
        )
        assert [i.day for i in instants] == [3, 5, 7, 9]


# =============================================================================
# Helpers
# =============================================================================

class TestCalendarHelpers:

    @pytest.mark.unit
    def test_day_bounds_in_zone(self):
        start, end = day_bounds(date(2024, 3, 4), ZoneInfo("Europe/Berlin"))
        assert start == datetime(2024, 3, 3, 23, 0, tzinfo=UTC)
        assert end == datetime(2024, 3, 4, 23, 0, tzinfo=UTC)

    @pytest.mark.unit
    def test_day_bounds_on_dst_change(self):
        start, end = day_bounds(date(2024, 3, 31), ZoneInfo("Europe/Berlin"))
        assert end - start == (datetime(2024, 3, 31, 22, 0) - datetime(2024, 3, 30, 23, 0))

    @pytest.mark.unit
    def test_local_day_reads_naive_as_utc(self):
        assert local_day(datetime(2024, 3, 4, 23, 30), ZoneInfo("Europe/Berlin")) == date(2024, 3, 5)

    @pytest.mark.unit
    def test_resolve_timezone_falls_back(self):
        fallback = ZoneInfo("Asia/Tokyo")
        assert resolve_timezone("Not/AZone", fallback) is fallback
        assert resolve_timezone(None, fallback) is fallback
        assert str(resolve_timezone("Europe/Berlin")) == "Europe/Berlin"

    @pytest.mark.unit
    def test_rule_of(self):
        schedule = make_schedule()
        synthetic = SyntheticSchedule(medication_id="med-1")
        assert rule_of(ExplicitSchedule(schedule)) is schedule
        assert rule_of(synthetic) is synthetic
        assert ExplicitSchedule(schedule).key == "sched-1"
