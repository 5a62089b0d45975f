"""
Tests for the Reconciliation Resolver
"""

import pytest
from types import SimpleNamespace
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from tools.reconciliation import ReconciliationResolver, reconcile


UTC = timezone.utc
DOSE_TIME = datetime(2024, 3, 4, 12, 0, tzinfo=UTC)

MEDICATIONS = {
    "m1": SimpleNamespace(id="m1", journal_id="j1"),
    "m2": SimpleNamespace(id="m2", journal_id="j2"),
}


def make_intake(id, timestamp=DOSE_TIME, medication_id="m1", entry_id=None, scheduled_date=None, schedule_id=None):
    return SimpleNamespace(
        id=id,
        medication_id=medication_id,
        schedule_id=schedule_id,
        entry_id=entry_id,
        timestamp=timestamp,
        scheduled_date=scheduled_date,
    )


def make_entry(id, timestamp, journal_id="j1"):
    return SimpleNamespace(id=id, journal_id=journal_id, timestamp=timestamp)


@pytest.fixture
def resolver():
    return ReconciliationResolver(UTC)


class TestAssign:

    @pytest.mark.unit
    def test_nearest_entry_wins(self, resolver):
        entries = [
            make_entry("far", DOSE_TIME + timedelta(minutes=90)),
            make_entry("near", DOSE_TIME - timedelta(minutes=10)),
        ]
        assert resolver.assign([make_intake("i1")], entries, MEDICATIONS) == {"i1": "near"}

    @pytest.mark.unit
    def test_tie_goes_to_smallest_entry_id(self, resolver):
        entries = [
            make_entry("entry-b", DOSE_TIME + timedelta(minutes=30)),
            make_entry("entry-a", DOSE_TIME - timedelta(minutes=30)),
        ]
        first = resolver.assign([make_intake("i1")], entries, MEDICATIONS)
        again = resolver.assign([make_intake("i1")], list(reversed(entries)), MEDICATIONS)
        assert first == again == {"i1": "entry-a"}

    @pytest.mark.unit
    def test_other_day_not_considered(self, resolver):
        entries = [make_entry("yesterday", DOSE_TIME - timedelta(hours=13))]
        assert resolver.assign([make_intake("i1")], entries, MEDICATIONS) == {}

    @pytest.mark.unit
    def test_other_journal_not_considered(self, resolver):
        entries = [make_entry("foreign", DOSE_TIME, journal_id="j2")]
        assert resolver.assign([make_intake("i1")], entries, MEDICATIONS) == {}

    @pytest.mark.unit
    def test_explicit_link_kept(self, resolver):
        entries = [make_entry("near", DOSE_TIME)]
        intake = make_intake("i1", entry_id="chosen")
        assert resolver.assign([intake], entries, MEDICATIONS) == {"i1": "chosen"}

    @pytest.mark.unit
    def test_unknown_medication_resolved_through_schedule(self, resolver):
        entries = [make_entry("near", DOSE_TIME)]
        intake = make_intake("i1", medication_id="gone", schedule_id="s1")
        schedules = {"s1": SimpleNamespace(id="s1", medication_id="m1")}
        assert resolver.assign([intake], entries, MEDICATIONS, schedules) == {"i1": "near"}

    @pytest.mark.unit
    def test_unknown_medication_left_unassigned(self, resolver):
        entries = [make_entry("near", DOSE_TIME)]
        assert resolver.assign([make_intake("i1", medication_id="gone")], entries, MEDICATIONS) == {}

    @pytest.mark.unit
    def test_day_is_local_to_timezone(self):
        # 23:30 UTC is already the next day in Berlin
        late = datetime(2024, 3, 4, 23, 30, tzinfo=UTC)
        entries = [make_entry("next-morning", datetime(2024, 3, 5, 6, 0, tzinfo=UTC))]
        intakes = [make_intake("i1", timestamp=late)]

        assert reconcile(intakes, entries, MEDICATIONS, UTC) == {}
        assert reconcile(intakes, entries, MEDICATIONS, ZoneInfo("Europe/Berlin")) == {"i1": "next-morning"}


class TestEffectiveMoment:

    @pytest.mark.unit
    def test_timestamp_then_scheduled_date(self, resolver):
        nominal = DOSE_TIME - timedelta(hours=1)
        assert resolver.effective_moment(make_intake("a", scheduled_date=nominal)) == DOSE_TIME
        assert resolver.effective_moment(make_intake("b", timestamp=None, scheduled_date=nominal)) == nominal
