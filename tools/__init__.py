"""
Tools Package
Pure recurrence, matching and analytics logic for Auralyst
"""

from .weekdays import (
    Weekday,
    WeekdaySet,
    ALL_DAYS_MASK
)

from .schedule_engine import (
    Cadence,
    ScheduleEngine,
    ScheduleSource,
    ExplicitSchedule,
    SyntheticSchedule,
    schedule_engine,
    occurrence,
    days_between,
    iter_days,
    day_bounds,
    local_day,
    resolve_timezone
)

from .intake_matching import (
    IntakeOrigin,
    IntakeMatcher,
    AsNeededDraft,
    MedicationDefaultsUpdate,
    ScheduledDose,
    IntakeEditResult,
    EDITABLE_INTAKE_FIELDS,
    intake_matcher,
    find_scheduled_intake
)

from .formatting import (
    format_decimal,
    format_dose
)

from .quick_log import (
    QuickLogAggregator,
    DailySnapshot,
    ScheduledOccurrence,
    AsNeededItem,
    quick_log_aggregator,
    schedule_sources
)

from .adherence_calculator import (
    AdherenceCalculator,
    AdherenceReport,
    adherence_calculator
)

from .trend_correlator import (
    TrendCorrelator,
    TrendRange,
    TrendSummary,
    TrendInsight,
    severity_value
)

from .reconciliation import (
    ReconciliationResolver,
    reconcile
)

__all__ = [
    # Weekdays
    "Weekday",
    "WeekdaySet",
    "ALL_DAYS_MASK",

    # Schedule Engine
    "Cadence",
    "ScheduleEngine",
    "ScheduleSource",
    "ExplicitSchedule",
    "SyntheticSchedule",
    "schedule_engine",
    "occurrence",
    "days_between",
    "iter_days",
    "day_bounds",
    "local_day",
    "resolve_timezone",

    # Intake Matching
    "IntakeOrigin",
    "IntakeMatcher",
    "AsNeededDraft",
    "MedicationDefaultsUpdate",
    "ScheduledDose",
    "IntakeEditResult",
    "EDITABLE_INTAKE_FIELDS",
    "intake_matcher",
    "find_scheduled_intake",

    # Formatting
    "format_decimal",
    "format_dose",

    # Quick Log
    "QuickLogAggregator",
    "DailySnapshot",
    "ScheduledOccurrence",
    "AsNeededItem",
    "quick_log_aggregator",
    "schedule_sources",

    # Adherence
    "AdherenceCalculator",
    "AdherenceReport",
    "adherence_calculator",

    # Trends
    "TrendCorrelator",
    "TrendRange",
    "TrendSummary",
    "TrendInsight",
    "severity_value",

    # Reconciliation
    "ReconciliationResolver",
    "reconcile"
]
