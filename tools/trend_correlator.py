"""
Trend Correlator Tool
Rolls symptom entries and intakes into trend series and natural-language insights
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, date, timedelta, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from config import engine_config
from tools.intake_matching import IntakeOrigin, as_utc
from tools.schedule_engine import local_day
from tools.weekdays import Weekday


logger = logging.getLogger(__name__)


MENSTRUATING_LABEL = "Menstruating"
NOT_MENSTRUATING_LABEL = "Not Menstruating"


class TrendRange(str, Enum):
    """Look-back windows offered by the trends view"""
    SEVEN = "7d"
    THIRTY = "30d"
    NINETY = "90d"

    @property
    def days(self) -> int:
        return {"7d": 7, "30d": 30, "90d": 90}[self.value]

    @property
    def duration(self) -> timedelta:
        return timedelta(days=self.days)

    def window(self, now: datetime) -> Tuple[datetime, datetime]:
        now = as_utc(now)
        return now - self.duration, now


# ==================== RESULT TYPES ====================

@dataclass
class DailySeverityPoint:
    day: date
    value: float


@dataclass
class HeatmapCell:
    weekday: Weekday
    hour: int
    value: float

    @property
    def id(self) -> str:
        return f"{int(self.weekday)}-{self.hour}"


@dataclass
class MedicationEffect:
    """Baseline minus on-medication severity; positive means lower severity on those days"""
    medication_id: str
    name: str
    delta: float


@dataclass
class MenstruationAverage:
    label: str
    value: float
    count: int


@dataclass
class SymptomAverage:
    label: str
    value: float


@dataclass
class AsNeededUsage:
    label: str
    count: int
    medication_names: List[str] = field(default_factory=list)


@dataclass
class SentimentOverview:
    average_score: Optional[float]
    labeled_count: int
    pending_analysis_count: int

    @property
    def tone(self) -> Optional[str]:
        if self.average_score is None:
            return None
        if self.average_score >= engine_config.SENTIMENT_POSITIVE:
            return "positive"
        if self.average_score <= engine_config.SENTIMENT_CONCERNING:
            return "concerning"
        return "neutral"

    @property
    def description(self) -> str:
        if self.average_score is None:
            return "Sentiment analysis pending for recent notes."
        return f"Average note sentiment sits at {self.average_score:.2f} ({self.tone})."


@dataclass
class TrendInsight:
    kind: str
    title: str
    detail: Optional[str] = None


@dataclass
class TrendSummary:
    """All rollups for one window"""
    range: TrendRange
    start: datetime
    end: datetime
    daily_severity: List[DailySeverityPoint] = field(default_factory=list)
    heatmap: List[HeatmapCell] = field(default_factory=list)
    medication_effects: List[MedicationEffect] = field(default_factory=list)
    menstruation: List[MenstruationAverage] = field(default_factory=list)
    menstruation_delta_description: Optional[str] = None
    symptom_breakdown: List[SymptomAverage] = field(default_factory=list)
    as_needed_usage: List[AsNeededUsage] = field(default_factory=list)
    sentiment: Optional[SentimentOverview] = None
    insights: List[TrendInsight] = field(default_factory=list)


# ==================== HELPERS ====================

def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def _positive(value: Any) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if value > 0 else None


def severity_value(entry: Any) -> Optional[float]:
    """Overall severity if set, else the mean of positive sub-scores"""
    overall = _positive(entry.severity)
    if overall is not None:
        return overall
    details = [
        v for v in (_positive(entry.headache), _positive(entry.nausea), _positive(entry.anxiety))
        if v is not None
    ]
    return _mean(details)


class TrendCorrelator:
    """
    Correlates medication-taking days and cycle state with symptom severity
    """

    def __init__(self, tz: tzinfo):
        self.tz = tz

    def _entry_day(self, entry: Any) -> date:
        return local_day(entry.timestamp, self.tz)

    # ==================== SEVERITY ====================

    def daily_severity(self, entries: Iterable[Any]) -> List[DailySeverityPoint]:
        """Mean severity per calendar day; days without a usable value are omitted"""
        by_day: Dict[date, List[float]] = defaultdict(list)
        for entry in entries:
            value = severity_value(entry)
            if value is not None:
                by_day[self._entry_day(entry)].append(value)
        return [
            DailySeverityPoint(day=day, value=_mean(values))
            for day, values in sorted(by_day.items())
        ]

    def hourly_heatmap(self, entries: Iterable[Any]) -> List[HeatmapCell]:
        cells: Dict[Tuple[Weekday, int], List[float]] = defaultdict(list)
        for entry in entries:
            value = severity_value(entry)
            if value is None:
                continue
            local = as_utc(entry.timestamp).astimezone(self.tz)
            cells[(Weekday.from_date(local.date()), local.hour)].append(value)
        return [
            HeatmapCell(weekday=weekday, hour=hour, value=_mean(values))
            for (weekday, hour), values in sorted(cells.items())
        ]

    # ==================== MEDICATION EFFECTS ====================

    def medication_effects(
        self,
        entries: Sequence[Any],
        intakes: Iterable[Any],
        medication_names: Mapping[str, str]
    ) -> List[MedicationEffect]:
        """
        Severity difference between all days and days a medication was taken

        A medication-day is the day of any intake timestamp or its nominal scheduled time.
        """
        points = self.daily_severity(entries)
        if not points:
            return []
        severity_by_day = {p.day: p.value for p in points}
        baseline = _mean([p.value for p in points])

        medication_days: Dict[str, Set[date]] = defaultdict(set)
        for intake in intakes:
            medication_days[intake.medication_id].add(local_day(intake.timestamp, self.tz))
            if intake.scheduled_date is not None:
                medication_days[intake.medication_id].add(local_day(intake.scheduled_date, self.tz))

        effects = []
        for medication_id, days in medication_days.items():
            values = [severity_by_day[d] for d in days if d in severity_by_day]
            if not values:
                continue
            delta = baseline - _mean(values)
            if abs(delta) <= engine_config.EFFECT_MIN_DELTA:
                continue
            effects.append(MedicationEffect(
                medication_id=medication_id,
                name=medication_names.get(medication_id, "Medication"),
                delta=delta,
            ))

        effects.sort(key=lambda e: (-e.delta, e.name, e.medication_id))
        return effects

    # ==================== MENSTRUATION ====================

    def menstruation_averages(self, entries: Iterable[Any]) -> List[MenstruationAverage]:
        groups: Dict[bool, List[Any]] = defaultdict(list)
        for entry in entries:
            groups[bool(entry.is_menstruating)].append(entry)

        results = []
        for flag, group in groups.items():
            values = [v for v in (severity_value(e) for e in group) if v is not None]
            if not values:
                continue
            results.append(MenstruationAverage(
                label=MENSTRUATING_LABEL if flag else NOT_MENSTRUATING_LABEL,
                value=_mean(values),
                count=len(group),
            ))
        return sorted(results, key=lambda p: p.label)

    def menstruation_delta(self, averages: Sequence[MenstruationAverage]) -> Optional[float]:
        by_label = {p.label: p.value for p in averages}
        if MENSTRUATING_LABEL not in by_label or NOT_MENSTRUATING_LABEL not in by_label:
            return None
        return by_label[MENSTRUATING_LABEL] - by_label[NOT_MENSTRUATING_LABEL]

    def menstruation_delta_description(self, averages: Sequence[MenstruationAverage]) -> Optional[str]:
        delta = self.menstruation_delta(averages)
        if delta is None:
            return None
        if abs(delta) < engine_config.MENSTRUATION_STABLE_DELTA:
            return "Severity remains stable regardless of menstruation."
        direction = "higher" if delta > 0 else "lower"
        return f"Severity runs ~{abs(delta):.1f} points {direction} while menstruating."

    # ==================== BREAKDOWNS ====================

    def symptom_breakdown(self, entries: Sequence[Any]) -> List[SymptomAverage]:
        results = []
        overall = [v for v in (severity_value(e) for e in entries) if v is not None]
        if overall:
            results.append(SymptomAverage(label="Overall", value=_mean(overall)))

        for label, attribute in (("Headache", "headache"), ("Nausea", "nausea"), ("Anxiety", "anxiety")):
            values = [v for v in (_positive(getattr(e, attribute)) for e in entries) if v is not None]
            if values:
                results.append(SymptomAverage(label=label, value=_mean(values)))
        return results

    def as_needed_usage(
        self,
        intakes: Iterable[Any],
        medications: Mapping[str, Any]
    ) -> List[AsNeededUsage]:
        """As-needed intakes grouped by use-case label (or medication name)"""
        groups: Dict[str, Tuple[int, Set[str]]] = {}
        for intake in intakes:
            if IntakeOrigin(intake.origin) != IntakeOrigin.AS_NEEDED:
                continue
            medication = medications.get(intake.medication_id)
            name = medication.name if medication is not None else "Medication"
            label = (medication.use_case_label if medication is not None else None) or name
            count, names = groups.get(label, (0, set()))
            names.add(name)
            groups[label] = (count + 1, names)

        usage = [
            AsNeededUsage(label=label, count=count, medication_names=sorted(names))
            for label, (count, names) in groups.items()
        ]
        usage.sort(key=lambda u: (-u.count, u.label))
        return usage

    def sentiment_overview(self, entries: Sequence[Any]) -> Optional[SentimentOverview]:
        if not entries:
            return None
        scored = [float(e.sentiment_score) for e in entries if e.sentiment_score is not None]
        pending = sum(1 for e in entries if e.note and e.sentiment_score is None)
        return SentimentOverview(
            average_score=_mean(scored),
            labeled_count=len(scored),
            pending_analysis_count=pending,
        )

    # ==================== INSIGHTS ====================

    def insights(
        self,
        trend_range: TrendRange,
        entries: Sequence[Any],
        effects: Sequence[MedicationEffect],
        menstruation: Sequence[MenstruationAverage]
    ) -> List[TrendInsight]:
        """Independent insight rules; each contributes at most one insight"""
        if not entries:
            return []
        results = []
        high = engine_config.HIGH_SEVERITY
        high_label = f"{high:g}"

        morning_highs = 0
        for entry in entries:
            hour = as_utc(entry.timestamp).astimezone(self.tz).hour
            value = severity_value(entry) or 0
            if engine_config.MORNING_START_HOUR <= hour < engine_config.MORNING_END_HOUR and value >= high:
                morning_highs += 1

        if morning_highs >= engine_config.MORNING_INSIGHT_MIN_COUNT:
            if trend_range == TrendRange.SEVEN:
                results.append(TrendInsight(
                    kind="morning_severity",
                    title=f"Noticed {morning_highs} mornings this week with level ≥{high_label}.",
                    detail="Tag wake time or sleep quality to give context.",
                ))
            else:
                results.append(TrendInsight(
                    kind="morning_severity",
                    title=f"Morning severity ≥{high_label} appears {morning_highs} times in the last {trend_range.value}.",
                    detail="Tag wake time or sleep quality to clarify triggers.",
                ))

        effect = next((e for e in effects if e.delta > engine_config.EFFECT_INSIGHT_DELTA), None)
        if effect is not None:
            results.append(TrendInsight(
                kind="medication_effect",
                title=f"{effect.name} correlates with lower severity (Δ{effect.delta:.1f}).",
                detail="Keep noting when you take it to confirm the pattern.",
            ))

        delta = self.menstruation_delta(menstruation)
        if delta is not None and abs(delta) >= engine_config.MENSTRUATION_INSIGHT_DELTA:
            direction = "higher" if delta > 0 else "lower"
            results.append(TrendInsight(
                kind="menstruation",
                title=f"Severity runs {abs(delta):.1f} points {direction} while menstruating.",
                detail="Include cycle tags in notes to keep context clear.",
            ))

        return results

    # ==================== SUMMARY ====================

    def summarize(
        self,
        trend_range: TrendRange,
        now: datetime,
        entries: Iterable[Any],
        intakes: Iterable[Any],
        medications: Sequence[Any]
    ) -> TrendSummary:
        """Every rollup for entries and intakes inside the range window"""
        start, end = trend_range.window(now)
        window_entries = [e for e in entries if start <= as_utc(e.timestamp) <= end]
        window_intakes = [i for i in intakes if start <= as_utc(i.timestamp) <= end]
        by_id = {m.id: m for m in medications}
        names = {m.id: m.name for m in medications}

        effects = self.medication_effects(window_entries, window_intakes, names)
        menstruation = self.menstruation_averages(window_entries)

        summary = TrendSummary(
            range=trend_range,
            start=start,
            end=end,
            daily_severity=self.daily_severity(window_entries),
            heatmap=self.hourly_heatmap(window_entries),
            medication_effects=effects,
            menstruation=menstruation,
            menstruation_delta_description=self.menstruation_delta_description(menstruation),
            symptom_breakdown=self.symptom_breakdown(window_entries),
            as_needed_usage=self.as_needed_usage(window_intakes, by_id),
            sentiment=self.sentiment_overview(window_entries),
            insights=self.insights(trend_range, window_entries, effects, menstruation),
        )

        logger.debug(
            f"Trend summary {trend_range.value}: {len(window_entries)} entries, "
            f"{len(window_intakes)} intakes, {len(summary.insights)} insights"
        )
        return summary
