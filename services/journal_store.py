"""
Journal Store
Session-scoped data access for journals, medications, schedules, intakes and entries
"""

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import models
from exceptions import ConflictError, NotFoundError, StoreUnavailable


logger = logging.getLogger(__name__)


# ==================== CHANGE NOTIFICATION ====================

@dataclass(frozen=True)
class StoreChange:
    """Published after a committed write"""
    kind: str  # e.g. "intake.created"
    journal_id: Optional[str] = None
    record_ids: Tuple[str, ...] = field(default_factory=tuple)


class ChangeNotifier:
    """Fan-out of committed store changes to subscribers"""

    def __init__(self):
        self._subscribers: List[Callable[[StoreChange], None]] = []

    def subscribe(self, callback: Callable[[StoreChange], None]) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it"""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, change: StoreChange) -> None:
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                # A failing observer must not undo a committed write
                logger.exception(f"Store change subscriber failed for {change.kind}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


change_notifier = ChangeNotifier()


def _guarded(method):
    """Surface SQLAlchemy failures as store errors with the original chained"""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except IntegrityError as exc:
            logger.warning(f"Store conflict in {method.__name__}: {exc.orig}")
            raise ConflictError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            logger.error(f"Store failure in {method.__name__}: {exc}")
            raise StoreUnavailable(f"{method.__name__} failed") from exc

    return wrapper


# ==================== STORE ====================

class JournalStore:
    """
    Read/write boundary over one SQLAlchemy session
    """

    def __init__(self, session: Session, notifier: Optional[ChangeNotifier] = None):
        self.session = session
        self.notifier = notifier or change_notifier

    # ---------- lookups ----------

    @_guarded
    def get(self, model: Type[Any], record_id: str) -> Optional[Any]:
        if not record_id:
            return None
        return self.session.get(model, record_id)

    def require(self, model: Type[Any], record_id: str) -> Any:
        record = self.get(model, record_id)
        if record is None:
            raise NotFoundError(model.__name__, record_id)
        return record

    @_guarded
    def journals(self) -> List[models.Journal]:
        return self.session.query(models.Journal).order_by(models.Journal.created_at).all()

    @_guarded
    def medications_for(self, journal_id: str) -> List[models.Medication]:
        return self.session.query(models.Medication).filter(
            models.Medication.journal_id == journal_id
        ).order_by(models.Medication.name, models.Medication.id).all()

    @_guarded
    def schedules_for(self, medication_id: str) -> List[models.MedicationSchedule]:
        return self.session.query(models.MedicationSchedule).filter(
            models.MedicationSchedule.medication_id == medication_id
        ).order_by(
            models.MedicationSchedule.sort_order,
            models.MedicationSchedule.hour,
            models.MedicationSchedule.minute,
            models.MedicationSchedule.id
        ).all()

    @_guarded
    def schedules_by_medication(
        self,
        medication_ids: Sequence[str]
    ) -> Dict[str, List[models.MedicationSchedule]]:
        grouped: Dict[str, List[models.MedicationSchedule]] = {mid: [] for mid in medication_ids}
        if not medication_ids:
            return grouped
        rows = self.session.query(models.MedicationSchedule).filter(
            models.MedicationSchedule.medication_id.in_(list(medication_ids))
        ).order_by(
            models.MedicationSchedule.sort_order,
            models.MedicationSchedule.hour,
            models.MedicationSchedule.minute,
            models.MedicationSchedule.id
        ).all()
        for row in rows:
            grouped.setdefault(row.medication_id, []).append(row)
        return grouped

    @_guarded
    def intakes_in(
        self,
        medication_ids: Sequence[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[models.MedicationIntake]:
        """Intakes of the medications with timestamp in [start, end)"""
        if not medication_ids:
            return []
        query = self.session.query(models.MedicationIntake).filter(
            models.MedicationIntake.medication_id.in_(list(medication_ids))
        )
        if start is not None:
            query = query.filter(models.MedicationIntake.timestamp >= start)
        if end is not None:
            query = query.filter(models.MedicationIntake.timestamp < end)
        return query.order_by(models.MedicationIntake.timestamp, models.MedicationIntake.id).all()

    @_guarded
    def scheduled_intakes_between(
        self,
        schedule_id: str,
        start: datetime,
        end: datetime
    ) -> List[models.MedicationIntake]:
        """Scheduled intakes of a schedule whose nominal time is in [start, end]"""
        return self.session.query(models.MedicationIntake).filter(
            models.MedicationIntake.schedule_id == schedule_id,
            models.MedicationIntake.scheduled_date >= start,
            models.MedicationIntake.scheduled_date <= end
        ).order_by(models.MedicationIntake.id).all()

    @_guarded
    def scheduled_intakes_in(
        self,
        medication_ids: Sequence[str],
        start: datetime,
        end: datetime
    ) -> List[models.MedicationIntake]:
        """Scheduled intakes of the medications whose nominal time is in [start, end]"""
        if not medication_ids:
            return []
        return self.session.query(models.MedicationIntake).filter(
            models.MedicationIntake.medication_id.in_(list(medication_ids)),
            models.MedicationIntake.schedule_id.isnot(None),
            models.MedicationIntake.scheduled_date >= start,
            models.MedicationIntake.scheduled_date <= end
        ).order_by(models.MedicationIntake.scheduled_date, models.MedicationIntake.id).all()

    @_guarded
    def unscheduled_intakes_in(
        self,
        medication_id: str,
        start: datetime,
        end: datetime
    ) -> List[models.MedicationIntake]:
        return self.session.query(models.MedicationIntake).filter(
            models.MedicationIntake.medication_id == medication_id,
            models.MedicationIntake.schedule_id.is_(None),
            models.MedicationIntake.timestamp >= start,
            models.MedicationIntake.timestamp < end
        ).order_by(models.MedicationIntake.timestamp, models.MedicationIntake.id).all()

    @_guarded
    def latest_intake_times(self, medication_ids: Sequence[str]) -> Dict[str, datetime]:
        """Most recent intake timestamp per medication across all history"""
        if not medication_ids:
            return {}
        rows = self.session.query(
            models.MedicationIntake.medication_id,
            func.max(models.MedicationIntake.timestamp)
        ).filter(
            models.MedicationIntake.medication_id.in_(list(medication_ids))
        ).group_by(models.MedicationIntake.medication_id).all()
        return {medication_id: latest for medication_id, latest in rows if latest is not None}

    @_guarded
    def entries_for(
        self,
        journal_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[models.SymptomEntry]:
        """Entries of a journal with timestamp in [start, end]"""
        query = self.session.query(models.SymptomEntry).filter(
            models.SymptomEntry.journal_id == journal_id
        )
        if start is not None:
            query = query.filter(models.SymptomEntry.timestamp >= start)
        if end is not None:
            query = query.filter(models.SymptomEntry.timestamp <= end)
        return query.order_by(models.SymptomEntry.timestamp, models.SymptomEntry.id).all()

    @_guarded
    def notes_for(
        self,
        journal_id: str,
        entry_id: Optional[str] = None
    ) -> List[models.CollaboratorNote]:
        """Notes of a journal, oldest first; entry_id narrows to one entry"""
        query = self.session.query(models.CollaboratorNote).filter(
            models.CollaboratorNote.journal_id == journal_id
        )
        if entry_id is not None:
            query = query.filter(models.CollaboratorNote.entry_id == entry_id)
        return query.order_by(models.CollaboratorNote.timestamp, models.CollaboratorNote.id).all()

    # ---------- writes ----------

    @_guarded
    def add(self, record: Any) -> Any:
        self.session.add(record)
        self.session.flush()
        return record

    @_guarded
    def delete(self, record: Any) -> None:
        self.session.delete(record)
        self.session.flush()

    @_guarded
    def flush(self) -> None:
        self.session.flush()

    @_guarded
    def commit(self, change: Optional[StoreChange] = None) -> None:
        self.session.commit()
        if change is not None:
            self.notifier.publish(change)

    def rollback(self) -> None:
        self.session.rollback()

    def refresh(self, records: Iterable[Any]) -> None:
        for record in records:
            self.session.refresh(record)
