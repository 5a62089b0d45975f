"""
Services Module
Business logic layer for the Auralyst application
"""

from services.journal_store import JournalStore, StoreChange, ChangeNotifier, change_notifier
from services.journal_service import JournalService, journal_service
from services.medication_service import MedicationService, medication_service
from services.intake_service import IntakeService, AsNeededLogResult, intake_service
from services.quick_log_service import QuickLogService, quick_log_service
from services.trends_service import TrendsService, trends_service
from services.export_service import ExportService, ExportSummary, export_service


__all__ = [
    # Store
    "JournalStore",
    "StoreChange",
    "ChangeNotifier",
    "change_notifier",
    # Service classes
    "JournalService",
    "MedicationService",
    "IntakeService",
    "QuickLogService",
    "TrendsService",
    "ExportService",
    # Result types
    "AsNeededLogResult",
    "ExportSummary",
    # Singleton instances
    "journal_service",
    "medication_service",
    "intake_service",
    "quick_log_service",
    "trends_service",
    "export_service",
]
