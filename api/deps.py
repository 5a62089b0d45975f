"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from typing import Optional
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from fastapi import HTTPException, Query, status

from database import get_db  # noqa: F401
from config import settings


def get_timezone(
    tz: Optional[str] = Query(None, description="IANA timezone of the viewer, e.g. Europe/Berlin")
) -> tzinfo:
    """
    Resolve the viewer's timezone
    Falls back to the configured default
    """
    name = tz or settings.DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown timezone: {name}"
        )


def pagination_params(
    page: int = 1,
    page_size: int = 50
) -> dict:
    """
    Common pagination parameters
    """
    if page < 1:
        page = 1
    if page_size < 1:
        page_size = 50
    if page_size > 500:
        page_size = 500

    return {
        "page": page,
        "page_size": page_size,
        "offset": (page - 1) * page_size
    }


class ServiceDependency:
    """
    Dependency injection for services
    """

    @staticmethod
    def get_journal_service():
        from services.journal_service import journal_service
        return journal_service

    @staticmethod
    def get_medication_service():
        from services.medication_service import medication_service
        return medication_service

    @staticmethod
    def get_intake_service():
        from services.intake_service import intake_service
        return intake_service

    @staticmethod
    def get_quick_log_service():
        from services.quick_log_service import quick_log_service
        return quick_log_service

    @staticmethod
    def get_trends_service():
        from services.trends_service import trends_service
        return trends_service

    @staticmethod
    def get_export_service():
        from services.export_service import export_service
        return export_service


# Service dependency instances
services = ServiceDependency()
