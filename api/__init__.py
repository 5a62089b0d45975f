"""
API Module
FastAPI routers for the Auralyst journal backend
"""

from api.journals import router as journals_router
from api.medications import router as medications_router
from api.intakes import router as intakes_router
from api.quick_log import router as quick_log_router
from api.trends import router as trends_router
from api.export import router as export_router

from api.deps import (
    get_db,
    get_timezone,
    pagination_params,
    services,
)
from config import settings


__all__ = [
    # Routers
    "journals_router",
    "medications_router",
    "intakes_router",
    "quick_log_router",
    "trends_router",
    "export_router",
    # Dependencies
    "get_db",
    "get_timezone",
    "pagination_params",
    "services",
]


def include_routers(app):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(journals_router, prefix=settings.API_PREFIX)
    app.include_router(medications_router, prefix=settings.API_PREFIX)
    app.include_router(intakes_router, prefix=settings.API_PREFIX)
    app.include_router(quick_log_router, prefix=settings.API_PREFIX)
    app.include_router(trends_router, prefix=settings.API_PREFIX)
    app.include_router(export_router, prefix=settings.API_PREFIX)
