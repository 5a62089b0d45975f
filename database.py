"""
Database engine and session lifecycle for Auralyst
"""

import logging
from sqlalchemy import create_engine, event, inspect, select, func
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator

from config import settings


logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(target_engine) -> None:
    """SQLite ignores ON DELETE clauses unless the pragma is set per connection"""

    @event.listens_for(target_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


if settings.DATABASE_URL.startswith("sqlite"):
    # One shared connection so an in-memory journal survives across sessions
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=settings.DATABASE_ECHO
    )
    _enable_sqlite_foreign_keys(engine)
else:
    engine = create_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True
    )

# Records returned by services stay readable after commit
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine
)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for route dependencies; services commit explicitly"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session for service calls made without a request session.
    Commits on success and rolls back when the block raises.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create the journal tables that do not exist yet; existing rows are kept"""
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Journal store ready at: {settings.DATABASE_URL}")


class DatabaseHealthCheck:
    """Connectivity and row counts reported by the health endpoint"""

    @staticmethod
    def is_connected() -> bool:
        try:
            with engine.connect() as conn:
                conn.execute(select(1))
            return True
        except Exception:
            logger.exception("Journal store connectivity check failed")
            return False

    @staticmethod
    def get_table_counts() -> dict:
        """Row count per journal table that exists in the database"""
        existing = set(inspect(engine).get_table_names())

        counts = {}
        with get_db_context() as db:
            for table in Base.metadata.sorted_tables:
                if table.name in existing:
                    counts[table.name] = db.execute(
                        select(func.count()).select_from(table)
                    ).scalar()

        return counts


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "get_db",
    "get_db_context",
    "init_db",
    "DatabaseHealthCheck"
]
