"""
Configuration database: report definitions, cached results and CRM documents
"""
import os
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session as SQLAlchemySession
from sqlalchemy.pool import QueuePool
from contextlib import contextmanager
from typing import Generator, Optional

from .models.base import Base
from .models import (  # noqa: F401  registers tables on Base.metadata
    Report,
    ReportResult,
    Document,
)
from .utils.logger import get_logger

logger = get_logger(__name__)


def default_database_url() -> str:
    """
    DATABASE_URL, else a SQLite file at CONFIG_DB_PATH (data/reports.db by default)
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    project_root = Path(__file__).resolve().parent.parent
    db_path = os.getenv("CONFIG_DB_PATH", str(project_root / "data" / "reports.db"))
    os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
    return f"sqlite:///{db_path}"


def _enable_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    # several uvicorn workers share one file
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


class Database:
    """Engine and session factory for the configuration database"""

    def __init__(self, db_url: Optional[str] = None):
        """
        Args:
            db_url: SQLAlchemy URL, default_database_url() when None
        """
        db_url = db_url or default_database_url()

        engine_options = {
            "poolclass": QueuePool,
            "pool_size": int(os.getenv("DB_POOL_SIZE", "20")),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "40")),
            "pool_timeout": 30,
            "pool_recycle": 3600,
            "pool_pre_ping": True,
            "echo": False,
        }

        is_sqlite = db_url.startswith("sqlite")
        if is_sqlite:
            engine_options["connect_args"] = {"check_same_thread": False}

        self.engine = create_engine(db_url, **engine_options)
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_pragmas)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False
        )
        logger.debug(f"Database engine created: {self.engine.url.render_as_string(hide_password=True)}")

    def create_tables(self):
        """Create reports, report_results and documents if missing"""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def get_session(self) -> Generator[SQLAlchemySession, None, None]:
        """
        Unit of work: commits when the block succeeds, rolls back and
        re-raises when it fails

        Yields:
            SQLAlchemy session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


_db_instance = None


def get_database() -> Database:
    """Process-wide database instance"""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance


def init_database():
    """Create the tables on the process-wide database"""
    get_database().create_tables()
    logger.info("Database tables ready")
