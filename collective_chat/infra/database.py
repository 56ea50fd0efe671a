"""
Database session management and configuration.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from loguru import logger
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from collective_chat.config.settings import settings
from collective_chat.models.domain import Base


class Database:
    """
    Relational store connection manager

    Handles engine creation, session management and schema creation.
    In-memory SQLite URLs share a single connection so every session sees
    the same data.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        """
        Initialize database connection

        Args:
            url: SQLAlchemy URL (defaults to settings.database_url)
            echo: Log SQL statements (defaults to settings.database_echo)
        """
        self.url = url or settings.database_url_resolved
        echo = settings.database_echo if echo is None else echo

        engine_kwargs = {"echo": echo}
        if self.url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self._is_memory_url(self.url):
                engine_kwargs["poolclass"] = StaticPool
            else:
                self._ensure_sqlite_dir(self.url)
        else:
            engine_kwargs.update(pool_pre_ping=True, pool_recycle=3600)

        self.engine = create_engine(self.url, **engine_kwargs)
        logger.info(f"Connecting to database: {self.engine.url.render_as_string(hide_password=True)}")

        if self.url.startswith("sqlite"):
            self._enable_sqlite_foreign_keys()

        # Rows stay readable after the session closes
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    @staticmethod
    def _is_memory_url(url: str) -> bool:
        return url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url

    @staticmethod
    def _ensure_sqlite_dir(url: str):
        path = url.split("///", 1)[-1]
        if path:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

    def _enable_sqlite_foreign_keys(self):
        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
            finally:
                cursor.close()

    def create_tables(self):
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables ready")

    def drop_tables(self):
        Base.metadata.drop_all(self.engine)
        logger.warning("Dropped all database tables")

    def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"❌ Database ping failed: {e}")
            return False

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations

        Usage:
            with db.session_scope() as session:
                session.add(row)
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            session.close()


# Global database instance (lazy initialization)
_db_instance: Optional[Database] = None


def get_database() -> Database:
    """Get or create global database instance"""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
    return _db_instance
