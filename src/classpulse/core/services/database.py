"""
Database service for ClassPulse
"""

import sqlite3
from pathlib import Path
from typing import Optional
from weakref import WeakSet
import weakref
from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from ..models import Base, User


class DatabaseService:
    """Database service for managing SQLite connections and sessions"""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database service"""
        from .settings_config_service import get_settings_service
        from .logging import get_logging_service

        settings = get_settings_service()
        if db_path is None:
            db_path = settings.get_database_path()

        self.db_path = Path(db_path)
        self.echo = settings.getboolean("database", "echo", False)
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker[Session]] = None
        self._session: Optional[Session] = None
        # Track open sessions to ensure cleanup in tests
        self._open_sessions: WeakSet[Session] = WeakSet()

        self.logger = get_logging_service().get_logger("database")

        self._setup_engine()
        self._create_tables()

    def _setup_engine(self):
        """Set up SQLAlchemy engine with SQLite pragmas"""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=self.echo,
            # Sessions are opened per operation from worker threads
            connect_args={"check_same_thread": False, "timeout": 15},
            pool_pre_ping=True,
        )

        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            if isinstance(dbapi_connection, sqlite3.Connection):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
                # Ownership and roster invariants rely on FK enforcement
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        weakref.finalize(self, self.engine.dispose)

        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

    def _create_tables(self):
        """Create all database tables"""
        if self.engine is None:
            raise RuntimeError("Database engine not initialized")
        Base.metadata.create_all(bind=self.engine)

    def get_session(self) -> Session:
        """Get a new database session"""
        if self.SessionLocal is None:
            raise RuntimeError("Database session factory not initialized")
        session = self.SessionLocal()
        self._open_sessions.add(session)
        return session

    @property
    def session(self) -> Session:
        """Stable session for the lifetime of this service (tests and fixtures).

        ``get_session()`` returns a new Session per call; this property memoizes
        one so ``db.session.add(); db.session.commit()`` operate on the same
        Session instance.
        """
        if self._session is None:
            self._session = self.get_session()
        return self._session

    def close(self):
        """Close tracked sessions and dispose the engine"""
        if not self.engine:
            return
        if self._session is not None:
            self._session.close()
            self._session = None
        for session in list(self._open_sessions):
            session.close()
        self.engine.dispose()

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        with self.get_session() as session:
            return session.execute(
                select(User).where(User.id == user_id)
            ).scalar_one_or_none()


_db_service: Optional[DatabaseService] = None


def get_db_service() -> DatabaseService:
    """Get the global database service instance"""
    global _db_service
    if _db_service is None:
        _db_service = DatabaseService()
    return _db_service


def init_db_service(db_path: Optional[str] = None) -> DatabaseService:
    """Initialize (or replace) the global database service"""
    global _db_service
    if _db_service is not None:
        _db_service.close()
    _db_service = DatabaseService(db_path)
    return _db_service
