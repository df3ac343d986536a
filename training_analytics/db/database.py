"""Database connection and session management."""

import logging
from typing import Dict, Generator, Optional, Sequence
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import config
from ..errors import PersistenceError
from .models import Base

logger = logging.getLogger(__name__)

INSERT_CONSTRUCTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _is_memory_url(url: str) -> bool:
    return ":memory:" in url or url.rstrip("/") == "sqlite:"


def upsert(
    session: Session,
    model,
    values: Dict,
    key_columns: Sequence[str],
    update_columns: Sequence[str] = (),
) -> None:
    """INSERT ... ON CONFLICT as a single statement.

    Rows that already exist get `update_columns` overwritten, or are left
    untouched when no update columns are given.
    """
    dialect = session.get_bind().dialect.name
    insert = INSERT_CONSTRUCTS.get(dialect)
    if insert is None:
        raise PersistenceError(f"Upserts are not supported for the {dialect} dialect")

    statement = insert(model).values(**values)
    if update_columns:
        statement = statement.on_conflict_do_update(
            index_elements=list(key_columns),
            set_={column: statement.excluded[column] for column in update_columns},
        )
    else:
        statement = statement.on_conflict_do_nothing(index_elements=list(key_columns))
    session.execute(statement)


class Database:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database connection."""
        self.database_url = database_url or config.DATABASE_URL

        # Special handling for SQLite to avoid threading issues
        if self.database_url.startswith("sqlite"):
            if _is_memory_url(self.database_url):
                # One shared connection, otherwise every connection gets its own empty database
                self.engine = create_engine(
                    self.database_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=False,
                )
            else:
                self.engine = create_engine(
                    self.database_url,
                    connect_args={"check_same_thread": False, "timeout": 30},
                    echo=False,
                )
        else:
            self.engine = create_engine(self.database_url, pool_pre_ping=True, echo=False)

        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        """Drop all database tables."""
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def write_session(self, operation: str) -> Generator[Session, None, None]:
        """Session for writes; database failures surface as PersistenceError."""
        try:
            with self.get_session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database write failed during {operation}: {e}")
            raise PersistenceError(f"Could not complete {operation}: {e}") from e

    def close(self):
        """Close database connection."""
        self.engine.dispose()


# Global database instance
_db: Optional[Database] = None


def get_db() -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database()
        _db.create_tables()
    return _db


def close_db():
    """Close the global database connection."""
    global _db
    if _db is not None:
        _db.close()
        _db = None
