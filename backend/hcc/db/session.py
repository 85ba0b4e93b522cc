"""Storage handle and transaction scope.

``Database`` owns the engine and session factory. One instance is created at
process start, attached to the app and disposed on shutdown; tests build
their own against a throwaway SQLite file.
"""
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    def __init__(self, url: str):
        self.url = url
        if url.startswith("sqlite"):
            # SQLite: Use NullPool for thread-safety
            self.engine = create_engine(
                url,
                connect_args={"check_same_thread": False, "timeout": 15},
                poolclass=NullPool,
            )
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            # PostgreSQL/MySQL: Use QueuePool with sensible defaults
            self.engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                pool_recycle=3600,
                pool_pre_ping=True,
            )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Session for scripts and startup tasks, always closed."""
        db = self.session()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()


@contextmanager
def transaction(db: Session) -> Generator[Session, None, None]:
    """
    Commit when the block exits cleanly, roll back on any exception.

    Usage:
        with transaction(db):
            db.add(header)
            db.flush()
            db.add_all(lines)
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
