"""
Key-value persistence for the bio bricks engine.

Two backends share the same get/set surface:
- InMemoryStore: dict backed, used when no database is configured
- SQLStore: SQLAlchemy table of named float entries (SQLite, PostgreSQL, ...)
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import Column, DateTime, Float, String, create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class PersistenceUnavailable(Exception):
    """The key-value store could not be read or written"""


class KeyValueEntry(Base):
    __tablename__ = 'kv_entries'

    key = Column(String(200), primary_key=True)
    value = Column(Float, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class InMemoryStore:
    """Dict backed store"""

    def __init__(self, initial: Optional[Dict[str, float]] = None):
        self.entries: Dict[str, float] = dict(initial or {})

    def get(self, key: str) -> Optional[float]:
        return self.entries.get(key)

    def set(self, key: str, value: float) -> None:
        self.entries[key] = float(value)


class SQLStore:
    """Named float entries in a SQL table, one row per key"""

    def __init__(self, database_url: str):
        self.database_url = database_url
        try:
            self.engine = create_engine(database_url)
        except (SQLAlchemyError, ValueError) as e:
            raise PersistenceUnavailable(f"Cannot open {database_url}: {e}") from e
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def migrate(self) -> bool:
        """Create the entries table if it doesn't exist"""
        try:
            logger.info("Running key-value store migration...")
            Base.metadata.create_all(bind=self.engine)

            tables = inspect(self.engine).get_table_names()
            if KeyValueEntry.__tablename__ in tables:
                logger.info("Key-value store migration completed successfully")
                return True

            logger.error(f"Migration failed. Found tables: {tables}")
            return False

        except SQLAlchemyError as e:
            logger.error(f"Migration error: {e}")
            raise PersistenceUnavailable(str(e)) from e

    def get(self, key: str) -> Optional[float]:
        try:
            with self.SessionLocal() as db:
                entry = db.get(KeyValueEntry, key)
                return None if entry is None else entry.value
        except SQLAlchemyError as e:
            logger.error(f"Error reading {key}: {e}")
            raise PersistenceUnavailable(str(e)) from e

    def set(self, key: str, value: float) -> None:
        try:
            with self.SessionLocal() as db:
                db.merge(KeyValueEntry(key=key, value=float(value), updated_at=_utcnow()))
                db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error writing {key}: {e}")
            raise PersistenceUnavailable(str(e)) from e


def open_store(database_url: Optional[str] = None):
    """SQLStore for database_url, or InMemoryStore when unset or unreachable"""

    if not database_url:
        logger.info("No DATABASE_URL configured. Using in-memory storage.")
        return InMemoryStore()

    try:
        store = SQLStore(database_url)
        if store.migrate():
            return store
    except PersistenceUnavailable as e:
        logger.warning(f"Database connection failed ({e}). Using in-memory storage.")
        return InMemoryStore()

    logger.warning("Database migration failed. Using in-memory storage.")
    return InMemoryStore()
