"""Durable key-value layer for the reminder core.

This module defines the SQLAlchemy table backing the durable store and the
``KeyValueStore`` wrapper that exposes whole-value get/set only.
IMPORTANT: values are opaque strings; no partial or structured updates exist.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, Column, String, Text, DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings
from errors import PersistenceError
from logger_config import setup_logger

logger = setup_logger(__name__, 'database.log')

# SQLAlchemy Base
Base = declarative_base()

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


class StoredValue(Base):
    """One durable key and its serialized value."""

    __tablename__ = "kv_store"

    key = Column(String, primary_key=True, doc="Namespace key (e.g. 'alarms')")
    value = Column(Text, nullable=False, doc="Serialized value, overwritten as a whole")
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        doc="When the value was last written (timezone-aware)"
    )

    def __repr__(self):
        """String representation"""
        return f"<StoredValue(key={self.key}, size={len(self.value or '')}, updated={self.updated_at})>"


def create_db_engine(database_url: str):
    """Build an engine for the given URL.

    In-memory SQLite shares a single connection, otherwise every new
    session would see an empty database.
    """
    if database_url in IN_MEMORY_URLS:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False
        )
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if "sqlite" in database_url else {},
        echo=False  # Set to True for SQL debugging
    )


class KeyValueStore:
    """Whole-value ``get``/``set`` over a single table.

    Usage:
        kv = KeyValueStore("sqlite://")
        kv.set("alarms", "[]")
        kv.get("alarms")  # '[]'
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine = create_db_engine(self.database_url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)

    def get(self, key: str) -> Optional[str]:
        """Read the value stored under ``key``.

        Returns:
            Optional[str]: The stored string, or None when the key was never set

        Raises:
            PersistenceError: On database errors
        """
        db = self.SessionLocal()
        try:
            row = db.get(StoredValue, key)
            return row.value if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read key '{key}': {str(e)}")
            raise PersistenceError(f"Failed to read key '{key}'") from e
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        """Overwrite the value stored under ``key``.

        Raises:
            PersistenceError: On database errors
        """
        db = self.SessionLocal()
        try:
            db.merge(StoredValue(
                key=key,
                value=value,
                updated_at=datetime.now(timezone.utc)
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to write key '{key}': {str(e)}")
            raise PersistenceError(f"Failed to write key '{key}'") from e
        finally:
            db.close()

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
