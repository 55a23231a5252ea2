"""SQLAlchemy-backed session medium.

Entries live in a single ``session_entries`` table keyed by
``(session_id, key)`` so several sessions can share one database file while
each stays isolated. The default URL points at a local SQLite file.
"""

import time
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, Optional

from sqlalchemy import DateTime, String, Text, create_engine, delete, exc, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from protoflow.errors import StorageUnavailableError
from protoflow.storage.media import StorageMedium
from protoflow.utils.config import get_settings
from protoflow.utils.logging_config import get_logger

# Global engine and session factory
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""


class SessionEntry(Base):
    """One stored field of one workflow session."""

    __tablename__ = "session_entries"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    def __repr__(self) -> str:
        return f"<SessionEntry(session_id={self.session_id}, key={self.key})>"


def _is_transient_error(error: Exception) -> bool:
    """
    Check if the error is transient and should be retried.

    Args:
        error: The exception to check

    Returns:
        True if the error is transient, False otherwise
    """
    error_str = str(error).lower()
    transient_keywords = [
        "database is locked",
        "connection refused",
        "connection reset",
        "could not connect",
        "deadlock",
        "lock timeout",
    ]
    return isinstance(error, exc.OperationalError) and any(
        keyword in error_str for keyword in transient_keywords
    )


def retry_on_transient_error(max_retries: int = 2, delay: float = 0.05):
    """
    Decorator to retry database operations on transient errors.

    Args:
        max_retries: Maximum number of retry attempts
        delay: Initial delay between retries in seconds

    Returns:
        Decorated function with retry logic
    """

    def decorator(func):
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not _is_transient_error(e) or attempt == max_retries:
                        raise
                    wait_time = delay * (2**attempt)
                    _get_logger().warning(
                        "Transient database error (attempt %d/%d): %s. Retrying in %.2fs...",
                        attempt + 1,
                        max_retries + 1,
                        e,
                        wait_time,
                    )
                    time.sleep(wait_time)

        return wrapper

    return decorator


def init_db(url: str | None = None) -> None:
    """
    Initialize database engine, session factory and schema.

    Args:
        url: SQLAlchemy URL; defaults to SESSION_DB_URL from settings

    Raises:
        StorageUnavailableError: If engine creation or schema creation fails
    """
    global _engine, _session_factory

    settings = get_settings()
    database_url = url or settings.get_session_db_url()

    try:
        _get_logger().info("Initializing session database...")
        _engine = create_engine(
            database_url,
            pool_pre_ping=True,  # Verify connections before using them
            echo=settings.DEBUG,  # Log SQL queries in debug mode
        )
        Base.metadata.create_all(_engine)
        _session_factory = sessionmaker(
            bind=_engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        _get_logger().info("Session database initialized successfully")
    except Exception as e:
        _get_logger().error("Failed to initialize session database: %s", e)
        _engine = None
        _session_factory = None
        raise StorageUnavailableError(f"Session database initialization failed: {e}") from e


def get_engine() -> Engine:
    """
    Get the SQLAlchemy engine instance.

    Raises:
        StorageUnavailableError: If engine is not initialized
    """
    if _engine is None:
        raise StorageUnavailableError("Session database not initialized. Call init_db() first.")
    return _engine


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Commits on success, rolls back on error and always closes the session.

    Yields:
        Database session

    Raises:
        StorageUnavailableError: If session factory is not initialized
    """
    if _session_factory is None:
        raise StorageUnavailableError("Session database not initialized. Call init_db() first.")

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        _get_logger().error("Database session rolled back due to error: %s", e)
        raise
    finally:
        session.close()


def health_check() -> bool:
    """
    Check database connectivity with a trivial query.

    Returns:
        True if the database answers, False otherwise
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        _get_logger().error("Session database health check failed: %s", e)
        return False


def close_db() -> None:
    """Dispose of the engine and clear global state."""
    global _engine, _session_factory

    if _engine is not None:
        _get_logger().info("Closing session database connections...")
        _engine.dispose()
        _engine = None
        _session_factory = None


class SqlSessionMedium(StorageMedium):
    """Session medium persisting entries through SQLAlchemy.

    Every SQLAlchemy failure is re-raised as StorageUnavailableError so the
    session store can treat it like any other unavailable medium.
    """

    def __init__(self, session_id: str | None = None, url: str | None = None) -> None:
        self.session_id = session_id or get_settings().SESSION_ID
        if _engine is None or url is not None:
            init_db(url)

    @retry_on_transient_error()
    def _get(self, key: str) -> Optional[str]:
        with get_session() as session:
            entry = session.get(SessionEntry, (self.session_id, key))
            return entry.value if entry is not None else None

    @retry_on_transient_error()
    def _set(self, key: str, value: str) -> None:
        with get_session() as session:
            entry = session.get(SessionEntry, (self.session_id, key))
            if entry is None:
                session.add(SessionEntry(session_id=self.session_id, key=key, value=value))
            else:
                entry.value = value

    @retry_on_transient_error()
    def _remove(self, key: str) -> None:
        with get_session() as session:
            session.execute(
                delete(SessionEntry).where(
                    SessionEntry.session_id == self.session_id, SessionEntry.key == key
                )
            )

    # ------------------------------------------------------------------
    def get_item(self, key: str) -> Optional[str]:
        try:
            return self._get(key)
        except exc.SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to read session entry: {e}", key=key) from e

    def set_item(self, key: str, value: str) -> None:
        try:
            self._set(key, value)
        except exc.SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to write session entry: {e}", key=key) from e

    def remove_item(self, key: str) -> None:
        try:
            self._remove(key)
        except exc.SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to remove session entry: {e}", key=key) from e

    def keys(self) -> list[str]:
        """Return the keys stored for this session."""
        try:
            with get_session() as session:
                rows = session.execute(
                    select(SessionEntry.key)
                    .where(SessionEntry.session_id == self.session_id)
                    .order_by(SessionEntry.key)
                )
                return [row[0] for row in rows]
        except exc.SQLAlchemyError as e:
            raise StorageUnavailableError(f"Failed to list session entries: {e}") from e
