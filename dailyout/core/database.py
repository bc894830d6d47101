"""
Database configuration and table definitions.

This module provides:
- A Database object owning the SQLAlchemy engine and session factory
- Connection pooling with sane defaults (QueuePool for servers, per-thread for SQLite)
- Table definitions for every aggregate, including the (user_id, assigned_date)
  uniqueness constraint that serializes daily assignment creation
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    inspect,
    text,
    true,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool
from sqlalchemy.sql import func


logger = logging.getLogger("dailyout.database")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(database_url: str, *, echo: bool = False) -> Engine:
    """
    Create the SQLAlchemy engine for `database_url`.

    SQLite gets its default pool (no QueuePool sizing) with cross-thread use
    allowed and foreign keys switched on, so cascades behave like Postgres.
    """
    if not database_url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=echo,
        )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
        echo=echo,
    )


class Database:
    """Engine + session factory, constructed once at startup and injected."""

    def __init__(self, database_url: Optional[str] = None, *, engine: Optional[Engine] = None):
        if engine is None:
            engine = init_engine(database_url or "")
        self.engine = engine
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Transactional session scope.

        Usage:
            with db.session() as session:
                session.execute(...)
        Commits on success, rolls back and re-raises on any error.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create all tables (idempotent)."""
        metadata.create_all(bind=self.engine)

    def check_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database connection check failed", extra={"error_message": str(e)})
            return False

    def missing_tables(self) -> list[str]:
        inspector = inspect(self.engine)
        return [t for t in metadata.tables if not inspector.has_table(t)]

    def dispose(self) -> None:
        self.engine.dispose()


# Users: anonymous by default; email/password attached at most once
users = Table(
    'users',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('email', String(190), nullable=True, unique=True),
    Column('password_hash', String(255), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)

# Challenge catalog (shared, read-only from the engine's point of view)
challenges = Table(
    'challenges',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('slug', String(120), nullable=False, unique=True),
    Column('category', String(20), nullable=False),
    Column('difficulty', SmallInteger, nullable=False),
    Column('text', String(500), nullable=False),
    Column('is_active', Boolean, nullable=False, server_default=true()),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Selection queries filter on (is_active, difficulty) and exclude categories
    Index('idx_challenges_active_difficulty', 'is_active', 'difficulty'),
)

# Daily assignments: one row per (user, calendar day)
daily_assignments = Table(
    'daily_assignments',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
    Column('challenge_id', String(36), ForeignKey('challenges.id'), nullable=False),
    Column('assigned_date', Date, nullable=False),
    Column('completed_at', DateTime(timezone=True), nullable=True),
    Column('skipped_at', DateTime(timezone=True), nullable=True),
    Column('note', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('user_id', 'assigned_date', name='uq_daily_assignments_user_day'),
    Index('idx_daily_assignments_assigned_date', 'assigned_date'),
    Index('idx_daily_assignments_user_completed', 'user_id', 'completed_at'),
)

# Per-user derived stats snapshot (a cache over daily_assignments)
user_stats = Table(
    'user_stats',
    metadata,
    Column('user_id', String(36), ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    Column('current_streak', Integer, nullable=False, server_default='0'),
    Column('longest_streak', Integer, nullable=False, server_default='0'),
    Column('comfort_score', Integer, nullable=False, server_default='0'),
    Column('badges', JSON, nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)

# Public wins feed
wins = Table(
    'wins',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(36), ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
    Column('text', String(280), nullable=False),
    Column('likes', Integer, nullable=False, server_default='0'),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_wins_created_at', 'created_at'),
)

# Rate-limit ledger for the wins feed (hashed user ids only)
win_events = Table(
    'win_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_hash', String(64), nullable=False),
    Column('type', String(20), nullable=False),  # WIN_POSTED | LIKE
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_win_events_hash_type_created', 'user_hash', 'type', 'created_at'),
)

# Free-form journal entries
journal_entries = Table(
    'journal_entries',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
    Column('entry_date', Date, nullable=False),
    Column('content', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('updated_at', DateTime(timezone=True), nullable=False),
    Index('idx_journal_entries_user_date', 'user_id', 'entry_date'),
)
