"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Test database support
- Table definitions for users, activity, todos and challenges
"""
from typing import Optional, Generator
from contextlib import contextmanager
import logging
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, Date, DateTime, Boolean, JSON, Text, Index, ForeignKey, UniqueConstraint, text
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.sql import func
import os

from devboard.core.config import settings

logger = logging.getLogger("devboard")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    else:
        # Create engine with connection pooling
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=False,  # Set to True for SQL query logging
        )

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
            session.commit()
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI-friendly DB dependency that yields a Session and closes it.

    Use this with `Depends(get_db)` in route functions to ensure the session
    lifecycle works with both sync and async endpoints under FastAPI.
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def reset_database():
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables()
    create_all_tables()


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# Users table
users = Table(
    'app_users',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('username', String(30), nullable=False, unique=True),
    Column('email', String(255), nullable=False, unique=True),
    Column('password_hash', String(100), nullable=False),
    Column('github_username', String(39), nullable=True),
    Column('github_token', String(255), nullable=True),
    Column('stackoverflow_user_id', String(20), nullable=True),
    Column('is_active', Boolean, nullable=False, default=True),
    Column('last_login', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
)

# Daily coding activity ("streak entries")
activity_records = Table(
    'activity_records',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(36), ForeignKey('app_users.id', ondelete='CASCADE'), nullable=False),
    Column('date', Date, nullable=False),
    Column('description', Text, nullable=True),
    Column('language', String(100), nullable=True),
    Column('source', String(20), nullable=False, default='manual'),  # manual | external
    Column('commit_count', Integer, nullable=False, default=0),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    # One record per user per calendar day
    UniqueConstraint('user_id', 'date', name='uq_activity_records_user_date'),
    Index('idx_activity_records_user_date', 'user_id', 'date'),
)

# Todos
todos = Table(
    'todos',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('user_id', String(36), ForeignKey('app_users.id', ondelete='CASCADE'), nullable=False, index=True),
    Column('title', String(255), nullable=False),
    Column('description', Text, nullable=True),
    Column('status', String(20), nullable=False, default='pending'),  # pending | in_progress | completed
    Column('priority', String(10), nullable=False, default='medium'),  # low | medium | high
    Column('tags', JSON, nullable=False, default=list),
    Column('deadline', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_todos_user_created', 'user_id', 'created_at'),
)

# Coding challenges
challenges = Table(
    'challenges',
    metadata,
    Column('id', String(36), primary_key=True),
    Column('title', String(255), nullable=False),
    Column('description', Text, nullable=False),
    Column('difficulty', String(10), nullable=False, default='medium'),  # easy | medium | hard
    Column('language', String(50), nullable=False, default='javascript'),
    Column('tags', JSON, nullable=False, default=list),
    Column('is_public', Boolean, nullable=False, default=True),
    Column('source', String(10), nullable=False, default='manual'),  # manual | ai
    Column('created_by', String(36), ForeignKey('app_users.id', ondelete='SET NULL'), nullable=True, index=True),
    Column('expires_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_challenges_source_created', 'source', 'created_at'),
)

# Per-user challenge progress
user_challenges = Table(
    'user_challenges',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(36), ForeignKey('app_users.id', ondelete='CASCADE'), nullable=False),
    Column('challenge_id', String(36), ForeignKey('challenges.id', ondelete='CASCADE'), nullable=False),
    Column('status', String(20), nullable=False, default='not_started'),  # not_started | in_progress | completed
    Column('solution', Text, nullable=True),
    Column('completed_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    UniqueConstraint('user_id', 'challenge_id', name='uq_user_challenges_user_challenge'),
)
