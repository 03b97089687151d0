"""
Store configuration and connection management.

This module provides:
- Table definitions for every collection the service owns
- StoreContext: the engine, session factory and readiness lifecycle,
  created once by the application factory and injected into handlers
"""
import asyncio
import logging
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, Text, Index, UniqueConstraint, text, false
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.sql import func

from lifelessons.core.errors import StoreNotReadyError, StoreUnavailableError

logger = logging.getLogger("lifelessons")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour


class StoreContext:
    """
    Owns the store connection and its readiness.

    The context starts out not ready. `connect()` builds the engine, creates
    missing tables and probes the connection; only then does `ready` flip to
    True. Every store-bound dependency goes through `session()`, which refuses
    to hand out a session before that point.

    Usage:
        store = StoreContext("postgresql://...")
        await store.start()          # lifespan, with retries
        with store.session() as s:
            s.execute(...)
    """

    def __init__(self, database_url: Optional[str]):
        self.database_url = database_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._ready = False
        self.last_error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise StoreNotReadyError()
        return self._engine

    def _build_engine(self, url: str) -> Engine:
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
                # One shared connection, otherwise each checkout sees an empty DB
                kwargs["poolclass"] = StaticPool
            return create_engine(url, echo=False, **kwargs)

        return create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            pool_pre_ping=True,
            echo=False,  # Set to True for SQL query logging
        )

    def connect(self) -> None:
        """
        Connect, create tables and mark the store ready (blocking).

        Idempotent: calling it on a ready store is a no-op.

        Raises:
            ValueError: DATABASE_URL is not configured
            SQLAlchemyError: the store could not be reached
        """
        if self._ready:
            return
        if not self.database_url:
            raise ValueError(
                "DATABASE_URL is not configured. "
                "Set DATABASE_URL in environment or .env file."
            )

        engine = self._engine or self._build_engine(self.database_url)
        self._engine = engine
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        metadata.create_all(bind=engine)

        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=engine,
        )
        self._ready = True
        self.last_error = None
        logger.info("store.connected")

    async def start(self, attempts: int = 5, backoff_seconds: float = 2.0) -> bool:
        """
        Connect in the background without blocking the event loop.

        Retries with linear backoff. Returns True once ready; False if every
        attempt failed (the store stays not ready and requests keep getting 503).
        """
        for attempt in range(1, max(1, attempts) + 1):
            try:
                await asyncio.to_thread(self.connect)
                return True
            except ValueError as e:
                self.last_error = str(e)
                logger.error(f"store.connect aborted: {e}")
                return False
            except SQLAlchemyError as e:
                self.last_error = str(e)
                logger.warning(f"store.connect attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts:
                    await asyncio.sleep(backoff_seconds * attempt)
        logger.error("store.connect gave up; store stays not ready")
        return False

    def close(self) -> None:
        self._ready = False
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._session_factory = None

    def ensure_ready(self) -> None:
        if not self._ready:
            raise StoreNotReadyError()

    def ping(self) -> bool:
        """Round-trip to the store; False when not ready or unreachable."""
        if not self._ready:
            return False
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"store.ping failed: {e}")
            return False

    @contextmanager
    def session(self):
        """
        Context manager for store sessions.

        Commits on success, rolls back on error. Connectivity failures surface
        as StoreUnavailableError so handlers answer with a retryable 503;
        integrity violations propagate untouched for callers that rely on them.
        """
        self.ensure_ready()
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except OperationalError as e:
            db.rollback()
            raise StoreUnavailableError(f"Store unavailable: {e.orig}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


# Users (upserted on first login, keyed by the identity provider uid)
users = Table(
    'users',
    metadata,
    Column('uid', String(128), primary_key=True),
    Column('email', String(320), nullable=False),
    Column('name', Text, nullable=False, server_default=''),
    Column('photo_url', Text, nullable=False, server_default=''),
    Column('role', String(20), nullable=False, server_default='user'),
    Column('is_premium', Boolean, nullable=False, server_default=false()),
    Column('premium_since', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
    Index('idx_users_email', 'email'),
)

# Payment records (one per checkout session)
payments = Table(
    'payments',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('uid', String(128), nullable=False, index=True),
    Column('email', String(320), nullable=True),
    Column('stripe_session_id', String(255), nullable=False),
    Column('stripe_payment_intent_id', String(255), nullable=True),
    Column('amount', Integer, nullable=True),  # minor units, as reported by the provider
    Column('currency', String(10), nullable=True),
    Column('status', String(20), nullable=False, server_default='paid'),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Idempotency key: at most one record per checkout session
    UniqueConstraint('stripe_session_id', name='uq_payments_stripe_session_id'),
    Index('idx_payments_uid_created', 'uid', 'created_at'),
)

lessons = Table(
    'lessons',
    metadata,
    Column('id', String(32), primary_key=True),
    Column('title', Text, nullable=False),
    Column('description', Text, nullable=False),
    Column('category', String(100), nullable=True),
    Column('tone', String(100), nullable=True),
    Column('image_url', Text, nullable=True),
    Column('visibility', String(20), nullable=False, server_default='public'),
    Column('access_level', String(20), nullable=False, server_default='free'),
    Column('creator_uid', String(128), nullable=False),
    Column('creator_name', Text, nullable=True),
    Column('creator_email', String(320), nullable=True),
    Column('creator_photo_url', Text, nullable=True),
    Column('likes_count', Integer, nullable=False, server_default='0'),
    Column('comments_count', Integer, nullable=False, server_default='0'),
    Column('is_featured', Boolean, nullable=False, server_default=false()),
    Column('is_reviewed', Boolean, nullable=False, server_default=false()),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    # list_my pattern: (creator_uid, created_at)
    Index('idx_lessons_creator_created', 'creator_uid', 'created_at'),
    # public listing / featured pattern
    Index('idx_lessons_visibility_created', 'visibility', 'created_at'),
    Index('idx_lessons_featured', 'is_featured'),
)

# One like per (lesson, user)
lesson_likes = Table(
    'lesson_likes',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('lesson_id', String(32), nullable=False, index=True),
    Column('uid', String(128), nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('lesson_id', 'uid', name='uq_lesson_likes_lesson_uid'),
)

favorites = Table(
    'favorites',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('uid', String(128), nullable=False),
    Column('lesson_id', String(32), nullable=False, index=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('uid', 'lesson_id', name='uq_favorites_uid_lesson'),
    Index('idx_favorites_uid_created', 'uid', 'created_at'),
)

comments = Table(
    'comments',
    metadata,
    Column('id', String(32), primary_key=True),
    Column('lesson_id', String(32), nullable=False),
    Column('uid', String(128), nullable=False),
    Column('name', Text, nullable=False, server_default=''),
    Column('photo_url', Text, nullable=False, server_default=''),
    Column('text', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_comments_lesson_created', 'lesson_id', 'created_at'),
)

lesson_reports = Table(
    'lesson_reports',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('lesson_id', String(32), nullable=False, index=True),
    Column('reporter_uid', String(128), nullable=True),
    Column('reporter_email', String(320), nullable=True),
    Column('reason', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)
