from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy import event, text
from contextlib import asynccontextmanager
import logging
from loguru import logger

from config import get_database_url, get_setting

# Import Base for database initialization
from .models_base import Base

# Keep SQLAlchemy's own logging quiet; application logging goes through loguru
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

DATABASE_URL = get_database_url()


def create_engine_for_url(database_url):
    """
    Create an async engine for the given URL.

    SQLite connections get foreign key enforcement switched on so that
    deleting a person, round or clue cascades to the dependent rows.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        # - timeout=30: Wait up to 30 seconds for locks
        # - check_same_thread=False: Required for async
        connect_args = {"timeout": 30, "check_same_thread": False}

    new_engine = create_async_engine(
        database_url,
        echo=bool(get_setting("database.echo", False)),
        connect_args=connect_args
    )

    if database_url.startswith("sqlite"):
        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


# Create engine
engine = create_engine_for_url(DATABASE_URL)

# Create session factory
AsyncSessionLocal = sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession
)

@asynccontextmanager
async def db_session():
    """Context manager for database sessions with automatic commit/rollback"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database error: {e}")
            raise

async def get_session():
    """FastAPI dependency yielding one session per request"""
    async with db_session() as session:
        yield session

async def init_db(target_engine=None):
    """Initialize the database, create tables if they don't exist"""
    # Import models so every table is registered on Base.metadata
    import models  # noqa: F401

    target_engine = target_engine or engine
    async with target_engine.begin() as conn:
        if target_engine.url.get_backend_name() == "sqlite":
            # WAL mode allows concurrent reads during writes - persists to db file
            await conn.execute(text("PRAGMA journal_mode=WAL"))

        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database initialized - url: {target_engine.url}")

async def close_db():
    """Dispose of the engine's connection pool"""
    await engine.dispose()
    logger.info("Database connection closed")

