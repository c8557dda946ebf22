"""
Database configuration and base models
"""
import time

from sqlalchemy import create_engine, text, Enum as SQLEnum
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import OperationalError, DBAPIError

from leadwatch.core.config import settings
from leadwatch.core.logging import setup_logging

logger = setup_logging(__name__)

DATABASE_URL = settings.DATABASE_URL

# Convert postgresql:// to postgresql+psycopg:// for psycopg3 compatibility
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)

if DATABASE_URL.startswith("sqlite"):
    # Local development and tests
    engine = create_engine(
        DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        echo=settings.DATABASE_ECHO,

        # Connection Pool Configuration
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,

        # Connection Resilience
        pool_pre_ping=True,  # Test connection before use
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )

# Create sessionmaker
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def get_db():
    """
    Dependency function for FastAPI to get database sessions
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables. Schema migrations are managed outside this service."""
    # Import models so they register on Base.metadata
    from leadwatch import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


async def check_database_health() -> dict:
    """
    Check database connectivity and health.

    Returns:
        dict: Health check results with status and latency

    Example:
        {
            "status": "healthy",
            "latency_ms": 15
        }
    """
    start_time = time.time()

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1")).fetchone()

            latency_ms = int((time.time() - start_time) * 1000)
            logger.debug(f"Database health check passed in {latency_ms}ms")
            return {
                "status": "healthy",
                "latency_ms": latency_ms,
            }
        finally:
            db.close()

    except (OperationalError, DBAPIError) as e:
        latency_ms = int((time.time() - start_time) * 1000)
        logger.error(f"Database health check failed after {latency_ms}ms: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": latency_ms,
            "error": str(e),
            "error_type": type(e).__name__
        }


def str_enum(enum_cls, length: int = 50) -> SQLEnum:
    """VARCHAR-backed enum column type storing member values (not names)."""
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=length,
    )
