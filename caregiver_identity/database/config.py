"""
Database configuration and connection management using SQLModel.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlmodel import create_engine, SQLModel, Session
import structlog

logger = structlog.get_logger(__name__)


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    # Database URL (can be used directly or constructed from parts)
    database_url: Optional[str] = None

    # PostgreSQL Connection Components
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "caregiver_identity"
    db_user: str = "caregiver_identity"
    db_password: str = "ChangeMe"

    # Connection Pool Settings
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600

    # SQLAlchemy Settings
    echo_sql: bool = False

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def database_url_computed(self) -> str:
        """Construct database URL from settings."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache()
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


def build_engine(settings: DatabaseSettings) -> Engine:
    """
    Create an engine for the configured database.

    Server databases get a bounded connection pool; SQLite keeps the
    dialect's default pool.
    """
    url = settings.database_url_computed

    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.echo_sql,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
        pool_pre_ping=True,
        echo=settings.echo_sql,
    )


@lru_cache()
def get_engine() -> Engine:
    """Get the process-wide engine, created on first use."""
    return build_engine(get_database_settings())


# Create session factory
def SessionLocal() -> Session:
    """Create a new database session."""
    return Session(get_engine())


def get_db():
    """
    Database dependency for FastAPI.

    Yields:
        Session: SQLModel database session
    """
    with Session(get_engine()) as db:
        try:
            yield db
        except Exception as e:
            logger.error("Database session error", error=str(e))
            db.rollback()
            raise


def init_database(engine: Optional[Engine] = None) -> None:
    """Create all identity tables."""
    # Import models to register them with SQLModel
    from . import models  # noqa: F401

    try:
        SQLModel.metadata.create_all(bind=engine or get_engine())
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise


def check_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is working, False otherwise
    """
    try:
        with (engine or get_engine()).connect() as conn:
            result = conn.execute(text("SELECT 1"))
            return result.fetchone() is not None
    except Exception as e:
        logger.error("Database connection check failed", error=str(e))
        return False
