"""Base model configuration."""
from datetime import UTC, datetime
from typing import Any, Dict

from sqlalchemy import Column, DateTime, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from conjbot.config import settings


def _engine_options(url: str) -> Dict[str, Any]:
    """Engine keyword arguments for the configured database URL."""
    options: Dict[str, Any] = {"echo": settings.database.echo}
    if url.startswith("sqlite"):
        # Bot handlers and the auto-advance task share one connection pool
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url == "sqlite://":
            options["poolclass"] = StaticPool
    return options


# Create SQLAlchemy engine
engine = create_engine(settings.database.url, **_engine_options(settings.database.url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create declarative base class
Base = declarative_base()


class TimestampMixin:
    """Mixin to add timestamp columns to models."""
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


def init_db() -> None:
    """Initialize database."""
    # Register the mapped tables before creating them
    from conjbot.models import models  # noqa: F401

    Base.metadata.create_all(bind=engine)  # Create tables if they don't exist
