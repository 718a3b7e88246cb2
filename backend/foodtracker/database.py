import uuid
from datetime import datetime, timezone

from sqlalchemy import create_engine, Column, DateTime, Uuid
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from foodtracker.config import get_settings

settings = get_settings()


def normalize_database_url(url: str) -> str:
    """Force the psycopg v3 driver for bare postgres:// URLs."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    return url


_db_url = normalize_database_url(settings.DATABASE_URL)

_connect_args: dict = {}
if _db_url.startswith("sqlite"):
    _connect_args["check_same_thread"] = False

engine = create_engine(_db_url, connect_args=_connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class BaseMixin(TimestampMixin):
    """Adds UUID primary key and timestamps to all models."""

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
