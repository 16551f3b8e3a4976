"""SQLAlchemy base models and utilities."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class CreatedAtMixin:
    """Mixin for adding a created_at timestamp column."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        server_default=func.now(),
    )


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes returned by drivers without timezone support."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)
