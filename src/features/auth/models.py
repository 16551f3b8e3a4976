"""Authentication models (refresh session records)."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, CreatedAtMixin


class RefreshSession(Base, CreatedAtMixin):
    """One issued refresh token.

    Single use: the row is deleted the moment it is rotated or logged out,
    so a consumed token can never authorize another rotation.
    """

    __tablename__ = "refresh_tokens"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Token data
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(512), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
