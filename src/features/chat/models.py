"""Chat domain models."""

from sqlalchemy import Boolean, ForeignKey, Integer, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, CreatedAtMixin
from src.features.user.models import User


class Message(Base, CreatedAtMixin):
    """A message posted to the neighborhood chat."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Moderation (ADMIN only)
    pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    sender: Mapped[User] = relationship(lazy="raise")
