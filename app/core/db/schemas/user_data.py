from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.base import Base

if TYPE_CHECKING:
    from .auth import User


def _empty_progress() -> dict[str, Any]:
    return {
        "points": 0,
        "pomodoroSessions": 0,
        "quizzesTaken": 0,
        "quizScores": [],
    }


class UserDocument(Base):
    """Per-user document holding the nested ``progress`` and ``sources`` fields.

    Both JSON fields are only ever replaced as whole values; progress may be
    addressed with dot paths (``progress.points``) through
    :func:`app.core.db_services.apply_dot_path_updates`.
    """

    __tablename__ = "user_documents"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, default="")
    progress: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=_empty_progress
    )
    sources: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    user: Mapped["User"] = relationship("User", back_populates="document")


class HistoryEntry(Base):
    """A keyed JSON list owned by a user (chat transcripts, generation history)."""

    __tablename__ = "history_entries"
    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_history_user_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String, nullable=False)
    items: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    user: Mapped["User"] = relationship("User", back_populates="history_entries")


__all__ = [
    "UserDocument",
    "HistoryEntry",
]
