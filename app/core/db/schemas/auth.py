from __future__ import annotations

from typing import TYPE_CHECKING
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTable

from app.core.db.base import Base

if TYPE_CHECKING:
    from .user_data import HistoryEntry, UserDocument


class User(SQLAlchemyBaseUserTable[int], Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(length=200), nullable=False, default="")

    # Relationships
    document: Mapped["UserDocument"] = relationship(
        "UserDocument",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
    )
    history_entries: Mapped[list["HistoryEntry"]] = relationship(
        "HistoryEntry", back_populates="user", cascade="all, delete-orphan"
    )


__all__ = ["User"]
