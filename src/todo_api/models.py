from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, false
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TITLE_MAX_LENGTH = 255


class Base(DeclarativeBase):
    pass


# PUBLIC_INTERFACE
class Todo(Base):
    """
    ORM mapping of the 'todos' table.

    The table itself is created by the migrations package; this class only
    maps it. Fields:
    - id: Unique integer identifier assigned by the store
    - title: Short title (1..255 chars, trimmed on input via schemas)
    - description: Optional detailed description
    - completed: Boolean completion flag, false by default
    - created_at: Creation timestamp, set on insert
    - updated_at: Last update timestamp, set on insert and update
    """

    __tablename__ = "todos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=datetime.now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, default=datetime.now, onupdate=datetime.now
    )

    def __repr__(self) -> str:
        return f"<Todo(id={self.id}, title={self.title!r}, completed={self.completed})>"
