from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from .models import Todo
from .schemas import TodoCreate, TodoUpdate

SORTABLE_FIELDS = ("id", "title", "created_at", "updated_at")


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing todos.
    """
    limit: Optional[int] = None
    offset: int = 0
    completed: Optional[bool] = None
    search: Optional[str] = None
    sort_field: str = "id"  # one of SORTABLE_FIELDS
    descending: bool = False


def parse_sort(sort: Optional[str]) -> Tuple[str, bool]:
    """
    Split a sort expression like '-created_at' into (field, descending).

    Raises:
        ValueError if the field is not sortable.
    """
    s = (sort or "id").strip().lower()
    descending = s.startswith("-")
    field = s[1:] if descending else s
    if field not in SORTABLE_FIELDS:
        raise ValueError(f"sort must be one of: {', '.join(SORTABLE_FIELDS)} (optionally prefixed with '-')")
    return field, descending


# PUBLIC_INTERFACE
class TodoRepository:
    """
    Data access for the todos table over a SQLAlchemy session.

    Every mutating method commits before returning.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list(self, query: Optional[ListQuery] = None) -> List[Todo]:
        q = query or ListQuery()
        stmt = select(Todo)

        if q.completed is not None:
            stmt = stmt.where(Todo.completed == q.completed)

        if q.search:
            # autoescape makes % and _ in the search text match literally
            stmt = stmt.where(
                or_(
                    Todo.title.icontains(q.search, autoescape=True),
                    Todo.description.icontains(q.search, autoescape=True),
                )
            )

        if q.sort_field not in SORTABLE_FIELDS:
            raise ValueError(f"cannot sort by {q.sort_field!r}")
        column = getattr(Todo, q.sort_field)
        stmt = stmt.order_by(column.desc() if q.descending else column.asc())
        if q.sort_field != "id":
            stmt = stmt.order_by(Todo.id.asc())

        if q.offset:
            stmt = stmt.offset(max(q.offset, 0))
        if q.limit is not None:
            stmt = stmt.limit(max(q.limit, 0))

        return list(self._session.scalars(stmt).all())

    def get(self, todo_id: int) -> Optional[Todo]:
        return self._session.get(Todo, todo_id)

    def create(self, data: TodoCreate) -> Todo:
        now = datetime.now()
        todo = Todo(
            title=data.title,
            description=data.description,
            completed=data.completed,
            created_at=now,
            updated_at=now,
        )
        self._session.add(todo)
        self._session.commit()
        return todo

    def update(self, todo_id: int, data: TodoUpdate) -> Optional[Todo]:
        todo = self._session.get(Todo, todo_id)
        if todo is None:
            return None

        # Only fields present in the payload are written
        for name, value in data.model_dump(exclude_unset=True).items():
            setattr(todo, name, value)
        todo.updated_at = datetime.now()
        self._session.commit()
        return todo

    def delete(self, todo_id: int) -> bool:
        result = self._session.execute(delete(Todo).where(Todo.id == todo_id))
        self._session.commit()
        return result.rowcount > 0
